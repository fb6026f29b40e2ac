from pathlib import Path
from typing import List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str = "DocSafe API"
    API_PREFIX: str = "/api"

    DATABASE_URL: str
    DB_ECHO: bool = False

    # CORS
    ALLOWED_ORIGINS: str = "*"
    ENVIRONMENT: str = "development"

    # Identity provider
    IDENTITY_JWT_SECRET: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("IDENTITY_JWT_SECRET", "JWT_SECRET", "SECRET_KEY"),
    )
    IDENTITY_JWT_ALGORITHM: str = Field(
        default="HS256",
        validation_alias=AliasChoices("IDENTITY_JWT_ALGORITHM", "JWT_ALGORITHM"),
    )
    IDENTITY_JWKS_URL: Optional[str] = None
    IDENTITY_JWT_AUDIENCE: Optional[str] = None
    IDENTITY_API_URL: str = "https://api.clerk.com/v1"
    IDENTITY_API_KEY: Optional[str] = None
    IDENTITY_API_TIMEOUT_SECONDS: float = 10.0
    DEFAULT_ROLE: str = "empleado"

    # Object storage
    STORAGE_BACKEND: str = "supabase"  # supabase | s3 | local
    SUPABASE_URL: Optional[str] = None
    SUPABASE_SERVICE_KEY: Optional[str] = None
    SUPABASE_BUCKET: str = "documents"
    S3_ENDPOINT: Optional[str] = None
    S3_ACCESS_KEY: Optional[str] = None
    S3_SECRET_KEY: Optional[str] = None
    S3_BUCKET: str = "documents"
    S3_REGION: Optional[str] = None
    S3_SECURE: bool = True
    UPLOAD_DIR: str = "uploads"
    SIGNED_URL_EXPIRES_IN: int = 3600

    # Uploads
    MAX_UPLOAD_SIZE: int = 100 * 1024 * 1024  # 100MB max file size
    ALLOWED_MIME_TYPES: str = (
        "application/pdf,image/jpeg,image/jpg,image/png,image/gif,image/webp,text/plain,"
        "application/msword,"
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document,"
        "application/vnd.ms-excel,"
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )

    # Listing
    DEFAULT_PAGE_SIZE: int = 10
    ADMIN_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    # OCR
    OCR_ENGINE: str = "mock"  # mock | tesseract
    OCR_LANGUAGE: str = "spa"
    OCR_MAX_ATTEMPTS: int = 3
    OCR_RETRY_DELAY_SECONDS: float = 2.0
    # Unfinished OCR tasks younger than this are left to the worker that owns them
    OCR_STALE_AFTER_SECONDS: float = 900.0
    TESSERACT_CMD: Optional[str] = None
    POPPLER_PATH: Optional[str] = None

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_FILE: str = "docsafe.log"

    # Load backend-local .env regardless of current working directory.
    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parents[2] / ".env"),
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def allowed_mime_types(self) -> List[str]:
        return [t.strip().lower() for t in self.ALLOWED_MIME_TYPES.split(",") if t.strip()]

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() in {"development", "dev", "local"}

settings = Settings()
