from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from docsafe.core.config import settings
from docsafe.core.logging import configure_logging, get_logger
from docsafe.api.routes import (
    admin_documents,
    admin_folders,
    admin_stats,
    admin_users,
    charts,
    documents,
    health,
    tasks,
)
from docsafe.services.ocr import ocr_job_service

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info(f"{settings.PROJECT_NAME} starting ({settings.ENVIRONMENT})")
    # Jobs cut short by the previous process would otherwise stay `processing`
    await ocr_job_service.recover_interrupted()
    yield
    logger.info(f"{settings.PROJECT_NAME} shutting down")


def _error_body(message: str, details=None) -> dict:
    body = {"error": message}
    if details:
        body["details"] = details
    return body


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    details = getattr(exc, "details", None)
    if exc.status_code >= 500 and not settings.is_development:
        details = None
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(str(exc.detail), details),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = "Datos inválidos"
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body(message, jsonable_encoder(errors) if settings.is_development else None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("Internal server error", str(exc) if settings.is_development else None),
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
        lifespan=lifespan,
    )

    # CORS configuration
    allowed_origins = ["http://localhost:5173", "http://localhost:8080", "http://localhost:3000"]
    if settings.ALLOWED_ORIGINS and settings.ALLOWED_ORIGINS != "*":
        allowed_origins = [origin.strip() for origin in settings.ALLOWED_ORIGINS.split(",")] + allowed_origins
    elif settings.ALLOWED_ORIGINS == "*":
        allowed_origins = ["*"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["*"],
    )

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Include routers
    prefix = settings.API_PREFIX
    app.include_router(health.router, tags=["Health"])
    app.include_router(documents.router, prefix=f"{prefix}/documents", tags=["Documents"])
    app.include_router(tasks.router, prefix=f"{prefix}/tasks", tags=["Tasks"])
    app.include_router(charts.router, prefix=f"{prefix}/charts", tags=["Charts"])
    app.include_router(admin_documents.router, prefix=f"{prefix}/admin/documents", tags=["Admin"])
    app.include_router(admin_folders.router, prefix=f"{prefix}/admin/folders", tags=["Admin"])
    app.include_router(admin_stats.router, prefix=f"{prefix}/admin/stats", tags=["Admin"])
    app.include_router(admin_users.router, prefix=f"{prefix}/admin/users", tags=["Admin"])
    return app


app = create_app()
