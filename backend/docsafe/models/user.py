from sqlalchemy import Column, String, DateTime, Uuid
import uuid

from docsafe.db.base import Base, utcnow

class User(Base):
    """Mirror of an identity-provider account."""
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    external_id = Column(String(255), unique=True, nullable=False, index=True)

    email = Column(String(255), nullable=False, index=True)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    username = Column(String(255), nullable=True)
    role = Column(String(32), nullable=False, default="empleado")
    avatar_url = Column(String(1024), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
    last_sign_in_at = Column(DateTime(timezone=True), nullable=True)

    @property
    def full_name(self) -> str:
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) if parts else "Usuario"
