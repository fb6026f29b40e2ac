import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, Uuid

from docsafe.db.base import Base, utcnow


class DocumentTag(Base):
    __tablename__ = "document_tags"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    document_id = Column(
        Uuid, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tag = Column(String(100), nullable=False)
    color = Column(String(32), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class SharedDocument(Base):
    __tablename__ = "shared_documents"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    document_id = Column(
        Uuid, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True
    )
    shared_with_user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    shared_by_user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    permission = Column(String(16), nullable=False, default="view")  # view | comment | edit
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
