import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, Uuid

from docsafe.db.base import Base, utcnow


class DocumentFolder(Base):
    __tablename__ = "document_folders"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    color = Column(String(32), nullable=False, default="#6B7280")
    created_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class FolderDocument(Base):
    """Junction row; the application keeps at most one row per document."""
    __tablename__ = "folder_documents"

    folder_id = Column(
        Uuid, ForeignKey("document_folders.id", ondelete="CASCADE"), primary_key=True
    )
    document_id = Column(
        Uuid, ForeignKey("documents.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
