import enum
import uuid

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, BigInteger, String, Text, Uuid

from docsafe.db.base import Base, utcnow


class DocumentStatus(str, enum.Enum):
    """Lifecycle states for uploaded documents."""
    UPLOADED = "uploaded"
    PROCESSING = "processing"
    PROCESSED = "processed"
    OCR_FAILED = "ocr_failed"
    ERROR = "error"


# Forward-only lifecycle; processed/ocr_failed/error are terminal until re-upload.
ALLOWED_TRANSITIONS = {
    DocumentStatus.UPLOADED: {DocumentStatus.PROCESSING, DocumentStatus.ERROR},
    DocumentStatus.PROCESSING: {
        DocumentStatus.PROCESSED,
        DocumentStatus.OCR_FAILED,
        DocumentStatus.ERROR,
    },
    DocumentStatus.PROCESSED: set(),
    DocumentStatus.OCR_FAILED: set(),
    DocumentStatus.ERROR: set(),
}


def can_transition(current: DocumentStatus, target: DocumentStatus) -> bool:
    if current == target:
        return True
    return target in ALLOWED_TRANSITIONS.get(current, set())


class Document(Base):
    """Represents a user-uploaded document."""
    __tablename__ = "documents"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    title = Column(String(500), nullable=False)
    filename = Column(String(500), nullable=False)
    storage_path = Column(String(1024), nullable=True)
    file_size = Column(BigInteger, nullable=False, default=0)
    mime_type = Column(String(255), nullable=True)
    category = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    page_count = Column(Integer, nullable=True, default=1)
    status = Column(
        Enum(
            DocumentStatus,
            name="document_status",
            native_enum=False,
            values_callable=lambda e: [m.value for m in e],
        ),
        default=DocumentStatus.UPLOADED,
        nullable=False,
    )
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
