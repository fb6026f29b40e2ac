import uuid

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, JSON, String, Text, Uuid

from docsafe.db.base import Base, utcnow


class OcrResult(Base):
    __tablename__ = "ocr_results"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    document_id = Column(
        Uuid, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True
    )
    page_number = Column(Integer, nullable=False, default=1)
    text_content = Column(Text, nullable=True)
    confidence = Column(Float, nullable=True)
    language = Column(String(16), nullable=True)
    raw_data = Column(JSON, nullable=True)
    processed_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
