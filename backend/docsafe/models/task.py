from sqlalchemy import Column, Integer, String, DateTime, Text, Enum, Uuid
import enum
import uuid

from docsafe.db.base import Base, utcnow

class TaskStatus(str, enum.Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    DEAD_LETTER = "dead_letter"

class TaskType(str, enum.Enum):
    OCR_PROCESSING = "ocr_processing"

class Task(Base):
    __tablename__ = "tasks"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    task_type = Column(
        Enum(TaskType, name="task_type", native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    status = Column(
        Enum(TaskStatus, name="task_status", native_enum=False, values_callable=lambda e: [m.value for m in e]),
        default=TaskStatus.PENDING,
        nullable=False,
    )
    description = Column(String(255))
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    error_message = Column(Text, nullable=True)
    progress = Column(Integer, default=0)  # 0-100
    attempts = Column(Integer, default=0, nullable=False)
    max_attempts = Column(Integer, default=1, nullable=False)
    task_metadata = Column(Text, nullable=True)  # JSON string for additional data
