from pydantic import BaseModel
from uuid import UUID
from datetime import datetime
from typing import Optional
from docsafe.models.task import TaskStatus, TaskType

class TaskResponse(BaseModel):
    id: UUID
    task_type: TaskType
    status: TaskStatus
    description: Optional[str] = None
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None
    progress: int = 0
    attempts: int = 0
    max_attempts: int = 1

    class Config:
        from_attributes = True
