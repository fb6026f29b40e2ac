from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID
import json
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import and_, or_, select

from docsafe.db.base import utcnow
from docsafe.models.task import Task, TaskStatus, TaskType
from docsafe.core.logging import get_logger

logger = get_logger(__name__)

FINISHED_STATUSES = (TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.DEAD_LETTER)


class TaskService:
    """Task rows backing deferred work. Clients poll them for progress."""

    def create_task(
        self,
        db: AsyncSession,
        task_type: TaskType,
        description: str = None,
        metadata: Dict[str, Any] = None,
        max_attempts: int = 1,
    ) -> Task:
        """Add a pending task to the session. The caller commits."""
        task = Task(
            task_type=task_type,
            status=TaskStatus.PENDING,
            description=description,
            max_attempts=max(1, max_attempts),
            attempts=0,
            progress=0,
            # UUIDs and datetimes are stored as strings
            task_metadata=json.dumps(metadata, default=str) if metadata else None,
        )
        db.add(task)
        return task

    async def get_task(self, db: AsyncSession, task_id: UUID) -> Optional[Task]:
        """Get a task by ID."""
        stmt = select(Task).where(Task.id == task_id)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    def set_status(
        self,
        task: Task,
        status: TaskStatus,
        error_message: str = None,
        progress: int = None,
    ) -> None:
        """Update status and the matching timestamps in place."""
        task.status = status

        if status == TaskStatus.RUNNING:
            task.started_at = utcnow()
        elif status in FINISHED_STATUSES:
            task.completed_at = utcnow()

        if error_message:
            task.error_message = error_message

        if progress is not None:
            task.progress = progress

    async def unfinished_tasks(
        self,
        db: AsyncSession,
        task_types: Iterable[TaskType],
        older_than: Optional[datetime] = None,
    ) -> List[Task]:
        """Pending or running tasks; with `older_than`, only those last touched before it."""
        stmt = select(Task).where(
            Task.task_type.in_(list(task_types)),
            Task.status.in_([TaskStatus.PENDING, TaskStatus.RUNNING]),
        )
        if older_than is not None:
            stmt = stmt.where(
                or_(
                    Task.started_at < older_than,
                    and_(Task.started_at.is_(None), Task.created_at < older_than),
                )
            )
        return list((await db.execute(stmt)).scalars().all())

    @staticmethod
    def metadata_of(task: Task) -> Dict[str, Any]:
        if not task.task_metadata:
            return {}
        try:
            return json.loads(task.task_metadata)
        except ValueError:
            logger.warning(f"Task {task.id} has unreadable metadata")
            return {}


# Global instance
task_service = TaskService()
