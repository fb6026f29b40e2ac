from .service import FINISHED_STATUSES, TaskService, task_service

__all__ = ["FINISHED_STATUSES", "TaskService", "task_service"]
