from .service import ActivityService, activity_service

__all__ = ["ActivityService", "activity_service"]
