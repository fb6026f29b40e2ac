from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from docsafe.models.activity import Activity


class ActivityService:
    """Appends audit rows. Callers own the commit so the row joins their transaction."""

    def record(
        self,
        db: AsyncSession,
        user_id: Optional[UUID],
        action: str,
        *,
        entity_type: Optional[str] = None,
        entity_id: Optional[Any] = None,
        metadata: Optional[Dict[str, Any]] = None,
        admin: bool = False,
    ) -> Activity:
        payload = dict(metadata or {})
        if admin:
            action = f"admin_{action}"
            payload["admin_action"] = True
            payload["timestamp"] = datetime.now(timezone.utc).isoformat()

        activity = Activity(
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            # JSON columns need plain types
            activity_metadata=_jsonable(payload) if payload else None,
        )
        db.add(activity)
        return activity


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_jsonable(v) for v in value]
    if isinstance(value, (UUID, datetime)):
        return str(value)
    if hasattr(value, "value") and isinstance(getattr(value, "value"), str):
        return value.value
    return value


activity_service = ActivityService()
