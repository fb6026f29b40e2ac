import math
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from docsafe.core.logging import get_logger
from docsafe.core.permissions import Identity
from docsafe.models.activity import Activity
from docsafe.models.document import Document
from docsafe.models.folder import DocumentFolder, FolderDocument
from docsafe.schemas.stats import AdminStats, ChartData, DailyActivity, HourlyActivity, StatusShare
from docsafe.utils.files import format_storage_size

logger = get_logger(__name__)

UNASSIGNED_FOLDER_LABEL = "Sin carpeta"
# No category relation exists yet; every document is counted here.
DEFAULT_CATEGORY_LABEL = "General"
RECENT_UPLOAD_DAYS = 7
MAX_CHART_DAYS = 365


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # sqlite hands back naive datetimes; they were written as UTC
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _status_value(status) -> str:
    return getattr(status, "value", None) or str(status or "uploaded")


class StatsService:
    """Dashboard aggregates. Recomputed on every call, never cached."""

    async def admin_stats(self, db: AsyncSession, now: Optional[datetime] = None) -> AdminStats:
        now = now or datetime.now(timezone.utc)
        week_ago = now - timedelta(days=RECENT_UPLOAD_DAYS)

        doc_rows = (
            await db.execute(select(Document.id, Document.status, Document.file_size, Document.created_at))
        ).all()
        folder_rows = (await db.execute(select(DocumentFolder.id, DocumentFolder.name))).all()
        link_rows = (await db.execute(select(FolderDocument.folder_id, FolderDocument.document_id))).all()

        by_status: Dict[str, int] = {}
        by_category: Dict[str, int] = {}
        storage_usage = 0
        recent_uploads = 0
        for _, status, file_size, created_at in doc_rows:
            key = _status_value(status)
            by_status[key] = by_status.get(key, 0) + 1
            by_category[DEFAULT_CATEGORY_LABEL] = by_category.get(DEFAULT_CATEGORY_LABEL, 0) + 1
            storage_usage += file_size or 0
            created = _as_utc(created_at)
            if created and created > week_ago:
                recent_uploads += 1

        document_ids = {row[0] for row in doc_rows}
        per_folder = Counter(folder_id for folder_id, document_id in link_rows if document_id in document_ids)
        by_folder: Dict[str, int] = {UNASSIGNED_FOLDER_LABEL: 0}
        for folder_id, name in folder_rows:
            # Same-named folders share a bucket
            by_folder[name] = by_folder.get(name, 0) + per_folder.get(folder_id, 0)

        linked = {document_id for _, document_id in link_rows}
        by_folder[UNASSIGNED_FOLDER_LABEL] += len(document_ids - linked)

        return AdminStats(
            total_documents=len(doc_rows),
            documents_by_status=by_status,
            documents_by_category=by_category,
            documents_by_folder=by_folder,
            recent_uploads=recent_uploads,
            storage_usage=storage_usage,
            storage_usage_formatted=format_storage_size(storage_usage),
        )

    async def chart_data(
        self,
        db: AsyncSession,
        identity: Identity,
        days: int = 30,
        now: Optional[datetime] = None,
    ) -> ChartData:
        days = max(1, min(30 if days is None else int(days), MAX_CHART_DAYS))
        now = now or datetime.now(timezone.utc)
        today = now.date()
        start = datetime.combine(today - timedelta(days=days - 1), datetime.min.time(), tzinfo=timezone.utc)

        activity_times = (
            await db.execute(
                select(Activity.created_at).where(
                    Activity.user_id == identity.id, Activity.created_at >= start
                )
            )
        ).scalars().all()
        doc_rows = (
            await db.execute(
                select(Document.created_at, Document.status).where(
                    Document.owner_id == identity.id, Document.created_at >= start
                )
            )
        ).all()

        daily = {
            (today - timedelta(days=offset)).isoformat(): {"documents": 0, "activities": 0}
            for offset in range(days)
        }
        hourly = {hour: 0 for hour in range(24)}
        for created_at in activity_times:
            created = _as_utc(created_at)
            bucket = daily.get(created.date().isoformat())
            if bucket is not None:
                bucket["activities"] += 1
            hourly[created.hour] += 1

        statuses: Dict[str, int] = {}
        for created_at, status in doc_rows:
            bucket = daily.get(_as_utc(created_at).date().isoformat())
            if bucket is not None:
                bucket["documents"] += 1
            key = _status_value(status)
            statuses[key] = statuses.get(key, 0) + 1

        total = sum(statuses.values())
        return ChartData(
            daily_activity=[DailyActivity(date=day, **counts) for day, counts in sorted(daily.items())],
            hourly_activity=[HourlyActivity(hour=hour, count=count) for hour, count in hourly.items()],
            status_distribution=[
                StatusShare(
                    status=status,
                    count=count,
                    percentage=math.floor(count * 100 / total + 0.5) if total else 0,
                )
                for status, count in statuses.items()
            ],
        )


stats_service = StatsService()
