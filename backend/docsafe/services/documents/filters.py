"""Request-scoped document filter and the predicates it compiles to."""
import calendar
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import exists, or_, select
from sqlalchemy.orm import aliased

from docsafe.models.document import Document, DocumentStatus
from docsafe.models.folder import FolderDocument

SORT_COLUMNS = {
    "title": Document.title,
    "created_at": Document.created_at,
    "filename": Document.filename,
    "status": Document.status,
    "file_size": Document.file_size,
    "document_type": Document.mime_type,
    "category": Document.category,
    "updated_at": Document.updated_at,
}
DEFAULT_SORT = "created_at"

# `folder=null` in the query string selects documents outside every folder
UNASSIGNED_FOLDER_TOKENS = {"null", "none", "sin-carpeta"}

_MONTH = re.compile(r"^(\d{4})-(\d{2})$")


def split_multi(values: Optional[Iterable[str]]) -> List[str]:
    """Accept `?status=a&status=b` as well as `?status=a,b`."""
    result: List[str] = []
    for value in values or []:
        if value is None:
            continue
        result.extend(part.strip() for part in str(value).split(",") if part.strip())
    return result


def _parse_month(value: str) -> Optional[Tuple[int, int]]:
    match = _MONTH.match(value.strip())
    if not match:
        return None
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month: {value}")
    return year, month


def _parse_instant(value: str) -> datetime:
    cleaned = value.strip()
    if cleaned.endswith("Z"):
        cleaned = cleaned[:-1] + "+00:00"
    parsed = datetime.fromisoformat(cleaned)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def month_lower_bound(value: str) -> datetime:
    """`YYYY-MM` starts at `YYYY-MM-01`; full dates are used as given."""
    month = _parse_month(value)
    if month:
        return datetime(month[0], month[1], 1, tzinfo=timezone.utc)
    return _parse_instant(value)


def month_upper_bound(value: str) -> Tuple[datetime, bool]:
    """
    Upper bound for `date_to`, plus whether it is exclusive.

    `YYYY-MM` maps to an exclusive `YYYY-MM-31`. Months shorter than 31 days
    have no such day, so the bound falls on the first day of the next month,
    which keeps every day of the short month. The 31st of a long month stays
    excluded. Full dates are inclusive bounds.
    """
    month = _parse_month(value)
    if not month:
        return _parse_instant(value), False
    year, mon = month
    if calendar.monthrange(year, mon)[1] >= 31:
        return datetime(year, mon, 31, tzinfo=timezone.utc), True
    if mon == 12:
        return datetime(year + 1, 1, 1, tzinfo=timezone.utc), True
    return datetime(year, mon + 1, 1, tzinfo=timezone.utc), True


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@dataclass
class DocumentFilter:
    """Optional predicates for one listing request. Never persisted."""
    search: Optional[str] = None
    status: List[str] = field(default_factory=list)
    category: List[str] = field(default_factory=list)
    mime_type: Optional[str] = None
    folder_id: Optional[str] = None
    owner_id: Optional[str] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    page: Optional[int] = None
    limit: Optional[int] = None
    sort_by: Optional[str] = None
    sort_order: Optional[str] = None

    @property
    def wants_unassigned(self) -> bool:
        return bool(self.folder_id) and self.folder_id.strip().lower() in UNASSIGNED_FOLDER_TOKENS

    def folder_uuid(self) -> Optional[UUID]:
        if not self.folder_id or self.wants_unassigned:
            return None
        return UUID(self.folder_id.strip())

    def sort_key(self) -> str:
        return self.sort_by if self.sort_by in SORT_COLUMNS else DEFAULT_SORT

    def ascending(self) -> bool:
        return (self.sort_order or "desc").lower() == "asc"

    def conditions(self) -> list:
        """
        Compile every predicate except the folder set, which needs its own
        round trip. Raises ValueError on malformed values.
        """
        clauses = []
        if self.status:
            clauses.append(Document.status.in_([DocumentStatus(s) for s in self.status]))
        if self.category:
            clauses.append(Document.category.in_(self.category))
        if self.mime_type:
            clauses.append(Document.mime_type == self.mime_type)
        if self.owner_id:
            clauses.append(Document.owner_id == UUID(str(self.owner_id).strip()))
        if self.search and self.search.strip():
            pattern = f"%{_escape_like(self.search.strip())}%"
            clauses.append(
                or_(
                    Document.title.ilike(pattern, escape="\\"),
                    Document.filename.ilike(pattern, escape="\\"),
                )
            )
        if self.date_from:
            clauses.append(Document.created_at >= month_lower_bound(self.date_from))
        if self.date_to:
            upper, exclusive = month_upper_bound(self.date_to)
            clauses.append(Document.created_at < upper if exclusive else Document.created_at <= upper)
        if self.wants_unassigned:
            # The listing query joins folder_documents itself; the alias keeps
            # the subquery from being correlated away
            linked = aliased(FolderDocument)
            clauses.append(
                ~exists(select(linked.document_id).where(linked.document_id == Document.id).correlate(Document))
            )
        return clauses
