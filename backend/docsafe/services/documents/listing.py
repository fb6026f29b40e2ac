from dataclasses import dataclass, field
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from docsafe.core.config import settings
from docsafe.core.exceptions import DocumentsUnavailableException
from docsafe.core.logging import get_logger
from docsafe.models.document import Document
from docsafe.models.folder import DocumentFolder, FolderDocument
from docsafe.models.user import User
from docsafe.schemas.common import Pagination
from docsafe.schemas.document import DocumentRow, FilterFacets
from docsafe.services.documents.filters import SORT_COLUMNS, DocumentFilter
from docsafe.utils.pagination import compute_total_pages, normalize_limit, normalize_page, page_bounds

logger = get_logger(__name__)

FACET_SAMPLE_SIZE = 1000


@dataclass
class DocumentPage:
    documents: List[DocumentRow] = field(default_factory=list)
    total: int = 0
    pages: int = 0
    page: int = 1
    limit: int = 10

    def pagination(self) -> Pagination:
        return Pagination(total=self.total, pages=self.pages, current_page=self.page, per_page=self.limit)


def _owner_name(first_name: Optional[str], last_name: Optional[str]) -> str:
    parts = [p for p in (first_name, last_name) if p]
    return " ".join(parts) if parts else "Usuario"


def _listing_select():
    return (
        select(
            Document,
            User.id.label("owner_ref"),
            User.first_name,
            User.last_name,
            User.email,
            DocumentFolder.id.label("folder_ref"),
            DocumentFolder.name.label("folder_name"),
            DocumentFolder.color.label("folder_color"),
        )
        .outerjoin(User, User.id == Document.owner_id)
        .outerjoin(FolderDocument, FolderDocument.document_id == Document.id)
        .outerjoin(DocumentFolder, DocumentFolder.id == FolderDocument.folder_id)
    )


def _to_row(record) -> DocumentRow:
    doc: Document = record[0]
    has_owner = record.owner_ref is not None
    return DocumentRow(
        id=doc.id,
        title=doc.title,
        filename=doc.filename,
        status=doc.status,
        category=doc.category,
        document_type=doc.mime_type,
        mime_type=doc.mime_type,
        file_size=doc.file_size or 0,
        storage_path=doc.storage_path,
        page_count=doc.page_count,
        description=doc.description,
        owner_id=doc.owner_id,
        owner_name=_owner_name(record.first_name, record.last_name) if has_owner else None,
        owner_email=record.email if has_owner else None,
        folder_id=record.folder_ref,
        folder_name=record.folder_name,
        folder_color=record.folder_color,
        created_at=doc.created_at,
        updated_at=doc.updated_at,
    )


class DocumentListingService:
    """Filtered, sorted, paginated document listing with owner and folder inlined."""

    async def list_documents(
        self,
        db: AsyncSession,
        filters: DocumentFilter,
        default_limit: Optional[int] = None,
    ) -> DocumentPage:
        page = normalize_page(filters.page)
        limit = normalize_limit(
            filters.limit,
            default=default_limit or settings.DEFAULT_PAGE_SIZE,
            maximum=settings.MAX_PAGE_SIZE,
        )

        try:
            conditions = filters.conditions()

            folder_id = filters.folder_uuid()
            if folder_id is not None:
                ids_stmt = select(FolderDocument.document_id).where(FolderDocument.folder_id == folder_id)
                document_ids = list((await db.execute(ids_stmt)).scalars().all())
                if not document_ids:
                    # Empty folder: nothing to query
                    return DocumentPage(documents=[], total=0, pages=0, page=page, limit=limit)
                conditions.append(Document.id.in_(document_ids))

            count_stmt = select(func.count()).select_from(Document).where(*conditions)
            total = int((await db.execute(count_stmt)).scalar() or 0)

            column = SORT_COLUMNS[filters.sort_key()]
            ordering = column.asc() if filters.ascending() else column.desc()
            offset, size = page_bounds(page, limit)
            stmt = (
                _listing_select()
                .where(*conditions)
                .order_by(ordering, Document.id.asc())
                .offset(offset)
                .limit(size)
            )
            records = (await db.execute(stmt)).all()
        except (SQLAlchemyError, ValueError, LookupError) as exc:
            logger.error(f"Error obteniendo documentos: {exc}")
            raise DocumentsUnavailableException(details=str(exc))

        return DocumentPage(
            documents=[_to_row(r) for r in records],
            total=total,
            pages=compute_total_pages(total, limit),
            page=page,
            limit=limit,
        )

    async def get_row(self, db: AsyncSession, document_id: UUID) -> Optional[DocumentRow]:
        stmt = _listing_select().where(Document.id == document_id).limit(1)
        record = (await db.execute(stmt)).first()
        return _to_row(record) if record else None

    async def filter_facets(self, db: AsyncSession) -> FilterFacets:
        """Distinct types, categories and owner names for the filter dropdowns."""
        stmt = (
            select(Document.mime_type, Document.category, User.first_name, User.last_name, User.id)
            .outerjoin(User, User.id == Document.owner_id)
            .limit(FACET_SAMPLE_SIZE)
        )
        types, categories, users = [], [], []
        for mime_type, category, first_name, last_name, owner_ref in (await db.execute(stmt)).all():
            if mime_type and mime_type not in types:
                types.append(mime_type)
            if category and category not in categories:
                categories.append(category)
            if owner_ref is not None:
                name = _owner_name(first_name, last_name)
                if name not in users:
                    users.append(name)
        return FilterFacets(types=types, categories=categories, users=users)


document_listing_service = DocumentListingService()
