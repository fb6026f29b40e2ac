from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from docsafe.api.deps import document_filter, require
from docsafe.core.config import settings
from docsafe.core.exceptions import NotFoundException
from docsafe.core.permissions import Capability, Identity
from docsafe.dependencies import get_db
from docsafe.schemas.common import MessageResponse
from docsafe.schemas.document import DocumentListResponse, DocumentResponse, DocumentUpdate
from docsafe.services.documents import DocumentFilter, document_listing_service, document_service

router = APIRouter()

manage_documents = require(Capability.MANAGE_ALL_DOCUMENTS)


@router.get("", response_model=DocumentListResponse)
async def list_all_documents(
    filters: DocumentFilter = Depends(document_filter),
    identity: Identity = Depends(manage_documents),
    db: AsyncSession = Depends(get_db),
):
    page = await document_listing_service.list_documents(db, filters, default_limit=settings.ADMIN_PAGE_SIZE)
    return DocumentListResponse(data=page.documents, pagination=page.pagination())


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: UUID,
    identity: Identity = Depends(manage_documents),
    db: AsyncSession = Depends(get_db),
):
    row = await document_listing_service.get_row(db, document_id)
    if row is None:
        raise NotFoundException("Documento no encontrado")
    return DocumentResponse(data=row)


@router.put("/{document_id}", response_model=DocumentResponse)
async def update_document(
    document_id: UUID,
    body: DocumentUpdate,
    identity: Identity = Depends(manage_documents),
    db: AsyncSession = Depends(get_db),
):
    """Edit metadata, status (forward only) or folder."""
    await document_service.update_document(db, identity, document_id, body)
    return DocumentResponse(data=await document_listing_service.get_row(db, document_id))


@router.delete("/{document_id}", response_model=MessageResponse)
async def delete_document(
    document_id: UUID,
    identity: Identity = Depends(manage_documents),
    db: AsyncSession = Depends(get_db),
):
    await document_service.delete_document(db, identity, document_id, admin=True)
    return MessageResponse(message="Documento eliminado exitosamente")
