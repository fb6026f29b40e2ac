from typing import Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from docsafe.api.deps import document_filter, get_identity, require
from docsafe.core.config import settings
from docsafe.core.exceptions import ValidationException
from docsafe.core.logging import get_logger
from docsafe.core.permissions import Capability, Identity
from docsafe.dependencies import get_db
from docsafe.models.document import DocumentStatus
from docsafe.schemas.document import (
    DocumentCreate,
    DocumentListResponse,
    DocumentOverviewResponse,
    DocumentResponse,
    DocumentUploadResponse,
    DownloadResponse,
    OcrRequest,
    OcrStartedResponse,
    UploadedDocument,
)
from docsafe.schemas.folder import FoldersRefreshResponse, MoveDocumentsRequest, MoveDocumentsResponse
from docsafe.services.documents import (
    DocumentFilter,
    document_listing_service,
    document_service,
    parse_tags,
)
from docsafe.services.folders import folder_service, moved_message
from docsafe.services.ocr import ocr_job_service

logger = get_logger(__name__)

router = APIRouter()


@router.get("", response_model=DocumentOverviewResponse)
async def list_documents(
    filters: DocumentFilter = Depends(document_filter),
    identity: Identity = Depends(require(Capability.VIEW_DOCUMENTS)),
    db: AsyncSession = Depends(get_db),
):
    """List documents with filters, plus folders and filter facets."""
    page = await document_listing_service.list_documents(db, filters, default_limit=settings.DEFAULT_PAGE_SIZE)
    folders = await folder_service.list_folders(db)
    facets = await document_listing_service.filter_facets(db)
    return DocumentOverviewResponse(
        data=page.documents,
        pagination=page.pagination(),
        folders=folders,
        filters=facets,
    )


@router.put("", response_model=MoveDocumentsResponse)
async def move_documents_bulk(
    body: MoveDocumentsRequest,
    identity: Identity = Depends(require(Capability.MOVE_DOCUMENTS)),
    db: AsyncSession = Depends(get_db),
):
    """Bulk move; answers with refreshed folder counts."""
    count = await folder_service.move_documents(db, identity, body.document_ids, body.folder_id)
    return MoveDocumentsResponse(message=moved_message(count), folders=await folder_service.list_folders(db))


@router.delete("", response_model=FoldersRefreshResponse)
async def delete_document(
    id: Optional[UUID] = None,
    identity: Identity = Depends(require(Capability.VIEW_DOCUMENTS)),
    db: AsyncSession = Depends(get_db),
):
    """Delete one document (owner or admin)."""
    await document_service.delete_document(db, identity, id)
    return FoldersRefreshResponse(
        message="Documento eliminado exitosamente",
        folders=await folder_service.list_folders(db),
    )


@router.get("/consultation", response_model=DocumentListResponse)
async def consult_documents(
    filters: DocumentFilter = Depends(document_filter),
    identity: Identity = Depends(require(Capability.VIEW_DOCUMENTS)),
    db: AsyncSession = Depends(get_db),
):
    """Simplified listing for the consultation view."""
    page = await document_listing_service.list_documents(db, filters, default_limit=settings.DEFAULT_PAGE_SIZE)
    return DocumentListResponse(data=page.documents, pagination=page.pagination())


@router.post("/upload", response_model=DocumentUploadResponse)
@router.post("/upload-s3", response_model=DocumentUploadResponse, include_in_schema=False)
async def upload_document(
    background_tasks: BackgroundTasks,
    file: Optional[UploadFile] = File(None),
    title: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    activate_ocr: Optional[bool] = Form(None),
    activate_ocr_legacy: Optional[bool] = Form(None, alias="activateOCR"),
    identity: Identity = Depends(require(Capability.UPLOAD_DOCUMENTS)),
    db: AsyncSession = Depends(get_db),
):
    """Upload a file, store it and persist its metadata."""
    if file is None or not file.filename:
        raise ValidationException("No se proporcionó ningún archivo")

    content = await file.read()
    tag_list = parse_tags(tags)
    document = await document_service.upload_document(
        db,
        identity,
        filename=file.filename,
        content=content,
        content_type=file.content_type,
        title=title,
        category=category,
        description=description,
        tags=tag_list,
    )

    ocr_enabled = bool(activate_ocr or activate_ocr_legacy)
    task_id = None
    if ocr_enabled:
        task = await ocr_job_service.start(db, identity, document.id, background_tasks)
        task_id = task.id

    return DocumentUploadResponse(
        document=UploadedDocument(
            id=document.id,
            title=document.title,
            filename=document.filename,
            status=document.status,
            storage_path=document.storage_path,
            size=document.file_size,
            type=document.mime_type,
            category=document.category,
            tags=tag_list,
            ocr_enabled=ocr_enabled,
            task_id=task_id,
        )
    )


@router.post("/create", response_model=DocumentResponse)
@router.post("/create-bypass", response_model=DocumentResponse, include_in_schema=False)
@router.post("/create-mock", response_model=DocumentResponse, include_in_schema=False)
async def create_document(
    body: DocumentCreate,
    identity: Identity = Depends(require(Capability.UPLOAD_DOCUMENTS)),
    db: AsyncSession = Depends(get_db),
):
    """Register metadata for bytes already in storage."""
    document = await document_service.create_document(db, identity, body)
    return DocumentResponse(data=await document_listing_service.get_row(db, document.id))


@router.post("/move", response_model=MoveDocumentsResponse)
async def move_documents(
    body: MoveDocumentsRequest,
    identity: Identity = Depends(require(Capability.MOVE_DOCUMENTS)),
    db: AsyncSession = Depends(get_db),
):
    count = await folder_service.move_documents(db, identity, body.document_ids, body.folder_id)
    return MoveDocumentsResponse(message=moved_message(count))


@router.post("/ocr", response_model=OcrStartedResponse)
async def start_ocr(
    body: OcrRequest,
    background_tasks: BackgroundTasks,
    identity: Identity = Depends(require(Capability.UPLOAD_DOCUMENTS)),
    db: AsyncSession = Depends(get_db),
):
    """Queue OCR and return immediately; poll the task or the document."""
    task = await ocr_job_service.start(db, identity, body.document_id, background_tasks)
    return OcrStartedResponse(
        message="Procesamiento OCR iniciado",
        document_id=body.document_id,
        status=DocumentStatus.PROCESSING,
        task_id=task.id,
    )


@router.get("/{document_id}/download", response_model=DownloadResponse)
async def download_document(
    document_id: UUID,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
):
    """Issue a time-limited signed URL for the stored file."""
    link = await document_service.download_link(db, document_id)
    logger.info(f"Download link issued for {document_id} to {identity.external_id}")
    return DownloadResponse(**link)
