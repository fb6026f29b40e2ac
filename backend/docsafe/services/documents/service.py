import random
from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from docsafe.core.config import settings
from docsafe.core.exceptions import (
    ConflictException,
    NotFoundException,
    PermissionDeniedException,
    StorageException,
    ValidationException,
)
from docsafe.core.logging import get_logger
from docsafe.core.permissions import Capability, Identity
from docsafe.models.document import Document, DocumentStatus, can_transition
from docsafe.models.folder import FolderDocument
from docsafe.models.ocr_result import OcrResult
from docsafe.models.tag import DocumentTag, SharedDocument
from docsafe.schemas.document import DocumentCreate, DocumentUpdate
from docsafe.services.activities import activity_service
from docsafe.services.folders import folder_service, reassign_documents
from docsafe.utils.files import generate_storage_path
from docsafe.utils.storage import StorageBackend, get_storage

logger = get_logger(__name__)

TAG_COLORS = [
    "#EF4444", "#F97316", "#F59E0B", "#EAB308", "#84CC16", "#22C55E",
    "#10B981", "#14B8A6", "#06B6D4", "#0EA5E9", "#3B82F6", "#6366F1",
    "#8B5CF6", "#A855F7", "#D946EF", "#EC4899", "#F43F5E",
]


def parse_tags(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    tags: List[str] = []
    for part in raw.split(","):
        tag = part.strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def transition_status(document: Document, target: DocumentStatus) -> bool:
    """Apply a lifecycle move. Returns False for a same-status no-op."""
    current = DocumentStatus(document.status)
    if not can_transition(current, target):
        raise ConflictException(
            f"Transición de estado no permitida: {current.value} -> {target.value}"
        )
    if current == target:
        return False
    document.status = target
    return True


class DocumentService:
    """Upload, metadata, lifecycle and deletion of documents."""

    def __init__(self, storage: Optional[StorageBackend] = None) -> None:
        self._storage = storage

    @property
    def storage(self) -> StorageBackend:
        return self._storage or get_storage()

    def validate_upload(self, filename: Optional[str], size: int, content_type: Optional[str]) -> None:
        if not filename:
            raise ValidationException("No se proporcionó ningún archivo")
        if size > settings.MAX_UPLOAD_SIZE:
            max_mb = round(settings.MAX_UPLOAD_SIZE / 1024 / 1024)
            raise ValidationException(f"El archivo es demasiado grande. Máximo permitido: {max_mb}MB")
        if (content_type or "").lower() not in settings.allowed_mime_types:
            raise ValidationException(
                "Tipo de archivo no permitido. Tipos soportados: PDF, imágenes, "
                "documentos de Office, texto plano"
            )

    async def upload_document(
        self,
        db: AsyncSession,
        identity: Identity,
        *,
        filename: Optional[str],
        content: bytes,
        content_type: Optional[str],
        title: Optional[str] = None,
        category: Optional[str] = None,
        description: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> Document:
        """Store the bytes, then the metadata. Stored bytes are removed if the metadata insert fails."""
        self.validate_upload(filename, len(content), content_type)

        storage_path = generate_storage_path(filename, str(identity.id))
        await self.storage.upload(storage_path, content, content_type)
        logger.info(f"Stored {filename} ({len(content)} bytes) at {storage_path}")

        try:
            document = Document(
                owner_id=identity.id,
                title=(title or "").strip() or filename,
                filename=filename,
                storage_path=storage_path,
                file_size=len(content),
                mime_type=content_type,
                category=category or None,
                description=description or None,
                page_count=1,
                status=DocumentStatus.UPLOADED,
            )
            db.add(document)
            await db.flush()

            for tag in tags or []:
                db.add(DocumentTag(document_id=document.id, tag=tag, color=random.choice(TAG_COLORS)))

            activity_service.record(
                db,
                identity.id,
                "document_uploaded",
                entity_type="document",
                entity_id=document.id,
                metadata={"filename": filename, "file_size": len(content), "mime_type": content_type},
            )
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.error(f"Saving metadata for {storage_path} failed: {exc}")
            if not await self.storage.delete(storage_path):
                logger.warning(f"Orphaned object left in storage: {storage_path}")
            raise StorageException("Error al guardar el documento", details=str(exc))

        await db.refresh(document)
        logger.info(f"Document uploaded: {document.id}")
        return document

    async def create_document(self, db: AsyncSession, identity: Identity, data: DocumentCreate) -> Document:
        """Metadata-only creation for bytes that are already stored."""
        document = Document(
            owner_id=identity.id,
            title=data.title.strip() or data.filename,
            filename=data.filename,
            storage_path=data.storage_path,
            file_size=data.file_size,
            mime_type=data.mime_type,
            page_count=data.page_count,
            category=data.category,
            description=data.description,
            status=DocumentStatus.UPLOADED,
        )
        db.add(document)
        await db.flush()
        activity_service.record(
            db,
            identity.id,
            "document_created",
            entity_type="document",
            entity_id=document.id,
            metadata={"filename": data.filename, "storage_path": data.storage_path},
        )
        await db.commit()
        await db.refresh(document)
        logger.info(f"Document created: {document.id}")
        return document

    async def get_document(self, db: AsyncSession, document_id: UUID) -> Document:
        document = await db.get(Document, document_id)
        if not document:
            raise NotFoundException("Documento no encontrado")
        return document

    async def update_document(
        self,
        db: AsyncSession,
        identity: Identity,
        document_id: UUID,
        data: DocumentUpdate,
    ) -> Document:
        document = await self.get_document(db, document_id)
        changes = data.model_dump(exclude_unset=True)

        if data.title is not None:
            document.title = data.title.strip()
        if "description" in changes:
            document.description = data.description
        if "category" in changes:
            document.category = data.category
        if data.status is not None:
            transition_status(document, data.status)
        if "folder_id" in changes:
            if data.folder_id is not None:
                await folder_service.get_folder(db, data.folder_id)
            await reassign_documents(db, [document.id], data.folder_id)

        activity_service.record(
            db,
            identity.id,
            "document_updated",
            entity_type="document",
            entity_id=document.id,
            metadata={"changes": changes},
            admin=True,
        )
        await db.commit()
        await db.refresh(document)
        logger.info(f"Document updated: {document.id}")
        return document

    async def delete_document(
        self,
        db: AsyncSession,
        identity: Identity,
        document_id: Optional[UUID],
        admin: bool = False,
    ) -> None:
        """Remove the row and everything hanging off it, then the stored object."""
        if not document_id:
            raise ValidationException("ID de documento requerido")
        document = await self.get_document(db, document_id)
        if document.owner_id != identity.id and not identity.can(Capability.MANAGE_ALL_DOCUMENTS):
            raise PermissionDeniedException("No tienes permiso para eliminar este documento")

        storage_path = document.storage_path
        title = document.title

        await db.execute(delete(OcrResult).where(OcrResult.document_id == document_id))
        await db.execute(delete(DocumentTag).where(DocumentTag.document_id == document_id))
        await db.execute(delete(SharedDocument).where(SharedDocument.document_id == document_id))
        await db.execute(delete(FolderDocument).where(FolderDocument.document_id == document_id))
        await db.delete(document)
        activity_service.record(
            db,
            identity.id,
            "document_deleted",
            entity_type="document",
            entity_id=document_id,
            metadata={"title": title, "storage_path": storage_path},
            admin=admin,
        )
        await db.commit()
        logger.info(f"Document deleted: {document_id}")

        if storage_path and not await self.storage.delete(storage_path):
            logger.warning(f"Could not remove stored object {storage_path}")

    async def download_link(self, db: AsyncSession, document_id: UUID) -> dict:
        document = await self.get_document(db, document_id)
        if not document.storage_path:
            raise NotFoundException("Archivo no encontrado")
        expires_in = settings.SIGNED_URL_EXPIRES_IN
        url = await self.storage.signed_url(document.storage_path, expires_in, document.filename)
        return {
            "url": url,
            "filename": document.filename,
            "title": document.title,
            "expires_in": expires_in,
        }

    async def tags_for(self, db: AsyncSession, document_id: UUID) -> List[str]:
        stmt = select(DocumentTag.tag).where(DocumentTag.document_id == document_id).order_by(DocumentTag.tag)
        return list((await db.execute(stmt)).scalars().all())


document_service = DocumentService()
