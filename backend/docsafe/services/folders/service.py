from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from docsafe.core.exceptions import NotFoundException, ValidationException
from docsafe.core.logging import get_logger
from docsafe.core.permissions import Identity
from docsafe.models.document import Document
from docsafe.models.folder import DocumentFolder, FolderDocument
from docsafe.schemas.folder import FolderCreate, FolderRead, FolderUpdate
from docsafe.services.activities import activity_service

logger = get_logger(__name__)


def _unique(ids: Iterable[UUID]) -> List[UUID]:
    seen = set()
    result = []
    for value in ids:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


async def reassign_documents(db: AsyncSession, document_ids: List[UUID], folder_id: Optional[UUID]) -> None:
    """Replace every folder association of `document_ids`. Does not commit."""
    await db.execute(delete(FolderDocument).where(FolderDocument.document_id.in_(document_ids)))
    if folder_id is not None:
        db.add_all([FolderDocument(folder_id=folder_id, document_id=doc_id) for doc_id in document_ids])
    await db.flush()


class FolderService:
    """Folder CRUD and bulk document reassignment."""

    async def list_folders(self, db: AsyncSession) -> List[FolderRead]:
        counts = (
            select(FolderDocument.folder_id, func.count(FolderDocument.document_id).label("document_count"))
            .group_by(FolderDocument.folder_id)
            .subquery()
        )
        stmt = (
            select(DocumentFolder, func.coalesce(counts.c.document_count, 0))
            .outerjoin(counts, counts.c.folder_id == DocumentFolder.id)
            .order_by(DocumentFolder.name.asc())
        )
        rows = (await db.execute(stmt)).all()
        folders = []
        for folder, document_count in rows:
            item = FolderRead.model_validate(folder)
            item.document_count = int(document_count or 0)
            folders.append(item)
        return folders

    async def get_folder(self, db: AsyncSession, folder_id: UUID) -> DocumentFolder:
        folder = await db.get(DocumentFolder, folder_id)
        if not folder:
            raise NotFoundException("Carpeta no encontrada")
        return folder

    async def create_folder(self, db: AsyncSession, identity: Identity, data: FolderCreate) -> FolderRead:
        name = (data.name or "").strip()
        if not name:
            raise ValidationException("El nombre de la carpeta es requerido")

        folder = DocumentFolder(
            name=name,
            description=data.description or "",
            color=data.color or "#6B7280",
            created_by=identity.id,
        )
        db.add(folder)
        await db.flush()
        activity_service.record(
            db,
            identity.id,
            "folder_created",
            entity_type="folder",
            entity_id=folder.id,
            metadata={"name": name, "color": folder.color},
            admin=True,
        )
        await db.commit()
        await db.refresh(folder)
        logger.info(f"Folder created: {folder.id} ({name})")
        return FolderRead.model_validate(folder)

    async def update_folder(self, db: AsyncSession, identity: Identity, data: FolderUpdate) -> FolderRead:
        if not data.folder_id:
            raise ValidationException("ID de carpeta requerido")
        folder = await self.get_folder(db, data.folder_id)

        changes = data.model_dump(exclude_unset=True, exclude={"folder_id"})
        if "name" in changes:
            name = (changes["name"] or "").strip()
            if not name:
                raise ValidationException("El nombre de la carpeta es requerido")
            changes["name"] = name
        for field_name, value in changes.items():
            if value is not None or field_name == "description":
                setattr(folder, field_name, value)

        activity_service.record(
            db,
            identity.id,
            "folder_updated",
            entity_type="folder",
            entity_id=folder.id,
            metadata={"changes": changes},
            admin=True,
        )
        await db.commit()
        await db.refresh(folder)
        logger.info(f"Folder updated: {folder.id}")

        count_stmt = select(func.count()).select_from(FolderDocument).where(FolderDocument.folder_id == folder.id)
        item = FolderRead.model_validate(folder)
        item.document_count = int((await db.execute(count_stmt)).scalar() or 0)
        return item

    async def delete_folder(self, db: AsyncSession, identity: Identity, folder_id: Optional[UUID]) -> None:
        """Unlink the folder's documents and drop the folder. Documents are kept."""
        if not folder_id:
            raise ValidationException("ID de carpeta requerido")
        folder = await self.get_folder(db, folder_id)

        unlinked = await db.execute(delete(FolderDocument).where(FolderDocument.folder_id == folder.id))
        await db.delete(folder)
        activity_service.record(
            db,
            identity.id,
            "folder_deleted",
            entity_type="folder",
            entity_id=folder_id,
            metadata={"name": folder.name, "unlinked_documents": unlinked.rowcount or 0},
            admin=True,
        )
        await db.commit()
        logger.info(f"Folder deleted: {folder_id} ({unlinked.rowcount or 0} documents unlinked)")

    async def move_documents(
        self,
        db: AsyncSession,
        identity: Identity,
        document_ids: Optional[List[UUID]],
        folder_id: Optional[UUID],
        admin: bool = False,
    ) -> int:
        """
        Move `document_ids` to `folder_id` (None = no folder).

        The junction delete, the inserts and the activity row share one
        transaction; on failure nothing changes.
        """
        ids = _unique(document_ids or [])
        if not ids:
            raise ValidationException("Se requiere al menos un documento")

        if folder_id is not None:
            await self.get_folder(db, folder_id)

        found_stmt = select(Document.id).where(Document.id.in_(ids))
        found = set((await db.execute(found_stmt)).scalars().all())
        missing = [str(doc_id) for doc_id in ids if doc_id not in found]
        if missing:
            raise NotFoundException(f"Documentos no encontrados: {', '.join(missing)}")

        try:
            await reassign_documents(db, ids, folder_id)
            activity_service.record(
                db,
                identity.id,
                "documents_moved",
                entity_type="folder",
                entity_id=folder_id,
                metadata={
                    "document_count": len(ids),
                    "document_ids": ids,
                    "target_folder_id": folder_id,
                },
                admin=admin,
            )
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            logger.error(f"Moving {len(ids)} documents to {folder_id} failed, rolled back")
            raise

        logger.info(f"Moved {len(ids)} documents to folder {folder_id or 'none'}")
        return len(ids)


def moved_message(count: int) -> str:
    return f"{count} documento(s) movido(s) exitosamente"


folder_service = FolderService()
