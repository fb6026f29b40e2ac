from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from docsafe.api.deps import require
from docsafe.core.permissions import Capability, Identity
from docsafe.dependencies import get_db
from docsafe.schemas.common import MessageResponse
from docsafe.schemas.folder import (
    FolderCreate,
    FolderListResponse,
    FolderResponse,
    FolderUpdate,
    MoveDocumentsRequest,
    MoveDocumentsResponse,
)
from docsafe.services.folders import folder_service, moved_message

router = APIRouter()

manage_folders = require(Capability.MANAGE_FOLDERS)


@router.get("", response_model=FolderListResponse)
async def list_folders(
    identity: Identity = Depends(manage_folders),
    db: AsyncSession = Depends(get_db),
):
    return FolderListResponse(data=await folder_service.list_folders(db))


@router.post("", response_model=FolderResponse)
async def create_folder(
    body: FolderCreate,
    identity: Identity = Depends(manage_folders),
    db: AsyncSession = Depends(get_db),
):
    return FolderResponse(data=await folder_service.create_folder(db, identity, body))


@router.put("", response_model=FolderResponse)
async def update_folder(
    body: FolderUpdate,
    identity: Identity = Depends(manage_folders),
    db: AsyncSession = Depends(get_db),
):
    return FolderResponse(data=await folder_service.update_folder(db, identity, body))


@router.delete("", response_model=MessageResponse)
async def delete_folder(
    id: Optional[UUID] = None,
    identity: Identity = Depends(manage_folders),
    db: AsyncSession = Depends(get_db),
):
    """Delete a folder; its documents become unassigned."""
    await folder_service.delete_folder(db, identity, id)
    return MessageResponse(message="Carpeta eliminada exitosamente")


@router.post("/move", response_model=MoveDocumentsResponse)
async def move_documents(
    body: MoveDocumentsRequest,
    identity: Identity = Depends(manage_folders),
    db: AsyncSession = Depends(get_db),
):
    count = await folder_service.move_documents(db, identity, body.document_ids, body.folder_id, admin=True)
    return MoveDocumentsResponse(message=moved_message(count))
