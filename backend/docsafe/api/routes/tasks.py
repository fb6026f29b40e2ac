from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from docsafe.api.deps import get_identity
from docsafe.core.exceptions import NotFoundException
from docsafe.core.permissions import Identity
from docsafe.dependencies import get_db
from docsafe.schemas.task import TaskResponse
from docsafe.services.tasks import task_service

router = APIRouter()

@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: UUID,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db)
):
    """
    Get a specific task by ID.
    """
    task = await task_service.get_task(db, task_id)
    if not task:
        raise NotFoundException("Tarea no encontrada")
    return task
