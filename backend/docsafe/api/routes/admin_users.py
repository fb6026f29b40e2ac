from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from docsafe.api.deps import require
from docsafe.core.config import settings
from docsafe.core.exceptions import ValidationException
from docsafe.core.logging import get_logger
from docsafe.core.permissions import Capability, Identity
from docsafe.dependencies import get_db
from docsafe.schemas.common import MessageResponse
from docsafe.schemas.user import UserCreate, UserListResponse, UserPagination, UserResponse, UserUpdate
from docsafe.services.activities import activity_service
from docsafe.services.users import IdentityProviderClient, get_identity_provider, user_mirror_service
from docsafe.utils.pagination import compute_total_pages, normalize_limit, normalize_page

logger = get_logger(__name__)

router = APIRouter()

manage_users = require(Capability.MANAGE_USERS)


@router.get("", response_model=UserListResponse)
async def list_users(
    page: Optional[int] = None,
    limit: Optional[int] = None,
    search: str = "",
    identity: Identity = Depends(manage_users),
    provider: IdentityProviderClient = Depends(get_identity_provider),
):
    page = normalize_page(page)
    limit = normalize_limit(limit, default=settings.ADMIN_PAGE_SIZE, maximum=settings.MAX_PAGE_SIZE)
    users, total = await provider.list_users(page, limit, search.strip())
    return UserListResponse(
        users=users,
        pagination=UserPagination(
            page=page,
            limit=limit,
            total=total,
            totalPages=compute_total_pages(total, limit),
        ),
    )


@router.post("", response_model=UserResponse)
async def create_user(
    body: UserCreate,
    identity: Identity = Depends(manage_users),
    provider: IdentityProviderClient = Depends(get_identity_provider),
    db: AsyncSession = Depends(get_db),
):
    """Create the account in the identity provider, then mirror it."""
    account = await provider.create_user(body)
    await user_mirror_service.sync_from_provider(db, account)
    activity_service.record(
        db,
        identity.id,
        "user_created",
        entity_type="user",
        entity_id=account.id,
        metadata={"email": account.email, "role": account.role},
        admin=True,
    )
    await db.commit()
    logger.info(f"User {account.id} created by {identity.external_id}")
    return UserResponse(user=account)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    identity: Identity = Depends(manage_users),
    provider: IdentityProviderClient = Depends(get_identity_provider),
):
    return UserResponse(user=await provider.get_user(user_id))


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    body: UserUpdate,
    identity: Identity = Depends(manage_users),
    provider: IdentityProviderClient = Depends(get_identity_provider),
    db: AsyncSession = Depends(get_db),
):
    account = await provider.update_user(user_id, body)
    await user_mirror_service.sync_from_provider(db, account)
    activity_service.record(
        db,
        identity.id,
        "user_updated",
        entity_type="user",
        entity_id=user_id,
        metadata={"fields": sorted(body.model_dump(exclude_unset=True, exclude={"password"}))},
        admin=True,
    )
    await db.commit()
    return UserResponse(user=account)


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: str,
    identity: Identity = Depends(manage_users),
    provider: IdentityProviderClient = Depends(get_identity_provider),
    db: AsyncSession = Depends(get_db),
):
    if user_id == identity.external_id:
        raise ValidationException("No puedes eliminar tu propia cuenta")

    await provider.delete_user(user_id)
    await user_mirror_service.remove(db, user_id)
    activity_service.record(
        db,
        identity.id,
        "user_deleted",
        entity_type="user",
        entity_id=user_id,
        admin=True,
    )
    await db.commit()
    logger.info(f"User {user_id} deleted by {identity.external_id}")
    return MessageResponse(message="Usuario eliminado exitosamente")
