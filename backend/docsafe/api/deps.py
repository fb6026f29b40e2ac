from typing import List, Optional
from fastapi import Depends, Query
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from docsafe.dependencies import get_db
from docsafe.core.security import decode_access_token
from docsafe.core.permissions import Capability, Identity
from docsafe.core.exceptions import AuthenticationException, PermissionDeniedException
from docsafe.services.documents.filters import DocumentFilter, split_multi
from docsafe.services.users import user_mirror_service

security = HTTPBearer(auto_error=False)

async def get_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> Identity:
    """
    Resolve the caller once per request from the bearer token.
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationException()

    claims = decode_access_token(credentials.credentials)
    if claims is None:
        raise AuthenticationException()

    return await user_mirror_service.resolve_identity(db, claims)

def require(capability: Capability):
    """Dependency factory: 403 unless the caller's role grants `capability`."""

    async def checker(identity: Identity = Depends(get_identity)) -> Identity:
        if not identity.can(capability):
            raise PermissionDeniedException()
        return identity

    return checker

def document_filter(
    search: Optional[str] = None,
    status: Optional[List[str]] = Query(None),
    category: Optional[List[str]] = Query(None),
    mime_type: Optional[str] = Query(None, alias="type"),
    folder: Optional[str] = None,
    folder_id: Optional[str] = None,
    owner_id: Optional[str] = None,
    user: Optional[str] = None,
    date: Optional[str] = None,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: Optional[str] = Query(None, alias="sortOrder"),
) -> DocumentFilter:
    """Collect listing query parameters. `date=YYYY-MM` sets both bounds."""
    return DocumentFilter(
        search=search or None,
        status=split_multi(status),
        category=split_multi(category),
        mime_type=mime_type or None,
        folder_id=folder_id or folder or None,
        owner_id=owner_id or user or None,
        date_from=date_from or date or None,
        date_to=date_to or date or None,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
