from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from docsafe.core.config import settings
from docsafe.core.permissions import Identity
from docsafe.models.document import Document, DocumentStatus
from docsafe.models.folder import DocumentFolder, FolderDocument
from docsafe.models.user import User


def make_token(sub: str, role: Optional[str] = "empleado", **claims) -> str:
    payload = {"sub": sub, "exp": datetime.now(timezone.utc) + timedelta(hours=1), **claims}
    if role:
        payload["role"] = role
    return jwt.encode(payload, settings.IDENTITY_JWT_SECRET, algorithm="HS256")


def auth_headers(sub: str, role: Optional[str] = "empleado", **claims) -> dict:
    return {"Authorization": f"Bearer {make_token(sub, role, **claims)}"}


def identity_of(user: User) -> Identity:
    return Identity(id=user.id, external_id=user.external_id, role=user.role, email=user.email)


async def seed_user(db, external_id: str = "user_emp", role: str = "empleado", **fields) -> User:
    user = User(
        external_id=external_id,
        email=fields.pop("email", f"{external_id}@example.com"),
        role=role,
        **fields,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def seed_document(
    db,
    owner: Optional[User],
    title: str,
    *,
    created_at: Optional[datetime] = None,
    status: DocumentStatus = DocumentStatus.UPLOADED,
    file_size: int = 1024,
    mime_type: str = "application/pdf",
    filename: Optional[str] = None,
    category: Optional[str] = None,
    storage_path: Optional[str] = None,
) -> Document:
    document = Document(
        owner_id=owner.id if owner else None,
        title=title,
        filename=filename or f"{title.lower().replace(' ', '_')}.pdf",
        storage_path=storage_path,
        file_size=file_size,
        mime_type=mime_type,
        category=category,
        status=status,
        created_at=created_at or datetime.now(timezone.utc),
    )
    db.add(document)
    await db.commit()
    await db.refresh(document)
    return document


async def seed_folder(db, name: str, color: str = "#6B7280", documents=()) -> DocumentFolder:
    folder = DocumentFolder(name=name, color=color)
    db.add(folder)
    await db.flush()
    for document in documents:
        db.add(FolderDocument(folder_id=folder.id, document_id=document.id))
    await db.commit()
    await db.refresh(folder)
    return folder
