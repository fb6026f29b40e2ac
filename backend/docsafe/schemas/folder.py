from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class FolderCreate(BaseModel):
    name: str
    description: Optional[str] = ""
    color: str = "#6B7280"


class FolderUpdate(BaseModel):
    folder_id: Optional[UUID] = None
    name: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None


class FolderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: Optional[str] = None
    color: str
    created_by: Optional[UUID] = None
    created_at: datetime
    document_count: int = 0


class FolderListResponse(BaseModel):
    success: bool = True
    data: List[FolderRead]


class FolderResponse(BaseModel):
    success: bool = True
    data: FolderRead


class MoveDocumentsRequest(BaseModel):
    """Accepts both snake_case and the camelCase used by the documents page."""
    document_ids: Optional[List[UUID]] = Field(
        None, validation_alias=AliasChoices("document_ids", "documentIds")
    )
    folder_id: Optional[UUID] = Field(
        None, validation_alias=AliasChoices("folder_id", "folderId")
    )


class MoveDocumentsResponse(BaseModel):
    success: bool = True
    message: str
    folders: Optional[List[FolderRead]] = None


class FoldersRefreshResponse(BaseModel):
    """Mutation result plus the folder list with fresh counts."""
    success: bool = True
    message: str
    folders: List[FolderRead] = []
