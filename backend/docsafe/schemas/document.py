from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime
from uuid import UUID

from docsafe.models.document import DocumentStatus
from docsafe.schemas.common import Pagination
from docsafe.schemas.folder import FolderRead

class DocumentRow(BaseModel):
    """Denormalized listing row: owner and folder inlined."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    filename: str
    status: DocumentStatus
    category: Optional[str] = None
    document_type: Optional[str] = None
    mime_type: Optional[str] = None
    file_size: int = 0
    storage_path: Optional[str] = None
    page_count: Optional[int] = None
    description: Optional[str] = None
    owner_id: Optional[UUID] = None
    owner_name: Optional[str] = None
    owner_email: Optional[str] = None
    folder_id: Optional[UUID] = None
    folder_name: Optional[str] = None
    folder_color: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

class DocumentListResponse(BaseModel):
    success: bool = True
    data: List[DocumentRow]
    pagination: Pagination

class FilterFacets(BaseModel):
    types: List[str] = []
    categories: List[str] = []
    users: List[str] = []

class DocumentOverviewResponse(DocumentListResponse):
    folders: List[FolderRead] = []
    filters: FilterFacets = FilterFacets()

class DocumentResponse(BaseModel):
    success: bool = True
    data: DocumentRow

class DocumentCreate(BaseModel):
    """Metadata for bytes that are already in object storage."""
    title: str = Field(..., min_length=1)
    filename: str = Field(..., min_length=1)
    storage_path: Optional[str] = None
    file_size: int = Field(0, ge=0)
    mime_type: Optional[str] = None
    page_count: Optional[int] = Field(1, ge=0)
    category: Optional[str] = None
    description: Optional[str] = None

class DocumentUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    category: Optional[str] = None
    status: Optional[DocumentStatus] = None
    folder_id: Optional[UUID] = None

class UploadedDocument(BaseModel):
    id: UUID
    title: str
    filename: str
    status: DocumentStatus
    storage_path: str
    size: int
    type: Optional[str] = None
    category: Optional[str] = None
    tags: List[str] = []
    ocr_enabled: bool = False
    task_id: Optional[UUID] = None

class DocumentUploadResponse(BaseModel):
    success: bool = True
    document: UploadedDocument

class DownloadResponse(BaseModel):
    success: bool = True
    url: str
    filename: str
    title: str
    expires_in: int

class OcrRequest(BaseModel):
    document_id: Optional[UUID] = None

class OcrStartedResponse(BaseModel):
    success: bool = True
    message: str
    document_id: UUID
    status: DocumentStatus
    task_id: UUID
