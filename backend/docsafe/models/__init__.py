from .user import User
from .document import Document, DocumentStatus
from .folder import DocumentFolder, FolderDocument
from .ocr_result import OcrResult
from .tag import DocumentTag, SharedDocument
from .activity import Activity
from .task import Task, TaskStatus, TaskType
