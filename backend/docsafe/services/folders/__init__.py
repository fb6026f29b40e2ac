from .service import FolderService, folder_service, moved_message, reassign_documents

__all__ = ["FolderService", "folder_service", "moved_message", "reassign_documents"]
