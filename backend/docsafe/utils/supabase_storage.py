"""Supabase Storage backend (REST client)."""
import asyncio
from typing import Optional

from supabase import create_client, Client

from docsafe.core.config import settings
from docsafe.core.exceptions import NotFoundException, StorageException
from docsafe.core.logging import get_logger

logger = get_logger(__name__)

class SupabaseStorageBackend:
    """Stores document bytes in a Supabase Storage bucket."""

    name = "supabase"

    def __init__(self, client: Optional[Client] = None, bucket_name: Optional[str] = None):
        """Initialize Supabase client."""
        try:
            self.client: Client = client or create_client(
                supabase_url=settings.SUPABASE_URL,
                supabase_key=settings.SUPABASE_SERVICE_KEY,
            )
            self.bucket_name = bucket_name or settings.SUPABASE_BUCKET
            logger.info(f"Supabase Storage initialized with bucket: {self.bucket_name}")
        except Exception as e:
            logger.error(f"Failed to initialize Supabase client: {e}")
            raise

    async def _run(self, func):
        # supabase-py is synchronous; keep it off the event loop
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func)

    async def upload(self, path: str, content: bytes, content_type: Optional[str] = None) -> str:
        """
        Upload raw bytes to the bucket.

        Args:
            path: Object path inside the bucket
            content: File bytes
            content_type: MIME type stored with the object

        Returns:
            The object path
        """
        def _sync_upload():
            return self.client.storage.from_(self.bucket_name).upload(
                path=path,
                file=content,
                file_options={"content-type": content_type or "application/octet-stream"},
            )

        try:
            await self._run(_sync_upload)
            logger.info(f"File uploaded successfully: {path}")
            return path
        except Exception as e:
            logger.error(f"Error uploading file to Supabase: {e}")
            raise StorageException("Error subiendo archivo", details=str(e))

    async def download(self, path: str) -> bytes:
        def _sync_download():
            return self.client.storage.from_(self.bucket_name).download(path)

        try:
            result = await self._run(_sync_download)
            logger.info(f"File downloaded successfully: {path}")
            return result
        except Exception as e:
            logger.error(f"Error downloading file from Supabase: {e}")
            raise NotFoundException(f"Archivo no encontrado: {path}")

    async def delete(self, path: str) -> bool:
        """Delete an object. Failures are logged and reported as False."""
        def _sync_remove():
            return self.client.storage.from_(self.bucket_name).remove([path])

        try:
            await self._run(_sync_remove)
            logger.info(f"File deleted successfully: {path}")
            return True
        except Exception as e:
            logger.warning(f"Error deleting file from Supabase: {e}")
            return False

    async def signed_url(self, path: str, expires_in: int, filename: Optional[str] = None) -> str:
        """
        Generate a signed URL for temporary file access.

        Args:
            path: Object path inside the bucket
            expires_in: URL lifetime in seconds
            filename: Suggested download name

        Returns:
            Signed URL string
        """
        def _sync_sign():
            options = {"download": filename} if filename else {}
            return self.client.storage.from_(self.bucket_name).create_signed_url(
                path, expires_in, options
            )

        try:
            response = await self._run(_sync_sign)
        except Exception as e:
            logger.error(f"Error generating signed URL: {e}")
            raise StorageException("Error generando URL de descarga", details=str(e))

        if isinstance(response, dict):
            signed_url = response.get("signedURL") or response.get("signedUrl")
        else:
            signed_url = response
        if not signed_url:
            raise StorageException("Error generando URL de descarga", details=str(response))

        logger.info(f"Signed URL generated for: {path}")
        return signed_url
