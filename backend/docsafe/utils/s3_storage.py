"""S3-compatible storage backend (Supabase S3 gateway, MinIO, AWS)."""
import asyncio
import io
from datetime import timedelta
from typing import Optional
from urllib.parse import urlparse

from minio import Minio
from minio.error import S3Error

from docsafe.core.config import settings
from docsafe.core.exceptions import NotFoundException, StorageException
from docsafe.core.logging import get_logger

logger = get_logger(__name__)


def _split_endpoint(endpoint: str, secure: bool) -> tuple:
    # Minio wants host[:port]; accept full URLs in configuration too
    if "://" in endpoint:
        parsed = urlparse(endpoint)
        return parsed.netloc, parsed.scheme == "https"
    return endpoint, secure


class S3StorageBackend:
    name = "s3"

    def __init__(self, client: Optional[Minio] = None, bucket_name: Optional[str] = None):
        if client is None:
            if not settings.S3_ENDPOINT:
                raise ValueError("S3_ENDPOINT must be set when STORAGE_BACKEND=s3")
            host, secure = _split_endpoint(settings.S3_ENDPOINT, settings.S3_SECURE)
            client = Minio(
                host,
                access_key=settings.S3_ACCESS_KEY,
                secret_key=settings.S3_SECRET_KEY,
                secure=secure,
                region=settings.S3_REGION,
            )
        self.client = client
        self.bucket_name = bucket_name or settings.S3_BUCKET
        logger.info(f"S3 storage initialized with bucket: {self.bucket_name}")

    async def _run(self, func):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func)

    async def upload(self, path: str, content: bytes, content_type: Optional[str] = None) -> str:
        def _sync_put():
            self.client.put_object(
                self.bucket_name,
                path,
                io.BytesIO(content),
                length=len(content),
                content_type=content_type or "application/octet-stream",
            )

        try:
            await self._run(_sync_put)
        except Exception as e:
            logger.error(f"Error uploading object to S3: {e}")
            raise StorageException("Error subiendo archivo", details=str(e))
        logger.info(f"Object uploaded: {path}")
        return path

    async def download(self, path: str) -> bytes:
        def _sync_get():
            response = self.client.get_object(self.bucket_name, path)
            try:
                return response.read()
            finally:
                response.close()
                response.release_conn()

        try:
            return await self._run(_sync_get)
        except S3Error as e:
            logger.error(f"Error downloading object from S3: {e}")
            raise NotFoundException(f"Archivo no encontrado: {path}")

    async def delete(self, path: str) -> bool:
        try:
            await self._run(lambda: self.client.remove_object(self.bucket_name, path))
        except Exception as e:
            logger.warning(f"Error deleting object from S3: {e}")
            return False
        logger.info(f"Object deleted: {path}")
        return True

    async def signed_url(self, path: str, expires_in: int, filename: Optional[str] = None) -> str:
        headers = None
        if filename:
            headers = {"response-content-disposition": f'inline; filename="{filename}"'}

        def _sync_presign():
            return self.client.presigned_get_object(
                self.bucket_name,
                path,
                expires=timedelta(seconds=expires_in),
                response_headers=headers,
            )

        try:
            return await self._run(_sync_presign)
        except Exception as e:
            logger.error(f"Error generating presigned URL: {e}")
            raise StorageException("Error generando URL de descarga", details=str(e))
