"""Object storage seam: one upload pipeline, backend picked by configuration."""
from functools import lru_cache
from typing import Optional, Protocol

from docsafe.core.config import settings


class StorageBackend(Protocol):
    name: str

    async def upload(self, path: str, content: bytes, content_type: Optional[str] = None) -> str:
        ...

    async def download(self, path: str) -> bytes:
        ...

    async def delete(self, path: str) -> bool:
        ...

    async def signed_url(self, path: str, expires_in: int, filename: Optional[str] = None) -> str:
        ...


def build_storage(backend: str) -> StorageBackend:
    backend = (backend or "").strip().lower()
    if backend == "supabase":
        from docsafe.utils.supabase_storage import SupabaseStorageBackend
        return SupabaseStorageBackend()
    if backend == "s3":
        from docsafe.utils.s3_storage import S3StorageBackend
        return S3StorageBackend()
    if backend == "local":
        from docsafe.utils.local_storage import LocalStorageBackend
        return LocalStorageBackend()
    raise ValueError(f"Unknown STORAGE_BACKEND: {backend!r}")


@lru_cache(maxsize=1)
def get_storage() -> StorageBackend:
    return build_storage(settings.STORAGE_BACKEND)
