"""Filesystem storage for development and tests."""
from pathlib import Path
from typing import Optional

from docsafe.core.config import settings
from docsafe.core.exceptions import NotFoundException, ValidationException
from docsafe.core.logging import get_logger

logger = get_logger(__name__)


class LocalStorageBackend:
    name = "local"

    def __init__(self, root_dir: Optional[str] = None):
        self.root_dir = Path(root_dir or settings.UPLOAD_DIR) / "documents"

    def _resolve(self, path: str) -> Path:
        """Validate the stored path stays under the uploads root."""
        root_resolved = self.root_dir.resolve()
        target = (self.root_dir / path).resolve()
        try:
            target.relative_to(root_resolved)
        except ValueError:
            raise ValidationException("Ruta de archivo inválida")
        return target

    async def upload(self, path: str, content: bytes, content_type: Optional[str] = None) -> str:
        dest = self._resolve(path)
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(content)
        logger.info(f"File stored locally: {dest}")
        return path

    async def download(self, path: str) -> bytes:
        target = self._resolve(path)
        if not target.is_file():
            raise NotFoundException(f"Archivo no encontrado: {path}")
        return target.read_bytes()

    async def delete(self, path: str) -> bool:
        target = self._resolve(path)
        if not target.exists():
            return False
        target.unlink()
        return True

    async def signed_url(self, path: str, expires_in: int, filename: Optional[str] = None) -> str:
        # No signing on local disk; the URI is only reachable from this host
        return self._resolve(path).as_uri()
