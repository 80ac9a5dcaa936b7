# Local filesystem blob store for signature images
import logging
from pathlib import Path

from ..core.config import settings
from ..core.errors import NotFoundError, StorageError

logger = logging.getLogger(__name__)


def signature_path(document_id: str, timestamp_ms: int) -> str:
    return f"signatures/{document_id}/{timestamp_ms}.png"


class LocalBlobStore:
    """
    Stores binary blobs under a root directory.
    The returned URL is durable: it only depends on the relative path.
    """

    def __init__(self, root: str | Path | None = None, public_url: str | None = None):
        self.root = Path(root or settings.SIGNATURE_STORAGE_DIR).resolve()
        self.public_url = (public_url if public_url is not None else settings.SIGNATURE_PUBLIC_URL).rstrip("/")

    def _full_path(self, path: str) -> Path:
        full = (self.root / path).resolve()
        if self.root not in full.parents:
            raise NotFoundError("Archivo no encontrado")
        return full

    def save(self, path: str, data: bytes, content_type: str = "image/png") -> str:
        full = self._full_path(path)
        try:
            full.parent.mkdir(parents=True, exist_ok=True)
            full.write_bytes(data)
        except OSError as exc:
            raise StorageError("No se pudo guardar la firma") from exc
        logger.info(f"Blob stored: {path} ({len(data)} bytes, {content_type})")
        return f"{self.public_url}/{path}"

    def open(self, path: str) -> Path:
        """Absolute path of an existing blob, for FileResponse."""
        full = self._full_path(path)
        if not full.is_file():
            raise NotFoundError("Archivo no encontrado")
        return full
