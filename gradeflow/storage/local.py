import logging
from pathlib import Path
from urllib.parse import quote

from gradeflow.core.errors import ArtifactMissing, StorageError
from gradeflow.storage.base import ArtifactStorage

logger = logging.getLogger(__name__)


class LocalFileStorage(ArtifactStorage):
    """Stores artifacts under a directory on the local filesystem."""

    def __init__(self, root: str | Path, public_url: str = ""):
        self.root = Path(root).resolve()
        self.public_url = public_url.rstrip("/")

    def _resolve(self, ref: str) -> Path:
        target = (self.root / ref).resolve()
        if target != self.root and self.root not in target.parents:
            raise StorageError(f"Reference escapes storage root: {ref}")
        return target

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}") from e
        logger.info("Stored artifact %s (%d bytes, %s)", path, len(data), content_type)
        return path

    async def url_for(self, ref: str) -> str:
        if self.public_url:
            return f"{self.public_url}/{quote(ref)}"
        return self._resolve(ref).as_uri()

    async def delete(self, ref: str) -> None:
        target = self._resolve(ref)
        try:
            target.unlink()
        except FileNotFoundError:
            raise ArtifactMissing(f"Artifact not found: {ref}")
        except OSError as e:
            raise StorageError(f"Failed to delete {ref}: {e}") from e
        logger.info("Deleted artifact %s", ref)

    async def exists(self, ref: str) -> bool:
        return self._resolve(ref).is_file()
