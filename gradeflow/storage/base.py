from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import PurePosixPath


class ArtifactStorage(ABC):
    """Object storage for uploaded artifacts. References are storage keys."""

    @abstractmethod
    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        """Store ``data`` under ``path`` and return the reference to persist."""
        ...

    @abstractmethod
    async def url_for(self, ref: str) -> str:
        """Return a durable URL the artifact can be fetched from."""
        ...

    @abstractmethod
    async def delete(self, ref: str) -> None:
        """Delete the object. Raises ``ArtifactMissing`` if it is already gone."""
        ...

    @abstractmethod
    async def exists(self, ref: str) -> bool:
        ...


def submission_artifact_path(
    assignment_id: int,
    student_id: str,
    filename: str,
    now: datetime | None = None,
) -> str:
    """
    submissions/{assignment}/{student}/{epoch_millis}_{filename}

    The millisecond prefix keeps repeated uploads of the same file name apart.
    """
    now = now or datetime.now(timezone.utc)
    millis = int(now.timestamp() * 1000)
    safe_name = PurePosixPath(filename.replace("\\", "/")).name or "artifact"
    return f"submissions/{assignment_id}/{student_id}/{millis}_{safe_name}"
