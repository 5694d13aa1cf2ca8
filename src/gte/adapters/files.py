"""File storage collaborator."""

from __future__ import annotations

import shutil
import uuid
from pathlib import Path
from typing import Optional, Protocol

from gte.config import Settings
from gte.utils.logging import get_logger
from gte.utils.time import utcnow


logger = get_logger(__name__)


class FileStorageError(RuntimeError):
    """Upload could not be persisted."""


class FileStore(Protocol):
    def store(self, local_path: str | Path) -> str:
        """Persist a local file and return its durable URL."""


class LocalFileStore:
    """Copy uploads under a media root, grouped by month."""

    def __init__(self, media_root: str | Path, base_url: str) -> None:
        self.media_root = Path(media_root)
        self.base_url = base_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "LocalFileStore":
        settings = settings or Settings()
        return cls(settings.media_root, settings.media_base_url)

    def store(self, local_path: str | Path) -> str:
        source = Path(local_path)
        relative = Path(utcnow().strftime("%Y-%m")) / f"{uuid.uuid4().hex}{source.suffix.lower()}"
        target = self.media_root / relative
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, target)
        except OSError as exc:
            raise FileStorageError(f"Could not store {source}: {exc}") from exc

        logger.debug("files.stored source=%s target=%s", source, target)
        return f"{self.base_url}/{relative.as_posix()}"
