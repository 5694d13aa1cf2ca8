"""Fingerprinting and storage of uploaded evidence."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional, Sequence

from gte.adapters.files import FileStorageError, FileStore
from gte.models import Attachment, UploadedFile
from gte.utils.hashing import hash_file
from gte.utils.logging import get_logger
from gte.utils.media import extract_capture_time
from gte.utils.time import ensure_aware


logger = get_logger(__name__)

OLD_PHOTO_FLAG = "old_photo"


@dataclass
class Fingerprints:
    image_hashes: list[str] = field(default_factory=list)
    capture_times: list[datetime] = field(default_factory=list)
    flags: list[str] = field(default_factory=list)
    hash_by_path: dict[str, str] = field(default_factory=dict)


@dataclass
class StoredEvidence:
    attachments: list[Attachment] = field(default_factory=list)
    image_hashes: list[str] = field(default_factory=list)

    @property
    def image_url(self) -> Optional[str]:
        return self.attachments[0].url if self.attachments else None


def fingerprint_files(
    files: Sequence[UploadedFile],
    now: datetime,
    old_photo_days: int,
) -> Fingerprints:
    """Hash images and read capture times without storing anything."""
    result = Fingerprints()
    cutoff = ensure_aware(now) - timedelta(days=old_photo_days)

    for upload in files:
        if not upload.is_image:
            continue
        try:
            digest = hash_file(upload.path)
        except OSError as exc:
            logger.warning("evidence.hash.failed path=%s error=%s", upload.path, exc)
            continue

        result.hash_by_path[upload.path] = digest
        if digest not in result.image_hashes:
            result.image_hashes.append(digest)

        captured = extract_capture_time(upload.path)
        if captured is not None:
            result.capture_times.append(captured)
            if captured < cutoff and OLD_PHOTO_FLAG not in result.flags:
                result.flags.append(OLD_PHOTO_FLAG)

    return result


def store_files(
    files: Sequence[UploadedFile],
    file_store: FileStore,
    fingerprints: Fingerprints,
) -> StoredEvidence:
    """Upload each file; a failed upload drops that attachment only."""
    stored = StoredEvidence()
    for upload in files:
        try:
            url = file_store.store(upload.path)
        except (FileStorageError, OSError) as exc:
            logger.warning("evidence.store.failed path=%s error=%s", upload.path, exc)
            continue

        stored.attachments.append(Attachment(url=url, media_type=upload.media_type))
        digest = fingerprints.hash_by_path.get(upload.path)
        if digest and digest not in stored.image_hashes:
            stored.image_hashes.append(digest)
    return stored
