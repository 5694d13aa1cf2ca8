"""Time helpers."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

EXIF_DATETIME_FORMAT = "%Y:%m:%d %H:%M:%S"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_exif_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse an EXIF 'YYYY:MM:DD HH:MM:SS' string into a UTC datetime.

    EXIF carries no zone, so the camera's local time is taken as UTC.
    """
    if not value:
        return None

    cleaned = value.strip().rstrip("\x00")
    try:
        return datetime.strptime(cleaned, EXIF_DATETIME_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        return None
