"""Embedded image metadata helpers."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Optional

from PIL import Image, UnidentifiedImageError

from gte.utils.logging import get_logger
from gte.utils.time import parse_exif_datetime


logger = get_logger(__name__)

EXIF_IFD_POINTER = 0x8769
TAG_DATETIME = 0x0132
TAG_DATETIME_ORIGINAL = 0x9003
TAG_DATETIME_DIGITIZED = 0x9004


def extract_capture_time(path: str | Path) -> Optional[datetime]:
    """Return the capture timestamp embedded in an image, if any.

    Looks at DateTimeOriginal, then DateTimeDigitized, then the IFD0
    DateTime. Non-images, images without EXIF and unparsable values all
    return None.
    """
    try:
        with Image.open(path) as image:
            exif = image.getexif()
            sub_ifd = exif.get_ifd(EXIF_IFD_POINTER)
            candidates = (
                sub_ifd.get(TAG_DATETIME_ORIGINAL),
                sub_ifd.get(TAG_DATETIME_DIGITIZED),
                exif.get(TAG_DATETIME),
            )
    except (OSError, UnidentifiedImageError, ValueError) as exc:
        logger.debug("capture_time.unreadable path=%s error=%s", path, exc)
        return None

    for value in candidates:
        parsed = parse_exif_datetime(value if isinstance(value, str) else None)
        if parsed is not None:
            return parsed
    return None
