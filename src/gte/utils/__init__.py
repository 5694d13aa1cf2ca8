"""Utility helpers."""

from gte.utils.hashing import hash_file
from gte.utils.logging import configure_logging, get_logger
from gte.utils.media import extract_capture_time
from gte.utils.text import normalize_for_similarity
from gte.utils.time import utcnow

__all__ = [
    "hash_file",
    "configure_logging",
    "get_logger",
    "extract_capture_time",
    "normalize_for_similarity",
    "utcnow",
]
