"""Pure text and spatial similarity primitives."""

from __future__ import annotations

import math
from difflib import SequenceMatcher

from gte.models import GeoPoint
from gte.utils.text import normalize_for_similarity

EARTH_RADIUS_M = 6371000.0


def text_similarity(a: str | None, b: str | None) -> float:
    """Case-insensitive similarity ratio in [0, 1]."""
    left = normalize_for_similarity(a)
    right = normalize_for_similarity(b)
    if not left or not right:
        return 0.0
    return SequenceMatcher(None, left, right, autojunk=False).ratio()


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    p1, p2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dl = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(p1) * math.cos(p2) * math.sin(dl / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(min(1.0, a)))


def distance_m(p1: GeoPoint, p2: GeoPoint) -> float:
    """Great-circle distance in meters."""
    return haversine_m(p1.lat, p1.lon, p2.lat, p2.lon)
