"""Ward lookup by point-in-polygon."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import orjson
from shapely.geometry import Point, shape
from shapely.errors import ShapelyError
from shapely.geometry.base import BaseGeometry
from shapely.prepared import PreparedGeometry, prep

from gte.models import GeoPoint
from gte.utils.logging import get_logger


logger = get_logger(__name__)

NUMBER_KEYS = ("ward", "WARD", "ward_no")
NAME_KEYS = ("name", "WARD_NAME", "NAME")


@dataclass(frozen=True)
class Zone:
    number: int
    name: Optional[str]
    polygon: BaseGeometry
    prepared: PreparedGeometry = field(repr=False, compare=False)

    @classmethod
    def from_geometry(cls, number: int, name: Optional[str], polygon: BaseGeometry) -> "Zone":
        return cls(number=number, name=name, polygon=polygon, prepared=prep(polygon))

    def covers(self, point: Point) -> bool:
        # Boundary points count as inside.
        return self.prepared.covers(point)


@dataclass(frozen=True)
class ZoneMatch:
    number: int
    name: Optional[str]


@dataclass(frozen=True)
class ZoneIndex:
    """Immutable set of ward polygons."""

    zones: tuple[Zone, ...] = ()
    source: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.zones

    @classmethod
    def from_geojson(cls, payload: dict[str, Any], source: Optional[str] = None) -> "ZoneIndex":
        zones: list[Zone] = []
        features = payload.get("features")
        if not isinstance(features, list):
            features = []
        for feature in features:
            if not isinstance(feature, dict):
                logger.warning("zones.feature.skipped error=not an object")
                continue
            properties = feature.get("properties")
            if not isinstance(properties, dict):
                properties = {}
            number = _first(properties, NUMBER_KEYS)
            try:
                zone_number = int(number)
                polygon = shape(feature["geometry"])
            except (KeyError, TypeError, ValueError, AttributeError, ShapelyError) as exc:
                logger.warning("zones.feature.skipped number=%s error=%s", number, exc)
                continue
            name = _first(properties, NAME_KEYS)
            zones.append(Zone.from_geometry(zone_number, str(name) if name else None, polygon))
        return cls(zones=tuple(zones), source=source)


def _first(properties: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = properties.get(key)
        if value not in (None, ""):
            return value
    return None


def load_zone_index(path: str | Path) -> ZoneIndex:
    """Load ward polygons from a GeoJSON FeatureCollection.

    A missing or malformed file gives an empty index rather than an error, so
    intake keeps working without boundary data.
    """
    source = str(path)
    try:
        payload = orjson.loads(Path(path).read_bytes())
    except (OSError, orjson.JSONDecodeError) as exc:
        logger.warning("zones.load.failed path=%s error=%s", source, exc)
        return ZoneIndex(source=source)

    if not isinstance(payload, dict):
        logger.warning("zones.load.failed path=%s error=not a FeatureCollection", source)
        return ZoneIndex(source=source)

    try:
        index = ZoneIndex.from_geojson(payload, source=source)
    except (TypeError, ValueError, AttributeError, ShapelyError) as exc:
        logger.warning("zones.load.failed path=%s error=%s", source, exc)
        return ZoneIndex(source=source)
    logger.info("zones.load.ok path=%s zones=%s", source, len(index.zones))
    return index


class ZoneResolver:
    """Resolve and validate wards against an injected ZoneIndex."""

    def __init__(self, index: ZoneIndex) -> None:
        self._index = index

    @property
    def index(self) -> ZoneIndex:
        return self._index

    def reload(self, path: str | Path) -> ZoneIndex:
        """Swap in a freshly loaded index. In-flight lookups keep the old one."""
        self._index = load_zone_index(path)
        return self._index

    def resolve_zone(self, point: GeoPoint) -> Optional[ZoneMatch]:
        index = self._index
        target = Point(point.lon, point.lat)
        for zone in index.zones:
            if zone.covers(target):
                return ZoneMatch(number=zone.number, name=zone.name)
        return None

    def validate_inside_zone(self, point: GeoPoint, claimed_zone: Optional[int]) -> bool:
        index = self._index
        if index.is_empty:
            return True
        if claimed_zone is None:
            return False

        target = Point(point.lon, point.lat)
        return any(
            zone.covers(target) for zone in index.zones if zone.number == int(claimed_zone)
        )
