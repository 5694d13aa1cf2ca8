"""Ward resolution."""

from gte.zones.resolver import ZoneIndex, ZoneMatch, ZoneResolver, load_zone_index

__all__ = ["ZoneIndex", "ZoneMatch", "ZoneResolver", "load_zone_index"]
