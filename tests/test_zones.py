import orjson
import pytest

from gte.models import GeoPoint
from gte.zones.resolver import ZoneIndex, ZoneResolver, load_zone_index


def _square(x0: float, y0: float, x1: float, y1: float) -> dict:
    return {
        "type": "Polygon",
        "coordinates": [[[x0, y0], [x1, y0], [x1, y1], [x0, y1], [x0, y0]]],
    }


@pytest.fixture
def wards_path(tmp_path):
    payload = {
        "type": "FeatureCollection",
        "features": [
            {"type": "Feature", "properties": {"ward": 5, "name": "Central"}, "geometry": _square(0, 0, 1, 1)},
            {"type": "Feature", "properties": {"WARD": "6", "WARD_NAME": "East"}, "geometry": _square(1, 0, 2, 1)},
            {"type": "Feature", "properties": {"name": "No number"}, "geometry": _square(5, 5, 6, 6)},
        ],
    }
    path = tmp_path / "wards.geo.json"
    path.write_bytes(orjson.dumps(payload))
    return path


def test_load_zone_index_skips_features_without_number(wards_path):
    index = load_zone_index(wards_path)
    assert [zone.number for zone in index.zones] == [5, 6]
    assert index.zones[1].name == "East"


def test_resolve_zone_inside_and_outside(wards_path):
    resolver = ZoneResolver(load_zone_index(wards_path))
    match = resolver.resolve_zone(GeoPoint(lat=0.5, lon=0.5))
    assert match is not None
    assert match.number == 5
    assert match.name == "Central"
    assert resolver.resolve_zone(GeoPoint(lat=10.0, lon=10.0)) is None


def test_boundary_point_counts_as_inside(wards_path):
    resolver = ZoneResolver(load_zone_index(wards_path))
    assert resolver.validate_inside_zone(GeoPoint(lat=0.5, lon=0.0), 5) is True
    assert resolver.validate_inside_zone(GeoPoint(lat=0.0, lon=0.0), 5) is True


def test_validate_inside_zone(wards_path):
    resolver = ZoneResolver(load_zone_index(wards_path))
    point = GeoPoint(lat=0.5, lon=1.5)
    assert resolver.validate_inside_zone(point, 6) is True
    assert resolver.validate_inside_zone(point, 5) is False
    assert resolver.validate_inside_zone(point, None) is False


def test_missing_file_gives_empty_index_and_fails_open(tmp_path):
    index = load_zone_index(tmp_path / "nope.geo.json")
    assert index.is_empty
    resolver = ZoneResolver(index)
    point = GeoPoint(lat=0.5, lon=0.5)
    assert resolver.resolve_zone(point) is None
    assert resolver.validate_inside_zone(point, 5) is True
    assert resolver.validate_inside_zone(point, None) is True


def test_malformed_file_gives_empty_index(tmp_path):
    path = tmp_path / "broken.geo.json"
    path.write_text("{not json", encoding="utf-8")
    assert load_zone_index(path).is_empty


def test_reload_swaps_index(tmp_path, wards_path):
    resolver = ZoneResolver(ZoneIndex())
    assert resolver.resolve_zone(GeoPoint(lat=0.5, lon=0.5)) is None
    resolver.reload(wards_path)
    assert resolver.resolve_zone(GeoPoint(lat=0.5, lon=0.5)).number == 5


@pytest.mark.parametrize(
    "features",
    [[None], {"ward": 5}, "features", [["not", "a", "feature"]]],
)
def test_malformed_features_give_empty_index_and_fail_open(tmp_path, features):
    path = tmp_path / "odd.geo.json"
    path.write_bytes(orjson.dumps({"type": "FeatureCollection", "features": features}))

    index = load_zone_index(path)

    assert index.is_empty
    assert ZoneResolver(index).validate_inside_zone(GeoPoint(lat=0.5, lon=0.5), 5) is True


def test_bad_feature_does_not_hide_good_ones():
    payload = {
        "features": [
            None,
            {"properties": "ward 9", "geometry": _square(3, 3, 4, 4)},
            {"properties": {"ward": 5}, "geometry": _square(0, 0, 1, 1)},
        ]
    }
    index = ZoneIndex.from_geojson(payload)
    assert [zone.number for zone in index.zones] == [5]
