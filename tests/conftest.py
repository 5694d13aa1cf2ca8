from datetime import datetime, timezone

import pytest

from gte.config import Settings
from gte.models import GeoPoint, Grievance
from gte.relevance.queue import InMemoryRelevanceQueue
from gte.store.memory import InMemoryGrievanceStore


NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def make_grievance(**overrides) -> Grievance:
    payload = {
        "submitter_id": "citizen-1",
        "category": "Road Repair",
        "title": "Pothole",
        "description": "pothole on main road",
        "location": GeoPoint(lat=12.9716, lon=77.5946),
        "zone": 5,
        "created_at": NOW,
    }
    payload.update(overrides)
    return Grievance.model_validate(payload)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        store_backend="memory",
        media_root=str(tmp_path / "media"),
        ward_geojson_path=str(tmp_path / "missing.geo.json"),
        relevance_backoff_seconds=1.0,
    )


@pytest.fixture
def store() -> InMemoryGrievanceStore:
    return InMemoryGrievanceStore()


@pytest.fixture
def queue() -> InMemoryRelevanceQueue:
    return InMemoryRelevanceQueue()
