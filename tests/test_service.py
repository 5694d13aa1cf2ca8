from datetime import timedelta

from PIL import Image

from gte.adapters.files import FileStorageError
from gte.intake.service import GrievanceService
from gte.models import GeoPoint, GrievanceStatus, GrievanceSubmission, Submitter
from gte.relevance.queue import InMemoryRelevanceQueue
from gte.scoring.priority import priority
from gte.utils.hashing import hash_file
from gte.zones.resolver import ZoneIndex, ZoneResolver

from conftest import NOW, make_grievance


LAT, LON = 12.9716, 77.5946


def _zones() -> ZoneResolver:
    payload = {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": {"ward": 5, "name": "Central"},
                "geometry": {
                    "type": "Polygon",
                    "coordinates": [[[77.58, 12.96], [77.61, 12.96], [77.61, 12.99], [77.58, 12.99], [77.58, 12.96]]],
                },
            }
        ],
    }
    return ZoneResolver(ZoneIndex.from_geojson(payload))


def _base_submission(**overrides) -> GrievanceSubmission:
    payload = {
        "title": "Pothole",
        "description": "pothole on main road",
        "category": "Road Repair",
        "lat": LAT,
        "lng": LON,
        "address": "MG Road",
    }
    payload.update(overrides)
    return GrievanceSubmission.model_validate(payload)


def _citizen(user_id: str = "citizen-1", verified: bool = True, **overrides) -> Submitter:
    return Submitter(id=user_id, name=user_id.title(), verified=verified, **overrides)


class _RecordingNotifier:
    def __init__(self) -> None:
        self.events = []

    def publish(self, topic, payload):
        self.events.append((topic, payload))


class _BrokenQueue(InMemoryRelevanceQueue):
    def enqueue(self, grievance_id):
        raise RuntimeError("queue down")


class _BrokenFiles:
    def store(self, local_path):
        raise FileStorageError("bucket unavailable")


def _service(store, settings, **kwargs) -> GrievanceService:
    return GrievanceService(store, _zones(), settings, **kwargs)


def _photo(path):
    Image.new("RGB", (8, 8), (10, 120, 10)).save(path, format="JPEG")
    return path


def test_first_report_creates_leader(store, settings, queue):
    notifier = _RecordingNotifier()
    service = _service(store, settings, queue=queue, notifier=notifier)

    result = service.submit(_base_submission(), _citizen(), now=NOW)

    assert result.outcome == "created"
    doc = store.get(result.grievance_id)
    assert doc.is_leader
    assert doc.zone == 5
    assert doc.geo_valid is True
    assert doc.credibility_score == 0.85
    assert doc.priority_score == priority("Road Repair", 0.85, 1)
    assert doc.ai_classification == "unclassified"
    assert [entry.action for entry in doc.action_history] == ["submitted"]
    assert queue.dequeue() == doc.id
    assert notifier.events[0][0] == "ward:5"


def test_nearby_similar_report_from_other_submitter_merges(store, settings):
    service = _service(store, settings)
    first = service.submit(_base_submission(), _citizen(), now=NOW)
    solo_priority = first.priority_score

    second = service.submit(
        _base_submission(description="big pothole main road", lat=12.9719, lng=77.5948),
        _citizen("citizen-2"),
        now=NOW + timedelta(minutes=5),
    )

    assert second.outcome == "merged"
    assert second.group_id == first.grievance_id
    assert second.supporter_count == 2
    leader = store.get(first.grievance_id)
    member = store.get(second.grievance_id)
    assert leader.supporters == ["citizen-2"]
    assert leader.supporter_count == member.supporter_count == 2
    assert leader.priority_score > solo_priority
    assert member.group_id == leader.id
    assert member.priority_score == priority("Road Repair", member.credibility_score, 2)


def test_same_submitter_repeat_is_rejected(store, settings):
    service = _service(store, settings)
    first = service.submit(_base_submission(), _citizen(), now=NOW)
    second = service.submit(
        _base_submission(description="big pothole main road"),
        _citizen(),
        now=NOW + timedelta(minutes=5),
    )
    assert second.outcome == "rejected_duplicate"
    assert second.group_id == first.grievance_id
    assert len(store) == 1


def test_fourth_report_in_a_day_is_rate_limited(store, settings):
    for hours in (1, 2, 3):
        store.create(make_grievance(created_at=NOW - timedelta(hours=hours), zone=7))
    result = _service(store, settings).submit(_base_submission(), _citizen(), now=NOW)
    assert result.outcome == "rejected_rate_limited"
    assert len(store) == 3


def test_invalid_submissions(store, settings):
    service = _service(store, settings)
    assert service.submit(_base_submission(lat=None), _citizen(), now=NOW).reason == "missing_coords"
    assert service.submit(_base_submission(lat=200.0), _citizen(), now=NOW).reason == "invalid_coords"
    result = service.submit(_base_submission(description="   "), _citizen(), now=NOW)
    assert result.outcome == "rejected_invalid"
    assert result.reason == "missing_description"
    assert len(store) == 0


def test_long_text_is_truncated(store, settings):
    result = _service(store, settings).submit(
        _base_submission(title="t" * 500, description="d" * 5000), _citizen(), now=NOW
    )
    doc = store.get(result.grievance_id)
    assert len(doc.title) == settings.title_max_chars
    assert len(doc.description) == settings.description_max_chars


def test_point_outside_claimed_ward_lowers_credibility(store, settings):
    result = _service(store, settings).submit(_base_submission(ward=9), _citizen(), now=NOW)
    doc = store.get(result.grievance_id)
    assert doc.geo_valid is False
    assert doc.credibility_signals.geo_inside_zone is False
    assert doc.credibility_score == 0.55


def test_unresolved_point_falls_back_to_home_zone(store, settings):
    result = _service(store, settings).submit(
        _base_submission(lat=13.5, lng=78.5), _citizen(home_zone=11), now=NOW
    )
    doc = store.get(result.grievance_id)
    assert doc.zone == 11
    assert doc.geo_valid is False


def test_prior_rejection_clears_good_history(store, settings):
    store.create(
        make_grievance(status=GrievanceStatus.REJECTED, zone=7, created_at=NOW - timedelta(days=30))
    )
    service = _service(store, settings)
    assert service.history_is_good("citizen-1") is False
    assert service.history_is_good("citizen-2") is True
    result = service.submit(_base_submission(), _citizen(), now=NOW)
    assert store.get(result.grievance_id).credibility_score == 0.75


def test_attachments_are_stored_and_hashed(store, settings, tmp_path):
    photo = _photo(tmp_path / "hole.jpg")
    files = [{"path": str(photo), "media_type": "image/jpeg"}]
    result = _service(store, settings).submit(_base_submission(files=files), _citizen(), now=NOW)
    doc = store.get(result.grievance_id)
    assert len(doc.attachments) == 1
    assert doc.image_url == doc.attachments[0].url
    assert doc.image_hashes == [hash_file(photo)]
    assert doc.credibility_signals.unique_image is True


def test_reused_photo_merges_and_is_flagged(store, settings, tmp_path):
    photo = _photo(tmp_path / "hole.jpg")
    files = [{"path": str(photo), "media_type": "image/jpeg"}]
    service = _service(store, settings)
    first = service.submit(_base_submission(files=files), _citizen(), now=NOW)
    second = service.submit(
        _base_submission(description="zzz", files=files, lat=12.9717, lng=77.5947),
        _citizen("citizen-2"),
        now=NOW + timedelta(minutes=1),
    )
    assert second.outcome == "merged"
    assert second.group_id == first.grievance_id
    member = store.get(second.grievance_id)
    assert member.duplicate_flag is True
    assert member.credibility_signals.unique_image is False


def test_storage_failure_keeps_report(store, settings, tmp_path):
    photo = _photo(tmp_path / "hole.jpg")
    files = [{"path": str(photo), "media_type": "image/jpeg"}]
    result = _service(store, settings, files=_BrokenFiles()).submit(
        _base_submission(files=files), _citizen(), now=NOW
    )
    assert result.outcome == "created"
    doc = store.get(result.grievance_id)
    assert doc.attachments == []
    assert doc.image_url is None


def test_queue_failure_keeps_initial_credibility(store, settings):
    result = _service(store, settings, queue=_BrokenQueue()).submit(
        _base_submission(), _citizen(), now=NOW
    )
    assert result.outcome == "created"
    doc = store.get(result.grievance_id)
    assert doc.credibility_score == 0.85
    assert doc.credibility_signals.ai_relevant is False


def test_quick_check_does_not_write(store, settings):
    service = _service(store, settings)
    first = service.submit(_base_submission(), _citizen(), now=NOW)

    preview = service.quick_duplicate_check(
        _base_submission(description="big pothole main road"),
        _citizen("citizen-2"),
        now=NOW + timedelta(hours=1),
    )
    assert preview.is_duplicate is True
    assert preview.group_id == first.grievance_id
    assert preview.supporter_count == 1
    assert preview.already_supported_by_caller is False
    assert len(store) == 1

    own = service.quick_duplicate_check(_base_submission(), _citizen(), now=NOW + timedelta(hours=1))
    assert own.already_supported_by_caller is True


def test_quick_check_uses_shorter_window(store, settings):
    service = _service(store, settings)
    service.submit(_base_submission(), _citizen(), now=NOW)
    later = NOW + timedelta(days=4)
    assert service.quick_duplicate_check(_base_submission(), _citizen("citizen-2"), now=later).is_duplicate is False


def test_resolve_zone_and_recompute(store, settings):
    service = _service(store, settings)
    assert service.resolve_zone(GeoPoint(lat=LAT, lon=LON)) == 5
    assert service.resolve_zone(GeoPoint(lat=0.0, lon=0.0)) is None

    first = service.submit(_base_submission(), _citizen(), now=NOW)
    service.submit(
        _base_submission(description="big pothole main road"),
        _citizen("citizen-2"),
        now=NOW + timedelta(minutes=1),
    )
    snapshot = service.recompute_group_priority(first.grievance_id)
    assert snapshot.supporter_count == 2
    assert snapshot.leader_priority == store.get(first.grievance_id).priority_score
