"""Submission intake: rate limit, ward, duplicate grouping, scoring."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from gte.adapters.files import FileStore, LocalFileStore
from gte.adapters.notify import Notifier, build_notifier
from gte.config import Settings
from gte.dedup.detector import DuplicateDetector, DuplicateMatch
from gte.dedup.groups import GroupAggregator, GroupSnapshot
from gte.intake.evidence import Fingerprints, fingerprint_files, store_files
from gte.intake.rate_limit import RateLimiter
from gte.models import (
    ActionEntry,
    CredibilitySignals,
    GeoPoint,
    Grievance,
    GrievanceStatus,
    GrievanceSubmission,
    QuickCheckResult,
    Submitter,
    SubmissionResult,
    UploadedFile,
)
from gte.relevance.queue import RelevanceQueue
from gte.scoring.categories import normalize_category
from gte.scoring.credibility import score as credibility_score
from gte.store.base import GrievanceFilter, GrievanceStore
from gte.utils.logging import get_logger
from gte.utils.text import truncate
from gte.utils.time import ensure_aware, utcnow
from gte.zones.resolver import ZoneResolver


logger = get_logger(__name__)


@dataclass
class _Draft:
    """Validated submission plus everything derived before persistence."""

    doc: Grievance
    fingerprints: Fingerprints
    zone: Optional[int]


class GrievanceService:
    """Entry point used by the intake layer and the review workflow."""

    def __init__(
        self,
        store: GrievanceStore,
        zones: ZoneResolver,
        settings: Optional[Settings] = None,
        files: Optional[FileStore] = None,
        queue: Optional[RelevanceQueue] = None,
        notifier: Optional[Notifier] = None,
        detector: Optional[DuplicateDetector] = None,
    ) -> None:
        self.store = store
        self.zones = zones
        self.settings = settings or Settings()
        self.files = files or LocalFileStore.from_settings(self.settings)
        self.queue = queue
        self.notifier = notifier or build_notifier(self.settings)
        self.rate_limiter = RateLimiter.from_settings(store, self.settings)
        self.detector = detector or DuplicateDetector(store, self.settings)
        self.groups = GroupAggregator(store)

    def resolve_zone(self, point: GeoPoint) -> Optional[int]:
        match = self.zones.resolve_zone(point)
        return match.number if match else None

    def history_is_good(self, submitter_id: str) -> bool:
        rejected = GrievanceFilter(
            submitter_id=submitter_id,
            statuses=(GrievanceStatus.REJECTED,),
        )
        return self.store.count(rejected) == 0

    def submit(
        self,
        submission: GrievanceSubmission,
        submitter: Submitter,
        now: Optional[datetime] = None,
    ) -> SubmissionResult:
        now = ensure_aware(now or utcnow())

        if not self.rate_limiter.allow(submitter.id, now):
            return SubmissionResult(
                outcome="rejected_rate_limited",
                reason="rate_limited",
                message=(
                    f"You can submit at most {self.rate_limiter.limit} grievances "
                    f"every {self.settings.rate_limit_window_hours} hours. Please try again later."
                ),
            )

        draft_or_reason = self._build_draft(submission, submitter, now)
        if isinstance(draft_or_reason, str):
            return SubmissionResult(
                outcome="rejected_invalid",
                reason=draft_or_reason,
                message="The grievance could not be accepted.",
            )
        draft = draft_or_reason

        match = self.detector.find_duplicate(draft.doc, draft.zone, now)
        if match is not None:
            return self._merge(draft, submitter, submission, match, now)
        return self._create(draft, submitter, submission, now)

    def quick_duplicate_check(
        self,
        submission: GrievanceSubmission,
        submitter: Submitter,
        now: Optional[datetime] = None,
    ) -> QuickCheckResult:
        """Preview whether a submission would merge. Writes nothing."""
        now = ensure_aware(now or utcnow())
        draft_or_reason = self._build_draft(submission, submitter, now)
        if isinstance(draft_or_reason, str):
            return QuickCheckResult(is_duplicate=False)
        draft = draft_or_reason

        match = self.detector.find_duplicate(
            draft.doc,
            draft.zone,
            now,
            lookback=timedelta(hours=self.settings.quick_check_lookback_hours),
        )
        if match is None:
            return QuickCheckResult(is_duplicate=False)

        leader = self.groups.leader(match.group_id)
        return QuickCheckResult(
            is_duplicate=True,
            group_id=leader.id,
            supporter_count=leader.supporter_count,
            already_supported_by_caller=self.groups.already_in_group(leader, submitter.id),
        )

    def recompute_group_priority(self, group_id: str) -> GroupSnapshot:
        snapshot = self.groups.recompute(group_id)
        logger.info(
            "group.recomputed leader_id=%s supporters=%s priority=%s documents=%s",
            snapshot.leader_id,
            snapshot.supporter_count,
            snapshot.leader_priority,
            snapshot.documents_updated,
        )
        return snapshot

    def _build_draft(
        self,
        submission: GrievanceSubmission,
        submitter: Submitter,
        now: datetime,
    ) -> _Draft | str:
        if submission.lat is None or submission.lon is None:
            return "missing_coords"
        if not (-90 <= submission.lat <= 90 and -180 <= submission.lon <= 180):
            return "invalid_coords"
        if not submission.description:
            return "missing_description"

        point = GeoPoint(lat=submission.lat, lon=submission.lon)
        title = truncate(submission.title, self.settings.title_max_chars)
        description = truncate(submission.description, self.settings.description_max_chars)
        category = normalize_category(submission.category, f"{title} {description}")

        zone = self.resolve_zone(point)
        if zone is None:
            zone = submitter.home_zone
        claimed_zone = submission.claimed_zone or submitter.home_zone or zone
        geo_valid = self.zones.validate_inside_zone(point, claimed_zone)

        fingerprints = fingerprint_files(submission.files, now, self.settings.old_photo_days)

        doc = Grievance(
            submitter_id=submitter.id,
            submitter_name=submitter.name,
            category=category,
            title=title,
            description=description,
            location=point,
            address=submission.address or "",
            zone=zone,
            image_hashes=list(fingerprints.image_hashes),
            capture_times=list(fingerprints.capture_times),
            geo_valid=geo_valid,
            flags=list(fingerprints.flags),
            created_at=now,
            submitted_ip=submission.ip,
            submitted_device=submission.device,
            action_history=[ActionEntry(actor=submitter.id, action="submitted", at=now)],
        )
        return _Draft(doc=doc, fingerprints=fingerprints, zone=zone)

    def _score(self, draft: _Draft, submitter: Submitter, now: datetime) -> Grievance:
        """Attach creation-time signals and the initial credibility."""
        image_seen = self.detector.image_seen_before(draft.doc.image_hashes, now)
        signals = CredibilitySignals(
            geo_inside_zone=draft.doc.geo_valid,
            submitter_verified=submitter.verified,
            unique_image=not image_seen,
            ai_relevant=False,
            good_history=self.history_is_good(submitter.id),
        )
        return draft.doc.model_copy(
            update={
                "credibility_signals": signals,
                "credibility_score": credibility_score(signals),
                "duplicate_flag": image_seen,
            }
        )

    def _attach_files(self, doc: Grievance, draft: _Draft, submission_files: list[UploadedFile]) -> Grievance:
        stored = store_files(submission_files, self.files, draft.fingerprints)
        return doc.model_copy(
            update={
                "attachments": stored.attachments,
                "image_url": stored.image_url,
                "image_hashes": stored.image_hashes,
            }
        )

    def _create(
        self,
        draft: _Draft,
        submitter: Submitter,
        submission: GrievanceSubmission,
        now: datetime,
    ) -> SubmissionResult:
        doc = self._score(draft, submitter, now)
        doc = self._attach_files(doc, draft, submission.files)
        leader = self.groups.create_leader(doc)

        self._enqueue(leader.id)
        self._publish(leader)

        logger.info(
            "submit.created grievance_id=%s zone=%s credibility=%s priority=%s",
            leader.id,
            leader.zone,
            leader.credibility_score,
            leader.priority_score,
        )
        return SubmissionResult(
            outcome="created",
            grievance_id=leader.id,
            group_id=leader.id,
            supporter_count=leader.supporter_count,
            priority_score=leader.priority_score,
            message="Grievance submitted successfully.",
        )

    def _merge(
        self,
        draft: _Draft,
        submitter: Submitter,
        submission: GrievanceSubmission,
        match: DuplicateMatch,
        now: datetime,
    ) -> SubmissionResult:
        leader = self.groups.leader(match.group_id)
        if self.groups.already_in_group(leader, submitter.id):
            logger.info(
                "submit.rejected_duplicate submitter_id=%s group_id=%s",
                submitter.id,
                leader.id,
            )
            return _already_reported(leader.id, leader.supporter_count)

        doc = self._score(draft, submitter, now)
        doc = self._attach_files(doc, draft, submission.files)
        result = self.groups.merge(leader.id, doc)
        if not result.merged:
            return _already_reported(result.leader_id, result.supporter_count)

        logger.info(
            "submit.merged grievance_id=%s group_id=%s supporters=%s priority=%s",
            result.member_id,
            result.leader_id,
            result.supporter_count,
            result.priority_score,
        )
        return SubmissionResult(
            outcome="merged",
            grievance_id=result.member_id,
            group_id=result.leader_id,
            supporter_count=result.supporter_count,
            priority_score=result.priority_score,
            message="This issue was already reported nearby. Thanks for confirming it.",
        )

    def _enqueue(self, grievance_id: str) -> None:
        if self.queue is None:
            return
        try:
            self.queue.enqueue(grievance_id)
        except Exception as exc:
            logger.warning("submit.enqueue.failed grievance_id=%s error=%s", grievance_id, exc)

    def _publish(self, doc: Grievance) -> None:
        topic = f"ward:{doc.zone}" if doc.zone is not None else "ward:unassigned"
        payload = {
            "id": doc.id,
            "zone": doc.zone,
            "category": doc.category.value,
            "title": doc.title,
            "priority_score": doc.priority_score,
            "created_at": doc.created_at.isoformat(),
        }
        try:
            self.notifier.publish(topic, payload)
        except Exception as exc:
            logger.warning("submit.publish.failed grievance_id=%s error=%s", doc.id, exc)


def _already_reported(group_id: str, supporter_count: int) -> SubmissionResult:
    return SubmissionResult(
        outcome="rejected_duplicate",
        group_id=group_id,
        supporter_count=supporter_count,
        reason="already_reported",
        message="You have already reported or supported this issue.",
    )
