"""Store-backed duplicate detection for new grievances."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional, Sequence

from gte.config import Settings
from gte.dedup.similarity import distance_m, text_similarity
from gte.models import OPEN_STATUSES, DuplicateCandidate, Grievance
from gte.store.base import GrievanceFilter, GrievanceStore
from gte.utils.logging import get_logger
from gte.utils.time import ensure_aware


logger = get_logger(__name__)

HASH_MATCH_SCORE = 1.0


@dataclass(frozen=True)
class DuplicateMatch:
    """Best existing report a new submission restates."""

    group_id: str
    candidate_id: str
    score: float
    distance_m: float
    reason: str
    supporter_count: int
    created_at: datetime


class DuplicateDetector:
    """Find the open group a new report belongs to, if any.

    Candidates are limited to one ward, open statuses and a lookback window,
    then compared one by one. That stays cheap while the window is small
    relative to total volume; a spatial index is the next step if it is not.
    """

    def __init__(
        self,
        store: GrievanceStore,
        settings: Optional[Settings] = None,
        similarity: Callable[[str, str], float] = text_similarity,
    ) -> None:
        self.store = store
        self.settings = settings or Settings()
        self.similarity = similarity

    def find_duplicate(
        self,
        report: Grievance,
        zone: Optional[int],
        now: datetime,
        lookback: Optional[timedelta] = None,
    ) -> Optional[DuplicateMatch]:
        window = lookback or timedelta(days=self.settings.group_lookback_days)
        flt = GrievanceFilter(
            zone=zone,
            statuses=OPEN_STATUSES,
            created_since=ensure_aware(now) - window,
            exclude_id=report.id,
        )
        candidates = self.store.find_many(flt, DuplicateCandidate)

        best: Optional[DuplicateMatch] = None
        for candidate in candidates:
            match = self._score(report, candidate)
            if match is None:
                continue
            if best is None or _beats(match, best):
                best = match

        if best is not None:
            logger.info(
                "duplicate.match report_id=%s group_id=%s score=%.3f distance_m=%.1f reason=%s",
                report.id,
                best.group_id,
                best.score,
                best.distance_m,
                best.reason,
            )
        else:
            logger.debug(
                "duplicate.none report_id=%s zone=%s candidates=%s",
                report.id,
                zone,
                len(candidates),
            )
        return best

    def image_seen_before(self, image_hashes: Sequence[str], now: datetime) -> bool:
        """True if any stored report in the lookback window shares an image hash."""
        if not image_hashes:
            return False
        flt = GrievanceFilter(
            any_image_hash=tuple(image_hashes),
            created_since=ensure_aware(now) - timedelta(days=self.settings.group_lookback_days),
        )
        return self.store.count(flt) > 0

    def _score(self, report: Grievance, candidate: DuplicateCandidate) -> Optional[DuplicateMatch]:
        distance = distance_m(report.location, candidate.location)
        if distance > self.settings.group_radius_m:
            return None

        text_score = self.similarity(report.description, candidate.description)
        hash_match = bool(set(report.image_hashes) & set(candidate.image_hashes))
        score = max(text_score, HASH_MATCH_SCORE if hash_match else 0.0)
        if score <= self.settings.similarity_threshold:
            return None

        return DuplicateMatch(
            group_id=candidate.group_id or candidate.id,
            candidate_id=candidate.id,
            score=score,
            distance_m=distance,
            reason="image_hash" if hash_match else "text",
            supporter_count=candidate.supporter_count,
            created_at=ensure_aware(candidate.created_at),
        )


def _beats(challenger: DuplicateMatch, incumbent: DuplicateMatch) -> bool:
    if challenger.score != incumbent.score:
        return challenger.score > incumbent.score
    # Ties go to the oldest report.
    return challenger.created_at < incumbent.created_at
