"""Per-submitter submission ceiling over a trailing window."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from gte.config import Settings
from gte.store.base import GrievanceFilter, GrievanceStore
from gte.utils.logging import get_logger
from gte.utils.time import ensure_aware


logger = get_logger(__name__)


class RateLimiter:
    def __init__(self, store: GrievanceStore, limit: int = 3, window_hours: int = 24) -> None:
        self.store = store
        self.limit = limit
        self.window = timedelta(hours=window_hours)

    @classmethod
    def from_settings(cls, store: GrievanceStore, settings: Optional[Settings] = None) -> "RateLimiter":
        settings = settings or Settings()
        return cls(store, settings.grievances_per_24h, settings.rate_limit_window_hours)

    def recent_count(self, submitter_id: str, now: datetime) -> int:
        flt = GrievanceFilter(
            submitter_id=submitter_id,
            created_since=ensure_aware(now) - self.window,
        )
        return self.store.count(flt)

    def allow(self, submitter_id: str, now: datetime) -> bool:
        count = self.recent_count(submitter_id, now)
        if count >= self.limit:
            logger.info(
                "rate_limit.blocked submitter_id=%s count=%s limit=%s",
                submitter_id,
                count,
                self.limit,
            )
            return False
        return True
