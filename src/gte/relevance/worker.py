"""Asynchronous credibility revision once relevance is known."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional

from gte.config import Settings
from gte.dedup.groups import GroupAggregator
from gte.models import Grievance
from gte.relevance.classifier import RelevanceClassifier, build_classifier
from gte.relevance.queue import RelevanceQueue
from gte.scoring.credibility import score as credibility_score
from gte.store.base import GrievanceStore
from gte.utils.logging import get_logger


logger = get_logger(__name__)

MAX_BACKOFF_SECONDS = 30.0


@dataclass
class WorkerStats:
    processed: int = 0
    failed: int = 0
    missing: int = 0


class RelevanceWorker:
    """Consume the queue, set ai_relevant, and re-derive credibility and priority.

    Only ai_relevant changes; the other signals are the ones stored at
    creation, so running the same id twice ends in the same state.
    """

    def __init__(
        self,
        store: GrievanceStore,
        queue: RelevanceQueue,
        classifier: Optional[RelevanceClassifier] = None,
        settings: Optional[Settings] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.store = store
        self.queue = queue
        self.settings = settings or Settings()
        self.classifier = classifier or build_classifier(self.settings)
        self.groups = GroupAggregator(store)
        self.sleep = sleep

    def process(self, grievance_id: str) -> Optional[Grievance]:
        doc = self.store.get(grievance_id)
        if doc is None:
            logger.warning("relevance.job.missing grievance_id=%s", grievance_id)
            return None

        verdict = self.classifier.classify(doc.title, doc.category.value, doc.description)
        signals = doc.credibility_signals.model_copy(update={"ai_relevant": verdict.relevant})
        credibility = credibility_score(signals)

        self.store.update_one(
            grievance_id,
            {
                "credibility_signals": signals,
                "credibility_score": credibility,
                "ai_classification": verdict.label,
            },
        )
        snapshot = self.groups.recompute(doc.leader_id)

        logger.info(
            "relevance.job.ok grievance_id=%s label=%s credibility=%s->%s priority=%s",
            grievance_id,
            verdict.label,
            doc.credibility_score,
            credibility,
            snapshot.leader_priority,
        )
        return self.store.get(grievance_id)

    def process_with_retry(self, grievance_id: str) -> bool:
        """Process one id with exponential backoff; False once attempts run out."""
        attempts = max(1, self.settings.relevance_max_attempts)

        for attempt in range(1, attempts + 1):
            try:
                self.process(grievance_id)
                self.queue.complete(grievance_id)
                return True
            except Exception as exc:
                if attempt == attempts:
                    logger.error(
                        "relevance.job.failed grievance_id=%s attempts=%s error=%s",
                        grievance_id,
                        attempts,
                        exc,
                    )
                    self.queue.fail(grievance_id, exc, attempts)
                    return False
                logger.warning(
                    "relevance.job.retry grievance_id=%s attempt=%s error=%s",
                    grievance_id,
                    attempt,
                    exc,
                )
                self.sleep(self._backoff(attempt))
        return False

    def run(self, limit: Optional[int] = None) -> WorkerStats:
        """Drain the queue once (or up to limit items)."""
        stats = WorkerStats()
        handled = 0
        while limit is None or handled < limit:
            grievance_id = self.queue.dequeue()
            if grievance_id is None:
                break
            handled += 1

            if self.store.get(grievance_id) is None:
                stats.missing += 1
                logger.warning("relevance.job.missing grievance_id=%s", grievance_id)
                self.queue.complete(grievance_id)
                continue

            if self.process_with_retry(grievance_id):
                stats.processed += 1
            else:
                stats.failed += 1

        logger.info(
            "relevance.run.complete processed=%s failed=%s missing=%s",
            stats.processed,
            stats.failed,
            stats.missing,
        )
        return stats

    def _backoff(self, attempt: int) -> float:
        return min(self.settings.relevance_backoff_seconds * 2 ** (attempt - 1), MAX_BACKOFF_SECONDS)
