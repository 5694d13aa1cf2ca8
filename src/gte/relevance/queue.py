"""Work queue feeding the relevance worker."""

from __future__ import annotations

import threading
from collections import deque
from typing import Optional, Protocol

from psycopg.types.json import Jsonb

from gte.config import Settings
from gte.db.client import db_cursor


class RelevanceQueue(Protocol):
    """At-least-once queue of grievance ids."""

    def enqueue(self, grievance_id: str) -> None:
        """Schedule a grievance for relevance scoring."""

    def dequeue(self) -> Optional[str]:
        """Claim the next grievance id, or None when idle."""

    def complete(self, grievance_id: str) -> None:
        """Mark a claimed id as done."""

    def fail(self, grievance_id: str, error: Exception, attempts: int) -> None:
        """Mark a claimed id as given up."""


class InMemoryRelevanceQueue:
    """Thread-safe FIFO used in tests and single-process runs."""

    def __init__(self) -> None:
        self._pending: deque[str] = deque()
        self._lock = threading.Lock()
        self.completed: list[str] = []
        self.failed: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def enqueue(self, grievance_id: str) -> None:
        with self._lock:
            self._pending.append(grievance_id)

    def dequeue(self) -> Optional[str]:
        with self._lock:
            return self._pending.popleft() if self._pending else None

    def complete(self, grievance_id: str) -> None:
        with self._lock:
            self.completed.append(grievance_id)

    def fail(self, grievance_id: str, error: Exception, attempts: int) -> None:
        with self._lock:
            self.failed[grievance_id] = f"{error} (attempts={attempts})"


class PostgresRelevanceQueue:
    """Job table claimed with `for update skip locked`."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or Settings()

    def enqueue(self, grievance_id: str) -> None:
        with db_cursor(self.settings) as cursor:
            cursor.execute(
                "insert into public.relevance_jobs (grievance_id) values (%s) "
                "on conflict (grievance_id) do update set status = 'queued', "
                "enqueued_at = now(), claimed_at = null, finished_at = null, error_json = null",
                (grievance_id,),
            )

    def dequeue(self) -> Optional[str]:
        """Claim a queued job, or a running one whose lease has expired."""
        with db_cursor(self.settings) as cursor:
            cursor.execute(
                "update public.relevance_jobs set status = 'running', "
                "attempts = attempts + 1, claimed_at = now() "
                "where grievance_id = ("
                "  select grievance_id from public.relevance_jobs "
                "  where status = 'queued' "
                "     or (status = 'running' and claimed_at < now() - make_interval(secs => %s)) "
                "  order by enqueued_at "
                "  for update skip locked limit 1"
                ") returning grievance_id",
                (float(self.settings.relevance_lease_seconds),),
            )
            row = cursor.fetchone()
        return str(row[0]) if row else None

    def complete(self, grievance_id: str) -> None:
        with db_cursor(self.settings) as cursor:
            cursor.execute(
                "update public.relevance_jobs set status = 'done', finished_at = now() "
                "where grievance_id = %s",
                (grievance_id,),
            )

    def fail(self, grievance_id: str, error: Exception, attempts: int) -> None:
        with db_cursor(self.settings) as cursor:
            cursor.execute(
                "update public.relevance_jobs set status = 'failed', finished_at = now(), "
                "error_json = %s where grievance_id = %s",
                (Jsonb({"error": str(error), "attempts": attempts}), grievance_id),
            )


def build_queue(settings: Optional[Settings] = None) -> RelevanceQueue:
    settings = settings or Settings()
    if settings.store_backend == "memory":
        return InMemoryRelevanceQueue()
    return PostgresRelevanceQueue(settings)
