"""In-process grievance store."""

from __future__ import annotations

import threading
from typing import Any, Optional

from gte.models import ActionEntry, Grievance
from gte.store.base import P, GrievanceFilter, check_set_fields, id_filter
from gte.utils.logging import get_logger


logger = get_logger(__name__)


class InMemoryGrievanceStore:
    """Dict-backed store with per-operation atomicity.

    The internal lock only serialises individual store operations, the way a
    database serialises a single-row update. Callers get no cross-call
    transaction from it.
    """

    def __init__(self) -> None:
        self._docs: dict[str, Grievance] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._docs)

    def create(self, doc: Grievance) -> Grievance:
        with self._lock:
            if doc.id in self._docs:
                raise ValueError(f"Grievance {doc.id} already exists")
            self._docs[doc.id] = doc.model_copy(deep=True)
        logger.debug("store.create id=%s group_id=%s", doc.id, doc.group_id)
        return doc

    def get(self, grievance_id: str) -> Optional[Grievance]:
        with self._lock:
            doc = self._docs.get(grievance_id)
            return doc.model_copy(deep=True) if doc else None

    def find_many(
        self,
        flt: GrievanceFilter,
        projection: type[P],
        order_by_created: bool = True,
    ) -> list[P]:
        with self._lock:
            matched = [doc for doc in self._docs.values() if flt.matches(doc)]
        if order_by_created:
            matched.sort(key=lambda doc: doc.created_at)
        fields = set(projection.model_fields)
        return [projection.model_validate(doc.model_dump(include=fields)) for doc in matched]

    def count(self, flt: GrievanceFilter) -> int:
        with self._lock:
            return sum(1 for doc in self._docs.values() if flt.matches(doc))

    def add_to_set_and_increment(
        self,
        grievance_id: str,
        set_field: str,
        value: str,
        counter_field: str,
    ) -> bool:
        check_set_fields(set_field, counter_field)
        with self._lock:
            doc = self._docs.get(grievance_id)
            if doc is None:
                return False
            current = list(getattr(doc, set_field))
            if value in current:
                return False
            self._docs[grievance_id] = doc.model_copy(
                update={
                    set_field: current + [value],
                    counter_field: getattr(doc, counter_field) + 1,
                }
            )
            return True

    def sync_supporter_count(self, grievance_id: str) -> Optional[int]:
        with self._lock:
            doc = self._docs.get(grievance_id)
            if doc is None:
                return None
            count = 1 + len(set(doc.supporters))
            self._docs[grievance_id] = doc.model_copy(
                update={"supporter_count": count, "upvotes": count}
            )
            return count

    def append_action(self, grievance_id: str, entry: ActionEntry) -> None:
        with self._lock:
            doc = self._docs.get(grievance_id)
            if doc is None:
                return
            self._docs[grievance_id] = doc.model_copy(
                update={"action_history": doc.action_history + [entry]}
            )

    def update_many(self, flt: GrievanceFilter, patch: dict[str, Any]) -> int:
        updated = 0
        with self._lock:
            for doc_id, doc in list(self._docs.items()):
                if not flt.matches(doc):
                    continue
                self._docs[doc_id] = Grievance.model_validate({**doc.model_dump(), **patch})
                updated += 1
        return updated

    def update_one(self, grievance_id: str, patch: dict[str, Any]) -> int:
        return self.update_many(id_filter([grievance_id]), patch)
