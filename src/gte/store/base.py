"""Grievance store contract."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Protocol, Sequence, TypeVar

from pydantic import BaseModel

from gte.models import ActionEntry, Grievance, GrievanceStatus
from gte.utils.time import ensure_aware


P = TypeVar("P", bound=BaseModel)

# Fields that may be used with add_to_set_and_increment.
SET_FIELDS = {"supporters"}
COUNTER_FIELDS = {"supporter_count", "upvotes"}


@dataclass(frozen=True)
class GrievanceFilter:
    """Conjunctive filter over grievance documents. Unset fields match anything."""

    ids: Optional[tuple[str, ...]] = None
    zone: Optional[int] = None
    statuses: Optional[tuple[GrievanceStatus, ...]] = None
    submitter_id: Optional[str] = None
    group_id: Optional[str] = None
    created_since: Optional[datetime] = None
    any_image_hash: Optional[tuple[str, ...]] = None
    exclude_id: Optional[str] = None

    def matches(self, doc: Grievance) -> bool:
        if self.ids is not None and doc.id not in self.ids:
            return False
        if self.zone is not None and doc.zone != self.zone:
            return False
        if self.statuses is not None and doc.status not in self.statuses:
            return False
        if self.submitter_id is not None and doc.submitter_id != self.submitter_id:
            return False
        if self.group_id is not None and doc.group_id != self.group_id:
            return False
        if self.created_since is not None and ensure_aware(doc.created_at) < ensure_aware(
            self.created_since
        ):
            return False
        if self.any_image_hash is not None and not set(self.any_image_hash) & set(
            doc.image_hashes
        ):
            return False
        if self.exclude_id is not None and doc.id == self.exclude_id:
            return False
        return True


class GrievanceStore(Protocol):
    """Persistent record store for grievances.

    Every method is atomic at single-document granularity; nothing spans
    documents transactionally.
    """

    def create(self, doc: Grievance) -> Grievance:
        """Insert a new document."""

    def get(self, grievance_id: str) -> Optional[Grievance]:
        """Return a document by id."""

    def find_many(
        self,
        flt: GrievanceFilter,
        projection: type[P],
        order_by_created: bool = True,
    ) -> list[P]:
        """Return matching documents, reading only the projection's fields."""

    def count(self, flt: GrievanceFilter) -> int:
        """Count matching documents."""

    def add_to_set_and_increment(
        self,
        grievance_id: str,
        set_field: str,
        value: str,
        counter_field: str,
    ) -> bool:
        """Add value to a set field and bump a counter in one step.

        Returns False (and changes nothing) when the value was already present
        or the document does not exist.
        """

    def sync_supporter_count(self, grievance_id: str) -> Optional[int]:
        """Set supporter_count and upvotes to 1 + |supporters| in one step.

        Returns the new count, or None when the document does not exist.
        """

    def append_action(self, grievance_id: str, entry: ActionEntry) -> None:
        """Append to a document's action history."""

    def update_many(self, flt: GrievanceFilter, patch: dict[str, Any]) -> int:
        """Apply a field patch to every matching document."""

    def update_one(self, grievance_id: str, patch: dict[str, Any]) -> int:
        """Apply a field patch to one document."""


def check_set_fields(set_field: str, counter_field: str) -> None:
    if set_field not in SET_FIELDS:
        raise ValueError(f"Unsupported set field: {set_field!r}")
    if counter_field not in COUNTER_FIELDS:
        raise ValueError(f"Unsupported counter field: {counter_field!r}")


def id_filter(ids: Sequence[str]) -> GrievanceFilter:
    return GrievanceFilter(ids=tuple(ids))
