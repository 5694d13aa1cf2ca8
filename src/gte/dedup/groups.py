"""Duplicate group membership and derived counters."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, ConfigDict

from gte.models import ActionEntry, Category, Grievance
from gte.scoring.priority import priority
from gte.store.base import GrievanceFilter, GrievanceStore
from gte.utils.logging import get_logger


logger = get_logger(__name__)


class GroupIntegrityError(RuntimeError):
    """A group id does not resolve to a leader document."""


class GroupMemberView(BaseModel):
    """Fields needed to re-derive a member's priority."""

    model_config = ConfigDict(extra="ignore")

    id: str
    category: Category
    credibility_score: float


@dataclass(frozen=True)
class GroupSnapshot:
    leader_id: str
    supporter_count: int
    leader_priority: int
    documents_updated: int


@dataclass(frozen=True)
class MergeResult:
    merged: bool
    leader_id: str
    supporter_count: int
    priority_score: Optional[int] = None
    member_id: Optional[str] = None


class GroupAggregator:
    """Keeps one leader per group and every member's derived fields in step."""

    def __init__(self, store: GrievanceStore) -> None:
        self.store = store

    def create_leader(self, doc: Grievance) -> Grievance:
        leader = doc.model_copy(
            update={
                "group_id": doc.id,
                "supporter_count": 1,
                "supporters": [],
                "upvotes": 1,
                "priority_score": priority(doc.category, doc.credibility_score, 1),
            }
        )
        self.store.create(leader)
        logger.info(
            "group.created leader_id=%s zone=%s priority=%s",
            leader.id,
            leader.zone,
            leader.priority_score,
        )
        return leader

    def leader(self, group_id: str) -> Grievance:
        doc = self.store.get(group_id)
        if doc is not None and not doc.is_leader:
            doc = self.store.get(doc.leader_id)
        if doc is None or not doc.is_leader:
            raise GroupIntegrityError(f"Group {group_id} has no leader document")
        return doc

    def already_in_group(self, leader: Grievance, submitter_id: str) -> bool:
        if leader.submitter_id == submitter_id or submitter_id in leader.supporters:
            return True
        own_reports = GrievanceFilter(group_id=leader.id, submitter_id=submitter_id)
        return self.store.count(own_reports) > 0

    def merge(self, group_id: str, member: Grievance) -> MergeResult:
        """Fold a new report into an existing group.

        The supporter add and counter bump happen in one store operation. A
        False result there means another request for the same submitter got
        in first, and this one is rejected without creating a document.
        """
        leader = self.leader(group_id)
        if self.already_in_group(leader, member.submitter_id):
            return MergeResult(
                merged=False,
                leader_id=leader.id,
                supporter_count=leader.supporter_count,
            )

        added = self.store.add_to_set_and_increment(
            leader.id, "supporters", member.submitter_id, "supporter_count"
        )
        if not added:
            logger.info(
                "group.merge.lost_race leader_id=%s submitter_id=%s",
                leader.id,
                member.submitter_id,
            )
            return MergeResult(
                merged=False,
                leader_id=leader.id,
                supporter_count=leader.supporter_count,
            )

        member_doc = member.model_copy(update={"group_id": leader.id, "supporters": []})
        self.store.create(member_doc)
        self.store.append_action(
            leader.id,
            ActionEntry(actor=member.submitter_id, action="supported", remarks=member_doc.id),
        )

        snapshot = self.recompute(leader.id)
        logger.info(
            "group.merged leader_id=%s member_id=%s supporters=%s priority=%s",
            leader.id,
            member_doc.id,
            snapshot.supporter_count,
            snapshot.leader_priority,
        )
        return MergeResult(
            merged=True,
            leader_id=leader.id,
            supporter_count=snapshot.supporter_count,
            priority_score=snapshot.leader_priority,
            member_id=member_doc.id,
        )

    def recompute(self, group_id: str) -> GroupSnapshot:
        """Re-derive supporter count from the leader's set and fan priority out.

        The leader's counters are derived by the store itself, so a merge that
        lands mid-recompute is never overwritten. Member copies may lag until
        that merge's own recompute runs.
        """
        leader = self.leader(group_id)
        count = self.store.sync_supporter_count(leader.id)
        if count is None:
            raise GroupIntegrityError(f"Group {group_id} leader vanished during recompute")

        members = self.store.find_many(GrievanceFilter(group_id=leader.id), GroupMemberView)
        if not any(view.id == leader.id for view in members):
            members.append(
                GroupMemberView(
                    id=leader.id,
                    category=leader.category,
                    credibility_score=leader.credibility_score,
                )
            )

        leader_priority = priority(leader.category, leader.credibility_score, count)
        for view in members:
            score = priority(view.category, view.credibility_score, count)
            if view.id == leader.id:
                leader_priority = score
                self.store.update_one(view.id, {"priority_score": score})
                continue
            self.store.update_one(
                view.id,
                {"supporter_count": count, "upvotes": count, "priority_score": score},
            )

        return GroupSnapshot(
            leader_id=leader.id,
            supporter_count=count,
            leader_priority=leader_priority,
            documents_updated=len(members),
        )
