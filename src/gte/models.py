"""Core data models for grievance intake, grouping and scoring."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gte.utils.time import utcnow


class Category(str, Enum):
    ROAD_REPAIR = "Road Repair"
    STREETLIGHT_OUTAGE = "Streetlight Outage"
    WASTE_MANAGEMENT = "Waste Management"
    WATER_LEAKAGE = "Water Leakage"
    PUBLIC_NUISANCE = "Public Nuisance"
    DRAINAGE = "Drainage"
    FLOOD = "Flood"
    OTHER = "Other"


class GrievanceStatus(str, Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    REJECTED = "rejected"


OPEN_STATUSES: tuple[GrievanceStatus, ...] = (
    GrievanceStatus.PENDING,
    GrievanceStatus.ASSIGNED,
    GrievanceStatus.IN_PROGRESS,
)

UNCLASSIFIED = "unclassified"


def new_grievance_id() -> str:
    return uuid.uuid4().hex


class GeoPoint(BaseModel):
    """WGS84 point."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)


class Attachment(BaseModel):
    url: str
    media_type: str


class ActionEntry(BaseModel):
    """Append-only review history entry."""

    actor: str
    action: str
    at: datetime = Field(default_factory=utcnow)
    remarks: Optional[str] = None


class CredibilitySignals(BaseModel):
    """Trust signals captured at submission time."""

    geo_inside_zone: bool = False
    submitter_verified: bool = False
    unique_image: bool = True
    ai_relevant: bool = False
    good_history: bool = True


@dataclass(frozen=True)
class Leader:
    """Canonical document of a group; owns the supporter set."""

    supporters: frozenset[str]

    @property
    def supporter_count(self) -> int:
        return 1 + len(self.supporters)


@dataclass(frozen=True)
class Member:
    """Non-canonical document pointing at its group's leader."""

    leader_id: str


GroupRole = Union[Leader, Member]


class Grievance(BaseModel):
    """Persisted grievance document."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=new_grievance_id)
    submitter_id: str
    submitter_name: str = ""

    category: Category = Category.OTHER
    title: str = ""
    description: str

    location: GeoPoint
    address: str = ""
    zone: Optional[int] = None

    attachments: list[Attachment] = Field(default_factory=list)
    image_url: Optional[str] = None
    image_hashes: list[str] = Field(default_factory=list)
    capture_times: list[datetime] = Field(default_factory=list)

    group_id: Optional[str] = None
    supporter_count: int = 1
    supporters: list[str] = Field(default_factory=list)
    upvotes: int = 1

    credibility_score: float = 0.0
    credibility_signals: CredibilitySignals = Field(default_factory=CredibilitySignals)
    priority_score: int = 0
    ai_classification: str = UNCLASSIFIED

    geo_valid: bool = True
    duplicate_flag: bool = False
    flags: list[str] = Field(default_factory=list)

    status: GrievanceStatus = GrievanceStatus.PENDING
    assigned_to: Optional[str] = None
    action_history: list[ActionEntry] = Field(default_factory=list)

    created_at: datetime = Field(default_factory=utcnow)
    submitted_ip: Optional[str] = None
    submitted_device: Optional[str] = None

    @property
    def role(self) -> GroupRole:
        if self.group_id is None or self.group_id == self.id:
            return Leader(supporters=frozenset(self.supporters))
        return Member(leader_id=self.group_id)

    @property
    def is_leader(self) -> bool:
        return isinstance(self.role, Leader)

    @property
    def leader_id(self) -> str:
        role = self.role
        return role.leader_id if isinstance(role, Member) else self.id


class DuplicateCandidate(BaseModel):
    """Projection used by duplicate detection."""

    model_config = ConfigDict(extra="ignore")

    id: str
    submitter_id: str
    description: str
    location: GeoPoint
    image_hashes: list[str] = Field(default_factory=list)
    group_id: Optional[str] = None
    supporter_count: int = 1
    created_at: datetime


class Submitter(BaseModel):
    """Verified identity supplied by the session layer."""

    id: str
    name: str = ""
    verified: bool = False
    home_zone: Optional[int] = None


class UploadedFile(BaseModel):
    """Local file received by the intake layer."""

    path: str
    media_type: str

    @property
    def is_image(self) -> bool:
        return self.media_type.startswith("image/")


class GrievanceSubmission(BaseModel):
    """Raw citizen submission before validation."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = Field(default=None, alias="lng")
    address: Optional[str] = None
    claimed_zone: Optional[int] = Field(default=None, alias="ward")
    files: list[UploadedFile] = Field(default_factory=list)
    ip: Optional[str] = None
    device: Optional[str] = None

    @field_validator("title", "description", "address", "category")
    @classmethod
    def _strip(cls, value: Optional[str]) -> Optional[str]:
        return value.strip() if isinstance(value, str) else value


Outcome = Literal[
    "created",
    "merged",
    "rejected_duplicate",
    "rejected_rate_limited",
    "rejected_invalid",
]


class SubmissionResult(BaseModel):
    """Outcome of a submission attempt."""

    outcome: Outcome
    grievance_id: Optional[str] = None
    group_id: Optional[str] = None
    supporter_count: Optional[int] = None
    priority_score: Optional[int] = None
    reason: Optional[str] = None
    message: str = ""


class QuickCheckResult(BaseModel):
    """Non-mutating duplicate preview."""

    is_duplicate: bool
    group_id: Optional[str] = None
    supporter_count: Optional[int] = None
    already_supported_by_caller: bool = False
