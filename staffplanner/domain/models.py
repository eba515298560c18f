"""Domain records consumed and produced by the staffing engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union


STATUS_AVAILABLE = "available"
STATUS_OFF = "off"
STATUS_LEAVE = "leave"
STATUS_IN_EVENT = "in-event"
AVAILABILITY_STATUSES = (STATUS_AVAILABLE, STATUS_OFF, STATUS_LEAVE, STATUS_IN_EVENT)

REASON_HOME_BASE = "home_base"
REASON_AVAILABLE_POOL = "available_pool"


@dataclass(frozen=True)
class Venue:
    venue_id: int
    name: str
    venue_type: str = "other"
    default_service_style: str = "other"


@dataclass(frozen=True)
class Role:
    role_id: int
    name: str
    category: str = "Other"


@dataclass(frozen=True)
class RatioRule:
    """``ratio_staff`` staff per ``ratio_guests`` guests, with floor/ceiling."""

    venue_id: int
    department: str
    role_id: int
    ratio_guests: int
    ratio_staff: int
    threshold_guests: Optional[int] = None
    threshold_staff: Optional[int] = None
    min_required: int = 0
    max_allowed: Optional[int] = None


@dataclass(frozen=True)
class ManningBracket:
    """Fixed headcounts for guest counts in ``[guest_min, guest_max]``.

    ``guest_max`` of ``None`` leaves the bracket open-ended upward.
    """

    venue_id: int
    department: str
    guest_min: int
    guest_max: Optional[int]
    counts: dict[int, int] = field(default_factory=dict)

    def contains(self, guest_count: int) -> bool:
        if guest_count < self.guest_min:
            return False
        return self.guest_max is None or guest_count <= self.guest_max

    @property
    def label(self) -> str:
        if self.guest_max is None:
            return f"{self.guest_min}+"
        return f"{self.guest_min}-{self.guest_max}"


StaffingRule = Union[ManningBracket, RatioRule]


@dataclass(frozen=True)
class Event:
    event_id: int
    date: str
    venue_id: int
    guest_count: int
    event_name: Optional[str] = None


@dataclass(frozen=True)
class StaffMember:
    staff_id: int
    full_name: str
    primary_role_id: int
    secondary_roles: frozenset[int] = frozenset()
    home_base_venue_id: Optional[int] = None
    availability_status: str = STATUS_AVAILABLE
    employment_type: str = "internal"

    def can_fill(self, role_id: int) -> bool:
        return self.primary_role_id == role_id or role_id in self.secondary_roles


@dataclass(frozen=True)
class Requirement:
    venue_id: int
    role_id: int
    role_name: str
    count: int
    reasoning: list[str] = field(default_factory=list)
    event_id: Optional[int] = None
    department: Optional[str] = None


@dataclass(frozen=True)
class Assignment:
    role_id: int
    venue_id: int
    staff_id: int
    staff_name: str
    reason: str
    is_freelance: bool = False
    event_id: Optional[int] = None


@dataclass(frozen=True)
class Shortage:
    venue_id: int
    role_id: int
    role_name: str
    count: int
    event_id: Optional[int] = None


@dataclass(frozen=True)
class AllocationResult:
    assignments: list[Assignment]
    shortages: list[Shortage]


@dataclass(frozen=True)
class StaffingSnapshot:
    """Consistent read of every collection one plan generation needs."""

    venues: tuple[Venue, ...] = ()
    roles: tuple[Role, ...] = ()
    rules: tuple[RatioRule, ...] = ()
    brackets: tuple[ManningBracket, ...] = ()
    staff: tuple[StaffMember, ...] = ()
    events: tuple[Event, ...] = ()


@dataclass(frozen=True)
class PlanningContext:
    """Caller identity and venue scope for one orchestration call."""

    user_id: Optional[int] = None
    venue_ids: Optional[frozenset[int]] = None

    def includes_venue(self, venue_id: int) -> bool:
        return self.venue_ids is None or venue_id in self.venue_ids


@dataclass(frozen=True)
class PlanRecord:
    plan_id: Optional[int]
    target_date: str
    version: int
    requirements: list[Requirement]
    assignments: list[Assignment]
    shortages: list[Shortage]
    message: str = ""
    generated_by: Optional[int] = None
    regeneration_reason: Optional[str] = None
    venue_ids: Optional[frozenset[int]] = None
