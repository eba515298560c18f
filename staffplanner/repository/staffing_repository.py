"""Repository port for staffing snapshots and plans, with an in-memory adapter."""

from __future__ import annotations

import itertools
from dataclasses import replace
from threading import RLock
from typing import Iterable, Optional, Protocol

from staffplanner.domain.constraints import (
    validate_bracket_set,
    validate_manning_bracket,
    validate_ratio_rule,
)
from staffplanner.domain.models import (
    STATUS_OFF,
    Event,
    ManningBracket,
    PlanRecord,
    RatioRule,
    Role,
    StaffingSnapshot,
    StaffMember,
    Venue,
)
from staffplanner.domain.templates import build_brackets_from_template, get_template_by_name
from staffplanner.utils.logger import get_logger


logger = get_logger(__name__)


class StaffingRepository(Protocol):
    """Storage boundary used by the plan orchestrator."""

    def load_snapshot(self, target_date: str) -> StaffingSnapshot: ...

    def save_plan(self, plan: PlanRecord) -> int: ...

    def get_plan(self, plan_id: int) -> Optional[PlanRecord]: ...

    def replace_plan(self, plan: PlanRecord) -> None: ...

    def set_staff_status(
        self,
        staff_ids: Iterable[int],
        status: str,
        *,
        expected_status: Optional[str] = None,
    ) -> int: ...


class InMemoryStaffingRepository:
    """Process-local store; every read returns an immutable snapshot."""

    def __init__(self) -> None:
        self._lock = RLock()
        self._venues: dict[int, Venue] = {}
        self._roles: dict[int, Role] = {}
        self._rules: list[RatioRule] = []
        self._brackets: list[ManningBracket] = []
        self._staff: dict[int, StaffMember] = {}
        self._events: dict[int, Event] = {}
        self._plans: dict[int, PlanRecord] = {}
        self._plan_ids = itertools.count(1)

    def add_venue(self, venue: Venue) -> Venue:
        with self._lock:
            self._venues[venue.venue_id] = venue
        return venue

    def add_role(self, role: Role) -> Role:
        with self._lock:
            self._roles[role.role_id] = role
        return role

    def add_rule(self, rule: RatioRule) -> RatioRule:
        validate_ratio_rule(rule)
        with self._lock:
            self._rules.append(rule)
        return rule

    def add_bracket(self, bracket: ManningBracket) -> ManningBracket:
        self.add_brackets([bracket])
        return bracket

    def add_brackets(self, brackets: Iterable[ManningBracket]) -> list[ManningBracket]:
        """Store brackets, rejecting any range overlapping within a venue department."""
        new_brackets = list(brackets)
        for bracket in new_brackets:
            validate_manning_bracket(bracket)
        with self._lock:
            validate_bracket_set([*self._brackets, *new_brackets])
            self._brackets.extend(new_brackets)
        return new_brackets

    def apply_template(self, venue_id: int, template_name: str) -> list[ManningBracket]:
        template = get_template_by_name(template_name)
        if template is None:
            raise ValueError(f"Unknown manning template {template_name!r}")
        with self._lock:
            if venue_id not in self._venues:
                raise ValueError(f"Venue {venue_id} does not exist")
            brackets = build_brackets_from_template(
                venue_id,
                template,
                list(self._roles.values()),
            )
            stored = self.add_brackets(brackets)
        logger.info(
            "Manning template applied | venue_id=%s | template=%s | brackets=%s",
            venue_id,
            template_name,
            len(stored),
        )
        return stored

    def add_staff(self, member: StaffMember) -> StaffMember:
        with self._lock:
            self._staff[member.staff_id] = member
        return member

    def get_staff(self, staff_id: int) -> Optional[StaffMember]:
        with self._lock:
            return self._staff.get(staff_id)

    def add_event(self, event: Event) -> Event:
        with self._lock:
            self._events[event.event_id] = event
        return event

    def load_snapshot(self, target_date: str) -> StaffingSnapshot:
        with self._lock:
            return StaffingSnapshot(
                venues=tuple(self._venues.values()),
                roles=tuple(self._roles.values()),
                rules=tuple(self._rules),
                brackets=tuple(self._brackets),
                staff=tuple(self._staff.values()),
                events=tuple(
                    event for event in self._events.values() if event.date == target_date
                ),
            )

    def save_plan(self, plan: PlanRecord) -> int:
        with self._lock:
            plan_id = next(self._plan_ids)
            self._plans[plan_id] = replace(plan, plan_id=plan_id)
        logger.info(
            "Plan saved | plan_id=%s | date=%s | assignments=%s | shortages=%s",
            plan_id,
            plan.target_date,
            len(plan.assignments),
            len(plan.shortages),
        )
        return plan_id

    def get_plan(self, plan_id: int) -> Optional[PlanRecord]:
        with self._lock:
            return self._plans.get(plan_id)

    def replace_plan(self, plan: PlanRecord) -> None:
        if plan.plan_id is None:
            raise ValueError("plan_id is required to replace a plan")
        with self._lock:
            if plan.plan_id not in self._plans:
                raise KeyError(plan.plan_id)
            self._plans[plan.plan_id] = plan

    def count_plans(self) -> int:
        with self._lock:
            return len(self._plans)

    def set_staff_status(
        self,
        staff_ids: Iterable[int],
        status: str,
        *,
        expected_status: Optional[str] = None,
    ) -> int:
        """Update status for known staff; with ``expected_status`` only matching rows change."""
        updated = 0
        with self._lock:
            for staff_id in staff_ids:
                member = self._staff.get(staff_id)
                if member is None:
                    continue
                if expected_status is not None and member.availability_status != expected_status:
                    continue
                self._staff[staff_id] = replace(member, availability_status=status)
                updated += 1
        return updated

    def seed_demo_data(self) -> bool:
        """Seed the three-venue demo dataset once; returns False if data exists."""
        with self._lock:
            if self._venues:
                logger.info("Demo data already present; skipping seed")
                return False

            waiter = self.add_role(Role(role_id=1, name="Waiter", category="Service"))
            manager = self.add_role(Role(role_id=2, name="Manager", category="Management"))

            venue_a = self.add_venue(Venue(1, "Venue A", "restaurant", "plated"))
            venue_b = self.add_venue(Venue(2, "Venue B", "camp", "buffet"))
            venue_c = self.add_venue(Venue(3, "Venue C", "private", "cocktail"))

            self.add_bracket(
                ManningBracket(
                    venue_id=venue_a.venue_id,
                    department="service",
                    guest_min=50,
                    guest_max=100,
                    counts={waiter.role_id: 2, manager.role_id: 1},
                )
            )
            self.add_rule(
                RatioRule(
                    venue_id=venue_b.venue_id,
                    department="service",
                    role_id=waiter.role_id,
                    ratio_guests=10,
                    ratio_staff=1,
                )
            )
            self.add_rule(
                RatioRule(
                    venue_id=venue_b.venue_id,
                    department="service",
                    role_id=manager.role_id,
                    ratio_guests=0,
                    ratio_staff=0,
                    min_required=1,
                )
            )

            for member in (
                StaffMember(1, "Alice Adams", waiter.role_id, home_base_venue_id=venue_a.venue_id),
                StaffMember(2, "Bob Brown", waiter.role_id, home_base_venue_id=venue_a.venue_id),
                StaffMember(3, "Charlie Clark", waiter.role_id, home_base_venue_id=venue_b.venue_id),
                StaffMember(
                    4,
                    "Dave Davis",
                    manager.role_id,
                    secondary_roles=frozenset({waiter.role_id}),
                    home_base_venue_id=venue_a.venue_id,
                ),
                StaffMember(
                    5,
                    "Eve Evans",
                    waiter.role_id,
                    home_base_venue_id=venue_a.venue_id,
                    availability_status=STATUS_OFF,
                ),
            ):
                self.add_staff(member)

            demo_date = "2026-03-01"
            self.add_event(Event(1, demo_date, venue_a.venue_id, 75, "Venue A dinner"))
            self.add_event(Event(2, demo_date, venue_b.venue_id, 25, "Venue B lunch"))
            self.add_event(Event(3, demo_date, venue_c.venue_id, 40, "Venue C reception"))

        logger.info("Demo staffing data seeded | date=%s", demo_date)
        return True
