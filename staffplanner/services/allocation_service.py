"""Greedy, home-base-first matching of staff to role requirements."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Optional

from staffplanner.domain.models import (
    REASON_AVAILABLE_POOL,
    REASON_HOME_BASE,
    AllocationResult,
    Assignment,
    Requirement,
    Shortage,
    StaffMember,
)
from staffplanner.utils.config import Settings, get_settings
from staffplanner.utils.logger import get_logger


logger = get_logger(__name__)


def _ensure_sequence(name: str, value: object) -> None:
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        raise TypeError(f"{name} must be a sequence, got {type(value).__name__}")


class StaffPool:
    """Arena of staff records plus the ids consumed during one allocation.

    Records are never mutated; consumption only grows ``consumed_ids``.
    """

    def __init__(self, staff: Sequence[StaffMember], available_status: str) -> None:
        self._arena: tuple[StaffMember, ...] = tuple(staff)
        self._available_status = available_status
        self.consumed_ids: set[int] = set()

    def __len__(self) -> int:
        return len(self._arena)

    def candidates(self, role_id: int, venue_id: int) -> list[tuple[int, StaffMember]]:
        """Eligible members, home-base tier first, each tier in arena order."""
        home_base: list[tuple[int, StaffMember]] = []
        others: list[tuple[int, StaffMember]] = []
        for index, member in enumerate(self._arena):
            if member.staff_id in self.consumed_ids:
                continue
            if member.availability_status != self._available_status:
                continue
            if not member.can_fill(role_id):
                continue
            if member.home_base_venue_id == venue_id:
                home_base.append((index, member))
            else:
                others.append((index, member))
        return home_base + others

    def consume(self, member: StaffMember) -> None:
        self.consumed_ids.add(member.staff_id)


class StaffAllocator:
    """Fills requirements in the order given from one shared staff pool."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()

    def allocate(
        self,
        requirements: Sequence[Requirement],
        staff_pool: Sequence[StaffMember],
    ) -> AllocationResult:
        _ensure_sequence("requirements", requirements)
        _ensure_sequence("staff_pool", staff_pool)

        pool = StaffPool(staff_pool, self._settings.available_status)
        assignments: list[Assignment] = []
        shortages: list[Shortage] = []

        for requirement in requirements:
            if requirement.count <= 0:
                continue
            filled = 0
            for _, member in pool.candidates(requirement.role_id, requirement.venue_id):
                if filled >= requirement.count:
                    break
                # A duplicate id later in the arena may already be consumed.
                if member.staff_id in pool.consumed_ids:
                    continue
                pool.consume(member)
                is_home_base = member.home_base_venue_id == requirement.venue_id
                assignments.append(
                    Assignment(
                        role_id=requirement.role_id,
                        venue_id=requirement.venue_id,
                        staff_id=member.staff_id,
                        staff_name=member.full_name,
                        reason=REASON_HOME_BASE if is_home_base else REASON_AVAILABLE_POOL,
                        is_freelance=False,
                        event_id=requirement.event_id,
                    )
                )
                filled += 1
                logger.debug(
                    "Staff assigned | staff_id=%s | role_id=%s | venue_id=%s | home_base=%s",
                    member.staff_id,
                    requirement.role_id,
                    requirement.venue_id,
                    is_home_base,
                )

            missing = requirement.count - filled
            if missing > 0:
                shortages.append(
                    Shortage(
                        venue_id=requirement.venue_id,
                        role_id=requirement.role_id,
                        role_name=requirement.role_name,
                        count=missing,
                        event_id=requirement.event_id,
                    )
                )
                logger.info(
                    "Requirement short | venue_id=%s | role=%s | needed=%s | missing=%s",
                    requirement.venue_id,
                    requirement.role_name,
                    requirement.count,
                    missing,
                )

        logger.info(
            "Allocation completed | requirements=%s | pool=%s | assignments=%s | shortage_total=%s",
            len(requirements),
            len(pool),
            len(assignments),
            sum(item.count for item in shortages),
        )
        return AllocationResult(assignments=assignments, shortages=shortages)
