"""Plan orchestration: snapshot -> requirements -> allocation -> persistence."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from threading import RLock
from typing import Optional

from staffplanner.domain.models import (
    AllocationResult,
    Assignment,
    Event,
    PlanningContext,
    PlanRecord,
    Requirement,
    Shortage,
    StaffingSnapshot,
)
from staffplanner.repository.staffing_repository import StaffingRepository
from staffplanner.services.allocation_service import StaffAllocator
from staffplanner.services.requirement_service import RequirementCalculator
from staffplanner.utils.config import Settings, get_settings
from staffplanner.utils.logger import get_logger


logger = get_logger(__name__)


class PlanValidationError(Exception):
    """Raised when plan generation inputs are invalid."""


class PlanNotFoundError(Exception):
    """Raised when a stored plan id does not exist."""


@dataclass(frozen=True)
class PlanResult:
    plan_id: Optional[int]
    target_date: str
    version: int
    requirements: list[Requirement]
    assignments: list[Assignment]
    shortages: list[Shortage]
    message: str
    regeneration_reason: Optional[str] = None

    @classmethod
    def from_record(cls, record: PlanRecord) -> "PlanResult":
        return cls(
            plan_id=record.plan_id,
            target_date=record.target_date,
            version=record.version,
            requirements=record.requirements,
            assignments=record.assignments,
            shortages=record.shortages,
            message=record.message,
            regeneration_reason=record.regeneration_reason,
        )


def diagnose_empty_plan(
    target_date: str,
    snapshot: StaffingSnapshot,
    events: list[Event],
    requirements: list[Requirement],
) -> str:
    """Explain why a plan has no requirements; empty string when it has some."""
    if not events:
        return f"No events scheduled for {target_date}."
    if requirements:
        return ""

    configured_venue_ids = {rule.venue_id for rule in snapshot.rules} | {
        bracket.venue_id for bracket in snapshot.brackets
    }
    event_venue_ids = [event.venue_id for event in events]
    if not any(venue_id in configured_venue_ids for venue_id in event_venue_ids):
        missing_ids = {
            venue_id for venue_id in event_venue_ids if venue_id not in configured_venue_ids
        }
        missing_names = ", ".join(
            venue.name for venue in snapshot.venues if venue.venue_id in missing_ids
        )
        if missing_names:
            return (
                f"Events are scheduled at venues ({missing_names}) "
                "that have NO staffing rules defined."
            )
        return "Events exist, but no staffing rules overlap with these venues."
    return (
        "Events exist and rules exist, but the specific guest counts or thresholds "
        "did not trigger any staffing requirements."
    )


class PlanGenerationService:
    """Runs the staffing engine against repository snapshots, one date at a time."""

    def __init__(
        self,
        repository: StaffingRepository,
        calculator: Optional[RequirementCalculator] = None,
        allocator: Optional[StaffAllocator] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository
        self._calculator = calculator or RequirementCalculator(settings=self._settings)
        self._allocator = allocator or StaffAllocator(settings=self._settings)
        # Staff status is not per date; one lock covers snapshot, allocation and status flips.
        self._plan_lock = RLock()

    def _validate_date(self, target_date: str) -> None:
        try:
            datetime.strptime(target_date, self._settings.plan_date_format)
        except (TypeError, ValueError) as exc:
            raise PlanValidationError("date must follow YYYY-MM-DD format") from exc

    def _compute(
        self,
        target_date: str,
        context: PlanningContext,
    ) -> tuple[list[Requirement], AllocationResult, str]:
        snapshot = self._repository.load_snapshot(target_date)
        events = [event for event in snapshot.events if context.includes_venue(event.venue_id)]
        logger.info(
            "Snapshot loaded | date=%s | events=%s | venues=%s | rules=%s | brackets=%s | staff=%s",
            target_date,
            len(events),
            len(snapshot.venues),
            len(snapshot.rules),
            len(snapshot.brackets),
            len(snapshot.staff),
        )

        requirements: list[Requirement] = []
        for event in events:
            requirements.extend(
                self._calculator.calculate(
                    [event],
                    snapshot.venues,
                    snapshot.rules,
                    snapshot.brackets,
                    snapshot.roles,
                )
            )
        allocation = self._allocator.allocate(requirements, snapshot.staff)
        message = diagnose_empty_plan(target_date, snapshot, events, requirements)
        if message:
            logger.warning("Plan has no requirements | date=%s | reason=%s", target_date, message)
        return requirements, allocation, message

    def _mark_assigned(self, allocation: AllocationResult) -> None:
        staff_ids = [assignment.staff_id for assignment in allocation.assignments]
        if not staff_ids:
            return
        updated = self._repository.set_staff_status(
            staff_ids,
            self._settings.assigned_staff_status,
            expected_status=self._settings.available_status,
        )
        logger.info(
            "Assigned staff marked unavailable | status=%s | updated=%s",
            self._settings.assigned_staff_status,
            updated,
        )

    def generate_plan(
        self,
        *,
        target_date: str,
        context: Optional[PlanningContext] = None,
        persist: bool = True,
    ) -> PlanResult:
        self._validate_date(target_date)
        context = context or PlanningContext()

        with self._plan_lock:
            requirements, allocation, message = self._compute(target_date, context)
            record = PlanRecord(
                plan_id=None,
                target_date=target_date,
                version=1,
                requirements=requirements,
                assignments=allocation.assignments,
                shortages=allocation.shortages,
                message=message,
                generated_by=context.user_id,
                venue_ids=context.venue_ids,
            )
            if not persist:
                return PlanResult.from_record(record)

            plan_id = self._repository.save_plan(record)
            self._mark_assigned(allocation)

        logger.info(
            "Plan generated | plan_id=%s | date=%s | requirements=%s | assignments=%s | shortages=%s",
            plan_id,
            target_date,
            len(requirements),
            len(allocation.assignments),
            len(allocation.shortages),
        )
        return PlanResult.from_record(replace(record, plan_id=plan_id))

    def get_plan(self, plan_id: int) -> PlanResult:
        record = self._repository.get_plan(plan_id)
        if record is None:
            raise PlanNotFoundError(f"Plan {plan_id} not found")
        return PlanResult.from_record(record)

    def regenerate_plan(
        self,
        *,
        plan_id: int,
        reason: Optional[str] = None,
        context: Optional[PlanningContext] = None,
    ) -> PlanResult:
        """Release the plan's staff, recompute for its date and bump the version.

        Without explicit ``venue_ids`` the plan keeps the venue scope it was
        generated with.
        """
        context = context or PlanningContext()

        with self._plan_lock:
            existing = self._repository.get_plan(plan_id)
            if existing is None:
                raise PlanNotFoundError(f"Plan {plan_id} not found")
            if context.venue_ids is None:
                context = replace(context, venue_ids=existing.venue_ids)

            released = self._repository.set_staff_status(
                [assignment.staff_id for assignment in existing.assignments],
                self._settings.available_status,
                expected_status=self._settings.assigned_staff_status,
            )
            requirements, allocation, message = self._compute(existing.target_date, context)
            record = replace(
                existing,
                version=existing.version + 1,
                requirements=requirements,
                assignments=allocation.assignments,
                shortages=allocation.shortages,
                message=message,
                generated_by=context.user_id,
                venue_ids=context.venue_ids,
                regeneration_reason=reason or self._settings.default_regeneration_reason,
            )
            self._repository.replace_plan(record)
            self._mark_assigned(allocation)

        logger.info(
            "Plan regenerated | plan_id=%s | version=%s | released=%s | reason=%s",
            plan_id,
            record.version,
            released,
            record.regeneration_reason,
        )
        return PlanResult.from_record(record)
