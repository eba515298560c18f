"""Turns events and venue staffing configuration into role requirements."""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import Optional

from staffplanner.domain.constraints import validate_manning_bracket, validate_ratio_rule
from staffplanner.domain.models import (
    Event,
    ManningBracket,
    RatioRule,
    Requirement,
    Role,
    StaffingRule,
    Venue,
)
from staffplanner.utils.config import Settings, get_settings
from staffplanner.utils.logger import get_logger


logger = get_logger(__name__)


class RequirementCalculationError(Exception):
    """Raised when a bracket or ratio rule carries malformed values."""

    def __init__(self, message: str, record: object = None) -> None:
        super().__init__(message)
        self.record = record


def _ensure_sequence(name: str, value: object) -> None:
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        raise TypeError(f"{name} must be a sequence, got {type(value).__name__}")


def _departments_for_venue(
    venue_id: int,
    brackets: Sequence[ManningBracket],
    rules: Sequence[RatioRule],
) -> list[str]:
    departments: list[str] = []
    for item in (*brackets, *rules):
        if item.venue_id == venue_id and item.department not in departments:
            departments.append(item.department)
    return departments


def _checked_bracket(bracket: ManningBracket) -> ManningBracket:
    try:
        validate_manning_bracket(bracket)
    except ValueError as exc:
        raise RequirementCalculationError(
            f"Malformed manning bracket for venue {bracket.venue_id}: {exc}",
            record=bracket,
        ) from exc
    return bracket


def _checked_rule(rule: RatioRule) -> RatioRule:
    try:
        validate_ratio_rule(rule)
    except ValueError as exc:
        raise RequirementCalculationError(
            f"Malformed staffing rule for venue {rule.venue_id} role {rule.role_id}: {exc}",
            record=rule,
        ) from exc
    return rule


def match_bracket(
    guest_count: int,
    brackets: Sequence[ManningBracket],
) -> Optional[ManningBracket]:
    """First bracket by ascending ``guest_min`` whose range holds ``guest_count``."""
    for bracket in sorted(brackets, key=lambda item: item.guest_min):
        if bracket.contains(guest_count):
            return bracket
    return None


def resolve_rules(
    event: Event,
    department: str,
    brackets: Sequence[ManningBracket],
    rules: Sequence[RatioRule],
) -> list[StaffingRule]:
    """A matching bracket replaces the department's ratio rules entirely."""
    department_brackets = [
        _checked_bracket(bracket)
        for bracket in brackets
        if bracket.venue_id == event.venue_id and bracket.department == department
    ]
    bracket = match_bracket(event.guest_count, department_brackets)
    if bracket is not None:
        return [bracket]
    return [
        _checked_rule(rule)
        for rule in rules
        if rule.venue_id == event.venue_id and rule.department == department
    ]


def compute_ratio_count(rule: RatioRule, guest_count: int) -> tuple[int, list[str]]:
    """Apply ratio, threshold and clamps; returns the count and its reasoning."""
    reasoning: list[str] = []
    if rule.ratio_guests > 0:
        count = math.ceil(guest_count / rule.ratio_guests) * rule.ratio_staff
        reasoning.append(
            f"Ratio: {rule.ratio_staff} per {rule.ratio_guests} guests "
            f"({guest_count} guests) -> {count}"
        )
    else:
        count = rule.min_required
        reasoning.append(f"Minimum rule: {rule.min_required}")

    if rule.threshold_guests is not None and guest_count >= rule.threshold_guests:
        extra = rule.threshold_staff or 0
        count += extra
        reasoning.append(f"Threshold: >= {rule.threshold_guests} guests (+{extra})")

    if count < rule.min_required:
        count = rule.min_required
        reasoning.append(f"Raised to minimum required: {rule.min_required}")
    if rule.max_allowed is not None and count > rule.max_allowed:
        count = rule.max_allowed
        reasoning.append(f"Capped at maximum allowed: {rule.max_allowed}")
    return count, reasoning


class RequirementCalculator:
    """Pure calculation; holds only read-only settings."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()

    def calculate(
        self,
        events: Sequence[Event],
        venues: Sequence[Venue],
        rules: Sequence[RatioRule],
        brackets: Sequence[ManningBracket],
        roles: Sequence[Role],
    ) -> list[Requirement]:
        for name, value in (
            ("events", events),
            ("venues", venues),
            ("rules", rules),
            ("brackets", brackets),
            ("roles", roles),
        ):
            _ensure_sequence(name, value)

        venue_ids = {venue.venue_id for venue in venues}
        role_names = {role.role_id: role.name for role in roles}
        requirements: list[Requirement] = []

        for event in events:
            if event.venue_id not in venue_ids:
                logger.warning(
                    "Venue not found for event | event_id=%s | venue_id=%s",
                    event.event_id,
                    event.venue_id,
                )
                continue
            if isinstance(event.guest_count, bool) or not isinstance(event.guest_count, int):
                raise RequirementCalculationError(
                    f"Event {event.event_id} guest_count must be an integer",
                    record=event,
                )
            if event.guest_count < 0:
                raise RequirementCalculationError(
                    f"Event {event.event_id} guest_count must be >= 0",
                    record=event,
                )

            departments = _departments_for_venue(event.venue_id, brackets, rules)
            if not departments:
                logger.info(
                    "No staffing configuration for venue | event_id=%s | venue_id=%s",
                    event.event_id,
                    event.venue_id,
                )
                continue

            for department in departments:
                for rule in resolve_rules(event, department, brackets, rules):
                    requirements.extend(
                        self._evaluate(rule, event, department, role_names)
                    )

        logger.info(
            "Requirement calculation completed | events=%s | requirements=%s | total_staff=%s",
            len(events),
            len(requirements),
            sum(item.count for item in requirements),
        )
        return requirements

    def _role_name(self, role_id: int, role_names: dict[int, str]) -> str:
        name = role_names.get(role_id)
        if name is None:
            logger.warning("Role not found; using fallback name | role_id=%s", role_id)
            return self._settings.unknown_role_name
        return name

    def _evaluate(
        self,
        rule: StaffingRule,
        event: Event,
        department: str,
        role_names: dict[int, str],
    ) -> list[Requirement]:
        if isinstance(rule, ManningBracket):
            return self._from_bracket(rule, event, department, role_names)
        if isinstance(rule, RatioRule):
            return self._from_ratio_rule(rule, event, department, role_names)
        raise TypeError(f"Unsupported staffing rule type: {type(rule).__name__}")

    def _from_bracket(
        self,
        bracket: ManningBracket,
        event: Event,
        department: str,
        role_names: dict[int, str],
    ) -> list[Requirement]:
        reason = (
            f"Bracket {bracket.label} guests matched "
            f"({event.guest_count} guests, {department})"
        )
        requirements = [
            Requirement(
                venue_id=event.venue_id,
                role_id=role_id,
                role_name=self._role_name(role_id, role_names),
                count=count,
                reasoning=[reason],
                event_id=event.event_id,
                department=department,
            )
            for role_id, count in bracket.counts.items()
            if count > 0
        ]
        logger.debug(
            "Bracket matched | event_id=%s | department=%s | bracket=%s | roles=%s",
            event.event_id,
            department,
            bracket.label,
            len(requirements),
        )
        return requirements

    def _from_ratio_rule(
        self,
        rule: RatioRule,
        event: Event,
        department: str,
        role_names: dict[int, str],
    ) -> list[Requirement]:
        count, reasoning = compute_ratio_count(rule, event.guest_count)
        logger.debug(
            "Ratio rule evaluated | event_id=%s | role_id=%s | ratio=%s:%s | threshold=%s | count=%s",
            event.event_id,
            rule.role_id,
            rule.ratio_guests,
            rule.ratio_staff,
            rule.threshold_guests,
            count,
        )
        if count <= 0:
            return []
        return [
            Requirement(
                venue_id=event.venue_id,
                role_id=rule.role_id,
                role_name=self._role_name(rule.role_id, role_names),
                count=count,
                reasoning=reasoning,
                event_id=event.event_id,
                department=department,
            )
        ]
