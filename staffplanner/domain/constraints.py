"""Domain-level validation rules for venue staffing configuration."""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable, Optional

from staffplanner.domain.models import ManningBracket, RatioRule


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _require_non_negative_int(name: str, value: object) -> None:
    if not _is_int(value):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if value < 0:
        raise ValueError(f"{name} must be >= 0")


def _require_optional_non_negative_int(name: str, value: Optional[object]) -> None:
    if value is not None:
        _require_non_negative_int(name, value)


def validate_ratio_rule(rule: RatioRule) -> None:
    _require_non_negative_int("ratio_guests", rule.ratio_guests)
    _require_non_negative_int("ratio_staff", rule.ratio_staff)
    _require_non_negative_int("min_required", rule.min_required)
    _require_optional_non_negative_int("max_allowed", rule.max_allowed)
    _require_optional_non_negative_int("threshold_guests", rule.threshold_guests)
    _require_optional_non_negative_int("threshold_staff", rule.threshold_staff)
    if not str(rule.department).strip():
        raise ValueError("department must be non-empty")


def validate_manning_bracket(bracket: ManningBracket) -> None:
    _require_non_negative_int("guest_min", bracket.guest_min)
    _require_optional_non_negative_int("guest_max", bracket.guest_max)
    if bracket.guest_max is not None and bracket.guest_max < bracket.guest_min:
        raise ValueError("guest_max must be >= guest_min")
    if not isinstance(bracket.counts, dict):
        raise ValueError("counts must be a mapping of role_id to headcount")
    for role_id, count in bracket.counts.items():
        if not _is_int(role_id):
            raise ValueError(f"counts key must be a role id, got {role_id!r}")
        _require_non_negative_int(f"counts[{role_id}]", count)
    if not str(bracket.department).strip():
        raise ValueError("department must be non-empty")


def _ranges_overlap(first: ManningBracket, second: ManningBracket) -> bool:
    first_max = first.guest_max if first.guest_max is not None else float("inf")
    second_max = second.guest_max if second.guest_max is not None else float("inf")
    return first.guest_min <= second_max and second.guest_min <= first_max


def find_bracket_overlaps(
    brackets: Iterable[ManningBracket],
) -> list[tuple[ManningBracket, ManningBracket]]:
    """Return every pair of brackets sharing a guest count in one venue department."""
    grouped: dict[tuple[int, str], list[ManningBracket]] = defaultdict(list)
    for bracket in brackets:
        grouped[(bracket.venue_id, bracket.department)].append(bracket)

    overlaps: list[tuple[ManningBracket, ManningBracket]] = []
    for group in grouped.values():
        ordered = sorted(group, key=lambda item: item.guest_min)
        for index, first in enumerate(ordered):
            for second in ordered[index + 1:]:
                if _ranges_overlap(first, second):
                    overlaps.append((first, second))
    return overlaps


def validate_bracket_set(brackets: Iterable[ManningBracket]) -> None:
    overlaps = find_bracket_overlaps(brackets)
    if overlaps:
        first, second = overlaps[0]
        raise ValueError(
            f"Manning brackets overlap for venue {first.venue_id} "
            f"department {first.department!r}: {first.label} and {second.label}"
        )
