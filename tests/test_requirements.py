from __future__ import annotations

import pytest

from staffplanner.domain.models import Event, ManningBracket, RatioRule, Role, Venue
from staffplanner.services.requirement_service import (
    RequirementCalculationError,
    RequirementCalculator,
    compute_ratio_count,
    match_bracket,
)


WAITER = Role(role_id=1, name="Waiter")
MANAGER = Role(role_id=2, name="Manager")
ROLES = [WAITER, MANAGER]
VENUES = [Venue(1, "Venue A"), Venue(2, "Venue B"), Venue(3, "Venue C")]


def _event(venue_id: int, guest_count: int, event_id: int = 1) -> Event:
    return Event(event_id=event_id, date="2026-03-01", venue_id=venue_id, guest_count=guest_count)


def _rule(**overrides) -> RatioRule:
    values = {
        "venue_id": 2,
        "department": "service",
        "role_id": WAITER.role_id,
        "ratio_guests": 10,
        "ratio_staff": 1,
    }
    values.update(overrides)
    return RatioRule(**values)


def _bracket(guest_min, guest_max, counts, venue_id=1, department="service") -> ManningBracket:
    return ManningBracket(
        venue_id=venue_id,
        department=department,
        guest_min=guest_min,
        guest_max=guest_max,
        counts=counts,
    )


def _counts(requirements) -> list[tuple[str, int]]:
    return [(item.role_name, item.count) for item in requirements]


def test_bracket_scenario_emits_bracket_counts():
    brackets = [_bracket(50, 100, {WAITER.role_id: 2, MANAGER.role_id: 1})]

    requirements = RequirementCalculator().calculate([_event(1, 75)], VENUES, [], brackets, ROLES)

    assert _counts(requirements) == [("Waiter", 2), ("Manager", 1)]
    assert all(item.venue_id == 1 for item in requirements)
    assert "50-100" in requirements[0].reasoning[0]


def test_ratio_scenario_with_minimum_rule():
    rules = [
        _rule(),
        _rule(role_id=MANAGER.role_id, ratio_guests=0, ratio_staff=0, min_required=1),
    ]

    requirements = RequirementCalculator().calculate([_event(2, 25)], VENUES, rules, [], ROLES)

    assert _counts(requirements) == [("Waiter", 3), ("Manager", 1)]


def test_venue_without_configuration_yields_nothing():
    rules = [_rule()]
    brackets = [_bracket(0, 500, {WAITER.role_id: 4})]

    requirements = RequirementCalculator().calculate([_event(3, 40)], VENUES, rules, brackets, ROLES)

    assert requirements == []


def test_zero_headcount_entries_are_omitted():
    brackets = [_bracket(0, 100, {WAITER.role_id: 3, MANAGER.role_id: 0})]

    requirements = RequirementCalculator().calculate([_event(1, 10)], VENUES, [], brackets, ROLES)

    assert _counts(requirements) == [("Waiter", 3)]


def test_bracket_match_skips_ratio_rules_for_department():
    brackets = [_bracket(50, 100, {MANAGER.role_id: 1}, venue_id=2)]
    rules = [_rule()]

    requirements = RequirementCalculator().calculate([_event(2, 60)], VENUES, rules, brackets, ROLES)

    assert _counts(requirements) == [("Manager", 1)]


def test_ratio_rules_apply_when_no_bracket_contains_guest_count():
    brackets = [_bracket(50, 100, {MANAGER.role_id: 1}, venue_id=2)]
    rules = [_rule()]

    requirements = RequirementCalculator().calculate([_event(2, 120)], VENUES, rules, brackets, ROLES)

    assert _counts(requirements) == [("Waiter", 12)]


def test_departments_are_resolved_independently():
    brackets = [_bracket(0, 100, {WAITER.role_id: 2}, venue_id=2, department="service")]
    rules = [_rule(department="bar", role_id=MANAGER.role_id, ratio_guests=50, ratio_staff=1)]

    requirements = RequirementCalculator().calculate([_event(2, 60)], VENUES, rules, brackets, ROLES)

    assert [(item.department, item.role_name, item.count) for item in requirements] == [
        ("service", "Waiter", 2),
        ("bar", "Manager", 2),
    ]


def test_overlapping_brackets_use_lowest_guest_min():
    brackets = [
        _bracket(40, 80, {WAITER.role_id: 5}),
        _bracket(20, 40, {WAITER.role_id: 3}),
    ]

    requirements = RequirementCalculator().calculate([_event(1, 40)], VENUES, [], brackets, ROLES)

    assert _counts(requirements) == [("Waiter", 3)]


def test_open_ended_bracket_matches_large_events():
    brackets = [_bracket(300, None, {WAITER.role_id: 20})]

    requirements = RequirementCalculator().calculate([_event(1, 1000)], VENUES, [], brackets, ROLES)

    assert _counts(requirements) == [("Waiter", 20)]
    assert "300+" in requirements[0].reasoning[0]


def test_events_are_never_merged():
    rules = [_rule()]
    events = [_event(2, 25, event_id=1), _event(2, 25, event_id=2)]

    requirements = RequirementCalculator().calculate(events, VENUES, rules, [], ROLES)

    assert [(item.event_id, item.count) for item in requirements] == [(1, 3), (2, 3)]


def test_unknown_venue_is_skipped():
    requirements = RequirementCalculator().calculate([_event(99, 50)], VENUES, [_rule(venue_id=99)], [], ROLES)

    assert requirements == []


def test_unknown_role_uses_fallback_name():
    rules = [_rule(role_id=42)]

    requirements = RequirementCalculator().calculate([_event(2, 10)], VENUES, rules, [], ROLES)

    assert requirements[0].role_name == "Staff"
    assert requirements[0].role_id == 42


@pytest.mark.parametrize(
    ("guests", "ratio_guests", "ratio_staff", "expected"),
    [
        (25, 10, 1, 3),
        (30, 10, 1, 3),
        (31, 10, 2, 8),
        (0, 10, 1, 0),
        (1, 15, 1, 1),
    ],
)
def test_ratio_arithmetic(guests, ratio_guests, ratio_staff, expected):
    count, _ = compute_ratio_count(_rule(ratio_guests=ratio_guests, ratio_staff=ratio_staff), guests)
    assert count == expected


def test_pure_minimum_rule_ignores_guest_count():
    rule = _rule(ratio_guests=0, ratio_staff=0, min_required=1)
    assert compute_ratio_count(rule, 5)[0] == 1
    assert compute_ratio_count(rule, 5000)[0] == 1


def test_threshold_adds_staff_at_or_above_threshold():
    rule = _rule(threshold_guests=100, threshold_staff=2)

    below, _ = compute_ratio_count(rule, 99)
    at, reasoning = compute_ratio_count(rule, 100)

    assert below == 10
    assert at == 12
    assert any(line.startswith("Threshold") for line in reasoning)


def test_clamps_apply_minimum_then_maximum():
    raised, raised_reasoning = compute_ratio_count(_rule(min_required=4), 10)
    capped, capped_reasoning = compute_ratio_count(_rule(max_allowed=5), 200)

    assert raised == 4
    assert "Raised to minimum required: 4" in raised_reasoning
    assert capped == 5
    assert "Capped at maximum allowed: 5" in capped_reasoning


def test_rule_producing_zero_is_not_emitted():
    requirements = RequirementCalculator().calculate([_event(2, 0)], VENUES, [_rule()], [], ROLES)

    assert requirements == []


def test_match_bracket_returns_none_outside_ranges():
    brackets = [_bracket(50, 100, {WAITER.role_id: 2})]
    assert match_bracket(49, brackets) is None
    assert match_bracket(101, brackets) is None
    assert match_bracket(100, brackets) is brackets[0]


def test_malformed_rule_raises_calculation_error():
    rules = [_rule(ratio_guests="ten")]

    with pytest.raises(RequirementCalculationError) as exc_info:
        RequirementCalculator().calculate([_event(2, 25)], VENUES, rules, [], ROLES)

    assert exc_info.value.record == rules[0]


def test_malformed_bracket_raises_calculation_error():
    brackets = [_bracket(100, 50, {WAITER.role_id: 2})]

    with pytest.raises(RequirementCalculationError):
        RequirementCalculator().calculate([_event(1, 75)], VENUES, [], brackets, ROLES)


def test_non_sequence_input_fails_fast():
    with pytest.raises(TypeError):
        RequirementCalculator().calculate(_event(1, 75), VENUES, [], [], ROLES)


def test_calculator_does_not_mutate_inputs():
    brackets = [_bracket(50, 100, {WAITER.role_id: 2})]
    rules = [_rule()]
    events = [_event(1, 75), _event(2, 25, event_id=2)]
    snapshot = (list(events), list(rules), [dict(item.counts) for item in brackets])

    RequirementCalculator().calculate(events, VENUES, rules, brackets, ROLES)

    assert snapshot == (events, rules, [item.counts for item in brackets])
