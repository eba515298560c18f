"""Built-in manning tables and their expansion into manning brackets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from staffplanner.domain.constraints import validate_manning_bracket
from staffplanner.domain.models import ManningBracket, Role
from staffplanner.utils.logger import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class ManningTableRow:
    role: str
    counts: tuple[int, ...]


@dataclass(frozen=True)
class ManningTable:
    """Bracket labels (``"20-40"``) crossed with per-role headcount rows."""

    brackets: tuple[str, ...]
    rows: tuple[ManningTableRow, ...]


@dataclass(frozen=True)
class ManningTemplate:
    name: str
    departments: tuple[str, ...]
    configs: dict[str, ManningTable]


def _row(role: str, *counts: int) -> ManningTableRow:
    return ManningTableRow(role=role, counts=tuple(counts))


_SONARA_BRACKETS = ("20-40", "40-80", "80-120", "120-160", "160-200", "200-240", "240-280", "280-320")
_LADY_NARA_BRACKETS = ("10-20", "20-30", "30-40", "40-50", "50-60", "60-70")

MANNING_TEMPLATES: tuple[ManningTemplate, ...] = (
    ManningTemplate(
        name="Custom",
        departments=("all",),
        configs={"all": ManningTable(brackets=("0-50",), rows=())},
    ),
    ManningTemplate(
        name="SONARA (Dubai + RAK)",
        departments=("service", "bar"),
        configs={
            "service": ManningTable(
                brackets=_SONARA_BRACKETS,
                rows=(
                    _row("MANAGER", 1, 1, 1, 1, 1, 1, 1, 1),
                    _row("A.MANAGER", 1, 1, 1, 2, 2, 2, 2, 2),
                    _row("HEAD WAITERS", 1, 2, 3, 3, 3, 3, 3, 3),
                    _row("WAITERS", 3, 5, 5, 6, 8, 8, 10, 10),
                    _row("RUNNERS", 3, 4, 6, 9, 11, 13, 14, 16),
                    _row("SHISHA OPERATOR", 1, 2, 2, 2, 2, 3, 3, 3),
                ),
            ),
            "bar": ManningTable(
                brackets=_SONARA_BRACKETS,
                rows=(
                    _row("MANAGER", 1, 1, 1, 1, 1, 1, 1, 1),
                    _row("HEAD BARTENDER", 1, 1, 1, 1, 1, 1, 1, 1),
                    _row("BARTENDERS", 1, 2, 2, 2, 2, 2, 3, 3),
                    _row("BARBACK", 1, 1, 1, 2, 2, 3, 3, 3),
                ),
            ),
        },
    ),
    ManningTemplate(
        name="NEST",
        departments=("all",),
        configs={
            "all": ManningTable(
                brackets=("2-10", "10-20", "20-30", "30-40", "40-50"),
                rows=(
                    _row("MANAGER", 0, 1, 1, 1, 1),
                    _row("A.MANAGER", 1, 0, 1, 1, 1),
                    _row("WAITERS", 1, 1, 1, 2, 2),
                    _row("RUNNERS", 0, 1, 2, 2, 2),
                    _row("HOUSE KEEPERS AFTERNOON", 1, 2, 2, 2, 3),
                    _row("HOUSEKEEPERS MORNING", 2, 2, 3, 3, 3),
                    _row("BARTENDER", 1, 1, 1, 1, 1),
                ),
            ),
        },
    ),
    ManningTemplate(
        name="LADY NARA",
        departments=("service", "bar"),
        configs={
            "service": ManningTable(
                brackets=_LADY_NARA_BRACKETS,
                rows=(
                    _row("MANAGER", 1, 1, 1, 1, 1, 1),
                    _row("HEAD WAITERS", 1, 2, 2, 2, 3, 3),
                    _row("RUNNERS", 1, 1, 2, 2, 2, 3),
                ),
            ),
            "bar": ManningTable(
                brackets=_LADY_NARA_BRACKETS,
                rows=(
                    _row("HEAD BARTENDER", 1, 1, 1, 1, 1, 1),
                    _row("BARTENDERS", 0, 0, 0, 0, 1, 1),
                ),
            ),
        },
    ),
    ManningTemplate(
        name="RAMADAN",
        departments=("all",),
        configs={
            "all": ManningTable(
                brackets=("0-20", "20-50", "50-80", "80-120"),
                rows=(
                    _row("Manager", 1, 1, 1, 1),
                    _row("supervisor", 0, 1, 1, 1),
                    _row("waiters", 2, 3, 4, 6),
                    _row("Runners", 1, 4, 4, 4),
                    _row("Bartender", 1, 1, 2, 2),
                    _row("Barbacks", 1, 2, 1, 3),
                ),
            ),
        },
    ),
)


def get_template_by_name(name: str) -> Optional[ManningTemplate]:
    for template in MANNING_TEMPLATES:
        if template.name == name:
            return template
    return None


def parse_bracket_label(label: str) -> tuple[int, Optional[int]]:
    """Parse ``"20-40"`` into ``(20, 40)``; ``"300+"`` or ``"300"`` is open-ended."""
    text = label.strip()
    if text.endswith("+"):
        text = text[:-1].strip()
        parts = [text]
    else:
        parts = [part.strip() for part in text.split("-")]
    if not 1 <= len(parts) <= 2 or not all(part.isdigit() for part in parts):
        raise ValueError(f"Invalid bracket label {label!r}; expected MIN-MAX")
    guest_min = int(parts[0])
    guest_max = int(parts[1]) if len(parts) == 2 else None
    if guest_max is not None and guest_max < guest_min:
        raise ValueError(f"Invalid bracket label {label!r}; max is below min")
    return guest_min, guest_max


def _normalize_role_name(name: str) -> str:
    return name.strip().upper()


def build_brackets_from_table(
    venue_id: int,
    department: str,
    table: ManningTable,
    roles: Iterable[Role],
) -> list[ManningBracket]:
    """Expand a manning table into non-overlapping inclusive brackets.

    Labels that share an endpoint keep that guest count in the earlier
    bracket, and the final bracket has no upper bound.
    """
    role_ids = {_normalize_role_name(role.name): role.role_id for role in roles}
    bracket_count = len(table.brackets)

    counts_by_bracket: list[dict[int, int]] = [{} for _ in range(bracket_count)]
    for row in table.rows:
        if len(row.counts) != bracket_count:
            raise ValueError(
                f"Row {row.role!r} has {len(row.counts)} counts for {bracket_count} brackets"
            )
        role_id = role_ids.get(_normalize_role_name(row.role))
        if role_id is None:
            logger.warning(
                "Manning table role not found; row skipped | venue_id=%s | department=%s | role=%s",
                venue_id,
                department,
                row.role,
            )
            continue
        for index, count in enumerate(row.counts):
            bucket = counts_by_bracket[index]
            bucket[role_id] = bucket.get(role_id, 0) + count

    brackets: list[ManningBracket] = []
    previous_max: Optional[int] = None
    for index, label in enumerate(table.brackets):
        guest_min, guest_max = parse_bracket_label(label)
        if previous_max is not None:
            guest_min = max(guest_min, previous_max + 1)
        if index == bracket_count - 1:
            guest_max = None
        elif guest_max is None:
            raise ValueError(f"Only the last bracket may be open-ended, got {label!r}")
        bracket = ManningBracket(
            venue_id=venue_id,
            department=department,
            guest_min=guest_min,
            guest_max=guest_max,
            counts=counts_by_bracket[index],
        )
        validate_manning_bracket(bracket)
        brackets.append(bracket)
        previous_max = guest_max
    return brackets


def build_brackets_from_template(
    venue_id: int,
    template: ManningTemplate,
    roles: Iterable[Role],
) -> list[ManningBracket]:
    role_list = list(roles)
    brackets: list[ManningBracket] = []
    for department in template.departments:
        table = template.configs.get(department)
        if table is None:
            raise ValueError(
                f"Template {template.name!r} has no table for department {department!r}"
            )
        brackets.extend(build_brackets_from_table(venue_id, department, table, role_list))
    return brackets
