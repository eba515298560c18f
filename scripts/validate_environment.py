#!/usr/bin/env python3
"""Validate local staffing engine environment readiness."""

from __future__ import annotations

import importlib
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from staffplanner.repository.staffing_repository import InMemoryStaffingRepository
from staffplanner.services.plan_service import PlanGenerationService
from staffplanner.utils.config import get_settings

SEPARATOR_LINE = "=" * 44
DEMO_DATE = "2026-03-01"


def _print_result(name: str, success: bool, detail: str = "") -> tuple[bool, str]:
    if success:
        return True, f"[PASS] {name}{detail}"
    return False, f"[FAIL] {name}: {detail}"


def main() -> int:
    results: list[str] = []
    all_passed = True

    # CHECK 1: Python version >= 3.11
    if sys.version_info >= (3, 11):
        ok, line = _print_result("Python " + sys.version.split()[0], True)
    else:
        ok, line = _print_result(
            "Python version >= 3.11",
            False,
            f"found {sys.version.split()[0]}",
        )
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 2: Required packages importable
    package_specs = ["fastapi", "uvicorn", "pydantic", "httpx", "pytest"]
    import_errors: list[str] = []
    for module_name in package_specs:
        try:
            importlib.import_module(module_name)
        except ImportError as exc:
            import_errors.append(f"{module_name} ({exc})")
    if import_errors:
        ok, line = _print_result(
            "Required packages",
            False,
            "missing/unimportable -> " + "; ".join(import_errors),
        )
    else:
        ok, line = _print_result("Required packages: all importable", True)
    results.append(line)
    all_passed = all_passed and ok

    settings = get_settings()
    repository = InMemoryStaffingRepository()

    # CHECK 3: Demo data seeding
    try:
        seeded = repository.seed_demo_data()
        snapshot = repository.load_snapshot(DEMO_DATE)
        if not seeded or len(snapshot.events) != 3:
            raise RuntimeError(f"expected 3 demo events, got {len(snapshot.events)}")
        ok, line = _print_result("Demo data: 3 venues, 3 events", True)
    except Exception as exc:
        ok, line = _print_result("Demo data", False, str(exc))
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 4: End-to-end dry-run plan
    try:
        service = PlanGenerationService(repository=repository, settings=settings)
        plan = service.generate_plan(target_date=DEMO_DATE, persist=False)
        staff_needed = sum(item.count for item in plan.requirements)
        shortage = sum(item.count for item in plan.shortages)
        if staff_needed != len(plan.assignments) + shortage:
            raise RuntimeError("assignments and shortages do not cover requirements")
        ok, line = _print_result(
            "Plan generation",
            True,
            f": needed={staff_needed} assigned={len(plan.assignments)} short={shortage}",
        )
    except Exception as exc:
        ok, line = _print_result("Plan generation", False, str(exc))
    results.append(line)
    all_passed = all_passed and ok

    print(SEPARATOR_LINE)
    print(" Staffing Engine Environment Validation")
    print(SEPARATOR_LINE)
    for line in results:
        print(f" {line}")
    print(SEPARATOR_LINE)
    if all_passed:
        print(" All checks passed. Environment is ready.")
        print(SEPARATOR_LINE)
        return 0
    print(" One or more checks failed.")
    print(SEPARATOR_LINE)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
