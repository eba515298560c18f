from __future__ import annotations

from dataclasses import replace

from fastapi import FastAPI
from fastapi.testclient import TestClient

from staffplanner.controllers.planning_controller import CALCULATION_ERROR_DETAIL, router as planning_router
from staffplanner.main import create_app
from staffplanner.repository.staffing_repository import InMemoryStaffingRepository
from staffplanner.services.requirement_service import (
    RequirementCalculationError,
    RequirementCalculator,
)
from staffplanner.utils.config import get_settings


def _build_test_app(seed_demo_data: bool = True) -> tuple[FastAPI, InMemoryStaffingRepository]:
    get_settings.cache_clear()
    settings = replace(get_settings(), seed_demo_data=seed_demo_data)
    repository = InMemoryStaffingRepository()
    return create_app(settings=settings, repository=repository), repository


def test_plan_lifecycle_over_http():
    app, repository = _build_test_app()

    with TestClient(app) as client:
        generated = client.post("/plans/generate", json={"date": "2026-03-01", "user_id": 7})
        assert generated.status_code == 200
        body = generated.json()
        assert body["plan_id"] == 1
        assert body["version"] == 1
        assert body["message"] == ""
        assert [item["staff_name"] for item in body["assignments"]] == [
            "Alice Adams",
            "Bob Brown",
            "Dave Davis",
            "Charlie Clark",
        ]
        assert [(item["role_name"], item["count"]) for item in body["shortages"]] == [
            ("Waiter", 2),
            ("Manager", 1),
        ]
        assert repository.get_plan(1).generated_by == 7

        fetched = client.get("/plans/1")
        assert fetched.status_code == 200
        assert fetched.json() == body

        regenerated = client.post("/plans/1/regenerate", json={"reason": "Headcount changed"})
        assert regenerated.status_code == 200
        assert regenerated.json()["version"] == 2
        assert regenerated.json()["regeneration_reason"] == "Headcount changed"
        assert regenerated.json()["assignments"] == body["assignments"]


def test_dry_run_with_venue_filter():
    app, repository = _build_test_app()

    with TestClient(app) as client:
        response = client.post(
            "/plans/generate",
            json={"date": "2026-03-01", "venue_ids": [3], "persist": False},
        )

    assert response.status_code == 200
    body = response.json()
    assert body["plan_id"] is None
    assert body["requirements"] == []
    assert "NO staffing rules" in body["message"]
    assert repository.count_plans() == 0


def test_missing_plan_returns_404():
    app, _ = _build_test_app()

    with TestClient(app) as client:
        assert client.get("/plans/99").status_code == 404
        assert client.post("/plans/99/regenerate", json={}).status_code == 404


def test_invalid_payloads_are_rejected():
    app, _ = _build_test_app()

    with TestClient(app) as client:
        assert client.post("/plans/generate", json={"date": "not-a-date"}).status_code == 422
        assert client.post("/plans/generate", json={"date": "2026-03-01", "venue_ids": []}).status_code == 422
        assert client.post("/plans/1/regenerate", json={"reason": "x" * 501}).status_code == 422


def test_calculate_requirements_endpoint():
    app, _ = _build_test_app(seed_demo_data=False)
    payload = {
        "events": [{"event_id": 1, "date": "2026-03-01", "venue_id": 2, "guest_count": 25}],
        "venues": [{"venue_id": 2, "name": "Venue B"}],
        "rules": [
            {"venue_id": 2, "department": "service", "role_id": 1, "ratio_guests": 10, "ratio_staff": 1},
            {
                "venue_id": 2,
                "department": "service",
                "role_id": 2,
                "ratio_guests": 0,
                "ratio_staff": 0,
                "min_required": 1,
            },
        ],
        "roles": [{"role_id": 1, "name": "Waiter"}, {"role_id": 2, "name": "Manager"}],
    }

    with TestClient(app) as client:
        response = client.post("/requirements/calculate", json=payload)

    assert response.status_code == 200
    requirements = response.json()["requirements"]
    assert [(item["role_name"], item["count"]) for item in requirements] == [("Waiter", 3), ("Manager", 1)]
    assert requirements[0]["reasoning"][0].startswith("Ratio: 1 per 10 guests")


def test_calculate_requirements_prefers_brackets():
    app, _ = _build_test_app(seed_demo_data=False)
    payload = {
        "events": [{"event_id": 1, "date": "2026-03-01", "venue_id": 1, "guest_count": 75}],
        "venues": [{"venue_id": 1, "name": "Venue A"}],
        "brackets": [
            {"venue_id": 1, "department": "service", "guest_min": 50, "guest_max": 100, "counts": {"1": 2, "2": 1}},
        ],
        "roles": [{"role_id": 1, "name": "Waiter"}, {"role_id": 2, "name": "Manager"}],
    }

    with TestClient(app) as client:
        response = client.post("/requirements/calculate", json=payload)
        inverted = dict(payload, brackets=[dict(payload["brackets"][0], guest_min=120)])
        rejected = client.post("/requirements/calculate", json=inverted)

    assert response.status_code == 200
    assert [item["count"] for item in response.json()["requirements"]] == [2, 1]
    assert rejected.status_code == 422


def test_allocations_endpoint_shares_pool_across_requirements():
    app, _ = _build_test_app(seed_demo_data=False)
    payload = {
        "requirements": [
            {"venue_id": 1, "role_id": 1, "role_name": "Waiter", "count": 2},
            {"venue_id": 2, "role_id": 1, "role_name": "Waiter", "count": 3},
        ],
        "staff": [
            {"staff_id": 1, "full_name": "Alice", "primary_role_id": 1, "home_base_venue_id": 1},
            {"staff_id": 2, "full_name": "Bob", "primary_role_id": 1, "home_base_venue_id": 1},
            {"staff_id": 3, "full_name": "Charlie", "primary_role_id": 1, "home_base_venue_id": 2},
            {
                "staff_id": 5,
                "full_name": "Eve",
                "primary_role_id": 1,
                "home_base_venue_id": 1,
                "availability_status": "off",
            },
        ],
    }

    with TestClient(app) as client:
        response = client.post("/allocations", json=payload)

    assert response.status_code == 200
    body = response.json()
    assert [(item["staff_name"], item["venue_id"]) for item in body["assignments"]] == [
        ("Alice", 1),
        ("Bob", 1),
        ("Charlie", 2),
    ]
    assert body["shortages"] == [
        {"venue_id": 2, "role_id": 1, "role_name": "Waiter", "count": 2, "event_id": None}
    ]


def test_plan_routes_need_initialized_service():
    app = FastAPI()
    app.include_router(planning_router)

    with TestClient(app) as client:
        response = client.post("/plans/generate", json={"date": "2026-03-01"})

    assert response.status_code == 503


class FailingRequirementCalculator(RequirementCalculator):
    def calculate(self, events, venues, rules, brackets, roles):
        raise RequirementCalculationError("Malformed staffing rule for venue 2 role 1")


def test_calculation_error_maps_to_422():
    app, _ = _build_test_app(seed_demo_data=False)
    app.state.requirement_calculator = FailingRequirementCalculator()
    payload = {
        "events": [{"event_id": 1, "date": "2026-03-01", "venue_id": 2, "guest_count": 25}],
        "venues": [{"venue_id": 2, "name": "Venue B"}],
    }

    with TestClient(app) as client:
        response = client.post("/requirements/calculate", json=payload)

    assert response.status_code == 422
    assert response.json()["detail"].startswith(CALCULATION_ERROR_DETAIL)


def test_regenerate_without_venue_ids_keeps_plan_scope():
    app, repository = _build_test_app()

    with TestClient(app) as client:
        generated = client.post("/plans/generate", json={"date": "2026-03-01", "venue_ids": [2]})
        regenerated = client.post(f"/plans/{generated.json()['plan_id']}/regenerate", json={})

    assert regenerated.status_code == 200
    assert {item["venue_id"] for item in regenerated.json()["requirements"]} == {2}
    assert regenerated.json()["assignments"] == generated.json()["assignments"]
    assert repository.get_staff(5).availability_status == "off"
