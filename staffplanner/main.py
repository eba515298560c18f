"""FastAPI application bootstrap and lifecycle wiring."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from staffplanner.controllers.planning_controller import router as planning_router
from staffplanner.repository.staffing_repository import InMemoryStaffingRepository
from staffplanner.services.allocation_service import StaffAllocator
from staffplanner.services.plan_service import PlanGenerationService
from staffplanner.services.requirement_service import RequirementCalculator
from staffplanner.utils.config import Settings, get_settings
from staffplanner.utils.logger import get_logger


logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    repository: Optional[InMemoryStaffingRepository] = None,
) -> FastAPI:
    """Build the app with every service reachable from ``app.state``."""
    settings = settings or get_settings()
    repository = repository or InMemoryStaffingRepository()
    calculator = RequirementCalculator(settings=settings)
    allocator = StaffAllocator(settings=settings)
    plan_service = PlanGenerationService(
        repository=repository,
        calculator=calculator,
        allocator=allocator,
        settings=settings,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        startup(app, settings)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.include_router(planning_router)

    app.state.repository = repository
    app.state.requirement_calculator = calculator
    app.state.staff_allocator = allocator
    app.state.plan_service = plan_service

    return app


def startup(app: FastAPI, settings: Optional[Settings] = None) -> None:
    """Seed the in-memory store with the demo venues when enabled."""
    settings = settings or get_settings()
    repository: InMemoryStaffingRepository = app.state.repository
    if settings.seed_demo_data:
        repository.seed_demo_data()
    logger.info("System startup completed | demo_data=%s", settings.seed_demo_data)


app = create_app()
