"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from staffplanner.services.allocation_service import StaffAllocator
from staffplanner.services.plan_service import PlanGenerationService
from staffplanner.services.requirement_service import RequirementCalculator
from staffplanner.utils.config import get_settings


def get_requirement_calculator(request: Request) -> RequirementCalculator:
    calculator = getattr(request.app.state, "requirement_calculator", None)
    if calculator is None:
        calculator = RequirementCalculator(settings=get_settings())
        request.app.state.requirement_calculator = calculator
    return calculator


def get_staff_allocator(request: Request) -> StaffAllocator:
    allocator = getattr(request.app.state, "staff_allocator", None)
    if allocator is None:
        allocator = StaffAllocator(settings=get_settings())
        request.app.state.staff_allocator = allocator
    return allocator


def get_plan_service(request: Request) -> PlanGenerationService:
    service = getattr(request.app.state, "plan_service", None)
    if service is None:
        repository = getattr(request.app.state, "repository", None)
        if repository is not None:
            service = PlanGenerationService(
                repository=repository,
                calculator=get_requirement_calculator(request),
                allocator=get_staff_allocator(request),
                settings=get_settings(),
            )
            request.app.state.plan_service = service
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Plan service is not initialized",
        )
    return service
