"""HTTP controller layer for requirement calculation, allocation and plans."""

from __future__ import annotations

from dataclasses import asdict
from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator, model_validator

from staffplanner.controllers.dependencies import (
    get_plan_service,
    get_requirement_calculator,
    get_staff_allocator,
)
from staffplanner.domain.models import (
    STATUS_AVAILABLE,
    Event,
    ManningBracket,
    PlanningContext,
    RatioRule,
    Requirement,
    Role,
    StaffMember,
    Venue,
)
from staffplanner.services.allocation_service import StaffAllocator
from staffplanner.services.plan_service import (
    PlanGenerationService,
    PlanNotFoundError,
    PlanResult,
    PlanValidationError,
)
from staffplanner.services.requirement_service import (
    RequirementCalculationError,
    RequirementCalculator,
)
from staffplanner.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["planning"])

CALCULATION_ERROR_DETAIL = "Failed to calculate staffing requirements. Please check venue rules."

AvailabilityStatus = Literal["available", "off", "leave", "in-event"]


class VenueModel(BaseModel):
    venue_id: int
    name: str = Field(min_length=1)
    venue_type: str = "other"
    default_service_style: str = "other"

    def to_domain(self) -> Venue:
        return Venue(**self.model_dump())


class RoleModel(BaseModel):
    role_id: int
    name: str = Field(min_length=1)
    category: str = "Other"

    def to_domain(self) -> Role:
        return Role(**self.model_dump())


class RatioRuleModel(BaseModel):
    venue_id: int
    department: str = Field(min_length=1)
    role_id: int
    ratio_guests: int = Field(ge=0)
    ratio_staff: int = Field(ge=0)
    threshold_guests: int | None = Field(default=None, ge=0)
    threshold_staff: int | None = Field(default=None, ge=0)
    min_required: int = Field(default=0, ge=0)
    max_allowed: int | None = Field(default=None, ge=0)

    def to_domain(self) -> RatioRule:
        return RatioRule(**self.model_dump())


class ManningBracketModel(BaseModel):
    venue_id: int
    department: str = Field(min_length=1)
    guest_min: int = Field(ge=0)
    guest_max: int | None = Field(default=None, ge=0)
    counts: dict[int, int] = Field(default_factory=dict)

    @field_validator("counts")
    @classmethod
    def validate_counts(cls, value: dict[int, int]) -> dict[int, int]:
        for role_id, count in value.items():
            if count < 0:
                raise ValueError(f"counts[{role_id}] must be >= 0")
        return value

    @model_validator(mode="after")
    def validate_range(self) -> "ManningBracketModel":
        if self.guest_max is not None and self.guest_max < self.guest_min:
            raise ValueError("guest_max must be >= guest_min")
        return self

    def to_domain(self) -> ManningBracket:
        return ManningBracket(**self.model_dump())


class EventModel(BaseModel):
    event_id: int
    date: date
    venue_id: int
    guest_count: int = Field(ge=0)
    event_name: str | None = None

    def to_domain(self) -> Event:
        return Event(
            event_id=self.event_id,
            date=self.date.isoformat(),
            venue_id=self.venue_id,
            guest_count=self.guest_count,
            event_name=self.event_name,
        )


class StaffMemberModel(BaseModel):
    staff_id: int
    full_name: str = Field(min_length=1)
    primary_role_id: int
    secondary_roles: list[int] = Field(default_factory=list)
    home_base_venue_id: int | None = None
    availability_status: AvailabilityStatus = STATUS_AVAILABLE
    employment_type: str = "internal"

    def to_domain(self) -> StaffMember:
        return StaffMember(
            staff_id=self.staff_id,
            full_name=self.full_name,
            primary_role_id=self.primary_role_id,
            secondary_roles=frozenset(self.secondary_roles),
            home_base_venue_id=self.home_base_venue_id,
            availability_status=self.availability_status,
            employment_type=self.employment_type,
        )


class RequirementModel(BaseModel):
    venue_id: int
    role_id: int
    role_name: str
    count: int = Field(ge=0)
    reasoning: list[str] = Field(default_factory=list)
    event_id: int | None = None
    department: str | None = None

    def to_domain(self) -> Requirement:
        return Requirement(**self.model_dump())


class AssignmentModel(BaseModel):
    role_id: int
    venue_id: int
    staff_id: int
    staff_name: str
    reason: Literal["home_base", "available_pool"]
    is_freelance: bool = False
    event_id: int | None = None


class ShortageModel(BaseModel):
    venue_id: int
    role_id: int
    role_name: str
    count: int = Field(gt=0)
    event_id: int | None = None


class CalculateRequirementsRequest(BaseModel):
    events: list[EventModel]
    venues: list[VenueModel]
    rules: list[RatioRuleModel] = Field(default_factory=list)
    brackets: list[ManningBracketModel] = Field(default_factory=list)
    roles: list[RoleModel] = Field(default_factory=list)


class CalculateRequirementsResponse(BaseModel):
    requirements: list[RequirementModel]


class AllocateRequest(BaseModel):
    requirements: list[RequirementModel]
    staff: list[StaffMemberModel]


class AllocateResponse(BaseModel):
    assignments: list[AssignmentModel]
    shortages: list[ShortageModel]


class GeneratePlanRequest(BaseModel):
    date: date
    venue_ids: list[int] | None = None
    user_id: int | None = Field(default=None, gt=0)
    persist: bool = True

    @field_validator("venue_ids")
    @classmethod
    def validate_venue_ids(cls, value: list[int] | None) -> list[int] | None:
        if value is not None and not value:
            raise ValueError("venue_ids must contain at least one venue id when provided")
        return value


class RegeneratePlanRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)
    venue_ids: list[int] | None = None
    user_id: int | None = Field(default=None, gt=0)


class PlanResponse(BaseModel):
    plan_id: int | None
    date: date
    version: int = Field(ge=1)
    requirements: list[RequirementModel]
    assignments: list[AssignmentModel]
    shortages: list[ShortageModel]
    message: str
    regeneration_reason: str | None = None


def _context(user_id: int | None, venue_ids: list[int] | None) -> PlanningContext:
    return PlanningContext(
        user_id=user_id,
        venue_ids=frozenset(venue_ids) if venue_ids is not None else None,
    )


def _plan_response(result: PlanResult) -> PlanResponse:
    return PlanResponse(
        plan_id=result.plan_id,
        date=result.target_date,
        version=result.version,
        requirements=[RequirementModel(**asdict(item)) for item in result.requirements],
        assignments=[AssignmentModel(**asdict(item)) for item in result.assignments],
        shortages=[ShortageModel(**asdict(item)) for item in result.shortages],
        message=result.message,
        regeneration_reason=result.regeneration_reason,
    )


@router.post(
    "/requirements/calculate",
    response_model=CalculateRequirementsResponse,
    status_code=status.HTTP_200_OK,
)
async def calculate_requirements(
    payload: CalculateRequirementsRequest,
    calculator: RequirementCalculator = Depends(get_requirement_calculator),
) -> CalculateRequirementsResponse:
    """Run the requirement calculator on a caller-supplied configuration."""
    try:
        requirements = calculator.calculate(
            [item.to_domain() for item in payload.events],
            [item.to_domain() for item in payload.venues],
            [item.to_domain() for item in payload.rules],
            [item.to_domain() for item in payload.brackets],
            [item.to_domain() for item in payload.roles],
        )
        return CalculateRequirementsResponse(
            requirements=[RequirementModel(**asdict(item)) for item in requirements]
        )
    except RequirementCalculationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"{CALCULATION_ERROR_DETAIL} {exc}",
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected requirement calculation failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to calculate requirements",
        ) from exc


@router.post(
    "/allocations",
    response_model=AllocateResponse,
    status_code=status.HTTP_200_OK,
)
async def allocate_staff(
    payload: AllocateRequest,
    allocator: StaffAllocator = Depends(get_staff_allocator),
) -> AllocateResponse:
    """Match the posted staff pool against requirements in the order given."""
    try:
        result = allocator.allocate(
            [item.to_domain() for item in payload.requirements],
            [item.to_domain() for item in payload.staff],
        )
        return AllocateResponse(
            assignments=[AssignmentModel(**asdict(item)) for item in result.assignments],
            shortages=[ShortageModel(**asdict(item)) for item in result.shortages],
        )
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected allocation failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to allocate staff",
        ) from exc


@router.post(
    "/plans/generate",
    response_model=PlanResponse,
    status_code=status.HTTP_200_OK,
)
async def generate_plan(
    payload: GeneratePlanRequest,
    service: PlanGenerationService = Depends(get_plan_service),
) -> PlanResponse:
    """Generate, and by default persist, the staffing plan for one date."""
    try:
        result = service.generate_plan(
            target_date=payload.date.isoformat(),
            context=_context(payload.user_id, payload.venue_ids),
            persist=payload.persist,
        )
        return _plan_response(result)
    except PlanValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except RequirementCalculationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"{CALCULATION_ERROR_DETAIL} {exc}",
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected plan generation failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate plan",
        ) from exc


@router.post(
    "/plans/{plan_id}/regenerate",
    response_model=PlanResponse,
    status_code=status.HTTP_200_OK,
)
async def regenerate_plan(
    plan_id: int,
    payload: RegeneratePlanRequest,
    service: PlanGenerationService = Depends(get_plan_service),
) -> PlanResponse:
    try:
        result = service.regenerate_plan(
            plan_id=plan_id,
            reason=payload.reason,
            context=_context(payload.user_id, payload.venue_ids),
        )
        return _plan_response(result)
    except PlanNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except RequirementCalculationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"{CALCULATION_ERROR_DETAIL} {exc}",
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected plan regeneration failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to regenerate plan",
        ) from exc


@router.get(
    "/plans/{plan_id}",
    response_model=PlanResponse,
    status_code=status.HTTP_200_OK,
)
async def get_plan(
    plan_id: int,
    service: PlanGenerationService = Depends(get_plan_service),
) -> PlanResponse:
    try:
        return _plan_response(service.get_plan(plan_id))
    except PlanNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
