"""Environment-driven application settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    app_name: str
    app_version: str
    log_level: str
    available_status: str
    assigned_staff_status: str
    unknown_role_name: str
    plan_date_format: str
    default_regeneration_reason: str
    seed_demo_data: bool


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings once per process; tests clear the cache or use ``replace``."""
    return Settings(
        app_name=os.getenv("STAFFING_APP_NAME", "Venue Staffing Engine"),
        app_version=os.getenv("STAFFING_APP_VERSION", "1.0.0"),
        log_level=os.getenv("STAFFING_LOG_LEVEL", "INFO"),
        available_status=os.getenv("STAFFING_AVAILABLE_STATUS", "available"),
        assigned_staff_status=os.getenv("STAFFING_ASSIGNED_STATUS", "in-event"),
        unknown_role_name=os.getenv("STAFFING_UNKNOWN_ROLE_NAME", "Staff"),
        plan_date_format=os.getenv("STAFFING_PLAN_DATE_FORMAT", "%Y-%m-%d"),
        default_regeneration_reason=os.getenv(
            "STAFFING_DEFAULT_REGENERATION_REASON",
            "No reason provided",
        ),
        seed_demo_data=_env_bool("STAFFING_SEED_DEMO_DATA", True),
    )
