"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="CREWROUTE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Crew Route Engine API"
    api_prefix: str = "/api"
    data_root: Path = Field(default=Path("data"), description="Directory holding customers.json and crews.json.")
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=("http://localhost:3000", "http://127.0.0.1:3000"),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Distance provider
    osrm_base_url: Optional[str] = Field(
        default=None,
        description="Base URL for the OSRM routing service (e.g., http://localhost:5000).",
    )
    osrm_profile: Literal["driving", "driving-hgv"] = Field(
        default="driving",
        description="OSRM profile to use when computing travel times.",
    )
    osrm_max_retries: int = Field(default=2, ge=0)
    osrm_backoff_seconds: float = Field(default=0.5, ge=0.0)
    distance_timeout_seconds: float = Field(default=10.0, gt=0.0)

    # Depot resolution
    company_base_lat: Optional[float] = Field(default=None, ge=-90, le=90)
    company_base_lng: Optional[float] = Field(default=None, ge=-180, le=180)
    fallback_depot_lat: float = Field(default=30.0997, ge=-90, le=90)
    fallback_depot_lng: float = Field(default=-81.7065, ge=-180, le=180)

    # Prioritization & matching
    default_max_customers: int = Field(default=12, ge=1)
    min_days_between_services: int = Field(default=5, ge=0)
    never_serviced_baseline_days: int = Field(default=30, ge=0)
    days_since_service_weight: float = Field(default=10.0, ge=0.0)
    preference_bonus: float = Field(default=20.0, ge=0.0)
    per_service_bonus: float = Field(default=5.0, ge=0.0)
    max_priority: float = Field(default=100.0, gt=0.0)

    # Route solver
    minutes_per_stop: float = Field(default=30.0, ge=0.0)
    minutes_per_mile: float = Field(default=2.0, gt=0.0)
    unreachable_penalty_miles: float = Field(default=1000.0, gt=0.0)
    held_karp_max_customers: int = Field(default=15, ge=2, le=20)
    two_opt_max_passes: int = Field(default=1000, ge=1)
    route_cache_enabled: bool = True

    # Progress & schedule
    on_time_threshold_minutes: float = Field(default=15.0, ge=0.0)
    progress_weight_stops: float = Field(default=0.4, ge=0.0, le=1.0)
    progress_weight_distance: float = Field(default=0.3, ge=0.0, le=1.0)
    progress_weight_time: float = Field(default=0.3, ge=0.0, le=1.0)
    schedule_tolerance: float = Field(default=0.05, ge=0.0, lt=1.0)
    default_work_minutes_per_stop: float = Field(default=20.0, ge=0.0)
    default_drive_minutes_per_stop: float = Field(default=10.0, ge=0.0)
    significant_delay_minutes: float = Field(default=30.0, ge=0.0)
    arrival_threshold_meters: float = Field(default=50.0, gt=0.0)

    # Time classification
    break_threshold_minutes: float = Field(default=30.0, ge=0.0)
    idle_factor: float = Field(default=1.5, ge=1.0)

    @field_validator("data_root", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            # Try JSON first
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()

    @property
    def company_base_location(self) -> Optional[tuple[float, float]]:
        if self.company_base_lat is None or self.company_base_lng is None:
            return None
        return (self.company_base_lat, self.company_base_lng)

    @property
    def fallback_depot(self) -> tuple[float, float]:
        return (self.fallback_depot_lat, self.fallback_depot_lng)


settings = Settings()
