"""Domain models for customers and crews."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time
from typing import Optional

WEEKDAYS: tuple[str, ...] = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

ACTIVE_SERVICE_STATUSES = frozenset({"scheduled", "in_progress", "completed"})


def weekday_name(value: date) -> str:
    """Lowercase weekday name for a date (``monday`` .. ``sunday``)."""

    return WEEKDAYS[value.weekday()]


def parse_hhmm(value: str) -> time:
    """Parse an ``HH:MM`` string into a ``time``."""

    try:
        hours, minutes = (int(part) for part in value.strip().split(":", 1))
        return time(hour=hours, minute=minutes)
    except (AttributeError, ValueError) as exc:
        raise ValueError(f"Invalid HH:MM time value '{value}'") from exc


@dataclass(frozen=True, slots=True)
class Coordinate:
    lat: float
    lng: float

    def as_tuple(self) -> tuple[float, float]:
        return (self.lat, self.lng)


@dataclass(slots=True)
class Service:
    id: str
    type: str
    price: float = 0.0
    status: str = "scheduled"
    description: str = ""


@dataclass(slots=True)
class TimeRange:
    start: str = "08:00"
    end: str = "17:00"


@dataclass(slots=True)
class ServicePreferences:
    preferred_days: list[str] = field(default_factory=list)
    preferred_time_range: TimeRange = field(default_factory=TimeRange)
    service_frequency_days: int = 7

    def prefers(self, day: date) -> bool:
        wanted = {item.strip().lower() for item in self.preferred_days}
        return weekday_name(day) in wanted


@dataclass(slots=True)
class Customer:
    """A customer location with requested services and scheduling preferences."""

    id: str
    name: str
    lat: float
    lng: float
    address: str = ""
    status: str = "active"
    services: list[Service] = field(default_factory=list)
    service_preferences: ServicePreferences = field(default_factory=ServicePreferences)
    last_service_date: Optional[date] = None
    company_id: Optional[str] = None

    @property
    def location(self) -> Coordinate:
        return Coordinate(self.lat, self.lng)

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def requested_service_types(self) -> set[str]:
        types = {service.type for service in self.services if service.status in ACTIVE_SERVICE_STATUSES}
        return types or {"general"}


def record_service_completion(customer: Customer, completed_on: date | datetime) -> Customer:
    """Return a copy of ``customer`` with ``last_service_date`` moved forward.

    Raises ``ValueError`` when ``completed_on`` is earlier than the recorded date.
    """

    completed = completed_on.date() if isinstance(completed_on, datetime) else completed_on
    if customer.last_service_date is not None and completed < customer.last_service_date:
        raise ValueError(
            f"Service date {completed.isoformat()} for customer {customer.id} is earlier than "
            f"last service date {customer.last_service_date.isoformat()}"
        )
    return replace(customer, last_service_date=completed)


@dataclass(slots=True)
class WorkingHours:
    start: str = "08:00"
    end: str = "17:00"

    def __post_init__(self) -> None:
        if parse_hhmm(self.end) <= parse_hhmm(self.start):
            raise ValueError(f"Working hours end {self.end} must be after start {self.start}")

    def start_time(self) -> time:
        return parse_hhmm(self.start)

    def end_time(self) -> time:
        return parse_hhmm(self.end)

    def duration_minutes(self) -> float:
        start = datetime.combine(date.min, self.start_time())
        end = datetime.combine(date.min, self.end_time())
        return (end - start).total_seconds() / 60.0


@dataclass(slots=True)
class CrewAvailability:
    """A crew that can be routed on a given date."""

    crew_id: str
    employee_ids: list[str]
    capabilities: set[str]
    date: Optional[dt.date] = None
    working_hours: Optional[WorkingHours] = None
    current_location: Optional[Coordinate] = None
    max_customers: int = 12
    manager_id: Optional[str] = None
    region: str = "default"

    def is_available_on(self, day: date) -> bool:
        if not self.employee_ids or self.working_hours is None:
            return False
        return self.date is None or self.date == day

    def can_serve(self, service_types: set[str]) -> bool:
        return bool(self.capabilities & service_types)


@dataclass(slots=True)
class CrewMember:
    """An employee with a crew assignment and a weekly schedule."""

    id: str
    name: str
    crew_id: Optional[str] = None
    capabilities: list[str] = field(default_factory=list)
    schedule: dict[str, WorkingHours] = field(default_factory=dict)
    current_location: Optional[Coordinate] = None
    region: str = "default"
    company_id: Optional[str] = None

    def hours_on(self, day: date) -> Optional[WorkingHours]:
        return self.schedule.get(weekday_name(day))


@dataclass(slots=True)
class PriorityFactors:
    days_since_last_service: int
    preference_match: bool
    service_count: int
    service_types: list[str]
    location: Coordinate


@dataclass(slots=True)
class CustomerPriority:
    customer_id: str
    priority: float
    factors: PriorityFactors
