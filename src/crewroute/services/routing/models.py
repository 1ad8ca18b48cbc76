"""Routing domain models."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Literal, Optional

from ...models.domain import Coordinate, Customer

StopStatus = Literal["pending", "in_progress", "completed", "skipped"]
RouteStatus = Literal["pending", "in_progress", "completed"]
DistanceSource = Literal["provider", "haversine", "none"]
Algorithm = Literal["trivial", "held_karp", "nearest_neighbor_2opt", "unoptimized"]

OPEN_STOP_STATUSES = frozenset({"pending", "in_progress"})


@dataclass(frozen=True, slots=True)
class RouteStop:
    customer_id: str
    customer_name: str
    lat: float
    lng: float
    order: int
    address: str = ""
    status: StopStatus = "pending"
    estimated_arrival: Optional[str] = None
    actual_arrival: Optional[datetime] = None
    actual_departure: Optional[datetime] = None
    clock_in_time: Optional[datetime] = None
    paused_at: Optional[datetime] = None
    resumed_at: Optional[datetime] = None
    paused_minutes: float = 0.0
    drive_time: Optional[float] = None
    work_time: Optional[float] = None

    @property
    def location(self) -> Coordinate:
        return Coordinate(self.lat, self.lng)

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STOP_STATUSES

    @property
    def is_paused(self) -> bool:
        if self.paused_at is None:
            return False
        return self.resumed_at is None or self.resumed_at < self.paused_at


@dataclass(frozen=True, slots=True)
class Route:
    id: str
    crew_id: str
    date: dt.date
    stops: tuple[RouteStop, ...] = ()
    total_distance: float = 0.0
    total_duration: float = 0.0
    status: RouteStatus = "pending"
    depot: Optional[Coordinate] = None
    planned_start: Optional[datetime] = None
    optimized: bool = False
    distance_source: DistanceSource = "none"
    algorithm: Algorithm = "trivial"

    @property
    def completed_stops(self) -> list[RouteStop]:
        return [stop for stop in self.stops if stop.status == "completed"]

    @property
    def open_stops(self) -> list[RouteStop]:
        return [stop for stop in self.stops if stop.is_open]

    def index_of(self, customer_id: str) -> int:
        for index, stop in enumerate(self.stops):
            if stop.customer_id == customer_id:
                return index
        return -1


@dataclass(slots=True)
class OptimizedRoute:
    """Solver output for one crew."""

    customers: List[Customer]
    total_distance: float
    estimated_duration: float
    travel_minutes: float
    leg_minutes: List[float] = field(default_factory=list)
    path: List[Coordinate] = field(default_factory=list)
    optimized: bool = False
    distance_source: DistanceSource = "none"
    algorithm: Algorithm = "trivial"
