"""Facade over planning and tracking with injected collaborators."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from .clock import Clock, system_clock
from .models.domain import Coordinate
from .services.routing.distance import DistanceProvider
from .services.routing.models import Route
from .services.routing.service import RoutePlanningService
from .services.tracking import transitions
from .services.tracking.progress import RouteProgress, calculate_route_progress
from .services.tracking.schedule import ScheduleStatus, calculate_schedule_status
from .services.tracking.time_analytics import TimeBreakdown, calculate_time_breakdown


class RouteEngine:
    def __init__(
        self,
        data_provider: Any,
        distance_provider: DistanceProvider | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.clock = clock or system_clock
        self.distance_provider = distance_provider
        self.planner = RoutePlanningService(data_provider, distance_provider, clock=self.clock)

    def compute_daily_routes(self, company_id: str, target_date: date) -> list[Route]:
        return self.planner.compute_daily_routes(company_id, target_date)

    async def compute_daily_routes_async(self, company_id: str, target_date: date) -> list[Route]:
        return await self.planner.compute_daily_routes_async(company_id, target_date)

    def reoptimize_remaining(self, route: Route, current_location: Coordinate) -> Route:
        return self.planner.reoptimize_remaining(route, current_location)

    def record_arrival(self, route: Route, customer_id: str, timestamp: Optional[datetime] = None) -> Route:
        return transitions.record_arrival(route, customer_id, timestamp, clock=self.clock)

    def record_departure(self, route: Route, customer_id: str, timestamp: Optional[datetime] = None) -> Route:
        return transitions.record_departure(route, customer_id, timestamp, clock=self.clock)

    def pause_stop(self, route: Route, customer_id: str, timestamp: Optional[datetime] = None) -> Route:
        return transitions.pause_stop(route, customer_id, timestamp, clock=self.clock)

    def resume_stop(self, route: Route, customer_id: str, timestamp: Optional[datetime] = None) -> Route:
        return transitions.resume_stop(route, customer_id, timestamp, clock=self.clock)

    def skip_stop(self, route: Route, customer_id: str) -> Route:
        return transitions.skip_stop(route, customer_id)

    def get_progress(
        self,
        route: Route,
        current_location: Optional[Coordinate] = None,
        now: Optional[datetime] = None,
    ) -> RouteProgress:
        return calculate_route_progress(
            route, current_location, now, clock=self.clock, provider=self.distance_provider
        )

    def get_schedule_status(self, route: Route, now: Optional[datetime] = None) -> ScheduleStatus:
        return calculate_schedule_status(route, now, clock=self.clock, provider=self.distance_provider)

    def get_time_breakdown(self, route: Route) -> TimeBreakdown:
        return calculate_time_breakdown(route, self.distance_provider)
