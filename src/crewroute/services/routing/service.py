"""Daily route planning: prioritize, match, solve and build routes per crew."""

from __future__ import annotations

import inspect
import logging
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Any, Optional, Sequence

from ...clock import Clock, system_clock
from ...config import settings
from ...models.domain import Coordinate, CrewAvailability, Customer
from ..planning.crews import available_crews
from ..planning.matching import match_customers_to_crews
from .distance import DistanceProvider
from .models import OptimizedRoute, Route, RouteStop
from .solver import optimize_route

logger = logging.getLogger(__name__)


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def route_id_for(crew_id: str, target_date: date) -> str:
    return f"{crew_id}-{target_date.isoformat()}"


def project_arrivals(start: datetime, leg_minutes: Sequence[float], stop_count: int) -> list[str]:
    """``HH:MM`` arrival per stop: travel so far plus service time at earlier stops."""

    arrivals: list[str] = []
    elapsed = 0.0
    for index in range(stop_count):
        elapsed += leg_minutes[index] if index < len(leg_minutes) else 0.0
        arrival = start + timedelta(minutes=elapsed)
        arrivals.append(arrival.strftime("%H:%M"))
        elapsed += settings.minutes_per_stop
    return arrivals


def build_route(
    crew: CrewAvailability,
    optimized: OptimizedRoute,
    target_date: date,
    depot: Coordinate,
) -> Route:
    planned_start = None
    if crew.working_hours is not None:
        planned_start = datetime.combine(target_date, crew.working_hours.start_time())

    arrivals = (
        project_arrivals(planned_start, optimized.leg_minutes, len(optimized.customers))
        if planned_start is not None
        else [None] * len(optimized.customers)
    )
    stops = tuple(
        RouteStop(
            customer_id=customer.id,
            customer_name=customer.name,
            address=customer.address,
            lat=customer.lat,
            lng=customer.lng,
            order=index,
            estimated_arrival=arrivals[index],
        )
        for index, customer in enumerate(optimized.customers)
    )
    return Route(
        id=route_id_for(crew.crew_id, target_date),
        crew_id=crew.crew_id,
        date=target_date,
        stops=stops,
        total_distance=round(optimized.total_distance, 2),
        total_duration=round(optimized.estimated_duration, 1),
        depot=depot,
        planned_start=planned_start,
        optimized=optimized.optimized,
        distance_source=optimized.distance_source,
        algorithm=optimized.algorithm,
    )


def _customer_from_stop(stop: RouteStop) -> Customer:
    return Customer(id=stop.customer_id, name=stop.customer_name, lat=stop.lat, lng=stop.lng, address=stop.address)


class RoutePlanningService:
    """Plans one day of routes for every available crew of a company."""

    def __init__(
        self,
        data_provider: Any,
        distance_provider: DistanceProvider | None = None,
        *,
        clock: Clock | None = None,
        cache_enabled: bool | None = None,
    ) -> None:
        self.data_provider = data_provider
        self.distance_provider = distance_provider
        self.clock = clock or system_clock
        self.cache_enabled = settings.route_cache_enabled if cache_enabled is None else cache_enabled
        # (crew_id, date) -> (assigned customer ids, depot, route)
        self._cache: dict[tuple[str, date], tuple[tuple[str, ...], Coordinate, Route]] = {}

    def resolve_depot(self, crew: CrewAvailability, base_location: Optional[Coordinate] = None) -> Coordinate:
        if base_location is not None:
            return base_location
        if settings.company_base_location is not None:
            return Coordinate(*settings.company_base_location)
        if crew.current_location is not None:
            return crew.current_location
        return Coordinate(*settings.fallback_depot)

    def compute_daily_routes(self, company_id: str, target_date: date) -> list[Route]:
        customers = self.data_provider.get_active_customers(company_id)
        crews = self.data_provider.get_crews(company_id, target_date)
        base_location = None
        if hasattr(self.data_provider, "get_base_location"):
            base_location = self.data_provider.get_base_location(company_id)
        return self._plan(customers, crews, target_date, base_location)

    async def compute_daily_routes_async(self, company_id: str, target_date: date) -> list[Route]:
        customers = await _maybe_await(self.data_provider.get_active_customers(company_id))
        crews = await _maybe_await(self.data_provider.get_crews(company_id, target_date))
        base_location = None
        if hasattr(self.data_provider, "get_base_location"):
            base_location = await _maybe_await(self.data_provider.get_base_location(company_id))
        return self._plan(customers, crews, target_date, base_location)

    def _plan(
        self,
        customers: Sequence[Customer],
        crews: Sequence[CrewAvailability],
        target_date: date,
        base_location: Optional[Coordinate],
    ) -> list[Route]:
        crews = available_crews(crews, target_date)
        if not crews:
            logger.info(f"No crews available on {target_date.isoformat()}; nothing to plan")
            return []

        matches = match_customers_to_crews(customers, crews, target_date)
        routes: list[Route] = []
        for assignment in matches.assignments:
            crew = assignment.crew
            customer_ids = tuple(customer.id for customer in assignment.customers)
            try:
                depot = self.resolve_depot(crew, base_location)
                cached = self._cached(crew.crew_id, target_date, customer_ids, depot)
                if cached is not None:
                    routes.append(cached)
                    continue
                optimized = optimize_route(assignment.customers, depot, provider=self.distance_provider)
                route = build_route(crew, optimized, target_date, depot)
            except Exception:
                logger.exception(f"Failed to plan route for crew {crew.crew_id}; skipping")
                continue
            if self.cache_enabled:
                self._cache[(crew.crew_id, target_date)] = (customer_ids, depot, route)
            routes.append(route)

        logger.info(f"Planned {len(routes)} routes for {target_date.isoformat()}")
        return routes

    def _cached(
        self, crew_id: str, target_date: date, customer_ids: tuple[str, ...], depot: Coordinate
    ) -> Optional[Route]:
        if not self.cache_enabled:
            return None
        entry = self._cache.get((crew_id, target_date))
        if entry is None or entry[0] != customer_ids or entry[1] != depot:
            return None
        logger.debug(f"Reusing cached route for crew {crew_id} on {target_date.isoformat()}")
        return entry[2]

    def get_cached_route(self, crew_id: str, target_date: date) -> Optional[Route]:
        entry = self._cache.get((crew_id, target_date))
        return entry[2] if entry is not None else None

    def clear_cache(self) -> None:
        self._cache.clear()

    def reoptimize_remaining(self, route: Route, current_location: Coordinate) -> Route:
        """Return a new route whose pending stops are re-sequenced from ``current_location``.

        Stops that are already resolved or in progress keep their place at the
        front; only pending stops are reordered. The planned totals stay those of
        the original plan so progress and schedule status are measured against
        the same baseline.
        """

        fixed = [stop for stop in route.stops if stop.status != "pending"]
        pending = [stop for stop in route.stops if stop.status == "pending"]
        if not pending:
            return route

        optimized = optimize_route(
            [_customer_from_stop(stop) for stop in pending],
            current_location,
            provider=self.distance_provider,
        )
        by_id = {stop.customer_id: stop for stop in pending}
        arrivals = project_arrivals(self.clock.now(), optimized.leg_minutes, len(optimized.customers))

        stops = [replace(stop, order=index) for index, stop in enumerate(fixed)]
        for offset, customer in enumerate(optimized.customers):
            stops.append(
                replace(by_id[customer.id], order=len(fixed) + offset, estimated_arrival=arrivals[offset])
            )

        logger.info(
            f"Re-optimized {len(pending)} remaining stops for crew {route.crew_id}: "
            f"{optimized.total_distance:.2f} miles, {optimized.estimated_duration:.1f} min left"
        )
        return Route(
            id=route.id,
            crew_id=route.crew_id,
            date=route.date,
            stops=tuple(stops),
            total_distance=route.total_distance,
            total_duration=route.total_duration,
            status=route.status,
            depot=route.depot,
            planned_start=route.planned_start,
            optimized=optimized.optimized,
            distance_source=optimized.distance_source,
            algorithm=optimized.algorithm,
        )
