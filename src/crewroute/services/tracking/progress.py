"""Live route progress snapshots."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Iterable, Mapping, Optional, Sequence

from ...clock import Clock, resolve_now
from ...config import settings
from ...models.domain import Coordinate, parse_hhmm
from ..geospatial import nearest_index
from ..routing.distance import DistanceProvider
from ..routing.models import Route, RouteStop
from ..routing.solver import fetch_leg


@dataclass(frozen=True, slots=True)
class RouteProgress:
    crew_id: str
    route_id: str
    date: dt.date
    stops_completed: int
    total_stops: int
    progress_percentage: int
    distance_traveled: float
    total_distance: float
    distance_percentage: int
    time_elapsed: int
    estimated_total_time: float
    time_percentage: int
    current_stop: Optional[RouteStop]
    next_stop: Optional[RouteStop]
    current_location: Optional[Coordinate]
    average_time_per_stop: int
    estimated_completion_time: datetime
    is_on_schedule: bool
    delay_minutes: int
    status: str
    last_updated: datetime


@dataclass(frozen=True, slots=True)
class ProgressSummary:
    total_crews: int
    active_crews: int
    completed_routes: int
    average_progress: int
    delayed_crews: int
    on_time_crews: int


def route_start_time(route: Route) -> Optional[datetime]:
    """Planned start, or the first stop's estimated arrival on the route date."""

    if route.planned_start is not None:
        return route.planned_start
    if not route.stops or not route.stops[0].estimated_arrival:
        return None
    try:
        return datetime.combine(route.date, parse_hhmm(route.stops[0].estimated_arrival))
    except ValueError:
        return None


def elapsed_minutes(route: Route, now: datetime) -> float:
    start = route_start_time(route)
    if start is None:
        return 0.0
    return max(0.0, (now - start).total_seconds() / 60.0)


def _percentage(part: float, whole: float) -> float:
    if whole <= 0:
        return 0.0
    return min(100.0, part / whole * 100.0)


def distance_traveled(
    route: Route,
    current_location: Optional[Coordinate] = None,
    provider: DistanceProvider | None = None,
) -> float:
    """Miles covered: legs into each completed stop plus the leg to the live location."""

    total = 0.0
    last_completed: Optional[RouteStop] = None
    for index, stop in enumerate(route.stops):
        if stop.status != "completed":
            continue
        previous = route.depot if index == 0 else route.stops[index - 1].location
        if previous is not None:
            total += fetch_leg(previous.as_tuple(), stop.location.as_tuple(), provider).distance
        last_completed = stop
    if current_location is not None and last_completed is not None:
        total += fetch_leg(last_completed.location.as_tuple(), current_location.as_tuple(), provider).distance
    return total


def current_and_next_stop(
    route: Route,
    current_location: Optional[Coordinate] = None,
) -> tuple[Optional[RouteStop], Optional[RouteStop]]:
    first_open = next((index for index, stop in enumerate(route.stops) if stop.is_open), -1)
    if first_open < 0:
        return None, None

    current = route.stops[first_open]
    if current_location is not None:
        open_stops = route.open_stops
        nearest = nearest_index(
            current_location.lat,
            current_location.lng,
            [(stop.lat, stop.lng) for stop in open_stops],
        )
        current = open_stops[nearest]

    following = route.stops[first_open + 1] if first_open + 1 < len(route.stops) else None
    return current, following


def calculate_delay(route: Route, elapsed: float, completed: int) -> float:
    total_stops = len(route.stops)
    if total_stops == 0 or route.total_duration <= 0:
        return 0.0
    expected = elapsed / route.total_duration
    actual = completed / total_stops
    if actual >= expected:
        return 0.0
    return (expected * total_stops - completed) * (route.total_duration / total_stops)


def calculate_route_progress(
    route: Route,
    current_location: Optional[Coordinate] = None,
    now: Optional[datetime] = None,
    *,
    clock: Optional[Clock] = None,
    provider: DistanceProvider | None = None,
) -> RouteProgress:
    now = resolve_now(now, clock)
    elapsed = elapsed_minutes(route, now)
    total_stops = len(route.stops)
    completed = len(route.completed_stops)

    stop_pct = _percentage(completed, total_stops)
    traveled = distance_traveled(route, current_location, provider)
    distance_pct = _percentage(traveled, route.total_distance)
    time_pct = _percentage(elapsed, route.total_duration)
    overall = (
        stop_pct * settings.progress_weight_stops
        + distance_pct * settings.progress_weight_distance
        + time_pct * settings.progress_weight_time
    )

    current_stop, next_stop = current_and_next_stop(route, current_location)

    average = elapsed / completed if completed else 0.0
    remaining = total_stops - completed
    if completed:
        estimated_completion = now + timedelta(minutes=remaining * average)
    else:
        start = route_start_time(route)
        estimated_completion = (start or now) + timedelta(minutes=route.total_duration)

    delay = calculate_delay(route, elapsed, completed)
    on_schedule = delay <= settings.on_time_threshold_minutes

    if completed == 0:
        status = "not_started"
    elif not route.open_stops:
        status = "completed"
    elif not on_schedule:
        status = "delayed"
    else:
        status = "in_progress"

    return RouteProgress(
        crew_id=route.crew_id,
        route_id=route.id,
        date=route.date,
        stops_completed=completed,
        total_stops=total_stops,
        progress_percentage=round(overall),
        distance_traveled=round(traveled, 2),
        total_distance=route.total_distance,
        distance_percentage=round(distance_pct),
        time_elapsed=round(elapsed),
        estimated_total_time=route.total_duration,
        time_percentage=round(time_pct),
        current_stop=current_stop,
        next_stop=next_stop,
        current_location=current_location,
        average_time_per_stop=round(average),
        estimated_completion_time=estimated_completion,
        is_on_schedule=on_schedule,
        delay_minutes=round(delay),
        status=status,
        last_updated=now,
    )


def calculate_all_crew_progress(
    routes: Iterable[Route],
    crew_locations: Optional[Mapping[str, Coordinate]] = None,
    now: Optional[datetime] = None,
    *,
    clock: Optional[Clock] = None,
    provider: DistanceProvider | None = None,
) -> Dict[str, RouteProgress]:
    now = resolve_now(now, clock)
    locations = crew_locations or {}
    return {
        route.crew_id: calculate_route_progress(
            route, locations.get(route.crew_id), now, provider=provider
        )
        for route in routes
    }


def get_progress_summary(progress: Sequence[RouteProgress]) -> ProgressSummary:
    average = sum(item.progress_percentage for item in progress) / len(progress) if progress else 0.0
    return ProgressSummary(
        total_crews=len(progress),
        active_crews=sum(1 for item in progress if item.status == "in_progress"),
        completed_routes=sum(1 for item in progress if item.status == "completed"),
        average_progress=round(average),
        delayed_crews=sum(1 for item in progress if item.status == "delayed"),
        on_time_crews=sum(1 for item in progress if item.is_on_schedule),
    )
