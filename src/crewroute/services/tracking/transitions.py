"""Pure stop state transitions driven by crew events.

Every function takes a ``Route`` and returns a new one; the input is never
mutated. Stop order is preserved.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from ...clock import Clock, resolve_now
from ..routing.models import Route, RouteStop

logger = logging.getLogger(__name__)


class StopTransitionError(ValueError):
    """An event arrived out of order for the stop's current state."""


class UnknownStopError(ValueError):
    """The route has no stop for the given customer."""


@dataclass(slots=True)
class StopTimingInfo:
    customer_id: str
    status: str
    work_time: Optional[float]
    drive_time: Optional[float]
    paused_minutes: float
    is_active: bool
    is_paused: bool


def _minutes_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 60.0


def _locate(route: Route, customer_id: str) -> tuple[int, RouteStop]:
    index = route.index_of(customer_id)
    if index < 0:
        raise UnknownStopError(f"Customer {customer_id} is not on route {route.id}")
    return index, route.stops[index]


def _with_stop(route: Route, index: int, stop: RouteStop) -> Route:
    stops = route.stops[:index] + (stop,) + route.stops[index + 1 :]
    status = route.status
    if stops and not any(item.is_open for item in stops):
        status = "completed"
    elif any(item.status != "pending" for item in stops):
        status = "in_progress"
    return replace(route, stops=stops, status=status)


def compute_work_minutes(stop: RouteStop, until: Optional[datetime] = None) -> Optional[float]:
    """Time on site excluding pauses, up to departure (or ``until`` for a live stop)."""

    if stop.actual_arrival is None:
        return None
    end = stop.actual_departure or until
    if end is None:
        return None
    paused = stop.paused_minutes
    if stop.is_paused and stop.paused_at is not None and end > stop.paused_at:
        paused += _minutes_between(stop.paused_at, end)
    return max(0.0, _minutes_between(stop.actual_arrival, end) - paused)


def record_arrival(
    route: Route,
    customer_id: str,
    timestamp: Optional[datetime] = None,
    *,
    clock: Optional[Clock] = None,
) -> Route:
    index, stop = _locate(route, customer_id)
    if stop.status != "pending":
        raise StopTransitionError(f"Cannot arrive at stop {customer_id}: status is '{stop.status}'")
    arrived = resolve_now(timestamp, clock)
    updated = replace(
        stop,
        status="in_progress",
        actual_arrival=arrived,
        clock_in_time=stop.clock_in_time or arrived,
    )
    logger.info(f"Crew {route.crew_id} arrived at {customer_id} at {arrived.isoformat()}")
    return _with_stop(route, index, updated)


def _previous_departure(route: Route, index: int) -> Optional[datetime]:
    for earlier in reversed(route.stops[:index]):
        if earlier.actual_departure is not None:
            return earlier.actual_departure
    return None


def record_departure(
    route: Route,
    customer_id: str,
    timestamp: Optional[datetime] = None,
    *,
    clock: Optional[Clock] = None,
) -> Route:
    index, stop = _locate(route, customer_id)
    if stop.status != "in_progress" or stop.actual_arrival is None:
        raise StopTransitionError(f"Cannot depart from stop {customer_id}: status is '{stop.status}'")
    departed = resolve_now(timestamp, clock)
    if departed < stop.actual_arrival:
        raise StopTransitionError(
            f"Departure {departed.isoformat()} is before arrival {stop.actual_arrival.isoformat()} at {customer_id}"
        )
    if stop.is_paused and departed < stop.paused_at:
        raise StopTransitionError(
            f"Departure from {customer_id} is before the open pause at {stop.paused_at.isoformat()}"
        )

    paused_minutes = stop.paused_minutes
    resumed_at = stop.resumed_at
    if stop.is_paused:
        paused_minutes += max(0.0, _minutes_between(stop.paused_at, departed))
        resumed_at = departed

    drive_time = None
    previous = _previous_departure(route, index)
    if previous is not None:
        drive_time = max(0.0, _minutes_between(previous, stop.actual_arrival))

    updated = replace(
        stop,
        status="completed",
        actual_departure=departed,
        resumed_at=resumed_at,
        paused_minutes=paused_minutes,
        work_time=max(0.0, _minutes_between(stop.actual_arrival, departed) - paused_minutes),
        drive_time=drive_time,
    )
    logger.info(f"Crew {route.crew_id} completed {customer_id} in {updated.work_time:.1f} min")
    return _with_stop(route, index, updated)


def pause_stop(
    route: Route,
    customer_id: str,
    timestamp: Optional[datetime] = None,
    *,
    clock: Optional[Clock] = None,
) -> Route:
    index, stop = _locate(route, customer_id)
    if stop.status != "in_progress":
        raise StopTransitionError(f"Cannot pause stop {customer_id}: status is '{stop.status}'")
    if stop.is_paused:
        raise StopTransitionError(f"Stop {customer_id} is already paused")
    paused = resolve_now(timestamp, clock)
    if paused < stop.actual_arrival:
        raise StopTransitionError(f"Pause at {customer_id} is before arrival")
    return _with_stop(route, index, replace(stop, paused_at=paused))


def resume_stop(
    route: Route,
    customer_id: str,
    timestamp: Optional[datetime] = None,
    *,
    clock: Optional[Clock] = None,
) -> Route:
    index, stop = _locate(route, customer_id)
    if stop.status != "in_progress":
        raise StopTransitionError(f"Cannot resume stop {customer_id}: status is '{stop.status}'")
    if not stop.is_paused:
        raise StopTransitionError(f"Stop {customer_id} is not paused")
    resumed = resolve_now(timestamp, clock)
    if resumed < stop.paused_at:
        raise StopTransitionError(f"Resume at {customer_id} is before the pause")
    updated = replace(
        stop,
        resumed_at=resumed,
        paused_minutes=stop.paused_minutes + _minutes_between(stop.paused_at, resumed),
    )
    return _with_stop(route, index, updated)


def skip_stop(route: Route, customer_id: str) -> Route:
    index, stop = _locate(route, customer_id)
    if stop.status != "pending":
        raise StopTransitionError(f"Cannot skip stop {customer_id}: status is '{stop.status}'")
    logger.info(f"Crew {route.crew_id} skipped {customer_id}")
    return _with_stop(route, index, replace(stop, status="skipped"))


def stop_timing_info(
    route: Route,
    customer_id: str,
    now: Optional[datetime] = None,
    *,
    clock: Optional[Clock] = None,
) -> StopTimingInfo:
    _, stop = _locate(route, customer_id)
    current = resolve_now(now, clock)
    work_time = stop.work_time if stop.work_time is not None else compute_work_minutes(stop, current)
    return StopTimingInfo(
        customer_id=stop.customer_id,
        status=stop.status,
        work_time=work_time,
        drive_time=stop.drive_time,
        paused_minutes=stop.paused_minutes,
        is_active=stop.status == "in_progress",
        is_paused=stop.status == "in_progress" and stop.is_paused,
    )
