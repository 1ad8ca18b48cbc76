from dataclasses import replace
from datetime import date, datetime, timedelta

import pytest

from src.crewroute.models.domain import Coordinate
from src.crewroute.services.geospatial import haversine_miles
from src.crewroute.services.routing.models import Route, RouteStop
from src.crewroute.services.tracking.progress import (
    calculate_all_crew_progress,
    calculate_route_progress,
    get_progress_summary,
)
from src.crewroute.services.tracking.transitions import record_arrival, record_departure, skip_stop

T0 = datetime(2024, 6, 3, 8, 0)
DEPOT = Coordinate(30.0, -81.7)


def _at(minutes: float) -> datetime:
    return T0 + timedelta(minutes=minutes)


def _route(count: int = 4, total_duration: float = 120.0, crew_id: str = "A") -> Route:
    stops = tuple(
        RouteStop(
            customer_id=f"C{i}",
            customer_name=f"Customer {i}",
            lat=30.0 + (i + 1) * 0.05,
            lng=-81.7,
            order=i,
            estimated_arrival=f"08:{10 + i * 10:02d}",
        )
        for i in range(count)
    )
    legs = [DEPOT, *(stop.location for stop in stops), DEPOT]
    total_distance = sum(haversine_miles(a.lat, a.lng, b.lat, b.lng) for a, b in zip(legs, legs[1:]))
    return Route(
        id=f"{crew_id}-2024-06-03",
        crew_id=crew_id,
        date=date(2024, 6, 3),
        stops=stops,
        total_distance=total_distance,
        total_duration=total_duration,
        depot=DEPOT,
        planned_start=T0,
    )


def _complete(route: Route, customer_id: str, arrive: float, depart: float) -> Route:
    route = record_arrival(route, customer_id, _at(arrive))
    return record_departure(route, customer_id, _at(depart))


def test_not_started_route():
    progress = calculate_route_progress(_route(), now=_at(0))

    assert progress.status == "not_started"
    assert progress.stops_completed == 0
    assert progress.progress_percentage == 0
    assert progress.current_stop.customer_id == "C0"
    assert progress.next_stop.customer_id == "C1"
    assert progress.delay_minutes == 0
    assert progress.estimated_completion_time == _at(120)


def test_progress_blends_weighted_ratios():
    route = _complete(_route(), "C0", 5, 30)

    progress = calculate_route_progress(route, now=_at(30))

    # 1/4 stops, depot->C0 is 1/8 of the round trip, 30/120 minutes elapsed
    assert progress.stops_completed == 1
    assert progress.distance_traveled == pytest.approx(haversine_miles(30.0, -81.7, 30.05, -81.7), abs=0.01)
    assert progress.time_percentage == 25
    assert progress.progress_percentage == 21
    assert progress.average_time_per_stop == 30
    assert progress.estimated_completion_time == _at(120)
    assert progress.status == "in_progress"
    assert progress.is_on_schedule


def test_live_location_adds_leg_from_last_completed_stop():
    route = _complete(_route(), "C0", 5, 30)
    route = _complete(route, "C1", 35, 60)
    location = Coordinate(30.125, -81.7)

    with_location = calculate_route_progress(route, location, now=_at(60))
    without = calculate_route_progress(route, now=_at(60))

    extra = haversine_miles(30.10, -81.7, 30.125, -81.7)
    assert with_location.distance_traveled == pytest.approx(without.distance_traveled + extra, abs=0.02)
    assert with_location.current_stop.customer_id == "C2"
    assert with_location.current_location == location


def test_current_stop_is_nearest_open_stop_to_location():
    progress = calculate_route_progress(_route(), Coordinate(30.19, -81.7), now=_at(0))

    assert progress.current_stop.customer_id == "C3"
    assert progress.next_stop.customer_id == "C1"


def test_delay_marks_route_delayed():
    route = _complete(_route(), "C0", 5, 30)

    progress = calculate_route_progress(route, now=_at(90))

    # expected 3 stops by now, 1 done, 30 planned minutes per stop
    assert progress.delay_minutes == 60
    assert progress.is_on_schedule is False
    assert progress.status == "delayed"


def test_completed_route_with_skipped_stop():
    route = _route(2)
    route = _complete(route, "C0", 5, 30)
    route = skip_stop(route, "C1")

    progress = calculate_route_progress(route, now=_at(40))

    assert progress.status == "completed"
    assert progress.stops_completed == 1
    assert progress.current_stop is None
    assert progress.next_stop is None


def test_fully_skipped_route_is_not_started():
    route = _route(3)
    for i in range(3):
        route = skip_stop(route, f"C{i}")

    progress = calculate_route_progress(route, now=_at(40))

    assert progress.stops_completed == 0
    assert progress.status == "not_started"
    assert progress.current_stop is None


def test_progress_never_decreases_when_stops_complete():
    route = _route(6, total_duration=180)
    now = _at(200)
    last = calculate_route_progress(route, now=now).progress_percentage
    for i in range(6):
        route = _complete(route, f"C{i}", i * 30 + 5, i * 30 + 25)
        current = calculate_route_progress(route, now=now)
        assert current.progress_percentage >= last
        assert current.stops_completed == i + 1
        last = current.progress_percentage
    # every stop done, the return leg to the depot is not driven yet
    assert last == round(100 * 0.4 + 50 * 0.3 + 100 * 0.3)


def test_progress_is_idempotent():
    route = _complete(_route(), "C0", 5, 30)
    location = Coordinate(30.07, -81.7)

    assert calculate_route_progress(route, location, now=_at(45)) == calculate_route_progress(
        route, location, now=_at(45)
    )


def test_start_time_falls_back_to_first_estimated_arrival():
    route = replace(_route(), planned_start=None)

    progress = calculate_route_progress(route, now=_at(40))

    assert progress.time_elapsed == 30


def test_empty_route():
    route = Route(id="A-2024-06-03", crew_id="A", date=date(2024, 6, 3))
    progress = calculate_route_progress(route, now=_at(0))

    assert progress.progress_percentage == 0
    assert progress.delay_minutes == 0
    assert progress.status == "not_started"


def test_all_crew_progress_and_summary():
    done = _route(1, crew_id="A")
    done = _complete(done, "C0", 5, 20)
    idle = _route(crew_id="B")
    late = _complete(_route(crew_id="C"), "C0", 5, 30)

    progress = calculate_all_crew_progress([done, idle, late], {"B": Coordinate(30.05, -81.7)}, now=_at(90))

    assert set(progress) == {"A", "B", "C"}
    assert progress["B"].current_location == Coordinate(30.05, -81.7)
    summary = get_progress_summary(list(progress.values()))
    assert summary.total_crews == 3
    assert summary.completed_routes == 1
    assert summary.delayed_crews == 1
    assert summary.active_crews == 0
    assert get_progress_summary([]).average_progress == 0
