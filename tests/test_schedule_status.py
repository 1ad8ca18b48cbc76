from datetime import date, datetime, timedelta

import pytest

from src.crewroute.services.routing.models import Route, RouteStop
from src.crewroute.services.tracking.schedule import (
    calculate_schedule_status,
    format_time,
    get_schedule_summary,
    is_significantly_delayed,
    next_stop_eta,
)
from src.crewroute.services.tracking.transitions import record_arrival, record_departure

T0 = datetime(2024, 6, 3, 8, 0)


def _at(minutes: float) -> datetime:
    return T0 + timedelta(minutes=minutes)


def _route(count: int = 10, total_duration: float = 100.0) -> Route:
    stops = tuple(
        RouteStop(
            customer_id=f"C{i}",
            customer_name=f"Customer {i}",
            lat=30.0 + i * 0.1,
            lng=-81.7,
            order=i,
            estimated_arrival=(T0 + timedelta(minutes=10 * (i + 1))).strftime("%H:%M"),
        )
        for i in range(count)
    )
    return Route(
        id="A-2024-06-03",
        crew_id="A",
        date=date(2024, 6, 3),
        stops=stops,
        total_duration=total_duration,
        planned_start=T0,
    )


def _with_completed(count: int) -> Route:
    route = _route()
    for i in range(count):
        route = record_arrival(route, f"C{i}", _at(i * 8))
        route = record_departure(route, f"C{i}", _at(i * 8 + 5))
    return route


def test_half_done_at_half_time_is_on_schedule():
    status = calculate_schedule_status(_with_completed(5), now=_at(50))

    assert status.status == "on_schedule"
    assert status.minutes_delta == 0
    assert status.message == "You're on track! (5/10 stops)"
    assert status.stops_remaining == 5


@pytest.mark.parametrize(
    "elapsed, state, delta, message",
    [
        (20, "ahead", 30, "Great pace! 30 min ahead (5/10 stops)"),
        (45, "ahead", 5, "Slightly ahead of schedule! (5/10 stops)"),
        (55, "behind", -5, "Running a bit behind (5/10 stops)"),
        (60, "behind", -10, "10 min behind schedule (5/10 stops)"),
        (90, "behind", -40, "Significantly delayed: 40 min behind (5/10 stops)"),
    ],
)
def test_classification_and_messages(elapsed, state, delta, message):
    status = calculate_schedule_status(_with_completed(5), now=_at(elapsed))

    assert status.status == state
    assert status.minutes_delta == delta
    assert status.message == message


def test_significant_delay_flag():
    route = _with_completed(5)
    assert is_significantly_delayed(route, now=_at(90)) is True
    assert is_significantly_delayed(route, now=_at(60)) is False


def test_empty_route_reports_not_applicable():
    route = Route(id="A-2024-06-03", crew_id="A", date=date(2024, 6, 3))
    status = calculate_schedule_status(route, now=_at(30))

    assert status.status == "on_schedule"
    assert status.message == "N/A"
    assert status.estimated_finish_time == _at(30)


def test_finish_estimate_uses_defaults_without_history():
    status = calculate_schedule_status(_route(), now=_at(0))

    # 10 stops at 20 min of work plus 9 drives at 10 min
    assert status.estimated_finish_time == _at(10 * 20 + 9 * 10)


def test_finish_estimate_uses_observed_averages():
    route = _route()
    route = record_arrival(route, "C0", _at(0))
    route = record_departure(route, "C0", _at(20))
    route = record_arrival(route, "C1", _at(30))
    route = record_departure(route, "C1", _at(50))

    status = calculate_schedule_status(route, now=_at(50))

    # 20 min work per stop, 10 min drive per leg, 8 stops left
    assert status.total_work_time == 40
    assert status.total_drive_time == 10
    assert status.estimated_finish_time == _at(50 + 8 * 20 + 7 * 10)


def test_finished_route_finishes_now():
    route = _route(2)
    for i in range(2):
        route = record_arrival(route, f"C{i}", _at(i * 30))
        route = record_departure(route, f"C{i}", _at(i * 30 + 20))

    status = calculate_schedule_status(route, now=_at(70))
    assert status.estimated_finish_time == _at(70)
    assert status.stops_remaining == 0


def test_next_stop_eta_from_plan_and_from_active_stop():
    route = _route()
    assert next_stop_eta(route, now=_at(0)) == _at(10)

    active = record_arrival(route, "C0", _at(5))
    # defaults: 20 min of work, 5 already spent, then a 10 min drive
    assert next_stop_eta(active, now=_at(10)) == _at(10 + 15 + 10)


def test_schedule_summary_formats_times():
    summary = get_schedule_summary(_with_completed(5), now=_at(50))

    assert summary.progress_percentage == 50
    assert summary.next_stop_eta_formatted == "9:00 AM"
    assert summary.status.status == "on_schedule"


@pytest.mark.parametrize(
    "value, expected",
    [
        (datetime(2024, 6, 3, 0, 5), "12:05 AM"),
        (datetime(2024, 6, 3, 9, 30), "9:30 AM"),
        (datetime(2024, 6, 3, 12, 0), "12:00 PM"),
        (datetime(2024, 6, 3, 17, 45), "5:45 PM"),
    ],
)
def test_format_time(value, expected):
    assert format_time(value) == expected
