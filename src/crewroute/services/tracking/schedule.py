"""Planned versus actual progress: on schedule, ahead or behind."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Literal, Optional

from ...clock import Clock, resolve_now
from ...config import settings
from ...models.domain import parse_hhmm
from ..routing.distance import DistanceProvider
from ..routing.models import Route
from .progress import elapsed_minutes
from .time_analytics import TimeBreakdown, calculate_time_breakdown

ScheduleState = Literal["on_schedule", "ahead", "behind"]


@dataclass(frozen=True, slots=True)
class ScheduleStatus:
    status: ScheduleState
    minutes_delta: int
    message: str
    estimated_finish_time: datetime
    stops_remaining: int
    total_drive_time: int
    total_work_time: int
    total_break_time: int
    total_idle_time: int


@dataclass(frozen=True, slots=True)
class ScheduleSummary:
    status: ScheduleStatus
    next_stop_eta: Optional[datetime]
    next_stop_eta_formatted: str
    estimated_finish_formatted: str
    progress_percentage: int


def format_time(value: datetime) -> str:
    """12-hour clock, e.g. ``9:05 AM``."""

    display_hours = value.hour % 12 or 12
    suffix = "PM" if value.hour >= 12 else "AM"
    return f"{display_hours}:{value.minute:02d} {suffix}"


def status_message(status: ScheduleState, minutes_delta: int, completed: int, total: int) -> str:
    progress = f"({completed}/{total} stops)"
    magnitude = abs(minutes_delta)
    if status == "on_schedule":
        return f"You're on track! {progress}"
    if status == "ahead":
        if magnitude < 10:
            return f"Slightly ahead of schedule! {progress}"
        return f"Great pace! {magnitude} min ahead {progress}"
    if magnitude < 10:
        return f"Running a bit behind {progress}"
    if magnitude < settings.significant_delay_minutes:
        return f"{magnitude} min behind schedule {progress}"
    return f"Significantly delayed: {magnitude} min behind {progress}"


def _average_work_and_drive(breakdown: TimeBreakdown, completed: int) -> tuple[float, float]:
    # The first completed stop has no drive leg, hence completed - 1.
    avg_work = breakdown.work_time / completed if completed > 0 else settings.default_work_minutes_per_stop
    avg_drive = (
        breakdown.drive_time / (completed - 1) if completed > 1 else settings.default_drive_minutes_per_stop
    )
    return avg_work, avg_drive


def estimate_finish_time(breakdown: TimeBreakdown, completed: int, remaining: int, now: datetime) -> datetime:
    if remaining == 0:
        return now
    avg_work, avg_drive = _average_work_and_drive(breakdown, completed)
    minutes = avg_work * remaining + avg_drive * max(remaining - 1, 0)
    return now + timedelta(minutes=minutes)


def calculate_schedule_status(
    route: Route,
    now: Optional[datetime] = None,
    *,
    clock: Optional[Clock] = None,
    provider: DistanceProvider | None = None,
) -> ScheduleStatus:
    now = resolve_now(now, clock)
    total = len(route.stops)
    completed = len(route.completed_stops)
    remaining = total - completed
    breakdown = calculate_time_breakdown(route, provider)

    common = dict(
        estimated_finish_time=estimate_finish_time(breakdown, completed, remaining, now),
        stops_remaining=remaining,
        total_drive_time=breakdown.drive_time,
        total_work_time=breakdown.work_time,
        total_break_time=breakdown.break_time,
        total_idle_time=breakdown.idle_time,
    )
    if total == 0:
        return ScheduleStatus(status="on_schedule", minutes_delta=0, message="N/A", **common)

    planned_duration = route.total_duration
    planned = elapsed_minutes(route, now) / planned_duration if planned_duration > 0 else 0.0
    actual = completed / total
    lower = planned * (1 - settings.schedule_tolerance)
    upper = planned * (1 + settings.schedule_tolerance)

    if lower <= actual <= upper:
        status: ScheduleState = "on_schedule"
        delta = 0
    elif actual > upper:
        status = "ahead"
        delta = round((actual - planned) * planned_duration)
    else:
        status = "behind"
        delta = -round((planned - actual) * planned_duration)

    return ScheduleStatus(
        status=status,
        minutes_delta=delta,
        message=status_message(status, delta, completed, total),
        **common,
    )


def next_stop_eta(
    route: Route,
    now: Optional[datetime] = None,
    *,
    clock: Optional[Clock] = None,
    provider: DistanceProvider | None = None,
) -> Optional[datetime]:
    """ETA at the next pending stop.

    While a stop is in progress: the remaining average work there plus an
    average drive. Otherwise the planned ``estimated_arrival`` of the next stop.
    """

    now = resolve_now(now, clock)
    upcoming = next((stop for stop in route.stops if stop.status == "pending"), None)
    if upcoming is None:
        return None

    active = next((stop for stop in route.stops if stop.status == "in_progress"), None)
    if active is not None:
        breakdown = calculate_time_breakdown(route, provider)
        avg_work, avg_drive = _average_work_and_drive(breakdown, len(route.completed_stops))
        remaining_at_current = avg_work
        if active.actual_arrival is not None:
            on_site = (now - active.actual_arrival).total_seconds() / 60.0
            remaining_at_current = max(avg_work - on_site, 0.0)
        return now + timedelta(minutes=remaining_at_current + avg_drive)

    if upcoming.estimated_arrival:
        try:
            return datetime.combine(route.date, parse_hhmm(upcoming.estimated_arrival))
        except ValueError:
            return None
    return None


def get_schedule_summary(
    route: Route,
    now: Optional[datetime] = None,
    *,
    clock: Optional[Clock] = None,
    provider: DistanceProvider | None = None,
) -> ScheduleSummary:
    now = resolve_now(now, clock)
    status = calculate_schedule_status(route, now, provider=provider)
    eta = next_stop_eta(route, now, provider=provider)
    total = len(route.stops)
    return ScheduleSummary(
        status=status,
        next_stop_eta=eta,
        next_stop_eta_formatted=format_time(eta) if eta is not None else "N/A",
        estimated_finish_formatted=format_time(status.estimated_finish_time),
        progress_percentage=round(len(route.completed_stops) / total * 100) if total else 0,
    )


def is_significantly_delayed(route: Route, now: Optional[datetime] = None, *, clock: Optional[Clock] = None) -> bool:
    status = calculate_schedule_status(route, now, clock=clock)
    return status.status == "behind" and abs(status.minutes_delta) >= settings.significant_delay_minutes
