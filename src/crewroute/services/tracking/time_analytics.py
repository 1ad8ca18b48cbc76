"""Classify route time into drive, work, break and idle buckets.

The classification is a heuristic over recorded timestamps. Intervals that
cannot be classified (missing or out-of-order timestamps) count as zero.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from ...config import settings
from ..routing.distance import DistanceProvider
from ..routing.models import Route, RouteStop
from ..routing.solver import fetch_leg
from .transitions import compute_work_minutes


@dataclass(frozen=True, slots=True)
class StopAnalytics:
    customer_id: str
    customer_name: str
    work_duration: float
    drive_duration: float
    efficiency: float


@dataclass(frozen=True, slots=True)
class TimeBreakdown:
    drive_time: int
    work_time: int
    break_time: int
    idle_time: int
    stop_analytics: List[StopAnalytics] = field(default_factory=list)

    @property
    def total_time(self) -> int:
        return self.drive_time + self.work_time + self.break_time + self.idle_time


@dataclass(frozen=True, slots=True)
class PerformanceSummary:
    total_time: int
    drive_time_percentage: float
    work_time_percentage: float
    break_time_percentage: float
    efficiency: float
    average_time_per_stop: float
    fastest_stop: Optional[StopAnalytics]
    slowest_stop: Optional[StopAnalytics]


@dataclass(frozen=True, slots=True)
class FormattedTimeBreakdown:
    drive: str
    work: str
    break_: str
    idle: str
    total: str


def _classifiable(stop: RouteStop) -> bool:
    return (
        stop.status == "completed"
        and stop.actual_arrival is not None
        and stop.actual_departure is not None
        and stop.actual_departure >= stop.actual_arrival
    )


def _expected_drive_minutes(previous: RouteStop, stop: RouteStop, provider: DistanceProvider | None) -> float:
    miles = fetch_leg(previous.location.as_tuple(), stop.location.as_tuple(), provider).distance
    return miles * settings.minutes_per_mile


def calculate_time_breakdown(route: Route, provider: DistanceProvider | None = None) -> TimeBreakdown:
    drive_total = work_total = break_total = idle_total = 0.0
    analytics: list[StopAnalytics] = []

    stops = [stop for stop in route.stops if _classifiable(stop)]
    for index, stop in enumerate(stops):
        work = stop.work_time if stop.work_time is not None else (compute_work_minutes(stop) or 0.0)
        work_total += work

        drive = 0.0
        if index > 0:
            previous = stops[index - 1]
            gap = max(0.0, (stop.actual_arrival - previous.actual_departure).total_seconds() / 60.0)
            expected = _expected_drive_minutes(previous, stop, provider)
            if gap > settings.break_threshold_minutes:
                if gap - expected > 0:
                    break_total += gap - expected
            elif gap > expected * settings.idle_factor:
                idle_total += gap - expected
            drive = min(gap, expected * settings.idle_factor)
            drive_total += drive

        spent = drive + work
        analytics.append(
            StopAnalytics(
                customer_id=stop.customer_id,
                customer_name=stop.customer_name,
                work_duration=work,
                drive_duration=drive,
                efficiency=work / spent if spent > 0 else 0.0,
            )
        )

    return TimeBreakdown(
        drive_time=round(drive_total),
        work_time=round(work_total),
        break_time=round(break_total),
        idle_time=round(idle_total),
        stop_analytics=analytics,
    )


def calculate_route_efficiency(breakdown: TimeBreakdown) -> float:
    """Share of classified time spent working, between 0 and 1."""

    total = breakdown.total_time
    return breakdown.work_time / total if total else 0.0


def get_performance_summary(route: Route, provider: DistanceProvider | None = None) -> PerformanceSummary:
    breakdown = calculate_time_breakdown(route, provider)
    total = breakdown.total_time

    fastest: Optional[StopAnalytics] = None
    slowest: Optional[StopAnalytics] = None
    for item in breakdown.stop_analytics:
        if fastest is None or item.work_duration < fastest.work_duration:
            fastest = item
        if slowest is None or item.work_duration > slowest.work_duration:
            slowest = item

    completed = len(route.completed_stops)

    def share(value: int) -> float:
        return value / total * 100.0 if total else 0.0

    return PerformanceSummary(
        total_time=total,
        drive_time_percentage=share(breakdown.drive_time),
        work_time_percentage=share(breakdown.work_time),
        break_time_percentage=share(breakdown.break_time),
        efficiency=calculate_route_efficiency(breakdown),
        average_time_per_stop=breakdown.work_time / completed if completed else 0.0,
        fastest_stop=fastest,
        slowest_stop=slowest,
    )


def format_duration(minutes: float) -> str:
    """``45min``, ``2h`` or ``1h 30min``."""

    if minutes < 60:
        return f"{round(minutes)}min"
    hours = int(minutes // 60)
    mins = round(minutes % 60)
    if mins == 60:
        hours, mins = hours + 1, 0
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h {mins}min"


def get_formatted_time_breakdown(route: Route, provider: DistanceProvider | None = None) -> FormattedTimeBreakdown:
    breakdown = calculate_time_breakdown(route, provider)
    return FormattedTimeBreakdown(
        drive=format_duration(breakdown.drive_time),
        work=format_duration(breakdown.work_time),
        break_=format_duration(breakdown.break_time),
        idle=format_duration(breakdown.idle_time),
        total=format_duration(breakdown.total_time),
    )
