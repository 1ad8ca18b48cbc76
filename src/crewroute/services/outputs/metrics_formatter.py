"""Route metrics and their CSV export."""

from __future__ import annotations

import csv
import datetime as dt
import io
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..routing.models import Route
from ..tracking.time_analytics import calculate_time_breakdown


@dataclass(frozen=True, slots=True)
class StopMetrics:
    customer_id: str
    drive_time: float
    work_time: float
    efficiency: float


@dataclass(frozen=True, slots=True)
class RouteMetrics:
    crew_id: str
    route_id: str
    date: dt.date
    total_drive_time: float
    total_work_time: float
    total_break_time: float
    efficiency: float
    company_id: Optional[str] = None
    stop_metrics: List[StopMetrics] = field(default_factory=list)


def _efficiency(work: float, total: float) -> float:
    return work / total if total > 0 else 0.0


def build_route_metrics(route: Route, company_id: str | None = None) -> RouteMetrics:
    stop_metrics: list[StopMetrics] = []
    total_drive = total_work = 0.0
    for stop in route.stops:
        drive = stop.drive_time or 0.0
        work = stop.work_time or 0.0
        total_drive += drive
        total_work += work
        stop_metrics.append(
            StopMetrics(
                customer_id=stop.customer_id,
                drive_time=drive,
                work_time=work,
                efficiency=_efficiency(work, drive + work),
            )
        )

    total_break = float(calculate_time_breakdown(route).break_time)
    return RouteMetrics(
        crew_id=route.crew_id,
        route_id=route.id,
        date=route.date,
        total_drive_time=total_drive,
        total_work_time=total_work,
        total_break_time=total_break,
        efficiency=_efficiency(total_work, total_drive + total_work + total_break),
        company_id=company_id,
        stop_metrics=stop_metrics,
    )


def _percent(value: float) -> str:
    return f"{value * 100:.1f}%"


def metrics_to_csv(metrics: Sequence[RouteMetrics]) -> str:
    """Route summary rows followed by a per-stop breakdown section."""

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(
        [
            "Date",
            "Crew ID",
            "Route ID",
            "Drive Time (min)",
            "Work Time (min)",
            "Break Time (min)",
            "Efficiency (%)",
            "Customer Stops",
        ]
    )
    for item in metrics:
        writer.writerow(
            [
                item.date.isoformat(),
                item.crew_id,
                item.route_id,
                f"{item.total_drive_time:.1f}",
                f"{item.total_work_time:.1f}",
                f"{item.total_break_time:.1f}",
                _percent(item.efficiency),
                len(item.stop_metrics),
            ]
        )

    writer.writerow([])
    writer.writerow(["Detailed Stop Breakdown"])
    writer.writerow(["Date", "Crew ID", "Customer ID", "Drive Time (min)", "Work Time (min)", "Efficiency (%)"])
    for item in metrics:
        for stop in item.stop_metrics:
            writer.writerow(
                [
                    item.date.isoformat(),
                    item.crew_id,
                    stop.customer_id,
                    f"{stop.drive_time:.1f}",
                    f"{stop.work_time:.1f}",
                    _percent(stop.efficiency),
                ]
            )
    return buffer.getvalue()
