"""Route planning and tracking endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import PlainTextResponse

from ...config import settings
from ...data.repository import InMemoryProvider, JsonFileProvider
from ...engine import RouteEngine
from ...schemas.routing import (
    DailyRoutesRequest,
    DailyRoutesResponse,
    MetricsExportRequest,
    ProgressRequest,
    ScheduleStatusRequest,
    StopAction,
    StopEventRequest,
    TimeBreakdownRequest,
)
from ...services.outputs.metrics_formatter import build_route_metrics, metrics_to_csv
from ...services.routing.distance import DistanceProvider, DistanceProviderError
from ...services.routing.models import Route
from ...services.tracking.progress import RouteProgress
from ...services.tracking.schedule import ScheduleStatus
from ...services.tracking.time_analytics import TimeBreakdown
from ...services.tracking.transitions import StopTransitionError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/routes", tags=["routes"])


def _distance_provider() -> DistanceProvider | None:
    if not settings.osrm_base_url:
        return None
    from ...services.routing.osrm_client import OSRMDistanceProvider

    try:
        return OSRMDistanceProvider()
    except DistanceProviderError as exc:
        logger.warning(f"OSRM provider unavailable: {exc}. Using haversine distances.")
        return None


def _engine(payload: DailyRoutesRequest | None = None) -> RouteEngine:
    if payload is not None and payload.customers is not None:
        data_provider = InMemoryProvider(
            payload.customers,
            crews=payload.crews,
            members=payload.members,
            base_locations={payload.company_id: payload.base_location} if payload.base_location else None,
        )
    else:
        data_provider = JsonFileProvider()
    return RouteEngine(data_provider, _distance_provider())


def _internal_error(action: str, exc: Exception) -> HTTPException:
    logging.exception(f"Error {action}: {exc}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed {action}: {str(exc)}",
    )


@router.post("/daily", response_model=DailyRoutesResponse, status_code=status.HTTP_200_OK)
def daily_routes(payload: DailyRoutesRequest) -> DailyRoutesResponse:
    try:
        engine = _engine(payload)
        routes = engine.compute_daily_routes(payload.company_id, payload.date)
        return DailyRoutesResponse(company_id=payload.company_id, date=payload.date, routes=routes)
    except (ValueError, FileNotFoundError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        raise _internal_error("computing daily routes", exc) from exc


@router.post("/stops/{action}", response_model=Route, status_code=status.HTTP_200_OK)
def stop_event(action: StopAction, payload: StopEventRequest) -> Route:
    engine = _engine()
    handlers = {
        "arrive": engine.record_arrival,
        "depart": engine.record_departure,
        "pause": engine.pause_stop,
        "resume": engine.resume_stop,
    }
    try:
        if action == "skip":
            return engine.skip_stop(payload.route, payload.customer_id)
        return handlers[action](payload.route, payload.customer_id, payload.timestamp)
    except StopTransitionError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        raise _internal_error(f"recording {action} event", exc) from exc


@router.post("/progress", response_model=RouteProgress, status_code=status.HTTP_200_OK)
def route_progress(payload: ProgressRequest) -> RouteProgress:
    try:
        return _engine().get_progress(payload.route, payload.current_location, payload.now)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        raise _internal_error("calculating route progress", exc) from exc


@router.post("/schedule-status", response_model=ScheduleStatus, status_code=status.HTTP_200_OK)
def schedule_status(payload: ScheduleStatusRequest) -> ScheduleStatus:
    try:
        return _engine().get_schedule_status(payload.route, payload.now)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        raise _internal_error("calculating schedule status", exc) from exc


@router.post("/time-breakdown", response_model=TimeBreakdown, status_code=status.HTTP_200_OK)
def time_breakdown(payload: TimeBreakdownRequest) -> TimeBreakdown:
    try:
        return _engine().get_time_breakdown(payload.route)
    except Exception as exc:
        raise _internal_error("calculating time breakdown", exc) from exc


@router.post("/metrics.csv", response_class=PlainTextResponse, status_code=status.HTTP_200_OK)
def export_metrics(payload: MetricsExportRequest) -> PlainTextResponse:
    try:
        metrics = [build_route_metrics(route, payload.company_id) for route in payload.routes]
        return PlainTextResponse(metrics_to_csv(metrics), media_type="text/csv")
    except Exception as exc:
        raise _internal_error("exporting route metrics", exc) from exc
