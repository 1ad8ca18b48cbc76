"""Arrival detection from live crew locations."""

from __future__ import annotations

from typing import Optional, Sequence

from ...config import settings
from ...models.domain import Coordinate
from ..geospatial import haversine_meters, nearest_index
from ..routing.models import Route, RouteStop


def detect_arrival(location: Coordinate, stop: RouteStop, threshold_meters: float | None = None) -> bool:
    threshold = threshold_meters if threshold_meters is not None else settings.arrival_threshold_meters
    return haversine_meters(location.lat, location.lng, stop.lat, stop.lng) <= threshold


def find_nearest_stop(location: Coordinate, stops: Sequence[RouteStop]) -> Optional[RouteStop]:
    index = nearest_index(location.lat, location.lng, [(stop.lat, stop.lng) for stop in stops])
    return stops[index] if index >= 0 else None


def auto_detect_arrival(
    location: Coordinate,
    route: Route,
    threshold_meters: float | None = None,
) -> Optional[RouteStop]:
    """The next pending stop if the crew is inside its geofence and not already on site."""

    if any(stop.status == "in_progress" for stop in route.stops):
        return None
    for stop in route.stops:
        if stop.status == "pending":
            return stop if detect_arrival(location, stop, threshold_meters) else None
    return None
