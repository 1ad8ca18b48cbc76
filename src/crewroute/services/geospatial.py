"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

EARTH_RADIUS_KM = 6371.0
KM_PER_MILE = 1.609344


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def haversine_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    return haversine_km(lat1, lon1, lat2, lon2) / KM_PER_MILE


def haversine_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    return haversine_km(lat1, lon1, lat2, lon2) * 1000.0


def bearing_degrees(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate the initial bearing from (lat1, lon1) to (lat2, lon2)."""

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_lambda = math.radians(lon2 - lon1)
    y = math.sin(delta_lambda) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(delta_lambda)
    bearing = math.degrees(math.atan2(y, x))
    return (bearing + 360) % 360


def haversine_matrix_miles(coordinates: Sequence[tuple[float, float]]) -> list[list[float]]:
    """Pairwise great-circle distances in miles for (lat, lon) pairs."""

    if not coordinates:
        return []
    points = np.radians(np.asarray(coordinates, dtype=float))
    lat = points[:, 0][:, np.newaxis]
    lon = points[:, 1][:, np.newaxis]
    d_phi = lat.T - lat
    d_lambda = lon.T - lon
    a = np.sin(d_phi / 2) ** 2 + np.cos(lat) * np.cos(lat.T) * np.sin(d_lambda / 2) ** 2
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(np.clip(1 - a, 0.0, None)))
    matrix = EARTH_RADIUS_KM * c / KM_PER_MILE
    np.fill_diagonal(matrix, 0.0)
    return matrix.tolist()


def nearest_index(lat: float, lon: float, candidates: Sequence[tuple[float, float]]) -> int:
    """Index of the candidate closest to (lat, lon); -1 for an empty sequence.

    Ties resolve to the earliest candidate.
    """

    best_index = -1
    best_distance = math.inf
    for index, (c_lat, c_lon) in enumerate(candidates):
        distance = haversine_km(lat, lon, c_lat, c_lon)
        if distance < best_distance:
            best_distance = distance
            best_index = index
    return best_index
