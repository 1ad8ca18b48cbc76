"""Distance/duration provider interface and the Haversine default."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

from ...config import settings
from ..geospatial import haversine_matrix_miles, haversine_miles


class DistanceProviderError(RuntimeError):
    """The provider could not produce distances (network, quota, configuration)."""


@dataclass(slots=True)
class DistanceMatrix:
    """Pairwise distances in miles and durations in minutes.

    ``None`` marks an unreachable pair.
    """

    distances: list[list[Optional[float]]]
    durations: Optional[list[list[Optional[float]]]] = None
    source: str = "provider"

    def __len__(self) -> int:
        return len(self.distances)


@dataclass(slots=True)
class Leg:
    distance: float
    duration: float
    source: str = "provider"


class DistanceProvider(Protocol):
    def matrix(self, coordinates: Sequence[tuple[float, float]]) -> DistanceMatrix: ...

    def leg(self, origin: tuple[float, float], destination: tuple[float, float]) -> Leg: ...


class HaversineDistanceProvider:
    """Great-circle distances with durations at a fixed minutes-per-mile rate."""

    def __init__(self, minutes_per_mile: float | None = None) -> None:
        self.minutes_per_mile = minutes_per_mile if minutes_per_mile is not None else settings.minutes_per_mile

    def matrix(self, coordinates: Sequence[tuple[float, float]]) -> DistanceMatrix:
        distances = haversine_matrix_miles(coordinates)
        durations = [[value * self.minutes_per_mile for value in row] for row in distances]
        return DistanceMatrix(distances=distances, durations=durations, source="haversine")

    def leg(self, origin: tuple[float, float], destination: tuple[float, float]) -> Leg:
        miles = haversine_miles(origin[0], origin[1], destination[0], destination[1])
        return Leg(distance=miles, duration=miles * self.minutes_per_mile, source="haversine")


def validate_matrix(matrix: DistanceMatrix, size: int) -> None:
    """Raise ``DistanceProviderError`` if the matrix shape does not match ``size``."""

    if len(matrix.distances) != size or any(len(row) != size for row in matrix.distances):
        raise DistanceProviderError(
            f"Distance matrix shape mismatch: expected {size}x{size}, got {len(matrix.distances)} rows"
        )
    if matrix.durations is not None and (
        len(matrix.durations) != size or any(len(row) != size for row in matrix.durations)
    ):
        raise DistanceProviderError(f"Duration matrix shape mismatch: expected {size}x{size}")
