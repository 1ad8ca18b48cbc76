"""Route solver: distance matrix sourcing plus TSP ordering for one crew."""

from __future__ import annotations

import logging
from typing import Literal, Optional, Sequence

from ...config import settings
from ...models.domain import Coordinate, Customer
from .distance import (
    DistanceMatrix,
    DistanceProvider,
    DistanceProviderError,
    HaversineDistanceProvider,
    Leg,
    validate_matrix,
)
from .models import OptimizedRoute
from .tsp import solve_tour, tour_distance

logger = logging.getLogger(__name__)

Objective = Literal["distance", "duration"]


def _prepare_matrix(rows: list[list[Optional[float]]], penalty: float) -> list[list[float]]:
    """Replace unreachable (``None``) cells with ``penalty`` and zero the diagonal."""

    prepared = [[float(value) if value is not None else penalty for value in row] for row in rows]
    for index in range(len(prepared)):
        prepared[index][index] = 0.0
    return prepared


def fetch_matrix(
    coordinates: Sequence[tuple[float, float]],
    provider: DistanceProvider | None,
) -> DistanceMatrix:
    """Ask ``provider`` for a matrix, falling back to Haversine on any provider failure."""

    fallback = HaversineDistanceProvider()
    if provider is None or isinstance(provider, HaversineDistanceProvider):
        return (provider or fallback).matrix(coordinates)
    try:
        matrix = provider.matrix(coordinates)
        validate_matrix(matrix, len(coordinates))
        return matrix
    except DistanceProviderError as e:
        logger.warning(f"Distance provider failed for {len(coordinates)} points: {e}. Using haversine fallback.")
        return fallback.matrix(coordinates)


def fetch_leg(
    origin: tuple[float, float],
    destination: tuple[float, float],
    provider: DistanceProvider | None,
) -> Leg:
    """Point-to-point distance and duration with the same Haversine fallback."""

    fallback = HaversineDistanceProvider()
    if provider is None or isinstance(provider, HaversineDistanceProvider):
        return (provider or fallback).leg(origin, destination)
    try:
        return provider.leg(origin, destination)
    except DistanceProviderError as e:
        logger.warning(f"Distance provider leg lookup failed: {e}. Using haversine fallback.")
        return fallback.leg(origin, destination)


def optimize_route(
    customers: Sequence[Customer],
    depot: Coordinate,
    *,
    provider: DistanceProvider | None = None,
    objective: Objective = "distance",
) -> OptimizedRoute:
    """Reorder ``customers`` to approximately minimise the depot round trip.

    Up to ``held_karp_max_customers`` customers are solved exactly; larger sets
    use nearest-neighbour construction improved by 2-opt.
    """

    if objective not in ("distance", "duration"):
        raise ValueError(f"Unsupported optimization objective '{objective}'")

    customers = list(customers)
    if not customers:
        return OptimizedRoute(
            customers=[],
            total_distance=0.0,
            estimated_duration=0.0,
            travel_minutes=0.0,
            optimized=True,
            distance_source="none",
            algorithm="trivial",
        )

    coordinates = [depot.as_tuple(), *((customer.lat, customer.lng) for customer in customers)]
    matrix = fetch_matrix(coordinates, provider)
    source = "haversine" if matrix.source == "haversine" else "provider"

    distances = _prepare_matrix(matrix.distances, settings.unreachable_penalty_miles)
    if matrix.durations is not None:
        durations = _prepare_matrix(
            matrix.durations, settings.unreachable_penalty_miles * settings.minutes_per_mile
        )
    else:
        durations = [[value * settings.minutes_per_mile for value in row] for row in distances]

    cost = durations if objective == "duration" else distances
    optimized = True
    try:
        order, algorithm = solve_tour(
            cost,
            exact_limit=settings.held_karp_max_customers,
            max_passes=settings.two_opt_max_passes,
        )
    except (ValueError, IndexError) as e:
        logger.warning(f"Tour optimization failed for {len(customers)} customers: {e}. Keeping input order.")
        order, algorithm, optimized = list(range(1, len(customers) + 1)), "unoptimized", False

    path_nodes = [0, *order, 0]
    leg_minutes = [durations[a][b] for a, b in zip(path_nodes, path_nodes[1:])]
    travel_minutes = sum(leg_minutes)
    total_distance = tour_distance(order, distances)
    ordered = [customers[node - 1] for node in order]

    logger.info(
        f"Solved route for {len(ordered)} customers with {algorithm} "
        f"({source} distances): {total_distance:.2f} miles"
    )
    return OptimizedRoute(
        customers=ordered,
        total_distance=total_distance,
        estimated_duration=settings.minutes_per_stop * len(ordered) + travel_minutes,
        travel_minutes=travel_minutes,
        leg_minutes=leg_minutes,
        path=[customer.location for customer in ordered],
        optimized=optimized,
        distance_source=source,
        algorithm=algorithm,
    )
