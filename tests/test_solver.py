import logging

import pytest

from src.crewroute.models.domain import Coordinate, Customer
from src.crewroute.services.geospatial import haversine_miles
from src.crewroute.services.routing import solver
from src.crewroute.services.routing.distance import DistanceMatrix, DistanceProviderError, Leg
from src.crewroute.services.routing.solver import fetch_leg, optimize_route

DEPOT = Coordinate(30.0997, -81.7065)


def _customer(cid: str, lat: float, lng: float) -> Customer:
    return Customer(id=cid, name=f"Customer {cid}", lat=lat, lng=lng)


class DummyProvider:
    def __init__(self, distances, durations=None):
        self.distances = distances
        self.durations = durations
        self.calls = 0

    def matrix(self, coordinates):
        self.calls += 1
        return DistanceMatrix(distances=self.distances, durations=self.durations, source="provider")

    def leg(self, origin, destination):
        return Leg(distance=1.0, duration=2.0)


class FailingProvider:
    def matrix(self, coordinates):
        raise DistanceProviderError("quota exceeded")

    def leg(self, origin, destination):
        raise DistanceProviderError("quota exceeded")


def test_empty_customer_list():
    result = optimize_route([], DEPOT)

    assert result.customers == []
    assert result.total_distance == 0.0
    assert result.estimated_duration == 0.0
    assert result.distance_source == "none"


def test_single_customer_is_depot_round_trip():
    customer = _customer("C1", 30.2, -81.6)
    result = optimize_route([customer], DEPOT)

    expected = 2 * haversine_miles(DEPOT.lat, DEPOT.lng, customer.lat, customer.lng)
    assert result.customers == [customer]
    assert result.total_distance == pytest.approx(expected)
    assert result.travel_minutes == pytest.approx(expected * 2.0)
    assert result.estimated_duration == pytest.approx(30 + expected * 2.0)
    assert result.algorithm == "trivial"
    assert result.distance_source == "haversine"
    assert result.optimized is True


def test_collinear_customers_are_visited_in_line():
    customers = [
        _customer("far", 30.0997, -81.4065),
        _customer("near", 30.0997, -81.6065),
        _customer("mid", 30.0997, -81.5065),
    ]
    result = optimize_route(customers, DEPOT)

    ids = [c.id for c in result.customers]
    assert ids in (["near", "mid", "far"], ["far", "mid", "near"])
    assert result.algorithm == "held_karp"
    assert len(result.leg_minutes) == 4


def test_unreachable_cells_are_penalised():
    provider = DummyProvider(
        distances=[
            [0.0, None, 5.0],
            [1.0, 0.0, 1.0],
            [5.0, 1.0, 0.0],
        ]
    )
    customers = [_customer("C1", 30.2, -81.6), _customer("C2", 30.3, -81.5)]

    result = optimize_route(customers, DEPOT, provider=provider)

    assert [c.id for c in result.customers] == ["C2", "C1"]
    assert result.total_distance == pytest.approx(7.0)
    assert result.distance_source == "provider"
    # No durations from the provider: fixed minutes per mile
    assert result.travel_minutes == pytest.approx(14.0)


def test_duration_objective_uses_duration_matrix():
    provider = DummyProvider(
        distances=[
            [0.0, 1.0, 10.0],
            [1.0, 0.0, 1.0],
            [1.0, 10.0, 0.0],
        ],
        durations=[
            [0.0, 50.0, 5.0],
            [5.0, 0.0, 5.0],
            [50.0, 5.0, 0.0],
        ],
    )
    customers = [_customer("C1", 30.2, -81.6), _customer("C2", 30.3, -81.5)]

    by_distance = optimize_route(customers, DEPOT, provider=provider)
    by_duration = optimize_route(customers, DEPOT, provider=provider, objective="duration")

    assert [c.id for c in by_distance.customers] == ["C1", "C2"]
    assert [c.id for c in by_duration.customers] == ["C2", "C1"]
    assert by_duration.travel_minutes == pytest.approx(15.0)


def test_unknown_objective_rejected():
    with pytest.raises(ValueError):
        optimize_route([_customer("C1", 30.2, -81.6)], DEPOT, objective="fuel")


def test_provider_failure_falls_back_to_haversine(caplog):
    customers = [_customer("C1", 30.2, -81.6), _customer("C2", 30.3, -81.5)]

    with caplog.at_level(logging.WARNING):
        result = optimize_route(customers, DEPOT, provider=FailingProvider())

    assert result.distance_source == "haversine"
    assert result.total_distance > 0
    assert "haversine fallback" in caplog.text


def test_malformed_provider_matrix_falls_back():
    provider = DummyProvider(distances=[[0.0, 1.0], [1.0, 0.0]])
    customers = [_customer("C1", 30.2, -81.6), _customer("C2", 30.3, -81.5)]

    result = optimize_route(customers, DEPOT, provider=provider)

    assert provider.calls == 1
    assert result.distance_source == "haversine"


def test_large_route_uses_heuristic():
    customers = [_customer(f"C{i:02d}", 30.0 + (i % 5) * 0.03, -81.8 + (i // 5) * 0.04) for i in range(20)]

    result = optimize_route(customers, DEPOT)

    assert result.algorithm == "nearest_neighbor_2opt"
    assert sorted(c.id for c in result.customers) == sorted(c.id for c in customers)
    assert result.estimated_duration == pytest.approx(30 * 20 + result.travel_minutes)


def test_solver_failure_keeps_input_order(monkeypatch: pytest.MonkeyPatch):
    def broken(*args, **kwargs):
        raise ValueError("boom")

    monkeypatch.setattr(solver, "solve_tour", broken)
    customers = [_customer("C1", 30.2, -81.6), _customer("C2", 30.3, -81.5), _customer("C3", 30.1, -81.4)]

    result = optimize_route(customers, DEPOT)

    assert result.customers == customers
    assert result.optimized is False
    assert result.algorithm == "unoptimized"


def test_fetch_leg_falls_back_on_provider_error():
    leg = fetch_leg((30.0, -81.0), (30.1, -81.0), FailingProvider())

    assert leg.source == "haversine"
    assert leg.distance == pytest.approx(haversine_miles(30.0, -81.0, 30.1, -81.0))
