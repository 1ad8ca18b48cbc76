import pytest

from src.crewroute.services.geospatial import (
    bearing_degrees,
    haversine_km,
    haversine_matrix_miles,
    haversine_meters,
    haversine_miles,
    nearest_index,
)


def test_haversine_known_distance():
    # Jacksonville to Orlando is roughly 125 miles as the crow flies
    miles = haversine_miles(30.3322, -81.6557, 28.5383, -81.3792)
    assert 120 < miles < 130
    assert haversine_km(30.3322, -81.6557, 28.5383, -81.3792) == pytest.approx(miles * 1.609344)


def test_haversine_zero_for_same_point():
    assert haversine_meters(30.1, -81.7, 30.1, -81.7) == 0.0


def test_bearing_due_north():
    assert bearing_degrees(30.0, -81.0, 31.0, -81.0) == pytest.approx(0.0, abs=1e-6)


def test_matrix_matches_scalar_distances():
    coords = [(30.0997, -81.7065), (30.2, -81.6), (30.05, -81.9)]
    matrix = haversine_matrix_miles(coords)

    assert len(matrix) == 3
    for i in range(3):
        assert matrix[i][i] == 0.0
        for j in range(3):
            assert matrix[i][j] == pytest.approx(haversine_miles(*coords[i], *coords[j]))
            assert matrix[i][j] == pytest.approx(matrix[j][i])


def test_matrix_empty():
    assert haversine_matrix_miles([]) == []


def test_nearest_index_prefers_earliest_on_tie():
    candidates = [(30.1, -81.7), (30.5, -81.7), (30.1, -81.7)]
    assert nearest_index(30.11, -81.7, candidates) == 0
    assert nearest_index(30.49, -81.7, candidates) == 1
    assert nearest_index(30.0, -81.0, []) == -1
