"""Travelling salesman solvers over a depot-anchored cost matrix.

Every function takes a square matrix where index 0 is the depot and indices
1..n are customers, and returns visiting orders as lists of customer node
indices (the depot is implicit at both ends of the tour). Nothing here keeps
state between calls.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Sequence

Matrix = Sequence[Sequence[float]]

IMPROVEMENT_EPSILON = 1e-9


@dataclass(slots=True)
class TwoOptResult:
    order: list[int]
    passes: int
    improvements: list[float] = field(default_factory=list)


def tour_distance(order: Sequence[int], matrix: Matrix) -> float:
    """Cost of depot -> order[0] -> ... -> order[-1] -> depot."""

    if not order:
        return 0.0
    total = matrix[0][order[0]]
    for current, following in zip(order, order[1:]):
        total += matrix[current][following]
    total += matrix[order[-1]][0]
    return total


def held_karp(matrix: Matrix) -> tuple[list[int], float]:
    """Exact round-trip tour from the depot using Held-Karp dynamic programming.

    The table has ``2^n x n`` cells for ``n`` customers, so callers must keep
    ``n`` small. Ties are broken towards the lowest node index.
    """

    n = len(matrix) - 1
    if n <= 0:
        return [], 0.0
    if n == 1:
        return [1], matrix[0][1] + matrix[1][0]

    size = 1 << n
    inf = math.inf
    cost = [[inf] * n for _ in range(size)]
    parent = [[-1] * n for _ in range(size)]
    for k in range(n):
        cost[1 << k][k] = matrix[0][k + 1]

    for mask in range(1, size):
        row_costs = cost[mask]
        for last in range(n):
            if not (mask >> last) & 1:
                continue
            base = row_costs[last]
            if base == inf:
                continue
            from_row = matrix[last + 1]
            for nxt in range(n):
                if (mask >> nxt) & 1:
                    continue
                new_mask = mask | (1 << nxt)
                candidate = base + from_row[nxt + 1]
                if candidate < cost[new_mask][nxt]:
                    cost[new_mask][nxt] = candidate
                    parent[new_mask][nxt] = last

    full = size - 1
    best_cost = inf
    best_last = -1
    for last in range(n):
        candidate = cost[full][last] + matrix[last + 1][0]
        if candidate < best_cost:
            best_cost = candidate
            best_last = last

    order: list[int] = []
    mask = full
    current = best_last
    while current != -1:
        order.append(current + 1)
        previous = parent[mask][current]
        mask ^= 1 << current
        current = previous
    order.reverse()
    return order, best_cost


def nearest_neighbor(matrix: Matrix) -> list[int]:
    """Greedy construction starting at the depot; ties go to the lowest index."""

    n = len(matrix) - 1
    unvisited = set(range(1, n + 1))
    order: list[int] = []
    current = 0
    while unvisited:
        nxt = min(unvisited, key=lambda node: (matrix[current][node], node))
        order.append(nxt)
        unvisited.remove(nxt)
        current = nxt
    return order


def _reversal_delta(path: Sequence[int], i: int, k: int, matrix: Matrix) -> float:
    """Cost change from reversing ``path[i..k]`` in a closed path."""

    before = matrix[path[i - 1]][path[i]] + matrix[path[k]][path[k + 1]]
    after = matrix[path[i - 1]][path[k]] + matrix[path[i]][path[k + 1]]
    # Inner edges flip direction; this only matters for asymmetric matrices.
    for j in range(i, k):
        before += matrix[path[j]][path[j + 1]]
        after += matrix[path[j + 1]][path[j]]
    return after - before


def two_opt(order: Sequence[int], matrix: Matrix, max_passes: int = 1000) -> TwoOptResult:
    """Improve a tour by reversing segments while that strictly shortens it.

    Stops after a pass without an accepted move or after ``max_passes`` passes.
    """

    path = [0, *order, 0]
    improvements: list[float] = []
    passes = 0
    improved = True
    while improved and passes < max_passes:
        improved = False
        passes += 1
        for i in range(1, len(path) - 2):
            for k in range(i + 1, len(path) - 1):
                delta = _reversal_delta(path, i, k, matrix)
                if delta < -IMPROVEMENT_EPSILON:
                    path = path[:i] + path[i : k + 1][::-1] + path[k + 1 :]
                    improvements.append(delta)
                    improved = True
    return TwoOptResult(order=path[1:-1], passes=passes, improvements=improvements)


def solve_tour(matrix: Matrix, *, exact_limit: int = 15, max_passes: int = 1000) -> tuple[list[int], str]:
    """Pick the algorithm by customer count and return ``(order, algorithm)``."""

    n = len(matrix) - 1
    if n <= 1:
        return list(range(1, n + 1)), "trivial"
    if n <= exact_limit:
        order, _ = held_karp(matrix)
        return order, "held_karp"
    result = two_opt(nearest_neighbor(matrix), matrix, max_passes=max_passes)
    return result.order, "nearest_neighbor_2opt"
