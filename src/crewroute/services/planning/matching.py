"""Assign prioritized customers to compatible crews."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Sequence

from ...models.domain import CrewAvailability, Customer, CustomerPriority
from .priority import calculate_customer_priorities

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CrewAssignment:
    crew: CrewAvailability
    customers: List[Customer] = field(default_factory=list)
    priorities: List[CustomerPriority] = field(default_factory=list)

    @property
    def remaining_capacity(self) -> int:
        return self.crew.max_customers - len(self.customers)


@dataclass(slots=True)
class MatchResult:
    assignments: List[CrewAssignment]
    unassigned: List[str]

    def customers_for(self, crew_id: str) -> List[Customer]:
        for assignment in self.assignments:
            if assignment.crew.crew_id == crew_id:
                return list(assignment.customers)
        return []

    def as_mapping(self) -> Dict[str, List[str]]:
        return {
            assignment.crew.crew_id: [customer.id for customer in assignment.customers]
            for assignment in self.assignments
        }


def match_customers_to_crews(
    customers: Sequence[Customer],
    crews: Sequence[CrewAvailability],
    target_date: date,
) -> MatchResult:
    """Greedily assign eligible customers to crews in descending priority.

    Each customer goes to a crew that can perform one of its service types and
    still has capacity; the least-loaded such crew wins, ties by crew order.
    """

    if not crews:
        return MatchResult(assignments=[], unassigned=[])

    by_id = {customer.id: customer for customer in customers}
    priorities = calculate_customer_priorities(customers, target_date)
    assignments = [CrewAssignment(crew=crew) for crew in crews]
    unassigned: list[str] = []

    for priority in priorities:
        customer = by_id[priority.customer_id]
        wanted = customer.requested_service_types()
        candidates = [
            item for item in assignments if item.remaining_capacity > 0 and item.crew.can_serve(wanted)
        ]
        if not candidates:
            unassigned.append(customer.id)
            continue
        # min() keeps the first of equal loads, which preserves crew order.
        chosen = min(candidates, key=lambda item: len(item.customers))
        chosen.customers.append(customer)
        chosen.priorities.append(priority)

    if unassigned:
        logger.warning(f"{len(unassigned)} customers could not be assigned for {target_date.isoformat()}")
    logger.info(
        f"Matched {len(priorities) - len(unassigned)} of {len(priorities)} eligible customers "
        f"to {len(crews)} crews"
    )
    return MatchResult(
        assignments=[item for item in assignments if item.customers],
        unassigned=unassigned,
    )
