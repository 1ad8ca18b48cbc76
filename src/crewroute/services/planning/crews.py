"""Crew availability derived from crew members' weekly schedules."""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable

from ...config import settings
from ...models.domain import CrewAvailability, CrewMember

logger = logging.getLogger(__name__)


def build_crew_availability(
    members: Iterable[CrewMember],
    target_date: date,
    *,
    max_customers: int | None = None,
) -> list[CrewAvailability]:
    """Group members scheduled on ``target_date`` into one availability per crew.

    The first scheduled member of a crew acts as its manager and supplies the
    working hours, location and region. Members without a crew are ignored.
    """

    grouped: dict[str, list[CrewMember]] = {}
    for member in members:
        if not member.crew_id or member.hours_on(target_date) is None:
            continue
        grouped.setdefault(member.crew_id, []).append(member)

    crews: list[CrewAvailability] = []
    for crew_id, crew_members in grouped.items():
        lead = crew_members[0]
        capabilities: set[str] = set()
        for member in crew_members:
            capabilities.update(member.capabilities)
        crews.append(
            CrewAvailability(
                crew_id=crew_id,
                employee_ids=[member.id for member in crew_members],
                capabilities=capabilities or {"general"},
                date=target_date,
                working_hours=lead.hours_on(target_date),
                current_location=lead.current_location,
                max_customers=max_customers or settings.default_max_customers,
                manager_id=lead.id,
                region=lead.region,
            )
        )
    logger.info(f"Found {len(crews)} available crews for {target_date.isoformat()}")
    return crews


def available_crews(crews: Iterable[CrewAvailability], target_date: date) -> list[CrewAvailability]:
    return [crew for crew in crews if crew.is_available_on(target_date)]
