"""Data access for customers, crews and company base locations."""

from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Iterable, Optional, Protocol

from pydantic import TypeAdapter

from ..config import settings
from ..models.domain import Coordinate, CrewAvailability, CrewMember, Customer
from ..services.planning.crews import build_crew_availability

logger = logging.getLogger(__name__)

_customers_adapter = TypeAdapter(list[Customer])
_members_adapter = TypeAdapter(list[CrewMember])
_bases_adapter = TypeAdapter(dict[str, Coordinate])


class CustomerCrewProvider(Protocol):
    """Source of customers and crews for one company.

    Methods may be plain or ``async``; the planning service awaits whatever it gets.
    ``get_base_location`` is optional.
    """

    def get_active_customers(self, company_id: str) -> list[Customer]: ...

    def get_crews(self, company_id: str, target_date: date) -> list[CrewAvailability]: ...


class InMemoryProvider:
    """Provider backed by Python lists, handy for tests and embedding."""

    def __init__(
        self,
        customers: Iterable[Customer] = (),
        *,
        crews: Iterable[CrewAvailability] = (),
        members: Iterable[CrewMember] = (),
        base_locations: Optional[dict[str, Coordinate]] = None,
    ) -> None:
        self.customers = list(customers)
        self.crews = list(crews)
        self.members = list(members)
        self.base_locations = dict(base_locations or {})

    def get_active_customers(self, company_id: str) -> list[Customer]:
        return [
            customer
            for customer in self.customers
            if customer.is_active and customer.company_id in (None, company_id)
        ]

    def get_crews(self, company_id: str, target_date: date) -> list[CrewAvailability]:
        members = [member for member in self.members if member.company_id in (None, company_id)]
        return [*self.crews, *build_crew_availability(members, target_date)]

    def get_base_location(self, company_id: str) -> Optional[Coordinate]:
        return self.base_locations.get(company_id)


class JsonFileProvider:
    """Provider reading ``customers.json``, ``crews.json`` and ``companies.json``.

    ``crews.json`` lists crew members with weekly schedules; availability for a
    date is derived from it. ``companies.json`` is optional and maps company ids
    to base locations.
    """

    def __init__(self, root: Path | None = None) -> None:
        self.root = (root or settings.data_root).resolve()

    def _read(self, name: str, *, required: bool = True) -> Any:
        path = self.root / name
        if not path.exists():
            if required:
                raise FileNotFoundError(f"Data file not found: {path}")
            return None
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)

    def get_active_customers(self, company_id: str) -> list[Customer]:
        customers = _customers_adapter.validate_python(self._read("customers.json"))
        active = [
            customer
            for customer in customers
            if customer.is_active and customer.company_id in (None, company_id)
        ]
        logger.info(f"Loaded {len(active)} active customers for company {company_id}")
        return active

    def get_crews(self, company_id: str, target_date: date) -> list[CrewAvailability]:
        members = _members_adapter.validate_python(self._read("crews.json"))
        members = [member for member in members if member.company_id in (None, company_id)]
        return build_crew_availability(members, target_date)

    def get_base_location(self, company_id: str) -> Optional[Coordinate]:
        payload = self._read("companies.json", required=False)
        if not payload:
            return None
        return _bases_adapter.validate_python(payload).get(company_id)
