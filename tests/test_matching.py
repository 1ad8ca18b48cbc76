from datetime import date, timedelta

from src.crewroute.models.domain import (
    Coordinate,
    CrewAvailability,
    CrewMember,
    Customer,
    Service,
    ServicePreferences,
    WorkingHours,
)
from src.crewroute.services.planning.crews import available_crews, build_crew_availability
from src.crewroute.services.planning.matching import match_customers_to_crews

MONDAY = date(2024, 6, 3)


def _customer(cid: str, days_ago: int = 10, service_type: str = "mowing") -> Customer:
    return Customer(
        id=cid,
        name=f"Customer {cid}",
        lat=30.1,
        lng=-81.7,
        services=[Service(id=f"{cid}-s", type=service_type)],
        service_preferences=ServicePreferences(preferred_days=["monday"]),
        last_service_date=MONDAY - timedelta(days=days_ago),
    )


def _crew(crew_id: str, capabilities: set[str], max_customers: int = 12) -> CrewAvailability:
    return CrewAvailability(
        crew_id=crew_id,
        employee_ids=[f"{crew_id}-lead"],
        capabilities=capabilities,
        date=MONDAY,
        working_hours=WorkingHours("08:00", "17:00"),
        max_customers=max_customers,
    )


def test_least_loaded_crew_wins_with_crew_order_tiebreak():
    customers = [_customer("C1", 9), _customer("C2", 8), _customer("C3", 7)]
    crews = [_crew("A", {"mowing"}), _crew("B", {"mowing", "edging"})]

    result = match_customers_to_crews(customers, crews, MONDAY)

    assert result.as_mapping() == {"A": ["C1", "C3"], "B": ["C2"]}
    assert result.unassigned == []


def test_capacity_keeps_highest_priority_customers():
    customers = [_customer("C1", 6), _customer("C2", 8), _customer("C3", 7)]
    crews = [_crew("A", {"mowing"}, max_customers=2)]

    result = match_customers_to_crews(customers, crews, MONDAY)

    assert [c.id for c in result.customers_for("A")] == ["C2", "C3"]
    assert result.unassigned == ["C1"]


def test_incompatible_customers_are_unassigned():
    customers = [_customer("C1", service_type="pest_control"), _customer("C2")]
    crews = [_crew("A", {"mowing"})]

    result = match_customers_to_crews(customers, crews, MONDAY)

    assert result.as_mapping() == {"A": ["C2"]}
    assert result.unassigned == ["C1"]


def test_customer_without_services_matches_general_crew():
    customer = Customer(
        id="C1",
        name="Plain",
        lat=30.1,
        lng=-81.7,
        service_preferences=ServicePreferences(preferred_days=["monday"]),
    )
    result = match_customers_to_crews([customer], [_crew("A", {"general"})], MONDAY)

    assert result.as_mapping() == {"A": ["C1"]}


def test_no_crews_or_no_customers_is_empty():
    assert match_customers_to_crews([_customer("C1")], [], MONDAY).assignments == []
    result = match_customers_to_crews([], [_crew("A", {"mowing"})], MONDAY)
    assert result.assignments == []
    assert result.unassigned == []


def test_build_crew_availability_groups_scheduled_members():
    hours = {"monday": WorkingHours("07:30", "16:00")}
    members = [
        CrewMember(id="u1", name="Lead", crew_id="crew-1", capabilities=["mowing"], schedule=hours,
                   current_location=Coordinate(30.2, -81.6)),
        CrewMember(id="u2", name="Helper", crew_id="crew-1", capabilities=["edging"], schedule=hours),
        CrewMember(id="u3", name="Off today", crew_id="crew-2", schedule={"tuesday": WorkingHours()}),
        CrewMember(id="u4", name="Unassigned", schedule=hours),
    ]

    crews = build_crew_availability(members, MONDAY)

    assert len(crews) == 1
    crew = crews[0]
    assert crew.crew_id == "crew-1"
    assert crew.employee_ids == ["u1", "u2"]
    assert crew.capabilities == {"mowing", "edging"}
    assert crew.manager_id == "u1"
    assert crew.working_hours.start == "07:30"
    assert crew.current_location == Coordinate(30.2, -81.6)
    assert crew.max_customers == 12


def test_available_crews_requires_members_and_hours():
    ready = _crew("A", {"mowing"})
    no_members = CrewAvailability(crew_id="B", employee_ids=[], capabilities={"mowing"},
                                  working_hours=WorkingHours())
    no_hours = CrewAvailability(crew_id="C", employee_ids=["x"], capabilities={"mowing"})
    other_day = _crew("D", {"mowing"})
    other_day.date = MONDAY + timedelta(days=1)

    assert [crew.crew_id for crew in available_crews([ready, no_members, no_hours, other_day], MONDAY)] == ["A"]
