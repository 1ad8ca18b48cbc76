from datetime import date, timedelta

import pytest

from src.crewroute.models.domain import Customer, Service, ServicePreferences, record_service_completion
from src.crewroute.services.planning.priority import (
    calculate_customer_priorities,
    days_since_last_service,
    is_eligible,
    score_customer,
)

MONDAY = date(2024, 6, 3)


def _customer(
    cid: str,
    *,
    last_service: date | None = None,
    days: tuple[str, ...] = ("monday",),
    services: int = 1,
    status: str = "active",
) -> Customer:
    return Customer(
        id=cid,
        name=f"Customer {cid}",
        lat=30.1,
        lng=-81.7,
        status=status,
        services=[Service(id=f"{cid}-s{i}", type="mowing") for i in range(services)],
        service_preferences=ServicePreferences(preferred_days=list(days)),
        last_service_date=last_service,
    )


def test_priority_formula():
    customer = _customer("C1", last_service=MONDAY - timedelta(days=7))
    result = score_customer(customer, MONDAY)

    # 7 days * 10 + preferred-day bonus 20 + one service * 5
    assert result.priority == 95
    assert result.factors.days_since_last_service == 7
    assert result.factors.preference_match is True
    assert result.factors.service_types == ["mowing"]


def test_priority_is_capped_and_never_serviced_uses_baseline():
    result = score_customer(_customer("C1"), MONDAY)

    assert result.factors.days_since_last_service == 30
    assert result.priority == 100


def test_days_since_last_service_none_when_never_serviced():
    assert days_since_last_service(_customer("C1"), MONDAY) is None


@pytest.mark.parametrize(
    "customer, expected",
    [
        (_customer("C1", last_service=MONDAY - timedelta(days=5)), True),
        (_customer("C2", last_service=MONDAY - timedelta(days=4)), False),
        (_customer("C3"), True),
        (_customer("C4", status="inactive"), False),
        (_customer("C5", days=("tuesday",)), False),
        (_customer("C6", days=("Monday ",)), True),
    ],
)
def test_eligibility(customer, expected):
    assert is_eligible(customer, MONDAY) is expected


def test_priorities_sorted_desc_with_id_tiebreak():
    customers = [
        _customer("B", last_service=MONDAY - timedelta(days=6)),
        _customer("A", last_service=MONDAY - timedelta(days=6)),
        _customer("C", last_service=MONDAY - timedelta(days=8)),
        _customer("D", last_service=MONDAY - timedelta(days=1)),
    ]
    ranked = calculate_customer_priorities(customers, MONDAY)

    assert [item.customer_id for item in ranked] == ["C", "A", "B"]


def test_record_service_completion_rejects_earlier_date():
    customer = _customer("C1", last_service=MONDAY)

    updated = record_service_completion(customer, MONDAY + timedelta(days=7))
    assert updated.last_service_date == MONDAY + timedelta(days=7)
    assert customer.last_service_date == MONDAY

    with pytest.raises(ValueError):
        record_service_completion(customer, MONDAY - timedelta(days=1))
