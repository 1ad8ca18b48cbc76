"""Customer eligibility and priority scoring."""

from __future__ import annotations

from datetime import date
from typing import Iterable, Sequence

from ...config import settings
from ...models.domain import Customer, CustomerPriority, PriorityFactors


def days_since_last_service(customer: Customer, target_date: date) -> int | None:
    if customer.last_service_date is None:
        return None
    return (target_date - customer.last_service_date).days


def needs_service(customer: Customer, target_date: date) -> bool:
    """True when the customer was never serviced or enough days have passed."""

    days = days_since_last_service(customer, target_date)
    return days is None or days >= settings.min_days_between_services


def is_eligible(customer: Customer, target_date: date) -> bool:
    return (
        customer.is_active
        and customer.service_preferences.prefers(target_date)
        and needs_service(customer, target_date)
    )


def score_customer(customer: Customer, target_date: date) -> CustomerPriority:
    days = days_since_last_service(customer, target_date)
    if days is None:
        days = settings.never_serviced_baseline_days
    preference_match = customer.service_preferences.prefers(target_date)

    priority = days * settings.days_since_service_weight
    if preference_match:
        priority += settings.preference_bonus
    priority += settings.per_service_bonus * len(customer.services)
    priority = max(0.0, min(settings.max_priority, priority))

    return CustomerPriority(
        customer_id=customer.id,
        priority=priority,
        factors=PriorityFactors(
            days_since_last_service=days,
            preference_match=preference_match,
            service_count=len(customer.services),
            service_types=sorted(customer.requested_service_types()),
            location=customer.location,
        ),
    )


def calculate_customer_priorities(
    customers: Iterable[Customer],
    target_date: date,
) -> list[CustomerPriority]:
    """Score the eligible customers, highest priority first (ties by customer id)."""

    scored = [score_customer(customer, target_date) for customer in customers if is_eligible(customer, target_date)]
    return sort_by_priority(scored)


def sort_by_priority(priorities: Sequence[CustomerPriority]) -> list[CustomerPriority]:
    return sorted(priorities, key=lambda item: (-item.priority, item.customer_id))
