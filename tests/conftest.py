"""
Shared fixtures for the analytics tests.
"""
from datetime import date

import pytest

from facility_analytics.schemas.records import Booking, DateRange, Provider, Service, Subscription


@pytest.fixture
def jan_feb_2025():
    return DateRange(start_date="2025-01-01", end_date="2025-02-28")


@pytest.fixture
def year_2024():
    return DateRange(start_date="2024-01-01", end_date="2024-12-31")


@pytest.fixture
def as_of():
    return date(2025, 3, 31)


@pytest.fixture
def services():
    return [
        Service(id="svc-ac", name="AC Maintenance", duration_minutes=90),
        Service(id="svc-plumb", name="Plumbing", duration_minutes=60),
    ]


@pytest.fixture
def providers():
    return [
        Provider(id="p1", full_name="Omar Haddad", is_active=True, average_rating=4.6,
                 specialization=["ac", "electrical"], total_jobs_completed=120),
        Provider(id="p2", full_name="Ravi Kumar", is_active=True, average_rating=4.2),
    ]


@pytest.fixture
def sample_bookings():
    return [
        Booking(id="b1", customer_id="c1", service_id="svc-ac", assigned_provider_id="p1",
                scheduled_date="2025-01-10", scheduled_time="10:00", status="completed",
                payment_status="paid", total_amount=100, created_date="2025-01-05T08:00:00Z"),
        Booking(id="b2", customer_id="c2", service_id="svc-plumb", assigned_provider_id="p2",
                scheduled_date="2025-02-10", scheduled_time="14:00", status="completed",
                payment_status="paid", total_amount=200, created_date="2025-02-01T08:00:00Z"),
    ]


@pytest.fixture
def sample_subscriptions():
    return [
        Subscription(id="s1", customer_id="c3", package_id="pkg-gold", status="active",
                     monthly_amount=300, start_date="2024-11-01", created_date="2024-11-01T00:00:00Z"),
    ]
