"""Shared fixtures for the booking tool tests."""

import itertools
import os

# Must be set before app.core.config is imported
os.environ["BUSINESS_TIMEZONE"] = "America/New_York"
os.environ.setdefault("SQUARE_ACCESS_TOKEN", "test-token")

import pytest

from app.services.availability import AvailabilityEngine
from app.services.booking_engine import BookingLifecycleEngine
from app.services.business_info import BusinessInfoService
from app.services.catalog import BARBERSHOP_SERVICES, ServiceCatalog
from app.services.customer_resolver import CustomerResolver
from app.tools.tool_router import ToolRouter
from fakes import LOCATION_ID, NOW, STAFF_ID, FakeSquarePlatform


@pytest.fixture
def fake_square() -> FakeSquarePlatform:
    """Empty in-memory Square account."""
    return FakeSquarePlatform()


@pytest.fixture
def catalog() -> ServiceCatalog:
    return ServiceCatalog(BARBERSHOP_SERVICES)


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def idempotency_keys():
    counter = itertools.count(1)
    return lambda: f"key-{next(counter)}"


@pytest.fixture
def availability_engine(fake_square, catalog, clock) -> AvailabilityEngine:
    return AvailabilityEngine(fake_square, catalog, location_id=LOCATION_ID, clock=clock)


@pytest.fixture
def booking_engine(fake_square, catalog, clock, idempotency_keys) -> BookingLifecycleEngine:
    return BookingLifecycleEngine(
        fake_square,
        catalog,
        location_id=LOCATION_ID,
        clock=clock,
        new_idempotency_key=idempotency_keys,
    )


@pytest.fixture
def customer_resolver(fake_square, clock, idempotency_keys) -> CustomerResolver:
    return CustomerResolver(fake_square, clock=clock, new_idempotency_key=idempotency_keys)


@pytest.fixture
def business_info(fake_square) -> BusinessInfoService:
    return BusinessInfoService(
        fake_square, location_id=LOCATION_ID, timezone_name="America/New_York"
    )


@pytest.fixture
def tool_router(
    availability_engine, booking_engine, customer_resolver, business_info, catalog, clock
) -> ToolRouter:
    return ToolRouter(
        availability=availability_engine,
        bookings=booking_engine,
        customers=customer_resolver,
        business_info=business_info,
        catalog=catalog,
        default_team_member_id=STAFF_ID,
        clock=clock,
    )
