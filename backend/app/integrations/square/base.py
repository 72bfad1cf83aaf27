from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Protocol

from app.integrations.square.models import AvailabilitySlot, Booking, Customer


class SchedulingPlatform(Protocol):
    """The slice of Square the booking engines depend on.

    ``SquareClient`` implements it over HTTP; tests provide an in-memory
    stand-in.
    """

    async def search_customers_by_phone(self, phone_number: str) -> list[Customer]:
        ...

    async def create_customer(
        self,
        *,
        given_name: str,
        family_name: str,
        phone_number: str,
        idempotency_key: str,
        email_address: Optional[str] = None,
        note: Optional[str] = None,
    ) -> Customer:
        ...

    async def retrieve_booking(self, booking_id: str) -> Booking:
        ...

    async def create_booking(self, booking: dict[str, Any], *, idempotency_key: str) -> Booking:
        ...

    async def update_booking(self, booking_id: str, booking: dict[str, Any]) -> Booking:
        ...

    async def cancel_booking(
        self, booking_id: str, *, booking_version: Optional[int], idempotency_key: str
    ) -> Booking:
        ...

    async def list_bookings(
        self,
        *,
        start_at_min: datetime,
        start_at_max: datetime,
        location_id: Optional[str] = None,
        team_member_id: Optional[str] = None,
        customer_id: Optional[str] = None,
    ) -> list[Booking]:
        ...

    async def search_availability(
        self,
        *,
        start_at: datetime,
        end_at: datetime,
        location_id: str,
        service_variation_id: str,
        team_member_id: Optional[str] = None,
    ) -> list[AvailabilitySlot]:
        ...

    async def batch_retrieve_catalog_objects(self, object_ids: list[str]) -> list[dict[str, Any]]:
        ...

    async def retrieve_location(self, location_id: str) -> dict[str, Any]:
        ...

    async def list_catalog(self, types: str = "ITEM") -> list[dict[str, Any]]:
        ...

    async def search_team_members(self, location_id: str) -> list[dict[str, Any]]:
        ...
