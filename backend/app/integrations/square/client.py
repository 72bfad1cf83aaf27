"""Async REST client for the Square APIs used by the booking tools"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta
from typing import Any, Optional

import httpx

from app.core.config import Settings
from app.core.errors import SquareAPIError
from app.integrations.square.models import AvailabilitySlot, Booking, Customer
from app.services.datetime_utils import to_square_timestamp

logger = logging.getLogger(__name__)

# ListBookings rejects ranges longer than 31 days.
_MAX_LIST_RANGE = timedelta(days=31)
_PAGE_LIMIT = 100


class SquareClient:
    """Thin wrapper over Square's v2 REST endpoints.

    A fresh ``httpx.AsyncClient`` is opened per call; nothing is cached
    between requests. Non-2xx responses and transport failures raise
    ``SquareAPIError`` carrying Square's ``errors`` array.
    """

    def __init__(
        self,
        access_token: Optional[str],
        *,
        base_url: str,
        api_version: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not access_token:
            logger.warning("⚠️ SQUARE_ACCESS_TOKEN not configured")
        self.access_token = access_token
        self.base_url = base_url.rstrip("/")
        self.api_version = api_version
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "SquareClient":
        return cls(
            settings.square_access_token,
            base_url=settings.square_base_url,
            api_version=settings.square_api_version,
            timeout=settings.square_timeout_seconds,
        )

    def _headers(self) -> dict[str, str]:
        return {
            "Square-Version": self.api_version,
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

    async def _request(
        self,
        method: str,
        path: str,
        *,
        body: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        if params:
            params = {key: value for key, value in params.items() if value is not None}
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            ) as http_client:
                response = await http_client.request(
                    method, path, json=body, params=params, headers=self._headers()
                )
        except httpx.HTTPError as e:
            logger.error(f"❌ Square {method} {path} request failed: {e}")
            raise SquareAPIError(f"Square request failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.status_code >= 400:
            error = SquareAPIError.from_response(response.status_code, data)
            logger.error(
                f"❌ Square {method} {path} returned {response.status_code}: "
                f"{json.dumps(error.errors)}"
            )
            raise error
        return data

    # ==================== CUSTOMERS ====================

    async def search_customers_by_phone(self, phone_number: str) -> list[Customer]:
        data = await self._request(
            "POST",
            "/customers/search",
            body={"query": {"filter": {"phone_number": {"exact": phone_number}}}},
        )
        return [Customer.from_api(item) for item in data.get("customers") or []]

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
        body: dict[str, Any] = {
            "idempotency_key": idempotency_key,
            "given_name": given_name,
            "family_name": family_name,
            "phone_number": phone_number,
        }
        if email_address:
            body["email_address"] = email_address
        if note:
            body["note"] = note
        data = await self._request("POST", "/customers", body=body)
        return Customer.from_api(data["customer"])

    # ==================== BOOKINGS ====================

    async def retrieve_booking(self, booking_id: str) -> Booking:
        data = await self._request("GET", f"/bookings/{booking_id}")
        return Booking.from_api(data["booking"])

    async def create_booking(self, booking: dict[str, Any], *, idempotency_key: str) -> Booking:
        data = await self._request(
            "POST",
            "/bookings",
            body={"idempotency_key": idempotency_key, "booking": booking},
        )
        return Booking.from_api(data["booking"])

    async def update_booking(self, booking_id: str, booking: dict[str, Any]) -> Booking:
        data = await self._request("PUT", f"/bookings/{booking_id}", body={"booking": booking})
        return Booking.from_api(data["booking"])

    async def cancel_booking(
        self, booking_id: str, *, booking_version: Optional[int], idempotency_key: str
    ) -> Booking:
        body: dict[str, Any] = {"idempotency_key": idempotency_key}
        if booking_version is not None:
            body["booking_version"] = booking_version
        data = await self._request("POST", f"/bookings/{booking_id}/cancel", body=body)
        return Booking.from_api(data["booking"])

    async def list_bookings(
        self,
        *,
        start_at_min: datetime,
        start_at_max: datetime,
        location_id: Optional[str] = None,
        team_member_id: Optional[str] = None,
        customer_id: Optional[str] = None,
    ) -> list[Booking]:
        """List bookings starting in the range, following cursors.

        Ranges longer than Square's 31-day limit are split into chunks.
        """
        bookings: list[Booking] = []
        chunk_start = start_at_min
        while chunk_start < start_at_max:
            chunk_end = min(chunk_start + _MAX_LIST_RANGE, start_at_max)
            cursor: Optional[str] = None
            while True:
                data = await self._request(
                    "GET",
                    "/bookings",
                    params={
                        "limit": _PAGE_LIMIT,
                        "cursor": cursor,
                        "location_id": location_id,
                        "team_member_id": team_member_id,
                        "customer_id": customer_id,
                        "start_at_min": to_square_timestamp(chunk_start),
                        "start_at_max": to_square_timestamp(chunk_end),
                    },
                )
                bookings.extend(Booking.from_api(item) for item in data.get("bookings") or [])
                cursor = data.get("cursor")
                if not cursor:
                    break
            chunk_start = chunk_end
        return bookings

    async def search_availability(
        self,
        *,
        start_at: datetime,
        end_at: datetime,
        location_id: str,
        service_variation_id: str,
        team_member_id: Optional[str] = None,
    ) -> list[AvailabilitySlot]:
        segment_filter: dict[str, Any] = {"service_variation_id": service_variation_id}
        if team_member_id:
            segment_filter["team_member_id_filter"] = {"any": [team_member_id]}
        data = await self._request(
            "POST",
            "/bookings/availability/search",
            body={
                "query": {
                    "filter": {
                        "location_id": location_id,
                        "start_at_range": {
                            "start_at": to_square_timestamp(start_at),
                            "end_at": to_square_timestamp(end_at),
                        },
                        "segment_filters": [segment_filter],
                    }
                }
            },
        )
        return [AvailabilitySlot.from_api(item) for item in data.get("availabilities") or []]

    # ==================== CATALOG / LOCATION / TEAM ====================

    async def batch_retrieve_catalog_objects(self, object_ids: list[str]) -> list[dict[str, Any]]:
        if not object_ids:
            return []
        data = await self._request(
            "POST",
            "/catalog/batch-retrieve",
            body={"object_ids": object_ids, "include_related_objects": False},
        )
        return data.get("objects") or []

    async def retrieve_location(self, location_id: str) -> dict[str, Any]:
        data = await self._request("GET", f"/locations/{location_id}")
        return data.get("location") or {}

    async def list_catalog(self, types: str = "ITEM") -> list[dict[str, Any]]:
        objects: list[dict[str, Any]] = []
        cursor: Optional[str] = None
        while True:
            data = await self._request(
                "GET", "/catalog/list", params={"types": types, "cursor": cursor}
            )
            objects.extend(data.get("objects") or [])
            cursor = data.get("cursor")
            if not cursor:
                return objects

    async def search_team_members(self, location_id: str) -> list[dict[str, Any]]:
        data = await self._request(
            "POST",
            "/team-members/search",
            body={"query": {"filter": {"location_ids": [location_id], "status": "ACTIVE"}}},
        )
        return data.get("team_members") or []
