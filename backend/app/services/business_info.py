from __future__ import annotations

import logging
import time
from typing import Any, Awaitable, Callable, Optional

from app.core.errors import SquareAPIError
from app.integrations.square.base import SchedulingPlatform

logger = logging.getLogger(__name__)

# inquiryType → section
_SECTION_ALIASES = {
    "hours": "location",
    "location": "location",
    "services": "services",
    "pricing": "services",
    "staff": "team",
    "barbers": "team",
    "team": "team",
}
_SECTION_ERROR_KEYS = {
    "location": "businessHoursError",
    "services": "servicesError",
    "team": "teamMembersError",
}


def _format_price(amount: Optional[int]) -> Optional[str]:
    if amount is None:
        return None
    return f"{int(amount) / 100:.2f}"


def _duration_minutes(duration_ms: Any) -> Optional[int]:
    if duration_ms is None:
        return None
    return int(duration_ms) // 60_000


class BusinessInfoService:
    """Read-only business details for general questions.

    Sections are cached for a short TTL. Only hours, catalog and staff
    are cached here; booking and availability reads never are.
    """

    def __init__(
        self,
        platform: SchedulingPlatform,
        *,
        location_id: str,
        timezone_name: str,
        ttl_seconds: int = 300,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.platform = platform
        self.location_id = location_id
        self.timezone_name = timezone_name
        self.ttl_seconds = ttl_seconds
        self.monotonic = monotonic
        self._cache: dict[str, tuple[float, dict[str, Any]]] = {}

    async def _cached(
        self, key: str, loader: Callable[[], Awaitable[dict[str, Any]]]
    ) -> dict[str, Any]:
        entry = self._cache.get(key)
        now = self.monotonic()
        if entry and now - entry[0] < self.ttl_seconds:
            logger.debug(f"✅ Cache HIT: {key}")
            return entry[1]
        value = await loader()
        self._cache[key] = (now, value)
        return value

    async def _load_location(self) -> dict[str, Any]:
        location = await self.platform.retrieve_location(self.location_id)
        return {
            "businessHours": location.get("business_hours") or {},
            "timezone": location.get("timezone") or self.timezone_name,
            "locationName": location.get("name"),
            "address": location.get("address"),
            "phoneNumber": location.get("phone_number"),
        }

    async def _load_services(self) -> dict[str, Any]:
        items = await self.platform.list_catalog("ITEM")
        services = []
        for item in items:
            item_data = item.get("item_data") or {}
            variations = []
            for variation in item_data.get("variations") or []:
                variation_data = variation.get("item_variation_data") or {}
                price_money = variation_data.get("price_money") or {}
                variations.append(
                    {
                        "id": variation.get("id"),
                        "name": variation_data.get("name"),
                        "price": _format_price(price_money.get("amount")),
                        "currency": price_money.get("currency") or "USD",
                        "durationMinutes": _duration_minutes(variation_data.get("service_duration")),
                    }
                )
            services.append(
                {
                    "id": item.get("id"),
                    "name": item_data.get("name"),
                    "description": item_data.get("description"),
                    "variations": variations,
                }
            )
        return {"services": services, "servicesCount": len(services)}

    async def _load_team(self) -> dict[str, Any]:
        members = await self.platform.search_team_members(self.location_id)
        team = [
            {
                "id": member.get("id"),
                "givenName": member.get("given_name"),
                "familyName": member.get("family_name"),
                "fullName": f"{member.get('given_name') or ''} {member.get('family_name') or ''}".strip(),
                "emailAddress": member.get("email_address"),
                "phoneNumber": member.get("phone_number"),
                "isOwner": bool(member.get("is_owner")),
            }
            for member in members
        ]
        return {"teamMembers": team, "teamMembersCount": len(team)}

    async def general_inquiry(self, inquiry_type: Optional[str] = None) -> dict[str, Any]:
        loaders = {
            "location": self._load_location,
            "services": self._load_services,
            "team": self._load_team,
        }
        requested = (inquiry_type or "").strip().lower()
        section = _SECTION_ALIASES.get(requested)
        if requested and section is None:
            logger.warning(f"⚠️ Unknown inquiryType {inquiry_type!r}, returning everything")
        sections = [section] if section else list(loaders)

        result: dict[str, Any] = {"success": True}
        for name in sections:
            try:
                result.update(await self._cached(name, loaders[name]))
            except SquareAPIError as e:
                # One failing section should not hide the others.
                logger.error(f"❌ {name} lookup failed: {e}")
                result[_SECTION_ERROR_KEYS[name]] = str(e)
        return result
