from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from app.integrations.square.base import SchedulingPlatform
from app.integrations.square.models import AvailabilitySlot, Booking
from app.services.catalog import ServiceCatalog
from app.services.datetime_utils import (
    civil_day_bounds,
    format_time_slot,
    is_date_only,
    parse_date,
    parse_instant,
    to_square_timestamp,
    utc_now,
)

logger = logging.getLogger(__name__)

SPECIFIC_TIME_WINDOW = timedelta(hours=2)
OPEN_SEARCH_WINDOW = timedelta(days=7)
MATCH_TOLERANCE = timedelta(seconds=60)
ALTERNATIVE_COUNT = 5


@dataclass
class SearchWindow:
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    requested_time: Optional[datetime] = None
    is_date_only: bool = False
    is_past_date: bool = False
    is_invalid_range: bool = False


@dataclass
class FormattedSlot:
    slot: AvailabilitySlot
    display: dict[str, Any]

    @property
    def start_at(self) -> datetime:
        return self.slot.start_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "start_at": self.slot.raw.get("start_at") or self.display["start_at_utc"],
            "service_variation_id": self.slot.service_id,
            "team_member_id": self.slot.staff_id,
            "duration_minutes": self.slot.duration_minutes,
            **self.display,
        }


def filter_booked_slots(
    slots: list[AvailabilitySlot], active_bookings: list[Booking]
) -> list[AvailabilitySlot]:
    """Drop slots whose start equals the start of an active booking.

    Square's availability search does not always account for same-day
    bookings, so anything already booked at that instant is removed.
    """
    booked_times = {booking.start_at for booking in active_bookings}
    if booked_times:
        logger.info(
            "🚫 Booked times: "
            + ", ".join(sorted(to_square_timestamp(t) for t in booked_times))
        )
    available = [slot for slot in slots if slot.start_at not in booked_times]
    logger.info(f"✅ After filtering: {len(available)} truly available slots")
    return available


def find_exact_match(
    slots: list[FormattedSlot], requested_time: datetime
) -> Optional[FormattedSlot]:
    logger.info(f"🔍 Looking for time match within 1 minute of: {to_square_timestamp(requested_time)}")
    for slot in slots:
        if abs(slot.start_at - requested_time) < MATCH_TOLERANCE:
            logger.info(f"✅ TIME MATCH FOUND: {slot.display['human_readable']}")
            return slot
    return None


def find_closest_alternatives(
    slots: list[FormattedSlot], requested_time: datetime, count: int = ALTERNATIVE_COUNT
) -> list[FormattedSlot]:
    return sorted(slots, key=lambda slot: abs(slot.start_at - requested_time))[:count]


class AvailabilityEngine:
    """Computes truly free slots for the location.

    Candidate slots come from Square's availability search; any slot that
    starts exactly when an active booking starts is subtracted.
    """

    def __init__(
        self,
        platform: SchedulingPlatform,
        catalog: ServiceCatalog,
        *,
        location_id: str,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.platform = platform
        self.catalog = catalog
        self.location_id = location_id
        self.clock = clock

    def resolve_window(
        self, start_date: Optional[str] = None, requested_datetime: Optional[str] = None
    ) -> SearchWindow:
        """Work out the search range for a request.

        - date only: that civil day, starting no earlier than now
        - a specific time: two hours either side of it
        - nothing: the next seven days
        """
        now = self.clock()
        time_input = start_date or requested_datetime

        if start_date and is_date_only(start_date):
            day_start, day_end = civil_day_bounds(parse_date(start_date))
            logger.info(f"📅 Requested date only: {start_date}")
            if day_end < now:
                logger.info(f"⛔ Requested date {start_date} is completely in the past")
                return SearchWindow(is_date_only=True, is_past_date=True)
            if now > day_start:
                logger.info("⏰ Adjusted start time from midnight to now")
            window = SearchWindow(start_at=max(now, day_start), end_at=day_end, is_date_only=True)
        elif time_input:
            requested = parse_instant(time_input)
            logger.info(f"📅 Requested specific time: {to_square_timestamp(requested)}")
            window = SearchWindow(
                start_at=requested - SPECIFIC_TIME_WINDOW,
                end_at=requested + SPECIFIC_TIME_WINDOW,
                requested_time=requested,
            )
        else:
            window = SearchWindow(start_at=now, end_at=now + OPEN_SEARCH_WINDOW)

        if window.start_at >= window.end_at:
            logger.info("⚠️ Invalid time range: start >= end")
            window.is_invalid_range = True
        return window

    async def get_active_bookings(self, start_at: datetime, end_at: datetime) -> list[Booking]:
        bookings = await self.platform.list_bookings(
            start_at_min=start_at, start_at_max=end_at, location_id=self.location_id
        )
        active = [booking for booking in bookings if not booking.is_cancelled]
        logger.info(
            f"📋 Found {len(bookings)} total ({len(active)} active, "
            f"{len(bookings) - len(active)} cancelled)"
        )
        return active

    async def search_available_slots(
        self,
        start_at: datetime,
        end_at: datetime,
        service_variation_id: Optional[str] = None,
        team_member_id: Optional[str] = None,
    ) -> list[AvailabilitySlot]:
        service_id = service_variation_id or self.catalog.default_service_id
        if not service_variation_id:
            logger.info(
                f"⚠️ No serviceVariationId provided, using default: {service_id} "
                f"({self.catalog.name_for(service_id)})"
            )
        slots = await self.platform.search_availability(
            start_at=start_at,
            end_at=end_at,
            location_id=self.location_id,
            service_variation_id=service_id,
            team_member_id=team_member_id,
        )
        logger.info(f"✅ Found {len(slots)} raw slots from Square")
        return slots

    async def get_availability(
        self,
        start_date: Optional[str] = None,
        requested_datetime: Optional[str] = None,
        service_variation_id: Optional[str] = None,
        team_member_id: Optional[str] = None,
    ) -> dict[str, Any]:
        window = self.resolve_window(start_date, requested_datetime)

        if window.is_past_date:
            return {
                "success": True,
                "availableSlots": [],
                "totalCount": 0,
                "message": "That date has already passed. Please choose a future date.",
            }
        if window.is_invalid_range:
            return {
                "success": True,
                "availableSlots": [],
                "totalCount": 0,
                "message": "No available times - the requested time is outside business hours",
            }

        raw_slots = await self.search_available_slots(
            window.start_at, window.end_at, service_variation_id, team_member_id
        )
        active_bookings = await self.get_active_bookings(window.start_at, window.end_at)
        available = filter_booked_slots(raw_slots, active_bookings)
        formatted = [
            FormattedSlot(slot, format_time_slot(slot.start_at))
            for slot in sorted(available, key=lambda slot: slot.start_at)
        ]

        if window.requested_time is not None:
            return self._answer_specific_time(formatted, window.requested_time)

        if not formatted:
            return {
                "success": True,
                "availableSlots": [],
                "totalCount": 0,
                "message": "No available times found",
            }

        first_time = formatted[0].display["human_readable"]
        last_time = formatted[-1].display["human_readable"]
        return {
            "success": True,
            "availableSlots": [slot.to_dict() for slot in formatted],
            "totalCount": len(formatted),
            "firstAvailable": first_time,
            "lastAvailable": last_time,
            "message": f"We have {len(formatted)} available times from {first_time} to {last_time}",
        }

    def _answer_specific_time(
        self, formatted: list[FormattedSlot], requested_time: datetime
    ) -> dict[str, Any]:
        requested_iso = to_square_timestamp(requested_time)
        match = find_exact_match(formatted, requested_time)
        if match:
            return {
                "success": True,
                "isAvailable": True,
                "requestedTime": requested_iso,
                "requestedTimeFormatted": match.display["human_readable"],
                "slot": match.to_dict(),
                "message": f"Yes, {match.display['human_readable']} is available",
            }

        alternatives = find_closest_alternatives(formatted, requested_time)
        if alternatives:
            alt_times = ", ".join(slot.display["human_readable"] for slot in alternatives)
            message = f"That time is not available. The closest available times are: {alt_times}"
        else:
            message = "That time is not available and there are no other openings nearby."
        return {
            "success": True,
            "isAvailable": False,
            "requestedTime": requested_iso,
            "closestAlternatives": [slot.to_dict() for slot in alternatives],
            "message": message,
        }
