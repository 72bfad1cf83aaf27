from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Optional, Sequence

from app.core.errors import BookingRecoveryError, SquareAPIError, ToolArgumentError
from app.integrations.square.base import SchedulingPlatform
from app.integrations.square.models import AppointmentSegment, Booking
from app.services.catalog import (
    MINUTE_MS,
    PHONE_BOOKING_NOTE,
    RESCHEDULED_MARKER,
    ServiceCatalog,
)
from app.services.datetime_utils import (
    format_local,
    normalize_local_time,
    parse_booking_time,
    parse_instant,
    to_square_timestamp,
    utc_now,
)

logger = logging.getLogger(__name__)

# Bookings starting up to this long after the checked interval are still
# fetched, so one that starts exactly at the interval end is seen.
OVERLAP_LOOKAHEAD = timedelta(hours=1)
# Longest appointment that can start before the checked interval and still
# be running when it begins.
OVERLAP_LOOKBACK = timedelta(hours=8)
LOOKUP_WINDOW = timedelta(days=30)


@dataclass
class OverlapResult:
    has_overlap: bool
    conflicting_booking: Optional[Booking] = None


def _minutes(duration_ms: int) -> int:
    return duration_ms // MINUTE_MS


class BookingLifecycleEngine:
    """Create, extend, reschedule and cancel Square bookings.

    Every change that grows or moves an appointment is re-checked
    against the staff member's other active bookings right before the
    write. Back-to-back appointments are allowed; any true overlap is
    returned to the caller as a conflict rather than raised.
    """

    def __init__(
        self,
        platform: SchedulingPlatform,
        catalog: ServiceCatalog,
        *,
        location_id: str,
        clock: Callable[[], datetime] = utc_now,
        new_idempotency_key: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        self.platform = platform
        self.catalog = catalog
        self.location_id = location_id
        self.clock = clock
        self.new_idempotency_key = new_idempotency_key

    def booking_duration_ms(self, booking: Booking) -> int:
        return self.catalog.total_duration_ms(booking.service_ids)

    async def get_booking(self, booking_id: str) -> Booking:
        return await self.platform.retrieve_booking(booking_id)

    async def _service_versions(self, service_ids: Sequence[str]) -> dict[str, int]:
        """Current catalog versions for the given variation ids."""
        unique_ids = list(dict.fromkeys(service_ids))
        objects = await self.platform.batch_retrieve_catalog_objects(unique_ids)
        return {obj["id"]: int(obj["version"]) for obj in objects if obj.get("version") is not None}

    async def _segments_for(
        self, service_ids: Sequence[str], team_member_id: str
    ) -> list[AppointmentSegment]:
        versions = await self._service_versions(service_ids)
        return [
            AppointmentSegment(
                service_id=service_id,
                staff_id=team_member_id,
                service_variation_version=versions.get(service_id),
            )
            for service_id in service_ids
        ]

    def _booking_payload(
        self,
        *,
        start_at: str,
        customer_id: Optional[str],
        segments: Sequence[AppointmentSegment],
        note: Optional[str],
        location_id: Optional[str] = None,
    ) -> dict[str, Any]:
        return {
            "location_id": location_id or self.location_id,
            "start_at": start_at,
            "customer_id": customer_id,
            "customer_note": note,
            "appointment_segments": [segment.to_api() for segment in segments],
        }

    # ==================== CREATE ====================

    async def create_booking(
        self,
        customer_id: str,
        start_time: str,
        service_ids: Sequence[str],
        team_member_id: str,
    ) -> dict[str, Any]:
        if not service_ids:
            raise ToolArgumentError("At least one service is required")

        start_at = parse_booking_time(start_time)
        logger.info(f"⏰ Booking time (UTC): {start_at}")

        segments = await self._segments_for(service_ids, team_member_id)
        payload = self._booking_payload(
            start_at=start_at,
            customer_id=customer_id,
            segments=segments,
            note=PHONE_BOOKING_NOTE,
        )
        duration_ms = self.catalog.total_duration_ms(service_ids)

        logger.info(f"🔧 Calling Square createBooking ({len(service_ids)} service(s))")
        try:
            booking = await self.platform.create_booking(
                payload, idempotency_key=self.new_idempotency_key()
            )
        except SquareAPIError as e:
            logger.error("❌ ========== BOOKING CREATION FAILED ==========")
            logger.error(f"❌ Error message: {e} (status={e.status_code})")
            logger.error(f"❌ Square API errors: {json.dumps(e.errors, indent=2)}")
            logger.error(f"❌ Booking payload: {json.dumps(payload, indent=2)}")
            raise

        logger.info(f"✅ Booking created: {booking.id}")
        return {
            **booking.to_dict(),
            "duration_minutes": _minutes(duration_ms),
            "service_count": len(service_ids),
        }

    # ==================== OVERLAP CHECK ====================

    async def check_for_overlaps(
        self,
        interval_start: datetime,
        interval_end: datetime,
        team_member_id: Optional[str],
        exclude_booking_id: Optional[str] = None,
    ) -> OverlapResult:
        check_start = interval_start - OVERLAP_LOOKBACK
        check_end = interval_end + OVERLAP_LOOKAHEAD
        logger.info(
            f"🔍 Checking for overlaps from {to_square_timestamp(check_start)} "
            f"to {to_square_timestamp(check_end)}"
        )
        bookings = await self.platform.list_bookings(
            start_at_min=check_start,
            start_at_max=check_end,
            location_id=self.location_id,
            team_member_id=team_member_id,
        )
        candidates = [
            booking
            for booking in bookings
            if booking.id != exclude_booking_id and not booking.is_cancelled
        ]
        logger.info(f"📋 Found {len(candidates)} active bookings to check")

        for booking in candidates:
            if booking.start_at < interval_start:
                # Started earlier; conflicts only while still running at interval_start.
                booking_end = booking.start_at + timedelta(
                    milliseconds=self.booking_duration_ms(booking)
                )
                overlaps = booking_end > interval_start
            else:
                # Strict: a booking that starts exactly at interval_end is back-to-back.
                overlaps = booking.start_at < interval_end
            if overlaps:
                logger.info(f"❌ OVERLAP DETECTED with booking {booking.id}")
                return OverlapResult(has_overlap=True, conflicting_booking=booking)

        logger.info("✅ No overlaps detected")
        return OverlapResult(has_overlap=False)

    # ==================== ADD SERVICES ====================

    async def add_services_to_booking(
        self, booking_id: str, service_names: Sequence[str]
    ) -> dict[str, Any]:
        if not service_names:
            raise ToolArgumentError("At least one service name is required")

        current = await self.get_booking(booking_id)
        if current.is_cancelled:
            return {
                "success": False,
                "error": f"Booking {booking_id} is cancelled and cannot be changed",
            }

        new_ids = self.catalog.resolve_names(service_names)
        team_member_id = current.staff_id
        current_duration = self.booking_duration_ms(current)
        additional_duration = self.catalog.total_duration_ms(new_ids)
        total_duration = current_duration + additional_duration
        new_end = current.start_at + timedelta(milliseconds=total_duration)

        logger.info(
            f"⏱️ Current: {_minutes(current_duration)}min, "
            f"Additional: {_minutes(additional_duration)}min, "
            f"Total: {_minutes(total_duration)}min"
        )

        overlap = await self.check_for_overlaps(
            current.start_at, new_end, team_member_id, exclude_booking_id=booking_id
        )
        if overlap.has_overlap:
            conflict = overlap.conflicting_booking
            next_booking_time = format_local(conflict.start_at)
            return {
                "success": False,
                "hasConflict": True,
                "message": (
                    f"I cannot add these services to your {format_local(current.start_at)} "
                    f"appointment because we have another customer scheduled at "
                    f"{next_booking_time}. The additional services would take "
                    f"{_minutes(additional_duration)} minutes and would overlap with the "
                    f"next appointment. Please choose a different time if you'd like "
                    f"the extra services."
                ),
                "conflictingBookingId": conflict.id,
                "nextBooking": next_booking_time,
                "additionalDuration": _minutes(additional_duration),
            }

        new_segments = await self._segments_for(new_ids, team_member_id)
        combined_segments = [
            AppointmentSegment(
                service_id=segment.service_id,
                staff_id=segment.staff_id,
                service_variation_version=segment.service_variation_version,
            )
            for segment in current.segments
        ] + new_segments

        replacement = await self._replace_booking(current, combined_segments)
        logger.info(
            f"✅ Replaced booking {booking_id} with {replacement.id} "
            f"({len(new_ids)} additional service(s))"
        )
        return {
            "success": True,
            "booking": replacement.to_dict(),
            "bookingId": replacement.id,
            "previousBookingId": booking_id,
            "servicesAdded": list(service_names),
            "totalServices": len(combined_segments),
            "durationMinutes": _minutes(total_duration),
            "message": (
                f"Successfully added {', '.join(service_names)} to your appointment. "
                f"Your appointment will now take approximately "
                f"{_minutes(total_duration)} minutes."
            ),
        }

    async def _replace_booking(
        self, current: Booking, segments: list[AppointmentSegment]
    ) -> Booking:
        """Cancel ``current`` and book the same slot with ``segments``.

        Square cannot add segments to an existing booking, so this is two
        separate calls. When the create fails the original booking is
        re-created as a compensating step; ``BookingRecoveryError`` is
        raised either way so the failure is surfaced.
        """
        start_at = to_square_timestamp(current.start_at)
        note = current.customer_note or PHONE_BOOKING_NOTE

        await self.platform.cancel_booking(
            current.id,
            booking_version=current.version,
            idempotency_key=self.new_idempotency_key(),
        )
        logger.info(f"🗑️ Cancelled booking {current.id} for replacement")

        payload = self._booking_payload(
            start_at=start_at,
            customer_id=current.customer_id,
            segments=segments,
            note=note,
            location_id=current.location_id,
        )
        try:
            return await self.platform.create_booking(
                payload, idempotency_key=self.new_idempotency_key()
            )
        except SquareAPIError as create_error:
            logger.error(
                f"❌ Replacement booking for {current.id} failed after cancellation: "
                f"{create_error} errors={json.dumps(create_error.errors)}"
            )
            logger.error(f"❌ Replacement payload: {json.dumps(payload, indent=2)}")
            create_failure = create_error

        restore_payload = self._booking_payload(
            start_at=start_at,
            customer_id=current.customer_id,
            segments=current.segments,
            note=note,
            location_id=current.location_id,
        )
        try:
            restored = await self.platform.create_booking(
                restore_payload, idempotency_key=self.new_idempotency_key()
            )
        except SquareAPIError as restore_error:
            logger.critical(
                f"🚨 Booking {current.id} was cancelled and could not be restored; "
                f"manual reconciliation required: {restore_error} "
                f"payload={json.dumps(restore_payload)}"
            )
            raise BookingRecoveryError(
                f"Could not add services: the original appointment {current.id} was "
                f"cancelled and could not be restored. Staff must rebook it manually.",
                booking_id=current.id,
                rolled_back=False,
                cause=create_failure,
            ) from restore_error

        logger.warning(f"⚠️ Restored original appointment {current.id} as {restored.id}")
        raise BookingRecoveryError(
            f"Could not add services: {create_failure}. The original appointment "
            f"was restored under booking {restored.id}.",
            booking_id=current.id,
            rolled_back=True,
            restored_booking_id=restored.id,
            cause=create_failure,
        ) from create_failure

    # ==================== RESCHEDULE ====================

    async def reschedule_booking(self, booking_id: str, new_start_time: str) -> dict[str, Any]:
        logger.info(f"📅 rescheduleBooking called: booking={booking_id} newStartTime={new_start_time}")

        current = await self.get_booking(booking_id)
        if current.is_cancelled:
            return {
                "success": False,
                "error": f"Booking {booking_id} is cancelled and cannot be rescheduled",
            }

        team_member_id = current.staff_id
        total_duration = self.booking_duration_ms(current)

        corrected_time = normalize_local_time(new_start_time)
        new_start = parse_instant(corrected_time)
        new_end = new_start + timedelta(milliseconds=total_duration)
        start_for_square = to_square_timestamp(new_start)

        logger.info(
            f"🔄 New booking window: {start_for_square} to {to_square_timestamp(new_end)} "
            f"({_minutes(total_duration)} minutes)"
        )

        overlap = await self.check_for_overlaps(
            new_start, new_end, team_member_id, exclude_booking_id=booking_id
        )
        if overlap.has_overlap:
            conflict_time = format_local(overlap.conflicting_booking.start_at)
            requested_time = format_local(new_start)
            logger.info(f"❌ OVERLAP: Cannot reschedule to {requested_time} - conflicts with {conflict_time}")
            return {
                "success": False,
                "hasConflict": True,
                "message": (
                    f"I cannot reschedule your appointment to {requested_time} because "
                    f"there is already another customer scheduled at {conflict_time}. "
                    f"Your appointment would take {_minutes(total_duration)} minutes and "
                    f"would overlap. Please choose a different time."
                ),
                "requestedTime": requested_time,
                "conflictingTime": conflict_time,
                "duration": _minutes(total_duration),
            }

        original_note = current.customer_note or PHONE_BOOKING_NOTE
        note = (
            original_note
            if RESCHEDULED_MARKER in original_note
            else f"{original_note} {RESCHEDULED_MARKER}"
        )
        # Only updatable fields; echoing read-only ones back makes Square reject the call.
        updated = await self.platform.update_booking(
            booking_id,
            {"version": current.version, "start_at": start_for_square, "customer_note": note},
        )
        human_readable_time = format_local(updated.start_at)
        logger.info(f"✅ Rescheduled to {human_readable_time}")

        return {
            "success": True,
            "booking": updated.to_dict(),
            "message": f"Appointment rescheduled to {human_readable_time}",
            "debugInfo": {
                "receivedTime": new_start_time,
                "correctedTime": corrected_time,
                "sentToSquare": start_for_square,
                "finalTime": human_readable_time,
            },
        }

    # ==================== CANCEL ====================

    async def cancel_booking(self, booking_id: str) -> dict[str, Any]:
        current = await self.get_booking(booking_id)
        if current.is_cancelled:
            return {
                "success": True,
                "booking": current.to_dict(),
                "message": "Appointment was already cancelled",
            }

        cancelled = await self.platform.cancel_booking(
            booking_id,
            booking_version=current.version,
            idempotency_key=self.new_idempotency_key(),
        )
        logger.info(f"✅ Cancelled booking {booking_id}")
        return {
            "success": True,
            "booking": cancelled.to_dict(),
            "message": "Appointment cancelled successfully",
        }

    # ==================== LOOKUP ====================

    async def lookup_customer_bookings(self, customer_id: str) -> dict[str, Any]:
        """Split a customer's recent and upcoming bookings.

        "Completed" is presentation only: an active booking whose start
        is already behind us. Square has no such status.
        """
        now = self.clock()
        bookings = await self.platform.list_bookings(
            start_at_min=now - LOOKUP_WINDOW,
            start_at_max=now + LOOKUP_WINDOW,
            location_id=self.location_id,
            customer_id=customer_id,
        )

        active: list[dict[str, Any]] = []
        completed: list[dict[str, Any]] = []
        cancelled: list[dict[str, Any]] = []
        for booking in sorted(bookings, key=lambda b: b.start_at):
            entry = {
                **booking.to_dict(),
                "startAt_formatted": format_local(booking.start_at),
                "startAt_utc": to_square_timestamp(booking.start_at),
                "services": [self.catalog.name_for(sid) for sid in booking.service_ids],
            }
            if booking.is_cancelled:
                cancelled.append(entry)
            elif booking.start_at < now:
                completed.append(entry)
            else:
                active.append(entry)

        logger.info(
            f"✅ Found {len(bookings)} total bookings: {len(active)} active, "
            f"{len(completed)} completed, {len(cancelled)} cancelled"
        )

        if active and completed:
            message = (
                f"Found {len(active)} upcoming booking(s) and "
                f"{len(completed)} past booking(s)"
            )
        elif active:
            message = f"Found {len(active)} upcoming booking(s)"
        elif completed:
            message = f"No upcoming bookings, but found {len(completed)} past booking(s)"
        else:
            message = "No upcoming bookings found"

        return {
            "activeBookings": active,
            "completedBookings": completed,
            "cancelledBookings": cancelled,
            "activeCount": len(active),
            "completedCount": len(completed),
            "cancelledCount": len(cancelled),
            "totalBookings": len(bookings),
            "message": message,
        }
