from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from app.core.errors import ToolArgumentError
from app.services.availability import AvailabilityEngine
from app.services.booking_engine import BookingLifecycleEngine
from app.services.business_info import BusinessInfoService
from app.services.catalog import ServiceCatalog
from app.services.customer_resolver import CustomerResolver
from app.services.datetime_utils import current_datetime_context, utc_now
from app.tools.tool_arguments import (
    AddServicesArgs,
    AvailabilityArgs,
    CancelArgs,
    CreateBookingArgs,
    InquiryArgs,
    LookupArgs,
    RescheduleArgs,
    as_list,
)

logger = logging.getLogger(__name__)

ArgsT = TypeVar("ArgsT", bound=BaseModel)


def _parse_args(model: Type[ArgsT], arguments: dict) -> ArgsT:
    try:
        return model.model_validate(arguments or {})
    except ValidationError as e:
        raise ToolArgumentError(f"Invalid tool arguments: {e.errors()[0].get('msg')}") from e


def _require(**fields: Optional[str]) -> None:
    missing = [name for name, value in fields.items() if not value]
    if missing:
        raise ToolArgumentError(f"Missing required fields: {', '.join(missing)}")


class ToolRouter:
    """Executes voice-agent tool calls against the booking engines.

    Returns plain dicts for every business outcome (including "not
    available" and conflicts). Raises ``ToolArgumentError`` for bad input;
    Square failures propagate as ``SquareAPIError``.
    """

    def __init__(
        self,
        *,
        availability: AvailabilityEngine,
        bookings: BookingLifecycleEngine,
        customers: CustomerResolver,
        business_info: BusinessInfoService,
        catalog: ServiceCatalog,
        default_team_member_id: str,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.availability = availability
        self.bookings = bookings
        self.customers = customers
        self.business_info = business_info
        self.catalog = catalog
        self.default_team_member_id = default_team_member_id
        self.clock = clock
        self._handlers = {
            "getCurrentDateTime": self._get_current_date_time,
            "getAvailability": self._get_availability,
            "createBooking": self._create_booking,
            "addServicesToBooking": self._add_services_to_booking,
            "rescheduleBooking": self._reschedule_booking,
            "cancelBooking": self._cancel_booking,
            "lookupBooking": self._lookup_booking,
            "lookupCustomer": self._lookup_customer,
            "generalInquiry": self._general_inquiry,
        }

    async def execute(self, tool_name: str, arguments: dict) -> dict[str, Any]:
        handler = self._handlers.get(tool_name)
        if handler is None:
            raise ToolArgumentError(f"Unknown tool: {tool_name}")
        logger.info(f"🔧 {tool_name} called: {arguments}")
        return await handler(arguments)

    async def _get_current_date_time(self, arguments: dict) -> dict[str, Any]:
        return {"success": True, **current_datetime_context(self.clock())}

    async def _get_availability(self, arguments: dict) -> dict[str, Any]:
        args = _parse_args(AvailabilityArgs, arguments)
        return await self.availability.get_availability(
            start_date=args.start_date,
            requested_datetime=args.requested_datetime,
            service_variation_id=args.service_variation_id,
            team_member_id=args.team_member_id,
        )

    async def _create_booking(self, arguments: dict) -> dict[str, Any]:
        args = _parse_args(CreateBookingArgs, arguments)
        _require(
            customerName=args.customer_name,
            customerPhone=args.customer_phone,
            startTime=args.start_time,
        )

        service_ids = as_list(args.service_variation_ids)
        if not service_ids and args.service_variation_id:
            service_ids = [args.service_variation_id]
        if not service_ids:
            raise ToolArgumentError(
                "Missing required field: serviceVariationId or serviceVariationIds "
                "(array or comma-separated string)"
            )

        team_member_id = args.team_member_id or self.default_team_member_id
        logger.info(f"👤 Using team member: {team_member_id}")

        resolution = await self.customers.find_or_create(
            args.customer_name, args.customer_phone, args.customer_email
        )
        booking = await self.bookings.create_booking(
            resolution.customer_id, args.start_time, service_ids, team_member_id
        )

        service_names = [self.catalog.name_for(service_id) for service_id in service_ids]
        return {
            "success": True,
            "booking": booking,
            "bookingId": booking["id"],
            "duration_minutes": booking["duration_minutes"],
            "service_count": booking["service_count"],
            "services": service_names,
            "message": (
                f"Appointment created successfully for {args.customer_name}. "
                f"Total duration: {booking['duration_minutes']} minutes "
                f"({', '.join(service_names)})"
            ),
            "newCustomer": resolution.is_new_customer,
        }

    async def _add_services_to_booking(self, arguments: dict) -> dict[str, Any]:
        args = _parse_args(AddServicesArgs, arguments)
        _require(bookingId=args.booking_id)
        service_names = as_list(args.service_names)
        if not service_names:
            raise ToolArgumentError(
                "Missing required field: serviceNames (must be array or comma-separated string)"
            )
        return await self.bookings.add_services_to_booking(args.booking_id, service_names)

    async def _reschedule_booking(self, arguments: dict) -> dict[str, Any]:
        args = _parse_args(RescheduleArgs, arguments)
        _require(bookingId=args.booking_id, newStartTime=args.new_start_time)
        return await self.bookings.reschedule_booking(args.booking_id, args.new_start_time)

    async def _cancel_booking(self, arguments: dict) -> dict[str, Any]:
        args = _parse_args(CancelArgs, arguments)
        _require(bookingId=args.booking_id)
        return await self.bookings.cancel_booking(args.booking_id)

    async def _lookup_booking(self, arguments: dict) -> dict[str, Any]:
        args = _parse_args(LookupArgs, arguments)
        _require(customerPhone=args.customer_phone)

        customer = await self.customers.find_by_phone(args.customer_phone)
        if not customer:
            return {
                "success": True,
                "found": False,
                "message": "No customer found with that phone number",
            }

        result = await self.bookings.lookup_customer_bookings(customer.id)
        # Cancelled bookings stay server-side; the agent only sees upcoming and past ones.
        logger.info(
            f"📊 Sending to agent: {result['activeCount']} active, "
            f"{result['completedCount']} completed "
            f"({result['cancelledCount']} cancelled hidden)"
        )
        return {
            "success": True,
            "found": True,
            "customer": customer.to_dict(),
            "activeBookings": result["activeBookings"],
            "completedBookings": result["completedBookings"],
            "activeCount": result["activeCount"],
            "completedCount": result["completedCount"],
            "totalBookings": result["activeCount"] + result["completedCount"],
            "message": result["message"],
        }

    async def _lookup_customer(self, arguments: dict) -> dict[str, Any]:
        args = _parse_args(LookupArgs, arguments)
        _require(customerPhone=args.customer_phone)

        customer = await self.customers.find_by_phone(args.customer_phone)
        if not customer:
            logger.info(f"   Customer not found for phone: {args.customer_phone}")
            return {"success": True, "found": False}

        logger.info(f"✅ Customer found: {customer.full_name} ({customer.id})")
        return {"success": True, "found": True, "customer": customer.to_dict()}

    async def _general_inquiry(self, arguments: dict) -> dict[str, Any]:
        args = _parse_args(InquiryArgs, arguments)
        return await self.business_info.general_inquiry(args.inquiry_type)
