"""Square Bookings Integration"""

from app.integrations.square.base import SchedulingPlatform
from app.integrations.square.client import SquareClient
from app.integrations.square.models import (
    CANCELLED_STATUSES,
    AppointmentSegment,
    AvailabilitySlot,
    Booking,
    Customer,
)

__all__ = [
    "CANCELLED_STATUSES",
    "AppointmentSegment",
    "AvailabilitySlot",
    "Booking",
    "Customer",
    "SchedulingPlatform",
    "SquareClient",
]
