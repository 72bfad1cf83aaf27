"""Square booking data models"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from app.services.datetime_utils import parse_square_timestamp, to_square_timestamp

ACTIVE_STATUS = "ACCEPTED"
CANCELLED_STATUSES = frozenset({"CANCELLED_BY_SELLER", "CANCELLED_BY_CUSTOMER"})


@dataclass
class AppointmentSegment:
    service_id: str
    staff_id: Optional[str]
    service_variation_version: Optional[int] = None
    duration_minutes: Optional[int] = None  # as reported by Square; informational

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "AppointmentSegment":
        version = data.get("service_variation_version")
        return cls(
            service_id=data.get("service_variation_id", ""),
            staff_id=data.get("team_member_id"),
            service_variation_version=int(version) if version is not None else None,
            duration_minutes=data.get("duration_minutes"),
        )

    def to_api(self) -> dict[str, Any]:
        """Segment payload for create/update calls."""
        payload: dict[str, Any] = {
            "service_variation_id": self.service_id,
            "team_member_id": self.staff_id,
        }
        if self.service_variation_version is not None:
            payload["service_variation_version"] = self.service_variation_version
        return payload


@dataclass
class Booking:
    id: str
    start_at: datetime
    segments: list[AppointmentSegment]
    status: str
    version: Optional[int]
    location_id: Optional[str] = None
    customer_id: Optional[str] = None
    customer_note: Optional[str] = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Booking":
        return cls(
            id=data["id"],
            start_at=parse_square_timestamp(data["start_at"]),
            segments=[
                AppointmentSegment.from_api(segment)
                for segment in data.get("appointment_segments") or []
            ],
            status=data.get("status", ACTIVE_STATUS),
            version=data.get("version"),
            location_id=data.get("location_id"),
            customer_id=data.get("customer_id"),
            customer_note=data.get("customer_note"),
        )

    @property
    def is_cancelled(self) -> bool:
        return self.status in CANCELLED_STATUSES

    @property
    def service_ids(self) -> list[str]:
        return [segment.service_id for segment in self.segments]

    @property
    def staff_id(self) -> Optional[str]:
        # All segments share one staff member in bookings made here.
        return self.segments[0].staff_id if self.segments else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "status": self.status,
            "startAt": to_square_timestamp(self.start_at),
            "locationId": self.location_id,
            "customerId": self.customer_id,
            "customerNote": self.customer_note,
            "version": self.version,
            "appointmentSegments": [
                {
                    "serviceVariationId": segment.service_id,
                    "teamMemberId": segment.staff_id,
                    "durationMinutes": segment.duration_minutes,
                }
                for segment in self.segments
            ],
        }


@dataclass
class Customer:
    id: str
    given_name: Optional[str] = None
    family_name: Optional[str] = None
    phone_number: Optional[str] = None
    email_address: Optional[str] = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Customer":
        return cls(
            id=data["id"],
            given_name=data.get("given_name"),
            family_name=data.get("family_name"),
            phone_number=data.get("phone_number"),
            email_address=data.get("email_address"),
        )

    @property
    def full_name(self) -> str:
        return f"{self.given_name or ''} {self.family_name or ''}".strip()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "givenName": self.given_name,
            "familyName": self.family_name,
            "fullName": self.full_name,
            "phoneNumber": self.phone_number,
            "emailAddress": self.email_address,
        }


@dataclass
class AvailabilitySlot:
    """A start time offered by Square's availability search. Never stored."""

    start_at: datetime
    service_id: Optional[str]
    staff_id: Optional[str] = None
    duration_minutes: Optional[int] = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "AvailabilitySlot":
        segments = data.get("appointment_segments") or [{}]
        first = segments[0]
        return cls(
            start_at=parse_square_timestamp(data["start_at"]),
            service_id=first.get("service_variation_id"),
            staff_id=first.get("team_member_id"),
            duration_minutes=first.get("duration_minutes"),
            raw=data,
        )
