from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class _BaseToolArgs(BaseModel):
    """Common base for tool argument models.

    Tolerant of extra fields coming from the voice platform. Everything is
    optional at this level so missing fields can be reported by name.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class AvailabilityArgs(_BaseToolArgs):
    start_date: Optional[str] = Field(None, alias="startDate")
    requested_datetime: Optional[str] = Field(None, alias="datetime")
    service_variation_id: Optional[str] = Field(None, alias="serviceVariationId")
    team_member_id: Optional[str] = Field(None, alias="teamMemberId")


class CreateBookingArgs(_BaseToolArgs):
    customer_name: Optional[str] = Field(None, alias="customerName")
    customer_phone: Optional[str] = Field(None, alias="customerPhone")
    customer_email: Optional[str] = Field(None, alias="customerEmail")
    start_time: Optional[str] = Field(None, alias="startTime")
    service_variation_id: Optional[str] = Field(None, alias="serviceVariationId")
    # Array or comma-separated string; some agents cannot emit arrays.
    service_variation_ids: Union[list[Any], str, None] = Field(None, alias="serviceVariationIds")
    team_member_id: Optional[str] = Field(None, alias="teamMemberId")


class AddServicesArgs(_BaseToolArgs):
    booking_id: Optional[str] = Field(None, alias="bookingId")
    service_names: Union[list[Any], str, None] = Field(None, alias="serviceNames")


class RescheduleArgs(_BaseToolArgs):
    booking_id: Optional[str] = Field(None, alias="bookingId")
    new_start_time: Optional[str] = Field(None, alias="newStartTime")


class CancelArgs(_BaseToolArgs):
    booking_id: Optional[str] = Field(None, alias="bookingId")


class LookupArgs(_BaseToolArgs):
    customer_phone: Optional[str] = Field(None, alias="customerPhone")
    customer_name: Optional[str] = Field(None, alias="customerName")


class InquiryArgs(_BaseToolArgs):
    inquiry_type: Optional[str] = Field(None, alias="inquiryType")


def as_list(value: Union[list[Any], str, None]) -> list[str]:
    """Accept a list or a comma-separated string; drop blanks."""
    if value is None:
        return []
    items = value.split(",") if isinstance(value, str) else value
    return [str(item).strip() for item in items if str(item).strip()]
