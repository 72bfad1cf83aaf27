from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from app.core.errors import SquareAPIError, ToolArgumentError
from app.integrations.square.base import SchedulingPlatform
from app.integrations.square.models import Customer
from app.services.catalog import PHONE_BOOKING_NOTE
from app.services.datetime_utils import BUSINESS_TZ, utc_now
from app.services.phone import (
    format_phone_for_creation,
    normalize_phone_number,
    phone_search_formats,
)

logger = logging.getLogger(__name__)


@dataclass
class CustomerResolution:
    customer_id: str
    is_new_customer: bool
    customer: Optional[Customer] = None


def split_name(full_name: str) -> tuple[str, str]:
    """Split on the first space: given name, then everything else."""
    parts = (full_name or "").strip().split(" ", 1)
    given = parts[0]
    family = parts[1].strip() if len(parts) > 1 else ""
    return given, family


class CustomerResolver:
    """Find or create Square customers keyed by phone number."""

    def __init__(
        self,
        platform: SchedulingPlatform,
        *,
        clock: Callable[[], datetime] = utc_now,
        new_idempotency_key: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        self.platform = platform
        self.clock = clock
        self.new_idempotency_key = new_idempotency_key

    async def find_by_phone(self, phone: str) -> Optional[Customer]:
        for phone_format in phone_search_formats(phone):
            logger.info(f"🔍 Searching for customer with phone: {phone_format}")
            customers = await self.platform.search_customers_by_phone(phone_format)
            if customers:
                # No disambiguation: the first match wins.
                customer = customers[0]
                logger.info(f"✅ Found existing customer: {customer.id}")
                return customer
        return None

    async def create(self, name: str, phone: str, email: Optional[str] = None) -> Customer:
        given_name, family_name = split_name(name)
        phone_for_creation = format_phone_for_creation(normalize_phone_number(phone))
        today = self.clock().astimezone(BUSINESS_TZ)

        logger.info(
            f"📋 Creating customer: given_name={given_name} family_name={family_name} "
            f"phone={phone_for_creation} email={email or 'not provided'}"
        )
        try:
            customer = await self.platform.create_customer(
                given_name=given_name,
                family_name=family_name,
                phone_number=phone_for_creation,
                email_address=email,
                note=f"First booking: {PHONE_BOOKING_NOTE} on {today:%m/%d/%Y}",
                idempotency_key=self.new_idempotency_key(),
            )
        except SquareAPIError as e:
            logger.error(
                f"❌ Customer creation failed: {e} (status={e.status_code}, "
                f"phone={phone_for_creation}, name={name}, errors={e.errors})"
            )
            raise
        logger.info(f"✅ Created new customer: {customer.id}")
        return customer

    async def find_or_create(
        self, name: str, phone: str, email: Optional[str] = None
    ) -> CustomerResolution:
        if not name or not name.strip():
            raise ToolArgumentError("Missing required field: customerName")

        try:
            existing = await self.find_by_phone(phone)
            if existing:
                return CustomerResolution(existing.id, is_new_customer=False, customer=existing)
            created = await self.create(name, phone, email)
        except SquareAPIError as e:
            logger.error(f"❌ Customer find/create error: {e} (phone={phone}, name={name})")
            raise SquareAPIError(
                f"Failed to find/create customer: {e}",
                status_code=e.status_code,
                errors=e.errors,
            ) from e
        return CustomerResolution(created.id, is_new_customer=True, customer=created)
