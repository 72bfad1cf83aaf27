from __future__ import annotations

import argparse
import asyncio
import json

from app.core.dependencies import get_tool_router


async def run_smoke(customer_phone: str, date: str | None, inquiry_type: str) -> None:
    """Read-only tour of the tools against the configured Square account."""
    router = get_tool_router()

    now = await router.execute("getCurrentDateTime", {})
    availability = await router.execute(
        "getAvailability",
        {"startDate": date or now["current"]["date"]},
    )
    customer = await router.execute("lookupCustomer", {"customerPhone": customer_phone})
    bookings = await router.execute("lookupBooking", {"customerPhone": customer_phone})
    inquiry = await router.execute("generalInquiry", {"inquiryType": inquiry_type})

    print(json.dumps({
        "current_date_time": now,
        "availability": availability,
        "customer": customer,
        "bookings": bookings,
        "inquiry": inquiry,
    }, indent=2))


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Smoke test the booking tools against Square.")
    parser.add_argument("--customer-phone", required=True, help="Customer phone number")
    parser.add_argument("--date", help="Date to check availability for (YYYY-MM-DD, default today)")
    parser.add_argument("--inquiry-type", default="hours", help="generalInquiry section")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    asyncio.run(run_smoke(args.customer_phone, args.date, args.inquiry_type))


if __name__ == "__main__":
    main()
