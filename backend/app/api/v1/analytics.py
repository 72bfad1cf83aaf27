from __future__ import annotations

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.core.config import VERSION, settings
from app.core.dependencies import get_service_catalog, get_square_client
from app.core.errors import SquareAPIError
from app.integrations.square import SchedulingPlatform
from app.services.catalog import BOOKING_SOURCES, ServiceCatalog, classify_booking_source
from app.services.datetime_utils import utc_now
from app.tools.tool_definitions import TOOLS

logger = logging.getLogger(__name__)

router = APIRouter()

ANALYTICS_WINDOW = timedelta(days=30)


@router.get("/health")
async def health(catalog: ServiceCatalog = Depends(get_service_catalog)):
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "Square Booking Server for voice agents",
        "version": VERSION,
        "environment": settings.app_env,
        "endpoints": {
            "serverTools": [f"POST /tools/{tool['function']['name']}" for tool in TOOLS],
            "analytics": ["GET /health", "GET /analytics/sources", "GET /tools"],
        },
        "bookingSources": BOOKING_SOURCES,
        "availableServices": catalog.names,
    }


@router.get("/tools")
async def list_tools():
    """Function schemas for configuring the voice agent"""
    return {"tools": TOOLS}


@router.get("/analytics/sources")
async def booking_sources(platform: SchedulingPlatform = Depends(get_square_client)):
    """Count the last 30 days of bookings by where they were made"""
    now = utc_now()
    try:
        bookings = await platform.list_bookings(
            start_at_min=now - ANALYTICS_WINDOW,
            start_at_max=now,
            location_id=settings.location_id,
        )
    except SquareAPIError as e:
        logger.error(f"❌ Booking source analytics failed: {e}")
        return JSONResponse({"error": str(e)}, status_code=500)

    source_counts = {"phone": 0, "website": 0, "inStore": 0, "manual": 0, "unknown": 0}
    for booking in bookings:
        source_counts[classify_booking_source(booking.customer_note)] += 1

    return {
        "period": "Last 30 days",
        "totalBookings": len(bookings),
        "sources": source_counts,
    }
