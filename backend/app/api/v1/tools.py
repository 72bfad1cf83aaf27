from __future__ import annotations

import json
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.core.dependencies import get_tool_router
from app.core.errors import BookingRecoveryError, SquareAPIError, ToolArgumentError
from app.tools.tool_router import ToolRouter

logger = logging.getLogger(__name__)

router = APIRouter()


async def _read_arguments(request: Request) -> Dict[str, Any]:
    """Tool arguments are the JSON body itself; an empty body means no arguments."""
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        args = json.loads(raw)
    except json.JSONDecodeError:
        raise ToolArgumentError("Invalid JSON in tool arguments")
    if not isinstance(args, dict):
        raise ToolArgumentError("Tool arguments must be an object")
    return args


async def _run_tool(tool_name: str, request: Request, tool_router: ToolRouter) -> JSONResponse:
    try:
        arguments = await _read_arguments(request)
        result = await tool_router.execute(tool_name, arguments)
        return JSONResponse(result)
    except ToolArgumentError as e:
        logger.warning(f"⚠️ {tool_name} rejected: {e}")
        return JSONResponse({"success": False, "error": str(e)}, status_code=400)
    except BookingRecoveryError as e:
        logger.error(f"❌ {tool_name} left booking {e.booking_id} inconsistent: {e}")
        return JSONResponse(
            {
                "success": False,
                "error": str(e),
                "bookingId": e.booking_id,
                "rolledBack": e.rolled_back,
                "restoredBookingId": e.restored_booking_id,
                "requiresManualReconciliation": not e.rolled_back,
            },
            status_code=500,
        )
    except SquareAPIError as e:
        logger.error(f"❌ {tool_name} error: {e} (status={e.status_code})")
        return JSONResponse(
            {"success": False, "error": str(e), "details": e.errors},
            # No status code means Square was never reached.
            status_code=500 if e.status_code is not None else 502,
        )


@router.post("/getCurrentDateTime")
async def get_current_date_time(request: Request, tool_router: ToolRouter = Depends(get_tool_router)):
    """Current date/time in the business timezone plus relative-date hints"""
    return await _run_tool("getCurrentDateTime", request, tool_router)


@router.post("/getAvailability")
async def get_availability(request: Request, tool_router: ToolRouter = Depends(get_tool_router)):
    """Open slots for a day, a specific time, or the next week"""
    return await _run_tool("getAvailability", request, tool_router)


@router.post("/createBooking")
async def create_booking(request: Request, tool_router: ToolRouter = Depends(get_tool_router)):
    """Find or create the customer and book the appointment"""
    return await _run_tool("createBooking", request, tool_router)


@router.post("/addServicesToBooking")
async def add_services_to_booking(request: Request, tool_router: ToolRouter = Depends(get_tool_router)):
    """Extend an appointment with more services when the next slot allows it"""
    return await _run_tool("addServicesToBooking", request, tool_router)


@router.post("/rescheduleBooking")
async def reschedule_booking(request: Request, tool_router: ToolRouter = Depends(get_tool_router)):
    """Move an appointment, refusing overlaps"""
    return await _run_tool("rescheduleBooking", request, tool_router)


@router.post("/cancelBooking")
async def cancel_booking(request: Request, tool_router: ToolRouter = Depends(get_tool_router)):
    return await _run_tool("cancelBooking", request, tool_router)


@router.post("/lookupBooking")
async def lookup_booking(request: Request, tool_router: ToolRouter = Depends(get_tool_router)):
    """Upcoming and recent appointments for a phone number"""
    return await _run_tool("lookupBooking", request, tool_router)


@router.post("/lookupCustomer")
async def lookup_customer(request: Request, tool_router: ToolRouter = Depends(get_tool_router)):
    return await _run_tool("lookupCustomer", request, tool_router)


@router.post("/generalInquiry")
async def general_inquiry(request: Request, tool_router: ToolRouter = Depends(get_tool_router)):
    """Hours, services and prices, or staff"""
    return await _run_tool("generalInquiry", request, tool_router)
