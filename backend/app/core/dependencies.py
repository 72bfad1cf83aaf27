from __future__ import annotations

from typing import Any

from app.core.config import settings
from app.integrations.square import SquareClient
from app.services.availability import AvailabilityEngine
from app.services.booking_engine import BookingLifecycleEngine
from app.services.business_info import BusinessInfoService
from app.services.catalog import ServiceCatalog, load_catalog
from app.services.customer_resolver import CustomerResolver
from app.tools.tool_router import ToolRouter

# Lazy-loaded singletons (nothing talks to Square at import time)
_instances: dict[str, Any] = {}


def get_square_client() -> SquareClient:
    if "square" not in _instances:
        _instances["square"] = SquareClient.from_settings(settings)
    return _instances["square"]


def get_service_catalog() -> ServiceCatalog:
    if "catalog" not in _instances:
        _instances["catalog"] = load_catalog(settings.service_catalog_path)
    return _instances["catalog"]


def get_business_info() -> BusinessInfoService:
    # Holds the inquiry cache, so it must be shared across requests.
    if "business_info" not in _instances:
        _instances["business_info"] = BusinessInfoService(
            get_square_client(),
            location_id=settings.location_id,
            timezone_name=settings.timezone,
            ttl_seconds=settings.inquiry_cache_ttl_seconds,
        )
    return _instances["business_info"]


def get_tool_router() -> ToolRouter:
    """FastAPI dependency: the router every tool endpoint executes through."""
    if "tool_router" not in _instances:
        platform = get_square_client()
        catalog = get_service_catalog()
        _instances["tool_router"] = ToolRouter(
            availability=AvailabilityEngine(platform, catalog, location_id=settings.location_id),
            bookings=BookingLifecycleEngine(platform, catalog, location_id=settings.location_id),
            customers=CustomerResolver(platform),
            business_info=get_business_info(),
            catalog=catalog,
            default_team_member_id=settings.default_team_member_id,
        )
    return _instances["tool_router"]
