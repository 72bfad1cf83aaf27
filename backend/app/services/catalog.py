from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Sequence

from app.core.errors import InvalidServiceError

logger = logging.getLogger(__name__)

MINUTE_MS = 60_000
DEFAULT_DURATION_MS = 30 * MINUTE_MS


# Origin tags stored in the booking's customer note
BOOKING_SOURCES = {
    "PHONE": "Phone Booking (ElevenLabs AI)",
    "WEBSITE": "Website Booking",
    "IN_STORE": "In Store Booking",
    "MANUAL": "Manual Booking",
}
PHONE_BOOKING_NOTE = BOOKING_SOURCES["PHONE"]
RESCHEDULED_MARKER = "(Rescheduled via phone)"


def classify_booking_source(note: Optional[str]) -> str:
    """Map a booking's customer note to an analytics bucket."""
    note = note or ""
    if "Phone Booking" in note:
        return "phone"
    if "Website Booking" in note:
        return "website"
    if "In Store" in note:
        return "inStore"
    if "Manual" in note:
        return "manual"
    return "unknown"


@dataclass(frozen=True)
class ServiceCatalogEntry:
    name: str
    catalog_id: str
    duration_ms: int

    @property
    def duration_minutes(self) -> int:
        return self.duration_ms // MINUTE_MS


BARBERSHOP_SERVICES: tuple[ServiceCatalogEntry, ...] = (
    ServiceCatalogEntry("Regular Haircut", "7XPUHGDLY4N3H2OWTHMIABKF", 30 * MINUTE_MS),
    ServiceCatalogEntry("Beard Trim", "SPUX6LRBS6RHFBX3MSRASG2J", 30 * MINUTE_MS),
    ServiceCatalogEntry("Beard Sculpt", "UH5JRVCJGAB2KISNBQ7KMVVQ", 30 * MINUTE_MS),
    ServiceCatalogEntry("Ear Waxing", "ALZZEN4DO6JCNMC6YPXN6DPH", 10 * MINUTE_MS),
    ServiceCatalogEntry("Nose Waxing", "VVGK7I7L6BHTG7LFKLAIRHBZ", 10 * MINUTE_MS),
    ServiceCatalogEntry("Eyebrow Waxing", "3TV5CVRXCB62BWIWVY6OCXIC", 10 * MINUTE_MS),
    ServiceCatalogEntry("Paraffin", "7ND6OIFTRLJEPMDBBI3B3ELT", 30 * MINUTE_MS),
    ServiceCatalogEntry("Gold", "7UKWUIF4CP7YR27FI52DWPEN", 90 * MINUTE_MS),
    ServiceCatalogEntry("Silver", "7PFUQVFMALHIPDAJSYCBKBYV", 60 * MINUTE_MS),
)


class ServiceCatalog:
    """Immutable lookup of bookable services.

    Maps human service names to Square variation ids and fixed durations.
    Unknown variation ids fall back to the default duration rather than
    failing, so a booking made elsewhere with an unlisted service can
    still be measured.
    """

    def __init__(
        self,
        entries: Iterable[ServiceCatalogEntry],
        *,
        default_service_id: Optional[str] = None,
        default_duration_ms: int = DEFAULT_DURATION_MS,
    ):
        self._entries = tuple(entries)
        if not self._entries:
            raise ValueError("Service catalog must contain at least one service")
        self._by_id = {entry.catalog_id: entry for entry in self._entries}
        self._by_name = {entry.name.lower(): entry for entry in self._entries}
        self.default_service_id = default_service_id or self._entries[0].catalog_id
        self.default_duration_ms = default_duration_ms

    @classmethod
    def from_file(cls, path: str | Path) -> "ServiceCatalog":
        """Load a catalog from JSON.

        Expected shape::

            {"default": "Regular Haircut",
             "services": [{"name": "...", "catalog_id": "...", "duration_minutes": 30}]}
        """
        data = json.loads(Path(path).read_text())
        entries = [
            ServiceCatalogEntry(
                name=item["name"],
                catalog_id=item["catalog_id"],
                duration_ms=int(item["duration_minutes"]) * MINUTE_MS,
            )
            for item in data["services"]
        ]
        default_id = None
        default_name = data.get("default")
        if default_name:
            match = next((e for e in entries if e.name == default_name), None)
            if match is None:
                raise ValueError(f"Default service {default_name!r} is not in the catalog")
            default_id = match.catalog_id
        return cls(entries, default_service_id=default_id)

    @property
    def names(self) -> list[str]:
        return [entry.name for entry in self._entries]

    @property
    def entries(self) -> tuple[ServiceCatalogEntry, ...]:
        return self._entries

    def get(self, service_id: str) -> Optional[ServiceCatalogEntry]:
        return self._by_id.get(service_id)

    def catalog_id_for(self, name: str) -> Optional[str]:
        entry = self._by_name.get((name or "").strip().lower())
        return entry.catalog_id if entry else None

    def name_for(self, service_id: str) -> str:
        entry = self._by_id.get(service_id)
        return entry.name if entry else "Unknown Service"

    def duration_ms(self, service_id: Optional[str]) -> int:
        entry = self._by_id.get(service_id) if service_id else None
        return entry.duration_ms if entry else self.default_duration_ms

    def total_duration_ms(self, service_ids: Sequence[str]) -> int:
        return sum(self.duration_ms(service_id) for service_id in service_ids)

    def resolve_names(self, names: Sequence[str]) -> list[str]:
        """Map service names to variation ids; all-or-nothing."""
        resolved: list[str] = []
        invalid: list[str] = []
        for name in names:
            catalog_id = self.catalog_id_for(name)
            if catalog_id is None:
                invalid.append(name)
            else:
                resolved.append(catalog_id)
        if invalid:
            raise InvalidServiceError(invalid, self.names)
        return resolved


def load_catalog(path: Optional[str] = None) -> ServiceCatalog:
    if path:
        logger.info(f"📋 Loading service catalog from {path}")
        return ServiceCatalog.from_file(path)
    return ServiceCatalog(BARBERSHOP_SERVICES)
