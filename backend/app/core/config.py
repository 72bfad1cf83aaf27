from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

SQUARE_BASE_URLS = {
    "production": "https://connect.squareup.com/v2",
    "sandbox": "https://connect.squareupsandbox.com/v2",
}

VERSION = "2.9.0"


@dataclass(frozen=True)
class Settings:
    square_access_token: Optional[str]
    square_environment: str = "production"
    square_api_version: str = "2024-12-18"
    square_timeout_seconds: float = 30.0
    location_id: str = "LCS4MXPZP8J3M"
    default_team_member_id: str = "TMKzhB-WjsDff5rr"
    timezone: str = "America/New_York"
    service_catalog_path: Optional[str] = None
    inquiry_cache_ttl_seconds: int = 300
    app_env: str = "unknown"
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    @property
    def square_base_url(self) -> str:
        return SQUARE_BASE_URLS.get(self.square_environment, SQUARE_BASE_URLS["production"])


def load_settings() -> Settings:
    """Read settings from the environment (``.env`` already loaded)."""
    return Settings(
        square_access_token=os.getenv("SQUARE_ACCESS_TOKEN"),
        square_environment=os.getenv("SQUARE_ENVIRONMENT", "production"),
        square_api_version=os.getenv("SQUARE_API_VERSION", "2024-12-18"),
        square_timeout_seconds=float(os.getenv("SQUARE_TIMEOUT_SECONDS", 30)),
        location_id=os.getenv("SQUARE_LOCATION_ID", "LCS4MXPZP8J3M"),
        default_team_member_id=os.getenv("DEFAULT_TEAM_MEMBER_ID", "TMKzhB-WjsDff5rr"),
        timezone=os.getenv("BUSINESS_TIMEZONE", "America/New_York"),
        service_catalog_path=os.getenv("SERVICE_CATALOG_PATH") or None,
        inquiry_cache_ttl_seconds=int(os.getenv("INQUIRY_CACHE_TTL_SECONDS", 300)),
        app_env=os.getenv("APP_ENV", "unknown"),
        api_host=os.getenv("API_HOST", "0.0.0.0"),
        api_port=int(os.getenv("API_PORT", 8000)),
    )


settings = load_settings()
