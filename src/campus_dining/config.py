"""Application configuration."""

import os
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from campus_dining.domain.dining import Location

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

DEFAULT_LOCATIONS = (
    Location(id=1, name="Gettysburg - Bullet Hole"),
    Location(id=2, name="Gettysburg - Commons"),
    Location(id=4, name="Gettysburg - Servo"),
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    api_base: str = "https://apiservicelocatorstenantgettysburg.fdmealplanner.com"
    api_prefix: str = "/api/v1/data-locator-webapi/19"
    token_url: str = (
        "https://users.fdmealplanner.com/api/v1/token-data/"
        "D4qSnj2SJXF2EEWw6tcxKG8oTvhtZ72moLq93YSARSvbUbBBgbDQ2DPngDFM3lh5/token"
    )
    account_id: int = 4
    tenant_id: int = 19
    dining_locations: str | None = None
    cache_dir: Path | None = Path.home() / ".cache" / "campus_dining"
    meal_periods_ttl_seconds: int = 24 * 60 * 60
    meal_items_ttl_seconds: int = 6 * 60 * 60
    timezone: str = "America/New_York"
    connect_timeout_seconds: float = 30.0
    request_timeout_seconds: float = 60.0
    max_concurrent_fetches: int | None = None
    image_base_url: str = "https://gettysburglive.culinarysuite.com"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @property
    def locations(self) -> list[Location]:
        """Configured dining locations, falling back to the campus defaults."""
        return parse_locations(self.dining_locations) or list(DEFAULT_LOCATIONS)


def parse_locations(raw: str | None) -> list[Location] | None:
    """Parse a location override like ``1:Bullet Hole,4:Servo``."""
    if raw is None:
        return None
    cleaned = raw.strip()
    if not cleaned:
        return None
    locations: list[Location] = []
    for chunk in cleaned.split(","):
        location_id, _, name = chunk.partition(":")
        location_id = location_id.strip()
        if not location_id.isdigit():
            continue
        locations.append(
            Location(id=int(location_id), name=name.strip() or location_id)
        )
    return locations or None
