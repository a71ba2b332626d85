"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date
from urllib.parse import quote

from fastapi import FastAPI, Query, Request

from campus_dining.api.schemas import (
    DailyMenu,
    LocationMenu,
    LocationOut,
    MealItemOut,
    MealPeriodMenu,
)
from campus_dining.app_logging import configure_logging
from campus_dining.containers import AppContainer
from campus_dining.domain.dining import MealItem


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        try:
            await app.state.container.close_resources()
        except Exception:
            logger.exception("Failed to close HTTP sessions")

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/dining/locations")
    async def dining_locations(request: Request) -> list[LocationOut]:
        """Return the configured dining locations."""
        state_container: AppContainer = request.app.state.container
        return [
            LocationOut(id=location.id, name=location.name)
            for location in state_container.menu_aggregator.locations
        ]

    @app.get("/dining/menu")
    async def dining_menu(
        request: Request, day: date = Query(alias="date")
    ) -> DailyMenu:
        """Load and return every location's menu for a day."""
        state_container: AppContainer = request.app.state.container
        aggregator = state_container.menu_aggregator
        image_base = state_container.settings.image_base_url
        await aggregator.load(day)

        locations = []
        for location in aggregator.locations:
            periods = [
                MealPeriodMenu(
                    id=period.id,
                    name=period.name,
                    items=[
                        _item_out(item, image_base)
                        for item in aggregator.items_for(location.id, period.id, day)
                    ],
                )
                for period in aggregator.periods_by_location.get(location.id, [])
            ]
            locations.append(
                LocationMenu(id=location.id, name=location.name, periods=periods)
            )
        return DailyMenu(date=day.isoformat(), locations=locations)

    return app


def build_image_url(base_url: str, path: str | None) -> str | None:
    """Join a relative recipe image path onto the image host."""
    if not path:
        return None
    if path.startswith("http"):
        return path
    encoded = "/".join(quote(segment, safe="") for segment in path.split("/"))
    if not encoded.startswith("/"):
        encoded = f"/{encoded}"
    return f"{base_url.rstrip('/')}{encoded}"


def _item_out(item: MealItem, image_base: str) -> MealItemOut:
    return MealItemOut(
        id=item.id,
        name=item.name,
        station=item.station,
        description=item.description,
        calories=item.calories,
        allergens=item.allergens or [],
        attributes=item.attributes or [],
        image_url=build_image_url(image_base, item.image_path),
    )
