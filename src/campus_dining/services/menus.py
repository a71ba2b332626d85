"""Daily menu aggregation across dining locations."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Protocol
from zoneinfo import ZoneInfo

from campus_dining.domain.dining import Location, MealItem, MealPeriod, MenuKey
from campus_dining.domain.errors import DiningError

_logger = logging.getLogger(__name__)


class DiningApi(Protocol):
    """Operations the aggregator needs from the API client."""

    async def get_meal_periods(self, location_id: int) -> list[MealPeriod]:
        """Return the meal periods for a location."""

    async def get_meal_items(  # noqa: PLR0913
        self,
        location_id: int,
        period_id: int,
        selected_date: str,
        range_from: str,
        range_to: str,
        tz_offset_minutes: int,
    ) -> list[MealItem]:
        """Return the items for a location/period within a date range."""


def format_menu_date(day: date) -> str:
    """Format a date the way the meal-planner API expects (``yyyy/MM/dd``)."""
    return day.strftime("%Y/%m/%d")


def utc_offset_minutes(timezone: str, day: date) -> int:
    """Return the absolute UTC offset in minutes for ``timezone`` on ``day``."""
    moment = datetime(day.year, day.month, day.day, 12, tzinfo=ZoneInfo(timezone))
    offset = moment.utcoffset()
    if offset is None:
        return 0
    return abs(int(offset.total_seconds() // 60))


@dataclass
class MenuAggregator:
    """Builds a day's menu for every configured location and meal period.

    Period lists are fetched one location at a time, then one task per
    (location, period) pair fetches items concurrently. Results are only
    written once every task has finished. Failures become empty lists, so
    ``load`` never raises for remote errors. Keys from earlier loads are
    kept.
    """

    api: DiningApi
    locations: list[Location]
    timezone: str = "America/New_York"
    max_concurrency: int | None = None
    periods_by_location: dict[int, list[MealPeriod]] = field(default_factory=dict)
    items_by_key: dict[MenuKey, list[MealItem]] = field(default_factory=dict)

    async def load(self, day: date) -> None:
        """Populate periods and items for ``day``."""
        served_on = format_menu_date(day)
        tz_offset = utc_offset_minutes(self.timezone, day)

        for location in self.locations:
            self.periods_by_location[location.id] = await self._load_periods(location)

        keys = [
            MenuKey(location.id, period.id, served_on)
            for location in self.locations
            for period in self.periods_by_location.get(location.id, [])
        ]
        semaphore = (
            asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None
        )
        results = await asyncio.gather(
            *(self._load_items(key, tz_offset, semaphore) for key in keys)
        )
        for key, items in zip(keys, results, strict=True):
            self.items_by_key[key] = items
        _logger.info(
            "Loaded menu for %s: %s locations, %s period menus",
            served_on,
            len(self.locations),
            len(keys),
        )

    def items_for(self, location_id: int, period_id: int, day: date) -> list[MealItem]:
        """Return loaded items for a location/period/day, or an empty list."""
        key = MenuKey(location_id, period_id, format_menu_date(day))
        return self.items_by_key.get(key, [])

    async def _load_periods(self, location: Location) -> list[MealPeriod]:
        try:
            return await self.api.get_meal_periods(location.id)
        except DiningError as exc:
            _logger.warning(
                "Failed to load meal periods for %s (%s): %s",
                location.name,
                location.id,
                exc,
            )
            return []

    async def _load_items(
        self,
        key: MenuKey,
        tz_offset: int,
        semaphore: asyncio.Semaphore | None,
    ) -> list[MealItem]:
        try:
            if semaphore is None:
                return await self._fetch_items(key, tz_offset)
            async with semaphore:
                return await self._fetch_items(key, tz_offset)
        except DiningError as exc:
            _logger.warning(
                "Failed to load items for location=%s period=%s date=%s: %s",
                key.location_id,
                key.period_id,
                key.served_on,
                exc,
            )
            return []

    async def _fetch_items(self, key: MenuKey, tz_offset: int) -> list[MealItem]:
        return await self.api.get_meal_items(
            key.location_id,
            key.period_id,
            key.served_on,
            key.served_on,
            key.served_on,
            tz_offset,
        )
