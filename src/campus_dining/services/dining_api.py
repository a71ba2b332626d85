"""Meal-planner API client with caching and token refresh."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

import httpx

from campus_dining.adapters.meal_planner_client import MealPlannerTransport, RawResponse
from campus_dining.adapters.token_client import TokenManager
from campus_dining.domain.dining import MealItem, MealPeriod
from campus_dining.domain.errors import BadServerResponseError, ParseError
from campus_dining.services.cache import (
    Cache,
    meal_items_cache_key,
    meal_periods_cache_key,
)
from campus_dining.services.decoding import decode_meal_items, decode_meal_periods

T = TypeVar("T")

_logger = logging.getLogger(__name__)


@dataclass
class DiningApiClient:
    """Cache-first access to meal periods and meal items."""

    transport: MealPlannerTransport
    token_manager: TokenManager
    cache: Cache
    account_id: int
    tenant_id: int
    meal_periods_ttl_seconds: float = 24 * 60 * 60
    meal_items_ttl_seconds: float = 6 * 60 * 60

    async def get_meal_periods(self, location_id: int) -> list[MealPeriod]:
        """Return the active meal periods for a location."""
        return await self._fetch(
            cache_key=meal_periods_cache_key(location_id),
            max_age_seconds=self.meal_periods_ttl_seconds,
            path="mealPeriods",
            params={"IsActive": "1", "LocationId": str(location_id)},
            decode=decode_meal_periods,
        )

    async def get_meal_items(  # noqa: PLR0913
        self,
        location_id: int,
        period_id: int,
        selected_date: str,
        range_from: str,
        range_to: str,
        tz_offset_minutes: int,
    ) -> list[MealItem]:
        """Return items served at a location/period on ``selected_date``.

        Dates use the vendor's ``yyyy/MM/dd`` format. The cache holds one
        payload per month, so the day filter runs again on every hit.
        """
        year, month = _year_month(selected_date)
        return await self._fetch(
            cache_key=meal_items_cache_key(
                location_id, period_id, f"{year:04d}-{month:02d}"
            ),
            max_age_seconds=self.meal_items_ttl_seconds,
            path="meals",
            params={
                "menuId": "0",
                "accountId": str(self.account_id),
                "locationId": str(location_id),
                "mealPeriodId": str(period_id),
                "tenantId": str(self.tenant_id),
                "fromDate": range_from,
                "endDate": range_to,
                "timeOffset": str(abs(tz_offset_minutes)),
                "monthId": str(month),
            },
            decode=lambda payload: decode_meal_items(payload, selected_date),
        )

    async def _fetch(  # noqa: PLR0913
        self,
        *,
        cache_key: str,
        max_age_seconds: float,
        path: str,
        params: dict[str, str],
        decode: Callable[[bytes], T],
    ) -> T:
        cached = await asyncio.to_thread(self.cache.load, cache_key, max_age_seconds)
        if cached is not None:
            try:
                return decode(cached)
            except ParseError as exc:
                _logger.warning("Ignoring unreadable cache entry %s: %s", cache_key, exc)

        response = await self._get_with_refresh(path, params)
        result = decode(response.content)
        await asyncio.to_thread(self.cache.save, cache_key, response.content)
        return result

    async def _get_with_refresh(self, path: str, params: dict[str, str]) -> RawResponse:
        """Send a request, refreshing the token and retrying once on 401."""
        response = await self.transport.get(path, params, self.token_manager.token)
        if response.status_code == httpx.codes.UNAUTHORIZED:
            _logger.info("Got 401 for %s, refreshing token", path)
            token = await self.token_manager.refresh()
            response = await self.transport.get(path, params, token)
        if response.status_code != httpx.codes.OK:
            raise BadServerResponseError(response.status_code, response.url)
        return response


def _year_month(selected_date: str) -> tuple[int, int]:
    """Split the year and month out of a ``yyyy/MM/dd`` date."""
    parts = selected_date.replace("-", "/").split("/")
    try:
        return int(parts[0]), int(parts[1])
    except (IndexError, ValueError) as exc:
        raise ValueError(f"Invalid date {selected_date!r}") from exc
