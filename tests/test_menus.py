"""Tests for daily menu aggregation."""

import asyncio
from dataclasses import dataclass, field
from datetime import date

import httpx

from campus_dining.adapters.meal_planner_client import HttpxMealPlannerClient
from campus_dining.domain.dining import Location, MealItem, MealPeriod, MenuKey
from campus_dining.services.cache import InMemoryCache
from campus_dining.services.dining_api import DiningApiClient
from campus_dining.services.menus import (
    MenuAggregator,
    format_menu_date,
    utc_offset_minutes,
)
from tests.conftest import LOCATIONS, FakeDiningApi, FakeTokenManager, item

DAY = date(2026, 10, 19)


def test_format_menu_date() -> None:
    assert format_menu_date(date(2026, 3, 9)) == "2026/03/09"


def test_utc_offset_minutes_follows_daylight_saving() -> None:
    assert utc_offset_minutes("America/New_York", date(2026, 1, 15)) == 300
    assert utc_offset_minutes("America/New_York", date(2026, 7, 15)) == 240
    assert utc_offset_minutes("UTC", date(2026, 7, 15)) == 0


def test_load_populates_every_location_period_pair(dining_api: FakeDiningApi) -> None:
    aggregator = MenuAggregator(api=dining_api, locations=list(LOCATIONS))

    asyncio.run(aggregator.load(DAY))

    assert aggregator.periods_by_location[4] == []
    assert set(aggregator.items_by_key) == {
        MenuKey(1, 4, "2026/10/19"),
        MenuKey(1, 5, "2026/10/19"),
        MenuKey(2, 1, "2026/10/19"),
    }
    assert [i.name for i in aggregator.items_for(1, 4, DAY)] == ["Gyro"]
    assert [i.name for i in aggregator.items_for(2, 1, DAY)] == ["Pancakes"]
    assert aggregator.items_for(4, 1, DAY) == []
    assert {call[3] for call in dining_api.item_calls} == {240}


def test_failed_fetches_map_to_empty_lists(dining_api: FakeDiningApi) -> None:
    dining_api.failing_item_keys = {(1, 4), (1, 5), (2, 1)}
    aggregator = MenuAggregator(api=dining_api, locations=list(LOCATIONS))

    asyncio.run(aggregator.load(DAY))

    assert len(aggregator.items_by_key) == 3
    assert all(items == [] for items in aggregator.items_by_key.values())


def test_failure_for_one_location_does_not_affect_others(
    dining_api: FakeDiningApi,
) -> None:
    baseline = MenuAggregator(api=dining_api, locations=list(LOCATIONS))
    asyncio.run(baseline.load(DAY))

    dining_api.failing_item_keys = {(1, 4), (1, 5)}
    isolated = MenuAggregator(api=dining_api, locations=list(LOCATIONS))
    asyncio.run(isolated.load(DAY))

    assert isolated.items_for(1, 4, DAY) == []
    assert isolated.items_for(1, 5, DAY) == []
    assert isolated.items_for(2, 1, DAY) == baseline.items_for(2, 1, DAY)


def test_period_failure_records_empty_period_list(dining_api: FakeDiningApi) -> None:
    dining_api.failing_period_locations = {1}
    aggregator = MenuAggregator(api=dining_api, locations=list(LOCATIONS))

    asyncio.run(aggregator.load(DAY))

    assert aggregator.periods_by_location[1] == []
    assert set(aggregator.items_by_key) == {MenuKey(2, 1, "2026/10/19")}
    assert all(call[0] != 1 for call in dining_api.item_calls)


def test_key_count_matches_total_periods() -> None:
    locations = [Location(id=n, name=f"Hall {n}") for n in range(1, 6)]
    api = FakeDiningApi(
        periods={
            n: [MealPeriod(id=p, name=f"P{p}") for p in range(n % 3)]
            for n in range(1, 6)
        },
        failing_item_keys={(2, 0), (5, 1)},
    )
    aggregator = MenuAggregator(api=api, locations=locations)

    asyncio.run(aggregator.load(DAY))

    expected = sum(len(periods) for periods in api.periods.values())
    assert len(aggregator.items_by_key) == expected


def test_repeated_loads_keep_earlier_keys(dining_api: FakeDiningApi) -> None:
    aggregator = MenuAggregator(api=dining_api, locations=list(LOCATIONS))
    asyncio.run(aggregator.load(DAY))

    dining_api.periods[1] = []
    asyncio.run(aggregator.load(date(2026, 10, 20)))

    assert MenuKey(1, 4, "2026/10/19") in aggregator.items_by_key
    assert MenuKey(1, 4, "2026/10/20") not in aggregator.items_by_key
    assert MenuKey(2, 1, "2026/10/20") in aggregator.items_by_key


@dataclass
class _SlowDiningApi:
    """Records peak concurrency of item fetches."""

    in_flight: int = 0
    peak: int = 0
    periods: list[MealPeriod] = field(
        default_factory=lambda: [MealPeriod(id=p, name=f"P{p}") for p in range(6)]
    )

    async def get_meal_periods(self, location_id: int) -> list[MealPeriod]:
        return self.periods

    async def get_meal_items(  # noqa: PLR0913
        self,
        location_id: int,
        period_id: int,
        selected_date: str,
        range_from: str,
        range_to: str,
        tz_offset_minutes: int,
    ) -> list[MealItem]:
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        await asyncio.sleep(0.01)
        self.in_flight -= 1
        return [item(f"Dish {location_id}-{period_id}")]


def test_item_fetches_run_concurrently() -> None:
    api = _SlowDiningApi()
    aggregator = MenuAggregator(api=api, locations=list(LOCATIONS))

    asyncio.run(aggregator.load(DAY))

    assert api.peak == 18
    assert len(aggregator.items_by_key) == 18


def test_max_concurrency_bounds_in_flight_fetches() -> None:
    api = _SlowDiningApi()
    aggregator = MenuAggregator(api=api, locations=list(LOCATIONS), max_concurrency=2)

    asyncio.run(aggregator.load(DAY))

    assert api.peak == 2
    assert len(aggregator.items_by_key) == 18


def _http_aggregator(
    handler,  # type: ignore[no-untyped-def]
    token_manager: FakeTokenManager,
    locations: list[Location],
) -> MenuAggregator:
    transport = HttpxMealPlannerClient(
        base_url="https://api.test",
        api_prefix="/api/v1/data-locator-webapi/19",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    api = DiningApiClient(
        transport=transport,
        token_manager=token_manager,
        cache=InMemoryCache(),
        account_id=4,
        tenant_id=19,
    )
    return MenuAggregator(api=api, locations=locations)


def test_non_ascii_refreshed_token_is_absorbed() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(401)

    token_manager = FakeTokenManager(next_tokens=["tokén"])
    aggregator = _http_aggregator(handler, token_manager, [LOCATIONS[0]])

    asyncio.run(aggregator.load(DAY))

    assert aggregator.periods_by_location == {1: []}
    assert aggregator.items_by_key == {}
    assert token_manager.refresh_calls == 1
    assert len(requests) == 1


def test_deeply_nested_body_only_empties_its_location() -> None:
    deep = b"[" * 50000 + b"]" * 50000

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/mealPeriods"):
            if request.url.params["LocationId"] == "1":
                return httpx.Response(200, content=deep)
            return httpx.Response(200, json=[{"id": 4, "name": "Lunch"}])
        return httpx.Response(200, json=[{"id": 7, "name": "Chili"}])

    token_manager = FakeTokenManager(current="good-token")
    aggregator = _http_aggregator(handler, token_manager, list(LOCATIONS[:2]))

    asyncio.run(aggregator.load(DAY))

    assert aggregator.periods_by_location[1] == []
    assert aggregator.periods_by_location[2] == [MealPeriod(id=4, name="Lunch")]
    assert [i.name for i in aggregator.items_for(2, 4, DAY)] == ["Chili"]
