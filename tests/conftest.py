"""Shared test fixtures."""

import json
from dataclasses import dataclass, field

import pytest

from campus_dining.adapters.token_client import TokenManager
from campus_dining.config import Settings
from campus_dining.containers import AppContainer
from campus_dining.domain.dining import Location, MealItem, MealPeriod
from campus_dining.domain.errors import DiningError, NetworkError
from campus_dining.services.menus import MenuAggregator

LOCATIONS = [
    Location(id=1, name="Bullet Hole"),
    Location(id=2, name="Commons"),
    Location(id=4, name="Servo"),
]


@dataclass
class FakeTokenManager(TokenManager):
    """Token manager that hands out scripted tokens."""

    current: str | None = None
    next_tokens: list[str] = field(default_factory=lambda: ["fresh-token"])
    refresh_calls: int = 0
    error: DiningError | None = None

    @property
    def token(self) -> str | None:
        return self.current

    async def refresh(self) -> str:
        self.refresh_calls += 1
        if self.error is not None:
            raise self.error
        self.current = self.next_tokens.pop(0)
        return self.current


@dataclass
class FakeDiningApi:
    """In-memory dining API with per-location and per-period failures."""

    periods: dict[int, list[MealPeriod]] = field(default_factory=dict)
    items: dict[tuple[int, int, str], list[MealItem]] = field(default_factory=dict)
    failing_period_locations: set[int] = field(default_factory=set)
    failing_item_keys: set[tuple[int, int]] = field(default_factory=set)
    item_calls: list[tuple[int, int, str, int]] = field(default_factory=list)

    async def get_meal_periods(self, location_id: int) -> list[MealPeriod]:
        if location_id in self.failing_period_locations:
            raise NetworkError("offline")
        return list(self.periods.get(location_id, []))

    async def get_meal_items(  # noqa: PLR0913
        self,
        location_id: int,
        period_id: int,
        selected_date: str,
        range_from: str,
        range_to: str,
        tz_offset_minutes: int,
    ) -> list[MealItem]:
        self.item_calls.append(
            (location_id, period_id, selected_date, tz_offset_minutes)
        )
        if (location_id, period_id) in self.failing_item_keys:
            raise NetworkError("timed out")
        return list(self.items.get((location_id, period_id, selected_date), []))


def item(name: str, item_id: str | None = None, **extra: object) -> MealItem:
    return MealItem(id=item_id or name.lower().replace(" ", "-"), name=name, **extra)


def recipe_day(served_on: str, *recipes: dict[str, object]) -> dict[str, object]:
    return {"strMenuForDate": served_on, "allMenuRecipes": list(recipes)}


def envelope(*days: dict[str, object]) -> bytes:
    return json.dumps({"result": list(days)}).encode()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        cache_dir=tmp_path / "cache",
        dining_locations="1:Bullet Hole,2:Commons,4:Servo",
    )


@pytest.fixture
def token_manager() -> FakeTokenManager:
    return FakeTokenManager()


@pytest.fixture
def dining_api() -> FakeDiningApi:
    return FakeDiningApi(
        periods={
            1: [MealPeriod(id=4, name="Lunch"), MealPeriod(id=5, name="Dinner")],
            2: [MealPeriod(id=1, name="Breakfast")],
            4: [],
        },
        items={
            (1, 4, "2026/10/19"): [
                item("Gyro", station="Entree", image_path="/images/Gyro 1.jpg")
            ],
            (1, 5, "2026/10/19"): [item("Pad Thai")],
            (2, 1, "2026/10/19"): [item("Pancakes", calories=320)],
        },
    )


@pytest.fixture
def container(
    settings: Settings,
    token_manager: FakeTokenManager,
    dining_api: FakeDiningApi,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        token_manager=token_manager,
        dining_api=dining_api,
        menu_aggregator=MenuAggregator(api=dining_api, locations=list(LOCATIONS)),
        close_resources=close_resources,
    )
