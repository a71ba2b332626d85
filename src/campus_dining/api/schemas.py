"""Response models for the dining read API."""

from pydantic import BaseModel, Field


class MealItemOut(BaseModel):
    """Menu item as served to UI clients."""

    id: str
    name: str
    station: str | None = None
    description: str | None = None
    calories: int | None = None
    allergens: list[str] = Field(default_factory=list)
    attributes: list[str] = Field(default_factory=list)
    image_url: str | None = None


class MealPeriodMenu(BaseModel):
    """Items for one meal period."""

    id: int
    name: str
    items: list[MealItemOut]


class LocationMenu(BaseModel):
    """All meal periods loaded for a location."""

    id: int
    name: str
    periods: list[MealPeriodMenu]


class DailyMenu(BaseModel):
    """A full day's menu across locations."""

    date: str
    locations: list[LocationMenu]


class LocationOut(BaseModel):
    """Configured dining location."""

    id: int
    name: str
