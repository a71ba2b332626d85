"""Dining domain models."""

from dataclasses import dataclass
from typing import NamedTuple


@dataclass(frozen=True)
class Location:
    """Dining location configured for the campus tenant."""

    id: int
    name: str


@dataclass(frozen=True)
class MealPeriod:
    """Named service window at a location (breakfast, lunch...)."""

    id: int
    name: str


@dataclass(frozen=True)
class MealItem:
    """Normalized menu item decoded from a remote payload."""

    id: str
    name: str
    station: str | None = None
    description: str | None = None
    calories: int | None = None
    allergens: list[str] | None = None
    attributes: list[str] | None = None
    image_path: str | None = None


class MenuKey(NamedTuple):
    """Composite key of the aggregated menu."""

    location_id: int
    period_id: int
    served_on: str
