"""Schema-tolerant decoding of meal-planner payloads.

The vendor API does not publish a schema and field names differ between
deployments, so every logical field is resolved through an ordered list of
alias keys. Meal periods try a strict array decode first and fall back to a
walk over the JSON tree. Meal items prefer the ``result`` day envelope and
fall back to the same tree walk with a wider alias set.
"""

import json
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Generic, TypeVar
from uuid import uuid4

from campus_dining.domain.dining import MealItem, MealPeriod
from campus_dining.domain.errors import ParseError

T = TypeVar("T")


@dataclass(frozen=True)
class AliasRule(Generic[T]):
    """Resolve one logical field from the first alias key that coerces."""

    keys: tuple[str, ...]
    coerce: Callable[[object], T | None]

    def resolve(self, node: dict[str, object]) -> T | None:
        for key in self.keys:
            if key not in node:
                continue
            value = self.coerce(node[key])
            if value is not None:
                return value
        return None


def _as_text(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _as_int(value: object) -> int | None:
    """Round numbers and numeric strings to the nearest integer."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        if isinstance(value, float):
            return round(value)
        if isinstance(value, str):
            return round(float(value.strip()))
    except (ValueError, OverflowError):
        return None
    return None


def _as_period_id(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _as_item_id(value: object) -> str | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    return _as_text(value)


def _split_list(value: object) -> list[str] | None:
    """Split a comma-delimited string; empty results are ``None``."""
    if not isinstance(value, str):
        return None
    parts = [part.strip() for part in value.split(",")]
    return [part for part in parts if part] or None


def _as_string_list(value: object) -> list[str] | None:
    """Accept either a JSON list of strings or a comma-delimited string."""
    if isinstance(value, list):
        parts = [item.strip() for item in value if isinstance(item, str)]
        return [part for part in parts if part] or None
    return _split_list(value)


PERIOD_ID = AliasRule(("id", "mealPeriodId"), _as_period_id)
PERIOD_NAME = AliasRule(("name", "mealPeriodName"), _as_text)

RECIPE_ID = AliasRule(("componentId", "recipeId"), _as_item_id)
RECIPE_NAME = AliasRule(
    ("componentEnglishName", "englishAlternateName", "componentName"), _as_text
)
RECIPE_STATION = AliasRule(("category", "menuTypeName"), _as_text)
RECIPE_DESCRIPTION = AliasRule(("englishDescription", "spanishDescription"), _as_text)
RECIPE_CALORIES = AliasRule(("calories",), _as_int)
RECIPE_ALLERGENS = AliasRule(("allergenName",), _split_list)
RECIPE_ATTRIBUTES = AliasRule(("recipeProductDietaryName",), _split_list)
RECIPE_IMAGE = AliasRule(("recipeImagePath", "recipeImage"), _as_text)

ITEM_ID = AliasRule(("id", "itemId", "productId", "componentId"), _as_item_id)
ITEM_NAME = AliasRule(
    ("name", "itemName", "productName", "componentEnglishName", "componentName"),
    _as_text,
)
ITEM_STATION = AliasRule(
    ("station", "stationName", "category", "menuTypeName"), _as_text
)
ITEM_DESCRIPTION = AliasRule(
    ("description", "itemDescription", "englishDescription"), _as_text
)
ITEM_CALORIES = AliasRule(("calories",), _as_int)
ITEM_ALLERGENS = AliasRule(("allergens", "allergenName"), _as_string_list)
ITEM_ATTRIBUTES = AliasRule(
    ("attributes", "dietaryAttributes", "recipeProductDietaryName"), _as_string_list
)
ITEM_IMAGE = AliasRule(("imageUrl", "recipeImagePath", "recipeImage"), _as_text)

_DAY_DATE_KEYS = ("strMenuForDate", "menuForDate")
_DAY_RECIPE_KEYS = ("allMenuRecipes", "menuRecipiesData")


def decode_meal_periods(payload: bytes) -> list[MealPeriod]:
    """Decode meal periods from a plain array or any nested structure."""
    root = _load_json(payload)
    strict = _strict_periods(root)
    if strict is not None:
        return strict

    periods: list[MealPeriod] = []
    for array in _object_arrays(root):
        for node in array:
            period_id = PERIOD_ID.resolve(node)
            name = PERIOD_NAME.resolve(node)
            if period_id is not None and name is not None:
                periods.append(MealPeriod(id=period_id, name=name))
    if not periods:
        raise ParseError("No meal periods found in payload")
    return periods


def decode_meal_items(payload: bytes, selected_date: str) -> list[MealItem]:
    """Decode menu items for ``selected_date`` (``yyyy/MM/dd``)."""
    root = _load_json(payload)
    if _is_day_envelope(root):
        return _items_from_days(root["result"], _dashed(selected_date))
    return _items_from_tree(root)


def _load_json(payload: bytes) -> object:
    try:
        return json.loads(payload)
    except ValueError as exc:
        raise ParseError(f"Payload is not valid JSON: {exc}") from exc
    except RecursionError as exc:
        raise ParseError("Payload is nested too deeply") from exc


def _is_day_envelope(root: object) -> bool:
    """True for a root ``result`` list holding at least one day object."""
    if not isinstance(root, dict) or not isinstance(root.get("result"), list):
        return False
    return any(
        isinstance(day, dict)
        and any(key in day for key in _DAY_DATE_KEYS + _DAY_RECIPE_KEYS)
        for day in root["result"]
    )


def _strict_periods(root: object) -> list[MealPeriod] | None:
    """Decode a flat array of period objects, or None if the shape differs."""
    if not isinstance(root, list):
        return None
    periods: list[MealPeriod] = []
    for node in root:
        if not isinstance(node, dict):
            return None
        period_id = _first_present(node, PERIOD_ID.keys)
        name = _first_present(node, PERIOD_NAME.keys)
        if isinstance(period_id, bool) or not isinstance(period_id, int):
            return None
        if not isinstance(name, str):
            return None
        periods.append(MealPeriod(id=period_id, name=name))
    return periods


def _first_present(node: dict[str, object], keys: tuple[str, ...]) -> object:
    for key in keys:
        if node.get(key) is not None:
            return node[key]
    return None


def _object_arrays(root: object) -> Iterator[list[dict[str, object]]]:
    """Yield every non-empty array of objects in depth-first order."""
    stack = [root]
    while stack:
        node = stack.pop()
        if isinstance(node, list):
            if node and all(isinstance(child, dict) for child in node):
                yield node
            stack.extend(reversed(node))
        elif isinstance(node, dict):
            stack.extend(reversed(list(node.values())))


def _dashed(value: str) -> str:
    return value.strip().replace("/", "-")[:10]


def _items_from_days(days: list[object], wanted: str) -> list[MealItem]:
    items: list[MealItem] = []
    for day in days:
        if not isinstance(day, dict):
            continue
        served_on = _first_present(day, _DAY_DATE_KEYS)
        if not isinstance(served_on, str) or _dashed(served_on) != wanted:
            continue
        recipes = _first_present(day, _DAY_RECIPE_KEYS)
        if not isinstance(recipes, list):
            continue
        for recipe in recipes:
            if isinstance(recipe, dict):
                item = _recipe_to_item(recipe)
                if item is not None:
                    items.append(item)
    return items


def _recipe_to_item(recipe: dict[str, object]) -> MealItem | None:
    name = RECIPE_NAME.resolve(recipe)
    if name is None:
        return None
    return MealItem(
        id=RECIPE_ID.resolve(recipe) or uuid4().hex,
        name=name,
        station=RECIPE_STATION.resolve(recipe),
        description=RECIPE_DESCRIPTION.resolve(recipe),
        calories=RECIPE_CALORIES.resolve(recipe),
        allergens=RECIPE_ALLERGENS.resolve(recipe),
        attributes=RECIPE_ATTRIBUTES.resolve(recipe),
        image_path=RECIPE_IMAGE.resolve(recipe),
    )


def _items_from_tree(root: object) -> list[MealItem]:
    items: list[MealItem] = []
    for array in _object_arrays(root):
        for node in array:
            name = ITEM_NAME.resolve(node)
            if name is None:
                continue
            items.append(
                MealItem(
                    id=ITEM_ID.resolve(node) or uuid4().hex,
                    name=name,
                    station=ITEM_STATION.resolve(node),
                    description=ITEM_DESCRIPTION.resolve(node),
                    calories=ITEM_CALORIES.resolve(node),
                    allergens=ITEM_ALLERGENS.resolve(node),
                    attributes=ITEM_ATTRIBUTES.resolve(node),
                    image_path=ITEM_IMAGE.resolve(node),
                )
            )
    return items
