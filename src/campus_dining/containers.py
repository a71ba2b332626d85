"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import httpx

from campus_dining.adapters.meal_planner_client import HttpxMealPlannerClient
from campus_dining.adapters.token_client import HttpxTokenManager, TokenManager
from campus_dining.config import Settings
from campus_dining.services.cache import Cache, FileCache, InMemoryCache
from campus_dining.services.dining_api import DiningApiClient
from campus_dining.services.menus import DiningApi, MenuAggregator


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    token_manager: TokenManager
    dining_api: DiningApi
    menu_aggregator: MenuAggregator
    close_resources: Callable[[], Awaitable[None]]


def build_cache(settings: Settings) -> Cache:
    """Use the disk cache when a directory is configured."""
    if settings.cache_dir is None:
        return InMemoryCache()
    return FileCache(settings.cache_dir)


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    token_manager = HttpxTokenManager.create(
        resolved_settings.token_url,
        timeout=httpx.Timeout(resolved_settings.connect_timeout_seconds),
    )
    transport = HttpxMealPlannerClient.create(
        base_url=resolved_settings.api_base,
        api_prefix=resolved_settings.api_prefix,
        connect_timeout_seconds=resolved_settings.connect_timeout_seconds,
        request_timeout_seconds=resolved_settings.request_timeout_seconds,
    )
    dining_api = DiningApiClient(
        transport=transport,
        token_manager=token_manager,
        cache=build_cache(resolved_settings),
        account_id=resolved_settings.account_id,
        tenant_id=resolved_settings.tenant_id,
        meal_periods_ttl_seconds=resolved_settings.meal_periods_ttl_seconds,
        meal_items_ttl_seconds=resolved_settings.meal_items_ttl_seconds,
    )
    menu_aggregator = MenuAggregator(
        api=dining_api,
        locations=resolved_settings.locations,
        timezone=resolved_settings.timezone,
        max_concurrency=resolved_settings.max_concurrent_fetches,
    )

    async def close_resources() -> None:
        await token_manager.close()
        await transport.close()

    return AppContainer(
        settings=resolved_settings,
        token_manager=token_manager,
        dining_api=dining_api,
        menu_aggregator=menu_aggregator,
        close_resources=close_resources,
    )
