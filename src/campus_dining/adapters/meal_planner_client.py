"""HTTP transport for the meal-planner data-locator API."""

import asyncio
from dataclasses import dataclass
from typing import Protocol

import httpx

from campus_dining.domain.errors import NetworkError


@dataclass(frozen=True)
class RawResponse:
    """Status code and body of a single API call."""

    status_code: int
    content: bytes
    url: str


class MealPlannerTransport(Protocol):
    """Interface for raw meal-planner API calls."""

    async def get(
        self, path: str, params: dict[str, str], token: str | None
    ) -> RawResponse:
        """Issue a GET below the API prefix and return the raw response."""


@dataclass
class HttpxMealPlannerClient(MealPlannerTransport):
    """HTTPX-backed meal-planner transport."""

    base_url: str
    api_prefix: str
    http_client: httpx.AsyncClient
    request_timeout_seconds: float = 60.0

    @classmethod
    def create(
        cls,
        base_url: str,
        api_prefix: str,
        connect_timeout_seconds: float = 30.0,
        request_timeout_seconds: float = 60.0,
    ) -> "HttpxMealPlannerClient":
        """Create a transport with a managed httpx session."""
        timeout = httpx.Timeout(connect_timeout_seconds)
        return cls(
            base_url=base_url,
            api_prefix=api_prefix,
            http_client=httpx.AsyncClient(timeout=timeout),
            request_timeout_seconds=request_timeout_seconds,
        )

    async def get(
        self, path: str, params: dict[str, str], token: str | None
    ) -> RawResponse:
        """Send a GET request, attaching the bearer token when present."""
        url = f"{self.base_url.rstrip('/')}{self.api_prefix}/{path.lstrip('/')}"
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            async with asyncio.timeout(self.request_timeout_seconds):
                response = await self.http_client.get(
                    url, params=params, headers=headers
                )
        except TimeoutError as exc:
            raise NetworkError(f"Request to {url} timed out") from exc
        except httpx.HTTPError as exc:
            raise NetworkError(f"Request to {url} failed: {exc}") from exc
        except UnicodeEncodeError as exc:
            raise NetworkError(f"Unsendable header for {url}: {exc}") from exc
        return RawResponse(
            status_code=response.status_code,
            content=response.content,
            url=str(response.url),
        )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
