"""Bearer token lifecycle for the meal-planner API."""

import json
import logging
from dataclasses import dataclass, field
from typing import Protocol

import httpx

from campus_dining.domain.errors import (
    AuthenticationRequiredError,
    BadServerResponseError,
    NetworkError,
)

_TOKEN_KEYS = ("token", "access_token", "accessToken", "jwt", "jwtToken", "jwt_token")

_logger = logging.getLogger(__name__)


class TokenManager(Protocol):
    """Interface for holding and refreshing the bearer token."""

    @property
    def token(self) -> str | None:
        """Return the currently held token, if any."""

    async def refresh(self) -> str:
        """Fetch a fresh token and replace the held one."""


@dataclass
class HttpxTokenManager(TokenManager):
    """Token manager that pulls tokens from the vendor token endpoint."""

    token_url: str
    http_client: httpx.AsyncClient
    _token: str | None = field(default=None, init=False, repr=False)

    @classmethod
    def create(
        cls, token_url: str, timeout: httpx.Timeout | None = None
    ) -> "HttpxTokenManager":
        """Create a token manager with a managed httpx session."""
        return cls(
            token_url=token_url,
            http_client=httpx.AsyncClient(timeout=timeout or httpx.Timeout(30.0)),
        )

    @property
    def token(self) -> str | None:
        return self._token

    async def refresh(self) -> str:
        """Request a new token; the held token only changes on success."""
        try:
            response = await self.http_client.get(self.token_url)
        except httpx.HTTPError as exc:
            raise NetworkError(f"Token request failed: {exc}") from exc
        if response.status_code != httpx.codes.OK:
            raise BadServerResponseError(response.status_code, self.token_url)
        token = extract_token(response.content)
        if token is None:
            raise AuthenticationRequiredError("Token endpoint returned no credential")
        self._token = token
        _logger.info("Refreshed meal-planner bearer token")
        return token

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def extract_token(body: bytes) -> str | None:
    """Pull a bearer token out of a token endpoint response body.

    Only printable ASCII tokens are accepted since they travel in a header.
    """
    token = _extract_candidate(body.decode("utf-8", errors="replace"))
    if token is None or not is_header_safe(token):
        return None
    return token


def is_header_safe(value: str) -> bool:
    """Return True when every character is printable ASCII."""
    return all(" " <= char <= "~" for char in value)


def _extract_candidate(text: str) -> str | None:
    try:
        payload = json.loads(text)
    except ValueError:
        return _token_from_text(text)
    except RecursionError:
        return None
    if not isinstance(payload, (dict, list)):
        return _token_from_text(text)

    if isinstance(payload, dict):
        token = _lookup_token_keys(payload)
        if token:
            return token
        nested = payload.get("data")
        if isinstance(nested, dict):
            token = _lookup_token_keys(nested)
            if token:
                return token
    return _find_jwt(payload)


def is_jwt_shaped(value: str) -> bool:
    """Return True for strings with at least three dot-separated segments."""
    if any(char.isspace() for char in value):
        return False
    segments = value.split(".")
    return len(segments) >= 3 and all(segments)


def _lookup_token_keys(payload: dict[str, object]) -> str | None:
    for key in _TOKEN_KEYS:
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _find_jwt(root: object) -> str | None:
    """Depth-first search for the first JWT-shaped string."""
    stack = [root]
    while stack:
        node = stack.pop()
        if isinstance(node, str):
            candidate = node.strip()
            if is_jwt_shaped(candidate):
                return candidate
        elif isinstance(node, dict):
            stack.extend(reversed(list(node.values())))
        elif isinstance(node, list):
            stack.extend(reversed(node))
    return None


def _token_from_text(text: str) -> str | None:
    trimmed = text.strip().strip("\"'").strip()
    if not trimmed:
        return None
    if is_jwt_shaped(trimmed):
        return trimmed
    for chunk in trimmed.split():
        candidate = chunk.strip("\"'")
        if is_jwt_shaped(candidate):
            return candidate
    return trimmed
