"""Errors raised while talking to the meal-planner service."""


class DiningError(Exception):
    """Base class for ingestion failures."""


class AuthenticationRequiredError(DiningError):
    """Raised when no bearer token could be extracted from the token endpoint."""


class BadServerResponseError(DiningError):
    """Raised when the final attempt of a request did not return HTTP 200."""

    def __init__(self, status_code: int, url: str | None = None) -> None:
        message = f"Unexpected status {status_code}"
        if url is not None:
            message = f"{message} from {url}"
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class ParseError(DiningError):
    """Raised when a payload contains nothing the decoder recognizes."""


class NetworkError(DiningError):
    """Raised on transport failures and timeouts."""
