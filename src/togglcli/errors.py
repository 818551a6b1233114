"""Error types for the Toggl API clients."""

from typing import Optional


class TogglError(Exception):
    """Base class for every failure talking to Toggl."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        self.message = message
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class AuthenticationError(TogglError):
    """401 from the API."""


class ForbiddenError(TogglError):
    """403 from the API."""


class NotFoundError(TogglError):
    """404 from the API."""


class BadRequestError(TogglError):
    """400 from the API."""


class RateLimitError(TogglError):
    """429 from the API."""

    def __init__(self, message: str, retry_after: Optional[int] = None, body: str = ""):
        super().__init__(message, status_code=429, body=body)
        self.retry_after = retry_after


class ServerError(TogglError):
    """5xx from the API."""


class NetworkError(TogglError):
    """Transport level failure (DNS, connection refused, timeout)."""


class JsonError(TogglError):
    """Response body could not be decoded into the expected shape."""


class UrlError(TogglError):
    """Request URL could not be built."""


def from_status_code(
    status: int, body: str, service: str, retry_after: Optional[str] = None
) -> TogglError:
    """Map an unexpected HTTP status to the matching error type."""
    if status == 401:
        return AuthenticationError(f"Authentication failed: {service} API: {body}", status, body)
    if status == 403:
        return ForbiddenError(f"Access forbidden: {service} API: {body}", status, body)
    if status == 404:
        return NotFoundError(f"Resource not found: {body}", status, body)
    if status == 400:
        return BadRequestError(f"Invalid request: {body}", status, body)
    if status == 429:
        seconds = int(retry_after) if retry_after and retry_after.isdigit() else None
        if seconds is not None:
            message = f"Rate limit exceeded, retry after {seconds} seconds"
        else:
            message = "Rate limit exceeded"
        return RateLimitError(message, retry_after=seconds, body=body)
    if 500 <= status <= 599:
        return ServerError(f"Server error ({status}): {body}", status, body)
    return TogglError(f"{service} API error ({status}): {body}", status, body)
