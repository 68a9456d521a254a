"""
Grafana-specific exceptions.

Errors raised by the Grafana admin API adapters, one class per failure
kind so callers can map them to HTTP responses.
"""

from typing import Optional

import httpx


class PlatformError(Exception):
    """Base exception for Grafana admin API errors."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class PlatformConnectionError(PlatformError):
    """Raised when Grafana cannot be reached or answers with a server error."""
    pass


class PlatformAuthError(PlatformError):
    """Raised on 401/403: wrong admin credentials or missing server-admin rights."""
    pass


class PlatformNotFoundError(PlatformError):
    """Raised when an operation targets an organization, user or team that does not exist."""
    pass


class PlatformValidationError(PlatformError):
    """
    Raised when Grafana rejects the request payload.

    Examples:
        - Missing team name
        - Invalid role
    """
    pass


class PlatformConflictError(PlatformError):
    """
    Raised when the change clashes with existing state.

    Examples:
        - User is already a member of the organization
        - Team name taken
    """
    pass


_STATUS_ERRORS = {
    400: PlatformValidationError,
    401: PlatformAuthError,
    403: PlatformAuthError,
    404: PlatformNotFoundError,
    409: PlatformConflictError,
    412: PlatformConflictError,
    422: PlatformValidationError,
}


def error_for_response(response: httpx.Response) -> PlatformError:
    """Build the exception matching an error response."""
    message = response.text[:200]
    try:
        body = response.json()
        if isinstance(body, dict) and body.get("message"):
            message = str(body["message"])
    except ValueError:
        pass

    status = response.status_code
    error_class = _STATUS_ERRORS.get(status)
    if error_class is None:
        error_class = PlatformConnectionError if status >= 500 else PlatformError
    return error_class(
        f"Grafana API {response.request.method} {response.request.url.path} failed ({status}): {message}",
        status_code=status,
    )
