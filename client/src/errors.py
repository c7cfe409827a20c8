"""
Client error taxonomy.

Every failure surfaced by the client package derives from ``ClientError`` so
presentation code can catch one type and show ``str(error)`` inline.
"""

from typing import Optional


class ClientError(Exception):
    """Base class for client-side failures."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ApiError(ClientError):
    """
    The API answered with a non-2xx status.

    ``message`` is the server's ``error`` string when it sent one, otherwise
    the per-operation fallback (e.g. ``"Login failed"``).
    """

    def __init__(self, status: int, message: str):
        self.status = status
        super().__init__(message)

    @property
    def is_unauthorized(self) -> bool:
        return self.status == 401


class NetworkError(ClientError):
    """Connection failure or timeout before any HTTP status was received."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)


class PlacesError(ClientError):
    """The places provider rejected a request or returned no usable result."""
