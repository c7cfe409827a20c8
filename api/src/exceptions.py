"""
Error taxonomy for the account, profile and favorites API.

Every error carries the HTTP status it maps to and a short human-readable
message. The message is what reaches the client as ``{"error": message}``,
so it must never include internal details (stack traces, driver errors,
whether a token was expired or merely malformed).
"""

from typing import Optional

from fastapi import status


class TravelBudError(Exception):
    """Base class for errors reported to API callers."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(TravelBudError):
    """Missing or malformed input. Detected before any mutation."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class DuplicateEmail(TravelBudError):
    """Registration attempted with an email that is already stored."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "User already exists"


class InvalidCredentials(TravelBudError):
    """Login failed: unknown email or wrong password, indistinguishably."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid credentials"


class InvalidCredential(TravelBudError):
    """Bearer token missing, malformed, expired, or pointing at no user."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid token"


class ServerError(TravelBudError):
    """Persistence or otherwise unexpected failure."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Server error"
