"""Error types for the public key-provisioning API.

Each error maps to one HTTP status and is rendered as
``{"success": false, "error": "<message>"}`` by the app's exception handler.
"""

from __future__ import annotations


class PublicApiError(Exception):
    """Base error with an HTTP status and a caller-safe message."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class AccessDenied(PublicApiError):
    """Feature disabled or source IP not on the allow-list."""

    status_code = 403


class AuthenticationFailure(PublicApiError):
    """Missing, stale or wrong request signature."""

    status_code = 401


class InvalidParameters(PublicApiError):
    """Malformed business parameters in the request body."""

    status_code = 400


class IssuanceFailure(PublicApiError):
    """The key issuer returned no key."""

    status_code = 500

    def __init__(self, message: str = "Failed to generate API key"):
        super().__init__(message)


class NotificationError(Exception):
    """Raised by notifiers. Never surfaced to API callers."""
