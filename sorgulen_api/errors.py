"""Error taxonomy for the order-intake API.

HTTP-facing errors derive from ApiError and are rendered by the exception
handler in main.py. The remaining errors never reach a client directly.
"""

from __future__ import annotations

from typing import List, Optional


class ApiError(Exception):
    """Error with an HTTP status and a stable machine-readable code."""

    status_code = 500
    code = "INTERNAL_ERROR"
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ApiError):
    """Client input failed schema validation."""

    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Invalid request"

    def __init__(self, messages: List[str]):
        self.messages = list(messages)
        super().__init__(", ".join(self.messages) or None)


class AuthenticationError(ApiError):
    status_code = 401
    code = "UNAUTHORIZED"
    default_message = "Invalid token"


class NotFoundError(ApiError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Not found"


class DuplicateAdminError(ApiError):
    status_code = 409
    code = "ADMIN_EXISTS"
    default_message = "Administrator already exists"


class ConfigurationError(RuntimeError):
    """Missing or invalid configuration. Fatal at startup."""


class InvalidTokenError(Exception):
    """Bearer token is malformed, expired or carries a bad signature."""


class NotificationError(Exception):
    """The mail transport failed to deliver a message."""
