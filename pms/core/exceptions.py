"""Placement management exception hierarchy.

Every error carries the HTTP status it is rendered with; the handlers in
``pms.main`` turn them into the ``{"success": false, ...}`` envelope.
"""

from typing import List, Optional


class PMSError(Exception):
    """Base exception for all placement management errors."""

    status_code = 500

    def __init__(self, message: str, errors: Optional[List[dict]] = None) -> None:
        self.message = message
        self.errors = errors
        super().__init__(message)


class ValidationFailed(PMSError):
    """Malformed or missing input fields."""

    status_code = 400


class DuplicateFieldError(PMSError):
    """A unique field already holds the submitted value."""

    status_code = 400

    def __init__(self, field: str, message: Optional[str] = None) -> None:
        self.field = field
        super().__init__(message or f"{field} already exists. Please use a different value.")


class InvalidReferenceError(PMSError):
    """A referenced entity in the request body does not resolve or has the wrong kind."""

    status_code = 400


class NotFoundError(PMSError):
    """The addressed entity does not exist."""

    status_code = 404


class AuthenticationError(PMSError):
    """Missing, invalid or revoked credentials."""

    status_code = 401


class PermissionDeniedError(PMSError):
    """Authenticated, but not allowed to perform the operation."""

    status_code = 403


class RateLimitExceeded(PMSError):
    """Too many attempts inside the current window."""

    status_code = 429

    def __init__(self, message: str, retry_after: int) -> None:
        self.retry_after = retry_after
        super().__init__(message)


class StorageError(PMSError):
    """Object storage rejected an upload."""

    status_code = 500
