"""Domain exception hierarchy shared by services, repositories and routes.

Every exception carries the HTTP status it maps to, so the application
registers a single handler (see ``main.create_app``) and routes never
translate errors by hand.

Usage:
    from badminton_alphabet.errors import NotFoundError, ValidationError

    raise NotFoundError("Invitation")
    raise ValidationError("email required")
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class AlphabetError(Exception):
    """Base class for errors that render as ``{"error": message}`` responses."""

    status_code: int = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(AlphabetError):
    """A required field is missing or a value breaks a business rule."""

    status_code = 400


class AuthenticationError(AlphabetError):
    """The caller's token or credentials could not be verified."""

    status_code = 401


class AuthorizationError(AlphabetError):
    """The caller is known but not allowed to perform the operation.

    Raised for players registering without a coach's invitation.
    """

    status_code = 403


class NotFoundError(AlphabetError):
    """A requested record does not exist.

    Unknown and already-consumed invitation tokens both raise this error with
    the same message so the response does not leak which one it was.
    """

    status_code = 404

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource} not found"
        if resource_id is not None:
            msg = f"{resource} {resource_id} not found"
        super().__init__(msg)


class ConflictError(AlphabetError):
    """A write would violate a uniqueness constraint."""

    status_code = 409

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(f"{resource} with {field}={value!r} already exists")


class ServiceUnavailableError(AlphabetError):
    """The database or the identity provider is not configured or unreachable."""

    status_code = 500


class IntegrityFaultError(AlphabetError):
    """Stored data violates an invariant the application relies on."""

    status_code = 500


__all__ = [
    "AlphabetError",
    "AuthenticationError",
    "AuthorizationError",
    "ConflictError",
    "IntegrityFaultError",
    "NotFoundError",
    "ServiceUnavailableError",
    "ValidationError",
]
