"""
BeeBark Backend — Custom Exception Hierarchy
==============================================

What:  Defines application-specific exceptions for every failure the API reports.
Why:   Services raise typed errors; a single translation table in main.py maps
       each error kind to an HTTP status, so no handler builds error strings
       from raw faults.
How:   Each exception class carries an ErrorKind, a human-readable message and
       an optional context dict (logged, returned only for client errors).

Exception Hierarchy:
    BeeBarkError (base)
    ├── AuthenticationError         → 401 (missing/invalid caller id)
    ├── ValidationError             → 400
    │   └── MediaValidationError    → 400 (bad image upload)
    ├── ConnectionRequestError      → 400
    │   ├── SelfRequestError
    │   ├── AlreadyConnectedError
    │   ├── DuplicatePendingError
    │   ├── RequestNotFoundError
    │   └── AlreadyProcessedError
    ├── UnauthorizedActionError     → 403
    ├── NotFoundError               → 404
    ├── MediaUploadError            → 500
    └── DatabaseError               → 500
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Machine-readable error codes returned in the `error` field."""

    UNAUTHENTICATED = "unauthenticated"
    VALIDATION = "validation_error"
    SELF_REQUEST = "self_request"
    ALREADY_CONNECTED = "already_connected"
    DUPLICATE_PENDING = "duplicate_pending"
    REQUEST_NOT_FOUND = "request_not_found"
    ALREADY_PROCESSED = "already_processed"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    MEDIA_UPLOAD = "media_upload_error"
    DATABASE = "server_error"
    INTERNAL = "internal_server_error"


class BeeBarkError(Exception):
    """
    Base exception for all BeeBark application errors.

    Attributes:
        kind:     ErrorKind used by the translation layer
        message:  User-facing error description
        context:  Additional debug info
    """

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class AuthenticationError(BeeBarkError):
    """The request carries no usable caller identity."""

    kind = ErrorKind.UNAUTHENTICATED

    def __init__(self, message: str = "Authentication required", context=None):
        super().__init__(message=message, context=context)


class ValidationError(BeeBarkError):
    """
    Raised when client input fails a business rule.

    FastAPI already answers schema violations with 422; this one is for
    checks made inside services (upload type and size, for example).
    """

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class MediaValidationError(ValidationError):
    """Uploaded image rejected before it reaches the media host."""


# ── Connection lifecycle ──────────────────────────────────────────────────

class ConnectionRequestError(BeeBarkError):
    """Precondition failure on a connection request (HTTP 400)."""

    message_text = "Connection request failed"

    def __init__(self, message: Optional[str] = None, context=None):
        super().__init__(message=message or self.message_text, context=context)


class SelfRequestError(ConnectionRequestError):
    kind = ErrorKind.SELF_REQUEST
    message_text = "You cannot send a request to yourself"


class AlreadyConnectedError(ConnectionRequestError):
    kind = ErrorKind.ALREADY_CONNECTED
    message_text = "You are already connected"


class DuplicatePendingError(ConnectionRequestError):
    kind = ErrorKind.DUPLICATE_PENDING
    message_text = "Request already exists"


class RequestNotFoundError(ConnectionRequestError):
    # Reported as 400, not 404: the connection id comes from a previous
    # response, so a miss means the client sent a stale or bogus id.
    kind = ErrorKind.REQUEST_NOT_FOUND
    message_text = "Connection does not exist"


class AlreadyProcessedError(ConnectionRequestError):
    kind = ErrorKind.ALREADY_PROCESSED
    message_text = "Request already processed"


class UnauthorizedActionError(BeeBarkError):
    """The caller is not allowed to act on this resource (HTTP 403)."""

    kind = ErrorKind.UNAUTHORIZED

    def __init__(self, message: str = "Unauthorized action", context=None):
        super().__init__(message=message, context=context)


class NotFoundError(BeeBarkError):
    """
    Raised when a requested resource does not exist (HTTP 404).

    SQLAlchemy returns None for missing rows; services convert that into
    this exception so routes never check for None.
    """

    kind = ErrorKind.NOT_FOUND

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"{resource.capitalize()} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class MediaUploadError(BeeBarkError):
    """
    Raised when the media host upload fails after all retries.

    Recovery: the staged file is removed and no post row is written.
    """

    kind = ErrorKind.MEDIA_UPLOAD

    def __init__(
        self,
        message: str = "Image upload failed. Please try again.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(BeeBarkError):
    """
    Raised when database operations fail unexpectedly (HTTP 500).

    The message returned to the client is always generic; the underlying
    error type is kept in context for the server log.
    """

    kind = ErrorKind.DATABASE

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
