"""
Bus Pass Backend — Custom Exception Hierarchy
=============================================

What:  Application-specific exceptions, one class per failure kind.
How:   Each exception carries a user-facing message and an optional context
       dict. Global handlers (registered in main.py) translate them into the
       `{success: false, message, statusCode}` envelope with the right status.
Who:   Raised by services, storage, and the identity dependency.

Exception Hierarchy:
    BusPassError (base)
    ├── ValidationError       → 400 Bad Request   (malformed / semantically wrong input)
    ├── AuthenticationError   → 401 Unauthorized  (no usable identity on the request)
    ├── ForbiddenError        → 403 Forbidden     (ownership or role mismatch)
    ├── NotFoundError         → 404 Not Found     (referenced entity absent)
    ├── ConflictError         → 409 Conflict      (workflow invariant violated)
    ├── FileStorageError      → 500 Internal Server Error
    └── DatabaseError         → 500 Internal Server Error

Services fail fast with exactly one of these; nothing is retried and no
partial result is ever returned alongside an error.
"""

from typing import Any, Dict, Optional


class BusPassError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, returned only where harmless)
    """

    status_code: int = 500
    error_code: str = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(BusPassError):
    """
    Raised when client input is malformed or semantically wrong.

    When: payment amount differs from the pass price, unsupported document
          type, unknown sort field, undecodable QR payload, decision that is
          not APPROVED/REJECTED.
    """

    status_code = 400
    error_code = "validation_error"

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


class AuthenticationError(BusPassError):
    """Raised when the upstream gateway did not supply a usable identity."""

    status_code = 401
    error_code = "unauthorized"

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(BusPassError):
    """
    Raised when the caller may not act on the resource.

    When: paying for someone else's application, reading someone else's pass,
          calling an admin route with a passenger identity.
    """

    status_code = 403
    error_code = "forbidden"

    def __init__(
        self,
        message: str = "You are not allowed to access this resource",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(BusPassError):
    """
    Raised when a referenced resource does not exist.

    SQLAlchemy returns None for missing rows; the service layer converts that
    None into this exception so the handler can answer 404.
    """

    status_code = 404
    error_code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(BusPassError):
    """
    Raised when a request would violate a workflow invariant.

    When: duplicate pending application, already-decided application, pass
          already issued, payment not completed / already processed, daily
          scan limit reached, duplicate pass type name.
    """

    status_code = 409
    error_code = "conflict"

    def __init__(
        self,
        message: str = "The request conflicts with the current state of the resource",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileStorageError(BusPassError):
    """
    Raised when a document could not be written to storage.

    The message returned to the client stays generic; paths and OS errors
    go to the log only.
    """

    def __init__(
        self,
        message: str = "Document storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(BusPassError):
    """
    Raised when the store fails unexpectedly (lost connection, serialization
    failure, deadlock). The caller may resubmit; nothing is retried here.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
