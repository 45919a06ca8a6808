"""
Users API — Custom Exception Hierarchy
=======================================

What:  Application-specific exceptions for each failure the API can report.
Why:   The repository raises these instead of returning error values, and the
       global handlers in main.py turn each type into a fixed HTTP status code.
How:   Each exception carries a user-facing message and an optional context
       dict. Context is logged server-side; only some handlers return it.
Who:   Raised by the repository; caught by the handlers in main.py.

Exception Hierarchy:
    UserAPIError (base)
    ├── ValidationError  → 400 Bad Request (missing/malformed input or id)
    ├── NotFoundError    → 404 Not Found
    ├── ConflictError    → 409 Conflict (duplicate unique field)
    └── StorageError     → 500 Internal Server Error (any other MongoDB failure)
"""

from typing import Any, Dict, Optional


class UserAPIError(Exception):
    """
    Base exception for all Users API errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, returned only for client errors)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(UserAPIError):
    """
    Raised when client input fails validation.

    When:    A required field is missing or blank, a field has the wrong type,
             or an identifier is not a valid ObjectId.
    HTTP:    400 Bad Request

    `fields` maps each offending field name to "missing" or "invalid".
    """

    def __init__(
        self,
        message: str = "Validation failed",
        fields: Optional[Dict[str, str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if fields:
            ctx["fields"] = fields
        super().__init__(message=message, context=ctx)
        self.fields = fields or {}


class NotFoundError(UserAPIError):
    """
    Raised when no document matches the requested identifier.

    HTTP:    404 Not Found

    The driver returns None for a missing document; the repository converts
    that into this exception so routes never inspect None.
    """

    def __init__(
        self,
        resource: str = "User",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=f"{resource} not found", context=ctx)


class ConflictError(UserAPIError):
    """
    Raised when a write would break a unique index.

    When:    Creating or updating a user with an email that already exists.
    HTTP:    409 Conflict
    """

    def __init__(
        self,
        field: str,
        value: Any = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["field"] = field
        message = f"A user with this {field} already exists"
        if value is not None:
            message = f"A user with {field} '{value}' already exists"
        super().__init__(message=message, context=ctx)
        self.field = field


class StorageError(UserAPIError):
    """
    Raised when MongoDB fails for any reason other than a duplicate key.

    HTTP:    500 Internal Server Error

    The message is an opaque per-operation description ("Error creating user").
    Driver error details go into `context` and are only logged.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
