"""
RecipeBox Backend — Custom Exception Hierarchy
===============================================

What:  Defines application-specific exceptions for different error scenarios.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by services and route dependencies; caught by global handlers.
When:  During request processing when recoverable errors occur.

Exception Hierarchy:
    RecipeBoxError (base)
    ├── ValidationError          → 422 Unprocessable Entity
    ├── AuthenticationError      → 401 Unauthorized
    │   ├── SessionNotFoundError
    │   └── SessionExpiredError
    ├── PermissionDeniedError    → 403 Forbidden (not the recipe owner)
    ├── NotFoundError            → 404 Not Found
    ├── ConflictError            → 409 Conflict
    ├── OperationTimeoutError    → 503 Service Unavailable (retry later)
    ├── DatabaseError            → 500 Internal Server Error
    │   └── CommitError
    └── FileStorageError         → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class RecipeBoxError(Exception):
    """
    Base exception for all RecipeBox application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged; only some handlers return it)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(RecipeBoxError):
    """
    Raised when client input breaks a business rule.

    When:    Blank recipe name, mismatched password confirmation, swapping an
             instruction with itself, empty or oversized upload.
    HTTP:    422 Unprocessable Entity (same status FastAPI uses for schema errors)
    """

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


class AuthenticationError(RecipeBoxError):
    """
    Raised when the caller cannot be identified.

    When:    No session cookie, unknown or expired session, bad credentials.
    HTTP:    401 Unauthorized
    """

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class SessionNotFoundError(AuthenticationError):
    """The session token is not present in the session store."""

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message="Session not found", context=context)


class SessionExpiredError(AuthenticationError):
    """The session token exists but is past its expiry; it has been deleted."""

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message="Session expired", context=context)


class PermissionDeniedError(RecipeBoxError):
    """
    Raised when an authenticated user touches a recipe they do not own.

    HTTP:    403 Forbidden
    """

    def __init__(
        self,
        message: str = "You do not have permission to modify this resource",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(RecipeBoxError):
    """
    Raised when a requested resource does not exist.

    When:    Recipe, ingredient, instruction, tag, user or file lookups
             that return no row.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id is not None:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = str(resource_id)
        super().__init__(message=message, context=ctx)
        self.resource = resource


class ConflictError(RecipeBoxError):
    """
    Raised when a request contradicts the current state.

    When:    Ingredient/instruction belongs to a different recipe, tag is
             already attached, tag name or username already taken.
    HTTP:    409 Conflict
    """

    def __init__(
        self,
        message: str = "The request conflicts with the current state",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class OperationTimeoutError(RecipeBoxError):
    """
    Raised when a unit of work does not finish within its time budget.

    The transaction has already been rolled back when this is raised,
    so the client can safely retry.
    HTTP:    503 Service Unavailable, with Retry-After
    """

    def __init__(
        self,
        operation: str = "operation",
        timeout: float = 0.0,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["operation"] = operation
        ctx["timeout_seconds"] = timeout
        super().__init__(
            message=f"The {operation} operation timed out. Please try again.",
            context=ctx,
        )
        self.operation = operation
        self.timeout = timeout


class DatabaseError(RecipeBoxError):
    """
    Raised when database operations fail unexpectedly.

    Security Note:
        The message returned to the client is always generic.
        Detailed error info is logged server-side only.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class CommitError(DatabaseError):
    """The work of a unit of work succeeded but its commit failed."""

    def __init__(
        self,
        message: str = "Could not save changes. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileStorageError(RecipeBoxError):
    """
    Raised when file system operations fail.

    When:    Disk full, permission denied, directory not writable, I/O error.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
