"""
TaskBoard — Custom Exception Hierarchy
=======================================

What:  Application-specific exceptions for every failure the core can report.
How:   Each exception carries a user-facing message and an optional context
       dict. Global exception handlers (registered in main.py) translate them
       into structured JSON responses with the matching HTTP status code.
Who:   Raised by validation and services; caught by the global handlers.

Exception Hierarchy:
    TaskBoardError (base)
    ├── ValidationError          → 400 Bad Request
    ├── AuthenticationError      → 401 Unauthorized (one generic message)
    │   ├── MissingCredentialsError
    │   ├── InvalidCredentialsError
    │   ├── ExpiredTokenError
    │   └── InvalidSignatureError
    ├── ForbiddenError           → 403 Forbidden
    ├── NotFoundError            → 404 Not Found
    ├── DuplicateUsernameError   → 409 Conflict
    ├── RateLimitExceededError   → 429 Too Many Requests
    └── DatabaseError            → 500 Internal Server Error

Every AuthenticationError subclass is reported to the client identically; the
concrete subclass only shows up in server logs.
"""

from typing import Any, Dict, Optional


class TaskBoardError(Exception):
    """
    Base exception for all TaskBoard application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, returned only where a handler opts in)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(TaskBoardError):
    """
    Raised when client input fails boundary validation.

    When:    Empty title, unrecognized status value, malformed identifier,
             username/password outside the allowed shape.
    HTTP:    400 Bad Request

    Example response:
        {
            "error": "validation_error",
            "message": "Title must not be empty",
            "details": {"field": "title"}
        }
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


class AuthenticationError(TaskBoardError):
    """
    Base for every "we don't know who you are" failure.

    HTTP:    401 Unauthorized, always with the same message.
    """

    reason = "unauthenticated"

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class MissingCredentialsError(AuthenticationError):
    """No bearer token was presented on an endpoint that requires one."""

    reason = "missing_credentials"


class InvalidCredentialsError(AuthenticationError):
    """
    Username unknown or password mismatch.

    Both cases raise this same class after the same amount of hashing work,
    so the response cannot be used to enumerate usernames.
    """

    reason = "invalid_credentials"

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message="Invalid username or password", context=context)


class ExpiredTokenError(AuthenticationError):
    """Session token signature is valid but its expiry has passed."""

    reason = "expired_token"


class InvalidSignatureError(AuthenticationError):
    """Session token is malformed, tampered with, or signed with another key."""

    reason = "invalid_signature"


class ForbiddenError(TaskBoardError):
    """
    Raised when the resource exists but belongs to another user.

    HTTP:    403 Forbidden
    Policy:  Kept distinct from NotFoundError; see DESIGN.md.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"You do not have access to this {resource}"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class NotFoundError(TaskBoardError):
    """
    Raised when a requested resource does not exist.

    When:    GET /api/tasks/{id} with an unknown UUID, or a task that was deleted.
    HTTP:    404 Not Found
    """

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


class DuplicateUsernameError(TaskBoardError):
    """
    Raised when sign-up targets a username that already exists.

    HTTP:    409 Conflict
    Raised both by the pre-insert lookup and by the unique-constraint violation
    a concurrent sign-up produces, so exactly one of two racing sign-ups wins.
    """

    def __init__(self, username: str, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx["username"] = username
        super().__init__(message=f"Username '{username}' is already taken", context=ctx)
        self.username = username


class DatabaseError(TaskBoardError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error
    The client always gets a generic message; details are logged server-side.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(TaskBoardError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests, with a Retry-After header. Built by
             RateLimitMiddleware, which renders the response itself.
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
