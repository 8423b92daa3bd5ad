"""
TaskBoard — Boundary Validation
================================

What:  Pure functions turning raw request input into validated schema objects.
How:   Each parse_* function runs the matching pydantic model and converts any
       pydantic.ValidationError into the application's ValidationError (400),
       reporting the first failing field. Routes call these before any service
       logic runs.
Who:   Route handlers in taskboard.routes.
"""

import uuid
from typing import Any, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from taskboard.exceptions import ValidationError
from taskboard.schemas.auth import PasswordChangeRequest, SignInRequest, SignUpRequest
from taskboard.schemas.task import TaskCreate, TaskQuery, TaskStatusUpdate, TaskUpdate

ModelT = TypeVar("ModelT", bound=BaseModel)


def _first_error(exc: PydanticValidationError) -> ValidationError:
    error = exc.errors()[0]
    loc = [str(part) for part in error.get("loc", ())]
    field = ".".join(loc) or None

    message = error.get("msg", "Invalid input")
    if error.get("type") == "value_error" and "error" in error.get("ctx", {}):
        # Drop pydantic's "Value error, " prefix for messages we raised ourselves
        message = str(error["ctx"]["error"])
    elif field:
        message = f"{field}: {message}"

    return ValidationError(
        message=message,
        field=field,
        context={"error_count": exc.error_count()},
    )


def _parse(model: Type[ModelT], raw: Any) -> ModelT:
    if not isinstance(raw, Mapping):
        raise ValidationError(message="Request body must be a JSON object")
    try:
        return model.model_validate(dict(raw))
    except PydanticValidationError as exc:
        raise _first_error(exc) from exc


def parse_sign_up(raw: Any) -> SignUpRequest:
    return _parse(SignUpRequest, raw)


def parse_sign_in(raw: Any) -> SignInRequest:
    return _parse(SignInRequest, raw)


def parse_password_change(raw: Any) -> PasswordChangeRequest:
    return _parse(PasswordChangeRequest, raw)


def parse_task_create(raw: Any) -> TaskCreate:
    """Validated create payload; any owner field in `raw` is discarded."""
    return _parse(TaskCreate, raw)


def parse_task_update(raw: Any) -> TaskUpdate:
    return _parse(TaskUpdate, raw)


def parse_status_update(raw: Any) -> TaskStatusUpdate:
    return _parse(TaskStatusUpdate, raw)


def parse_task_query(
    status: Optional[str] = None,
    search: Optional[str] = None,
    limit: Any = 50,
    offset: Any = 0,
) -> TaskQuery:
    return _parse(
        TaskQuery,
        {"status": status, "search": search, "limit": limit, "offset": offset},
    )


def parse_task_id(raw: str) -> uuid.UUID:
    """Task identifiers are UUIDs; anything else is a client error."""
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        raise ValidationError(message=f"'{raw}' is not a valid task identifier", field="task_id")
