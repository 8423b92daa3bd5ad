"""
TaskBoard — Task Request/Response Schemas
==========================================

What:  Pydantic models defining the task API contract.

Ownership note:
    None of the request models declare an owner field and all of them ignore
    unknown keys, so an `owner_id` sent by a client is dropped before it can
    reach the service layer. The owner always comes from the session token.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from taskboard.models.task import TaskStatus


def _normalize_status(value):
    if isinstance(value, str):
        return value.strip().upper()
    return value


TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 2000


# Lengths are checked after trimming, so surrounding whitespace never counts
def _clean_title(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("Title must not be empty")
    if len(value) > TITLE_MAX_LENGTH:
        raise ValueError(f"Title must be at most {TITLE_MAX_LENGTH} characters")
    return value


def _clean_description(value: str) -> str:
    value = value.strip()
    if len(value) > DESCRIPTION_MAX_LENGTH:
        raise ValueError(f"Description must be at most {DESCRIPTION_MAX_LENGTH} characters")
    return value


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class TaskCreate(BaseModel):
    """Body of POST /api/tasks. New tasks always start OPEN."""
    title: str
    description: Optional[str] = ""

    model_config = {"extra": "ignore"}

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _clean_title(v)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: Optional[str]) -> str:
        return _clean_description(v or "")


class TaskUpdate(BaseModel):
    """Body of PATCH /api/tasks/{id}. Only the supplied fields change."""
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[TaskStatus] = None

    model_config = {"extra": "ignore"}

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _clean_title(v)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _clean_description(v)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        return _normalize_status(v)

    @model_validator(mode="after")
    def require_a_change(self) -> "TaskUpdate":
        if self.title is None and self.description is None and self.status is None:
            raise ValueError("At least one of title, description or status is required")
        return self

    def as_patch(self) -> dict:
        """Fields the client actually sent, with status as its stored string."""
        patch = self.model_dump(exclude_unset=True, exclude_none=True)
        if "status" in patch:
            patch["status"] = patch["status"].value
        return patch


class TaskStatusUpdate(BaseModel):
    """Body of PATCH /api/tasks/{id}/status."""
    status: TaskStatus

    model_config = {"extra": "ignore"}

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        return _normalize_status(v)


class TaskQuery(BaseModel):
    """Query parameters for GET /api/tasks."""
    status: Optional[TaskStatus] = None
    search: Optional[str] = Field(default=None, max_length=200)
    limit: int = Field(default=50, ge=1, le=100)
    offset: int = Field(default=0, ge=0)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return _normalize_status(v)

    @field_validator("search")
    @classmethod
    def blank_search_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class TaskResponse(BaseModel):
    """Full representation of a task."""
    id: uuid.UUID = Field(description="Task identifier")
    owner_id: uuid.UUID = Field(description="Owning user's identifier")
    title: str
    description: str
    status: TaskStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TaskListResponse(BaseModel):
    """Page of the caller's tasks; total_count ignores limit/offset."""
    tasks: List[TaskResponse]
    total_count: int


class TaskDeleteResponse(BaseModel):
    message: str = Field(default="Task deleted successfully")
    id: uuid.UUID
