"""
TaskBoard — Task SQLAlchemy Model
==================================

What:  ORM model for the `tasks` table plus the TaskStatus enumeration.
Who:   TaskStore for CRUD, TaskLifecycleManager for ownership checks, Alembic.

Table Design:
    - owner_id: FK to users.id, set once at creation and never reassigned
    - status: stored as its string value (OPEN, IN_PROGRESS, DONE)
    - (owner_id, created_at) index serves the only list query: "my tasks,
      newest first"
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from taskboard.database import Base


class TaskStatus(str, enum.Enum):
    """
    Task status state machine.

    Every state may move to every other state (and to itself). New tasks start
    in OPEN; DONE is not terminal.
    """

    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Task(Base):
    """A unit of work owned by exactly one user."""

    __tablename__ = "tasks"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        nullable=False,
        comment="Creator of the task; immutable",
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=TaskStatus.OPEN.value,
        comment="OPEN, IN_PROGRESS or DONE",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    __table_args__ = (
        Index("idx_tasks_owner_created_at", "owner_id", "created_at"),
        CheckConstraint(
            "status IN ('OPEN', 'IN_PROGRESS', 'DONE')", name="ck_tasks_status"
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Task(id={self.id}, owner_id={self.owner_id}, status='{self.status}')>"
        )
