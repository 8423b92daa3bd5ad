"""
TaskBoard — User SQLAlchemy Model
==================================

What:  ORM model for the `users` table.
Who:   UserDirectory (create, lookup, hash rotation) and Alembic.

Table Design:
    - UUID primary key, generated in Python so it is known before flush
    - username: unique, case-sensitive, immutable after creation
    - password_hash: bcrypt output (salt and cost embedded); raw passwords are
      never stored
    - password_changed_at: bumped on every hash rotation
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from taskboard.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """
    A registered account.

    Lifecycle:
        1. Created on sign-up with a freshly salted hash
        2. password_hash replaced on rotation; nothing else ever changes
        3. Never deleted
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    username: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Unique, case-sensitive login name",
    )

    password_hash: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        comment="bcrypt hash with embedded salt",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    password_changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    # The unique index is what makes create-or-fail atomic under concurrent sign-ups
    __table_args__ = (
        Index("uq_users_username", "username", unique=True),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}')>"
