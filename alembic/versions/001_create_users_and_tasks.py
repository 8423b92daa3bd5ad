"""Create users and tasks tables

Revision ID: 001
Revises: None
Create Date: 2026-10-17 00:00:00.000000+00:00

What:  Creates the `users` and `tasks` tables.
How:   Generic sa.Uuid columns (native UUID on PostgreSQL, CHAR(32) elsewhere)
       and timezone-aware timestamps.

Rollback: downgrade() drops both tables (destructive, all data lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "username",
            sa.String(50),
            nullable=False,
            comment="Unique, case-sensitive login name",
        ),
        sa.Column(
            "password_hash",
            sa.String(128),
            nullable=False,
            comment="bcrypt hash with embedded salt",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "password_changed_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    # Makes concurrent sign-ups for one name create-or-fail
    op.create_index("uq_users_username", "users", ["username"], unique=True)

    op.create_table(
        "tasks",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "owner_id",
            sa.Uuid(),
            nullable=False,
            comment="Creator of the task; immutable",
        ),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column(
            "description",
            sa.Text(),
            nullable=False,
            server_default=sa.text("''"),
        ),
        sa.Column(
            "status",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'OPEN'"),
            comment="OPEN, IN_PROGRESS or DONE",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "status IN ('OPEN', 'IN_PROGRESS', 'DONE')", name="ck_tasks_status"
        ),
    )

    # Serves "my tasks, newest first"
    op.create_index("idx_tasks_owner_created_at", "tasks", ["owner_id", "created_at"])


def downgrade() -> None:
    op.drop_index("idx_tasks_owner_created_at", table_name="tasks")
    op.drop_table("tasks")
    op.drop_index("uq_users_username", table_name="users")
    op.drop_table("users")
