"""
TaskBoard — Task Store
=======================

What:  Persistence operations for tasks, keyed by task id.
How:   Async SQLAlchemy queries against the `tasks` table. No ownership rules
       live here; TaskLifecycleManager applies them before calling in.
Who:   TaskLifecycleManager.

Concurrency:
    Updates are last-write-wins. Two overlapping PATCHes to the same task both
    succeed and the later flush determines the stored values.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional

from sqlalchemy import Select, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.exceptions import DatabaseError, NotFoundError
from taskboard.models.task import Task, TaskStatus

logger = logging.getLogger(__name__)

# Only these columns may be changed after creation; owner_id never is
MUTABLE_FIELDS = frozenset({"title", "description", "status"})


@dataclass(frozen=True)
class TaskFilter:
    """
    Selection criteria for list()/count().

    search matches case-insensitively anywhere in title OR description; SQL
    wildcards in the search text are matched literally.
    """
    owner_id: Optional[uuid.UUID] = None
    status: Optional[TaskStatus] = None
    search: Optional[str] = None
    limit: Optional[int] = None
    offset: int = 0


class TaskStore:
    """CRUD over task records."""

    async def create(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        title: str,
        description: str = "",
    ) -> Task:
        now = datetime.now(timezone.utc)
        task = Task(
            owner_id=owner_id,
            title=title,
            description=description,
            status=TaskStatus.OPEN.value,
            created_at=now,
            updated_at=now,
        )
        try:
            db.add(task)
            await db.flush()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Database error creating task for %s: %s", owner_id, str(e))
            raise DatabaseError(context={"operation": "create_task"}) from e

        logger.info("Task %s created for owner %s", task.id, owner_id)
        return task

    async def get(self, db: AsyncSession, task_id: uuid.UUID) -> Optional[Task]:
        try:
            return await db.get(Task, task_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching task %s: %s", task_id, str(e))
            raise DatabaseError(context={"operation": "get_task"}) from e

    async def list(self, db: AsyncSession, task_filter: TaskFilter) -> List[Task]:
        """Matching tasks, newest first, paged by limit/offset."""
        query = self._apply_filter(select(Task), task_filter)
        query = query.order_by(Task.created_at.desc(), Task.id)
        if task_filter.offset:
            query = query.offset(task_filter.offset)
        if task_filter.limit is not None:
            query = query.limit(task_filter.limit)

        try:
            result = await db.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing tasks: %s", str(e), exc_info=True)
            raise DatabaseError(context={"operation": "list_tasks"}) from e

    async def count(self, db: AsyncSession, task_filter: TaskFilter) -> int:
        """Number of matching tasks, ignoring limit/offset."""
        query = self._apply_filter(select(func.count(Task.id)), task_filter)
        try:
            result = await db.execute(query)
            return result.scalar() or 0
        except SQLAlchemyError as e:
            logger.error("Database error counting tasks: %s", str(e))
            raise DatabaseError(context={"operation": "count_tasks"}) from e

    async def update(
        self, db: AsyncSession, task_id: uuid.UUID, patch: Mapping[str, Any]
    ) -> Task:
        """
        Apply patch to the task and bump updated_at.

        Keys outside MUTABLE_FIELDS are ignored.

        Raises:
            NotFoundError: no task with this id
        """
        task = await self.get(db, task_id)
        if task is None:
            raise NotFoundError(resource="task", resource_id=str(task_id))

        for field, value in patch.items():
            if field not in MUTABLE_FIELDS:
                continue
            if field == "status":
                value = TaskStatus(value).value
            setattr(task, field, value)
        task.updated_at = datetime.now(timezone.utc)

        try:
            await db.flush()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Database error updating task %s: %s", task_id, str(e))
            raise DatabaseError(context={"operation": "update_task"}) from e
        return task

    async def delete(self, db: AsyncSession, task_id: uuid.UUID) -> None:
        """
        Raises:
            NotFoundError: no task with this id
        """
        task = await self.get(db, task_id)
        if task is None:
            raise NotFoundError(resource="task", resource_id=str(task_id))
        try:
            await db.delete(task)
            await db.flush()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Database error deleting task %s: %s", task_id, str(e))
            raise DatabaseError(context={"operation": "delete_task"}) from e

    @staticmethod
    def _apply_filter(query: Select, task_filter: TaskFilter) -> Select:
        if task_filter.owner_id is not None:
            query = query.where(Task.owner_id == task_filter.owner_id)
        if task_filter.status is not None:
            query = query.where(Task.status == TaskStatus(task_filter.status).value)
        if task_filter.search:
            query = query.where(
                or_(
                    Task.title.icontains(task_filter.search, autoescape=True),
                    Task.description.icontains(task_filter.search, autoescape=True),
                )
            )
        return query
