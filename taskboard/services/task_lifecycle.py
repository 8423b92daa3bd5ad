"""
TaskBoard — Task Lifecycle Manager
===================================

What:  Every task operation a signed-in user can perform, gated by ownership.
How:   Resolves the task through TaskStore, compares its owner with the
       identity taken from the verified session token, then delegates the
       read or write back to the store.
Who:   Task route handlers.

Ownership Rules:
    - create stamps the caller as owner; there is no way to pass another owner
    - get / update / status update / delete on a task owned by someone else
      raise ForbiddenError and leave the task untouched
    - a task id that does not exist raises NotFoundError
    - list only ever returns the caller's tasks

Status Rules:
    OPEN, IN_PROGRESS and DONE are all reachable from each other (and from
    themselves, so repeating a status update is a no-op success). New tasks
    start OPEN. DONE may be reopened.
"""

import logging
import uuid
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.exceptions import ForbiddenError, NotFoundError
from taskboard.models.task import Task, TaskStatus
from taskboard.schemas.task import TaskCreate, TaskUpdate
from taskboard.services.task_store import TaskFilter, TaskStore

logger = logging.getLogger(__name__)


class TaskLifecycleManager:
    """Ownership-checked task operations on top of a TaskStore."""

    def __init__(self, store: TaskStore):
        self._store = store

    async def list_tasks(
        self,
        db: AsyncSession,
        identity: uuid.UUID,
        status: Optional[TaskStatus] = None,
        search: Optional[str] = None,
        limit: Optional[int] = 50,
        offset: int = 0,
    ) -> Tuple[List[Task], int]:
        """
        Returns:
            (page of the caller's tasks, total matching count)
        """
        task_filter = TaskFilter(
            owner_id=identity,
            status=status,
            search=search,
            limit=limit,
            offset=offset,
        )
        tasks = await self._store.list(db, task_filter)
        total = await self._store.count(db, task_filter)
        return tasks, total

    async def get_task(self, db: AsyncSession, identity: uuid.UUID, task_id: uuid.UUID) -> Task:
        return await self._owned_task(db, identity, task_id)

    async def create_task(self, db: AsyncSession, identity: uuid.UUID, data: TaskCreate) -> Task:
        return await self._store.create(
            db,
            owner_id=identity,
            title=data.title,
            description=data.description or "",
        )

    async def update_task(
        self,
        db: AsyncSession,
        identity: uuid.UUID,
        task_id: uuid.UUID,
        data: TaskUpdate,
    ) -> Task:
        await self._owned_task(db, identity, task_id)
        return await self._store.update(db, task_id, data.as_patch())

    async def update_status(
        self,
        db: AsyncSession,
        identity: uuid.UUID,
        task_id: uuid.UUID,
        status: TaskStatus,
    ) -> Task:
        task = await self._owned_task(db, identity, task_id)
        previous = task.status
        task = await self._store.update(db, task_id, {"status": TaskStatus(status).value})
        logger.info("Task %s status %s -> %s", task_id, previous, task.status)
        return task

    async def delete_task(self, db: AsyncSession, identity: uuid.UUID, task_id: uuid.UUID) -> None:
        await self._owned_task(db, identity, task_id)
        await self._store.delete(db, task_id)
        logger.info("Task %s deleted by owner %s", task_id, identity)

    async def _owned_task(
        self, db: AsyncSession, identity: uuid.UUID, task_id: uuid.UUID
    ) -> Task:
        task = await self._store.get(db, task_id)
        if task is None:
            raise NotFoundError(resource="task", resource_id=str(task_id))
        if task.owner_id != identity:
            logger.warning(
                "User %s denied access to task %s owned by %s",
                identity,
                task_id,
                task.owner_id,
            )
            raise ForbiddenError(resource="task", resource_id=str(task_id))
        return task
