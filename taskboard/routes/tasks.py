"""
TaskBoard — Task Routes
========================

What:  CRUD and status endpoints for the signed-in user's tasks.
How:   Every handler depends on get_current_identity, validates raw input via
       taskboard.validation, then calls TaskLifecycleManager, which enforces
       ownership. Handlers stay thin: no business rules here.

Route Inventory:
    GET    /api/tasks                 list (status / search filters, paging)
    POST   /api/tasks                 create (owner = caller, status = OPEN)
    GET    /api/tasks/{id}            detail
    PATCH  /api/tasks/{id}            edit title / description / status
    PATCH  /api/tasks/{id}/status     status transition
    DELETE /api/tasks/{id}            delete
"""

import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.database import get_db_session
from taskboard.dependencies import get_current_identity, get_services
from taskboard.schemas.common import ErrorResponse, documented_body
from taskboard.schemas.task import (
    TaskCreate,
    TaskDeleteResponse,
    TaskListResponse,
    TaskResponse,
    TaskStatusUpdate,
    TaskUpdate,
)
from taskboard.services.container import ServiceContainer
from taskboard.validation import (
    parse_status_update,
    parse_task_create,
    parse_task_id,
    parse_task_query,
    parse_task_update,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tasks", tags=["Tasks"])

_OWNED_TASK_ERRORS = {
    400: {"description": "Malformed input", "model": ErrorResponse},
    401: {"description": "Not signed in", "model": ErrorResponse},
    403: {"description": "Task belongs to another user", "model": ErrorResponse},
    404: {"description": "Task not found", "model": ErrorResponse},
}


@router.get(
    "",
    response_model=TaskListResponse,
    responses={
        400: {"description": "Unknown status filter", "model": ErrorResponse},
        401: {"description": "Not signed in", "model": ErrorResponse},
    },
    summary="List your tasks",
)
async def list_tasks(
    response: Response,
    status_filter: Optional[str] = Query(
        default=None, alias="status", description="OPEN, IN_PROGRESS or DONE"
    ),
    search: Optional[str] = Query(
        default=None, description="Case-insensitive match on title or description"
    ),
    limit: str = Query(default="50", description="Page size (1-100)"),
    offset: str = Query(default="0", description="Items to skip"),
    identity: uuid.UUID = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db_session),
    services: ServiceContainer = Depends(get_services),
) -> TaskListResponse:
    query = parse_task_query(status=status_filter, search=search, limit=limit, offset=offset)
    tasks, total = await services.tasks.list_tasks(
        db,
        identity,
        status=query.status,
        search=query.search,
        limit=query.limit,
        offset=query.offset,
    )
    response.headers["X-Total-Count"] = str(total)
    return TaskListResponse(
        tasks=[TaskResponse.model_validate(task) for task in tasks],
        total_count=total,
    )


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=TaskResponse,
    responses={
        400: {"description": "Empty title or oversized fields", "model": ErrorResponse},
        401: {"description": "Not signed in", "model": ErrorResponse},
    },
    summary="Create a task",
    openapi_extra=documented_body(TaskCreate),
)
async def create_task(
    payload: Dict[str, Any] = Body(..., examples=[{"title": "write report", "description": ""}]),
    identity: uuid.UUID = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db_session),
    services: ServiceContainer = Depends(get_services),
) -> TaskResponse:
    data = parse_task_create(payload)
    task = await services.tasks.create_task(db, identity, data)
    return TaskResponse.model_validate(task)


@router.get(
    "/{task_id}",
    response_model=TaskResponse,
    responses=_OWNED_TASK_ERRORS,
    summary="Get one of your tasks",
)
async def get_task(
    task_id: str,
    identity: uuid.UUID = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db_session),
    services: ServiceContainer = Depends(get_services),
) -> TaskResponse:
    task = await services.tasks.get_task(db, identity, parse_task_id(task_id))
    return TaskResponse.model_validate(task)


@router.patch(
    "/{task_id}",
    response_model=TaskResponse,
    responses=_OWNED_TASK_ERRORS,
    summary="Edit a task",
    openapi_extra=documented_body(TaskUpdate),
)
async def update_task(
    task_id: str,
    payload: Dict[str, Any] = Body(...),
    identity: uuid.UUID = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db_session),
    services: ServiceContainer = Depends(get_services),
) -> TaskResponse:
    parsed_id = parse_task_id(task_id)
    data = parse_task_update(payload)
    task = await services.tasks.update_task(db, identity, parsed_id, data)
    return TaskResponse.model_validate(task)


@router.patch(
    "/{task_id}/status",
    response_model=TaskResponse,
    responses=_OWNED_TASK_ERRORS,
    summary="Move a task to another status",
    openapi_extra=documented_body(TaskStatusUpdate),
)
async def update_task_status(
    task_id: str,
    payload: Dict[str, Any] = Body(..., examples=[{"status": "IN_PROGRESS"}]),
    identity: uuid.UUID = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db_session),
    services: ServiceContainer = Depends(get_services),
) -> TaskResponse:
    parsed_id = parse_task_id(task_id)
    data = parse_status_update(payload)
    task = await services.tasks.update_status(db, identity, parsed_id, data.status)
    return TaskResponse.model_validate(task)


@router.delete(
    "/{task_id}",
    response_model=TaskDeleteResponse,
    responses=_OWNED_TASK_ERRORS,
    summary="Delete a task",
)
async def delete_task(
    task_id: str,
    identity: uuid.UUID = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db_session),
    services: ServiceContainer = Depends(get_services),
) -> TaskDeleteResponse:
    parsed_id = parse_task_id(task_id)
    await services.tasks.delete_task(db, identity, parsed_id)
    return TaskDeleteResponse(id=parsed_id)
