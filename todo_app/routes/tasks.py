"""Task CRUD and listing routes, scoped to the authenticated user."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status

from ..deps import CurrentUser, get_task_service
from ..schemas import (
    PageMeta,
    TaskCreate,
    TaskListResponse,
    TaskResponse,
    TaskStatistics,
    TaskUpdate,
)
from ..services.task_query import normalize_query
from ..services.task_service import TaskService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/todos", tags=["todos"])


@router.get("", response_model=TaskListResponse)
async def list_tasks(
    request: Request,
    user: CurrentUser,
    task_service: TaskService = Depends(get_task_service),
) -> TaskListResponse:
    """List the caller's tasks.

    Accepts ``q``, ``status``, ``sortBy``, ``sortDir``, ``page``,
    ``pageSize``, ``from``, ``to`` and ``pinnedOnly`` query parameters.
    Repeated parameters use their first value.

    Returns:
        Page of tasks with pagination metadata
    """
    params = request.query_params
    raw = {key: params.getlist(key) for key in params.keys()}
    query = normalize_query(raw)

    logger.debug(f"Listing tasks for {user.id}: {query}")
    page = task_service.list_tasks(user.id, query)

    return TaskListResponse(
        items=[TaskResponse.from_task(task) for task in page.items],
        meta=PageMeta(
            total=page.total,
            page=page.page,
            page_size=page.page_size,
            total_pages=page.total_pages,
        ),
    )


@router.get("/stats", response_model=TaskStatistics)
async def get_task_statistics(
    user: CurrentUser,
    task_service: TaskService = Depends(get_task_service),
) -> TaskStatistics:
    """Task counts per status for the caller."""
    return TaskStatistics(**task_service.get_statistics(user.id))


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: UUID,
    user: CurrentUser,
    task_service: TaskService = Depends(get_task_service),
) -> TaskResponse:
    """Get one of the caller's tasks.

    Raises:
        NotFoundError: If the task does not exist or belongs to another user
    """
    task = task_service.get_task(user.id, task_id)
    return TaskResponse.from_task(task)


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_data: TaskCreate,
    user: CurrentUser,
    task_service: TaskService = Depends(get_task_service),
) -> TaskResponse:
    """Create a task owned by the caller."""
    logger.info(f"Creating new task for {user.id}")
    task = task_service.create_task(user.id, task_data)
    return TaskResponse.from_task(task)


@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: UUID,
    task_data: TaskUpdate,
    user: CurrentUser,
    task_service: TaskService = Depends(get_task_service),
) -> TaskResponse:
    """Partially update one of the caller's tasks.

    ``date: null`` clears the due date; omitting ``date`` keeps it.
    """
    logger.info(f"Updating task {task_id} for {user.id}")
    task = task_service.update_task(user.id, task_id, task_data)
    return TaskResponse.from_task(task)


@router.delete("/{task_id}", response_model=TaskResponse)
async def delete_task(
    task_id: UUID,
    user: CurrentUser,
    task_service: TaskService = Depends(get_task_service),
) -> TaskResponse:
    """Delete one of the caller's tasks and return the removed record."""
    logger.info(f"Deleting task {task_id} for {user.id}")
    task = task_service.delete_task(user.id, task_id)
    return TaskResponse.from_task(task)
