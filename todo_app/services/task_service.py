"""Task service for per-user CRUD operations and list queries."""

import logging
from contextlib import contextmanager
from typing import Dict, Iterator, List, NamedTuple, Optional
from uuid import UUID

from ..errors import AppError, NotFoundError, UpstreamError
from ..models.task import StoredStatus, Task, TaskStatus, to_stored_status
from ..schemas import TaskCreate, TaskUpdate
from .storage import TaskStore
from .task_query import (
    Predicate,
    TaskQuery,
    build_ordering,
    build_predicates,
    page_window,
    total_pages,
)

logger = logging.getLogger(__name__)


class TaskPage(NamedTuple):
    """One page of a task listing."""
    items: List[Task]
    total: int
    page: int
    page_size: int
    total_pages: int


def _owned_by(user_id: UUID) -> Predicate:
    return Predicate("owner", lambda task: task.user_id == user_id)


@contextmanager
def upstream_errors(operation: str) -> Iterator[None]:
    """Report store failures as UpstreamError, logging the original."""
    try:
        yield
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Store failure during {operation}: {str(e)}", exc_info=True)
        raise UpstreamError() from e


class TaskService:
    """Service for task operations scoped to one calling user at a time."""

    def __init__(self, store: Optional[TaskStore] = None):
        """Initialize the task service.

        Args:
            store: Backing task store; a fresh in-memory one when omitted
        """
        self.store = store or TaskStore()
        logger.info("Task service initialized")

    def list_tasks(self, user_id: UUID, query: TaskQuery) -> TaskPage:
        """List the caller's tasks.

        Args:
            user_id: Caller
            query: Normalized filter/sort/page specification

        Returns:
            Requested page plus pagination metadata
        """
        predicates = build_predicates(user_id, query)
        ordering = build_ordering(query.sort_by, query.sort_dir)
        skip, take = page_window(query.page, query.page_size)

        with upstream_errors("list"):
            items, total = self.store.find_many_and_count(predicates, ordering, skip, take)

        logger.debug(
            f"Listed {len(items)}/{total} tasks for {user_id} "
            f"(filters={[p.name for p in predicates]}, order={ordering[0]})"
        )
        return TaskPage(
            items=items,
            total=total,
            page=query.page,
            page_size=take,
            total_pages=total_pages(total, take),
        )

    def get_task(self, user_id: UUID, task_id: UUID) -> Task:
        """Get one of the caller's tasks.

        Raises:
            NotFoundError: If the task is absent or owned by someone else
        """
        with upstream_errors("get"):
            task = self.store.get(task_id)

        if task is None or task.user_id != user_id:
            logger.debug(f"Task {task_id} not found for {user_id}")
            raise NotFoundError("Task not found")
        return task

    def create_task(self, user_id: UUID, task_data: TaskCreate) -> Task:
        """Create a task owned by the caller.

        Args:
            user_id: Caller, becomes the owner
            task_data: Validated creation payload

        Returns:
            Created task
        """
        task = Task(
            user_id=user_id,
            description=task_data.description,
            priority=task_data.priority,
            date=task_data.date,
            status=to_stored_status(task_data.status or TaskStatus.PENDING),
        )
        task.set_pinned(bool(task_data.pinned))

        with upstream_errors("create"):
            task = self.store.add(task)

        logger.info(f"Created task {task.id} for {user_id}")
        return task

    def update_task(self, user_id: UUID, task_id: UUID, task_data: TaskUpdate) -> Task:
        """Apply a partial update to one of the caller's tasks.

        Only fields present in the payload change. ``date: null`` clears
        the due date.

        Raises:
            NotFoundError: If the task is absent or owned by someone else
        """
        def apply(task: Task) -> None:
            if task_data.description is not None:
                task.description = task_data.description
            if task_data.priority is not None:
                task.priority = task_data.priority
            if task_data.status is not None:
                task.status = to_stored_status(task_data.status)
            if task_data.date is not None or task_data.clears_date:
                task.date = task_data.date
            if task_data.pinned is not None:
                task.set_pinned(task_data.pinned)
            task.update_timestamp()

        with upstream_errors("update"):
            task = self.store.update(task_id, apply, [_owned_by(user_id)])

        if task is None:
            logger.warning(f"Task {task_id} not found for update by {user_id}")
            raise NotFoundError("Task not found")

        logger.info(f"Updated task {task_id} for {user_id}")
        return task

    def delete_task(self, user_id: UUID, task_id: UUID) -> Task:
        """Delete one of the caller's tasks and return it.

        Raises:
            NotFoundError: If the task is absent or owned by someone else
        """
        with upstream_errors("delete"):
            task = self.store.delete(task_id, [_owned_by(user_id)])

        if task is None:
            logger.warning(f"Task {task_id} not found for deletion by {user_id}")
            raise NotFoundError("Task not found")

        logger.info(f"Deleted task {task_id} for {user_id}")
        return task

    def get_statistics(self, user_id: UUID) -> Dict[str, int]:
        """Count the caller's tasks per status, plus remaining and pinned."""
        with upstream_errors("statistics"):
            tasks = self.store.find_many([_owned_by(user_id)])

        counts = {status: 0 for status in StoredStatus}
        pinned = 0
        for task in tasks:
            counts[task.status] += 1
            pinned += task.pinned

        return {
            "total": len(tasks),
            "pending": counts[StoredStatus.PENDING],
            "active": counts[StoredStatus.ACTIVE],
            "completed": counts[StoredStatus.COMPLETED],
            "remaining": counts[StoredStatus.PENDING] + counts[StoredStatus.ACTIVE],
            "pinned": pinned,
        }


# Global task service instance - will be initialized during app startup
_task_service: Optional[TaskService] = None


def get_task_service() -> Optional[TaskService]:
    """Get the global task service instance.

    Returns:
        Task service instance or None if not initialized
    """
    return _task_service


def initialize_task_service() -> TaskService:
    """Initialize the global task service instance.

    Returns:
        Initialized task service
    """
    global _task_service
    _task_service = TaskService()
    return _task_service
