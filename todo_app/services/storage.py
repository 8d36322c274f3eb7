"""In-memory record stores for tasks and users.

Every public method holds the store lock for its whole duration, so each
call is one atomic step against a consistent snapshot.
"""

import logging
from threading import Lock
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple
from uuid import UUID

from ..errors import ConflictError
from ..models.task import Task
from ..models.user import User
from .task_query import Predicate, SortKey, matches_all, order_tasks

logger = logging.getLogger(__name__)


class TaskStore:
    """Task records keyed by id."""

    def __init__(self):
        """Initialize an empty store."""
        self._tasks: Dict[UUID, Task] = {}
        self._lock = Lock()
        logger.info("Task store initialized with in-memory storage")

    def _select(self, predicates: Iterable[Predicate]) -> List[Task]:
        predicates = list(predicates)
        return [task for task in self._tasks.values() if matches_all(task, predicates)]

    @staticmethod
    def _window(tasks: List[Task], skip: int, take: Optional[int]) -> List[Task]:
        end = None if take is None else skip + take
        return [task.model_copy() for task in tasks[skip:end]]

    def add(self, task: Task) -> Task:
        """Insert a new task and return a copy of the stored record."""
        with self._lock:
            self._tasks[task.id] = task.model_copy()
            return task.model_copy()

    def get(self, task_id: UUID) -> Optional[Task]:
        """Find one task by id."""
        with self._lock:
            task = self._tasks.get(task_id)
            return task.model_copy() if task else None

    def find_many(
        self,
        predicates: Sequence[Predicate] = (),
        ordering: Sequence[SortKey] = (),
        skip: int = 0,
        take: Optional[int] = None,
    ) -> List[Task]:
        """Return tasks matching every predicate, ordered and sliced."""
        with self._lock:
            tasks = order_tasks(self._select(predicates), list(ordering))
            return self._window(tasks, skip, take)

    def count(self, predicates: Sequence[Predicate] = ()) -> int:
        """Count tasks matching every predicate."""
        with self._lock:
            return len(self._select(predicates))

    def find_many_and_count(
        self,
        predicates: Sequence[Predicate],
        ordering: Sequence[SortKey],
        skip: int,
        take: int,
    ) -> Tuple[List[Task], int]:
        """Fetch one page and the total match count from the same snapshot."""
        with self._lock:
            matching = self._select(predicates)
            tasks = order_tasks(matching, list(ordering))
            return self._window(tasks, skip, take), len(matching)

    def update(
        self,
        task_id: UUID,
        mutate: Callable[[Task], None],
        predicates: Sequence[Predicate] = (),
    ) -> Optional[Task]:
        """Apply ``mutate`` to a copy of the task and store the result.

        Returns None, leaving the record untouched, when the task is absent
        or does not match ``predicates``.
        """
        with self._lock:
            current = self._tasks.get(task_id)
            if current is None or not matches_all(current, predicates):
                return None
            updated = current.model_copy()
            mutate(updated)
            self._tasks[task_id] = Task.model_validate(updated.model_dump())
            return self._tasks[task_id].model_copy()

    def delete(self, task_id: UUID, predicates: Sequence[Predicate] = ()) -> Optional[Task]:
        """Remove a task matching ``predicates`` and return it."""
        with self._lock:
            current = self._tasks.get(task_id)
            if current is None or not matches_all(current, predicates):
                return None
            return self._tasks.pop(task_id)


class UserStore:
    """User records keyed by id with a unique e-mail index."""

    def __init__(self):
        """Initialize an empty store."""
        self._users: Dict[UUID, User] = {}
        self._by_email: Dict[str, UUID] = {}
        self._lock = Lock()
        logger.info("User store initialized with in-memory storage")

    @staticmethod
    def _email_key(email: str) -> str:
        return email.strip().lower()

    def add(self, user: User) -> User:
        """Insert a user.

        Raises:
            ConflictError: If the e-mail is already registered
        """
        key = self._email_key(user.email)
        with self._lock:
            if key in self._by_email:
                raise ConflictError("email", "Email already in use")
            self._users[user.id] = user.model_copy()
            self._by_email[key] = user.id
            return user.model_copy()

    def get(self, user_id: UUID) -> Optional[User]:
        with self._lock:
            user = self._users.get(user_id)
            return user.model_copy() if user else None

    def get_by_email(self, email: str) -> Optional[User]:
        with self._lock:
            user_id = self._by_email.get(self._email_key(email))
            return self._users[user_id].model_copy() if user_id else None

    def update(self, user_id: UUID, mutate: Callable[[User], None]) -> Optional[User]:
        """Apply ``mutate`` to a copy of the user, keeping e-mails unique.

        Raises:
            ConflictError: If the new e-mail belongs to another user
        """
        with self._lock:
            current = self._users.get(user_id)
            if current is None:
                return None
            updated = current.model_copy()
            mutate(updated)
            updated = User.model_validate(updated.model_dump())

            old_key = self._email_key(current.email)
            new_key = self._email_key(updated.email)
            if new_key != old_key:
                if new_key in self._by_email:
                    raise ConflictError("email", "Email already in use")
                del self._by_email[old_key]
                self._by_email[new_key] = user_id

            self._users[user_id] = updated
            return updated.model_copy()
