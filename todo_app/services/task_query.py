"""List-query pipeline for tasks: normalize, filter, order and paginate.

Raw request parameters go through :func:`normalize_query`, which produces a
typed :class:`TaskQuery`. :func:`build_predicates` turns that into a
conjunctive list of predicates anchored on the caller's user id, and
:func:`build_ordering` into a list of ``(field, direction)`` pairs that
always ends with the pin/creation tie-breakers. :func:`page_window` and
:func:`total_pages` hold the pagination arithmetic.
"""

import logging
import math
import re
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, NamedTuple, Optional, Tuple
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import RequestValidationFailed
from ..models.task import PRIORITY_RANK, STATUS_RANK, Task, TaskStatus, to_stored_status
from ..utils.coercion import coerce_flag, first_value, parse_iso8601

logger = logging.getLogger(__name__)

DAY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class SortBy(str, Enum):
    """Primary sort keys accepted by the list endpoint."""
    DATE = "date"
    PRIORITY = "priority"
    STATUS = "status"
    CREATED_AT = "createdAt"
    PINNED = "pinned"


class SortDirection(str, Enum):
    """Sort direction."""
    ASC = "asc"
    DESC = "desc"


class TaskQuery(BaseModel):
    """Validated filter/sort/page specification for listing tasks."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    q: Optional[str] = None
    status: Optional[TaskStatus] = None
    sort_by: SortBy = Field(default=SortBy.DATE, alias="sortBy")
    sort_dir: SortDirection = Field(default=SortDirection.ASC, alias="sortDir")
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1, alias="pageSize")
    date_from: Optional[datetime] = Field(default=None, alias="from")
    date_to: Optional[datetime] = Field(default=None, alias="to")
    pinned_only: Optional[bool] = Field(default=None, alias="pinnedOnly")

    @field_validator("q", mode="before")
    @classmethod
    def trim_search(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        return str(value).strip() or None

    @field_validator("status", mode="before")
    @classmethod
    def status_all_means_unfiltered(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip().lower() == "all":
            return None
        return value

    @field_validator("date_from", "date_to", mode="before")
    @classmethod
    def parse_bound(cls, value: Any) -> Optional[datetime]:
        if value is None:
            return None
        return parse_iso8601(value)

    @field_validator("pinned_only", mode="before")
    @classmethod
    def parse_pinned_only(cls, value: Any) -> Optional[bool]:
        return coerce_flag(value)


_QUERY_ALIASES = frozenset(
    field.alias or name for name, field in TaskQuery.model_fields.items()
)


def _raw_value(value: Any) -> Any:
    value = first_value(value)
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _field_name(loc: Tuple[Any, ...]) -> str:
    return ".".join(str(part) for part in loc) if loc else "query"


def normalize_query(raw: Mapping[str, Any]) -> TaskQuery:
    """Turn raw request parameters into a :class:`TaskQuery`.

    Args:
        raw: Parameter mapping; values may be strings, lists of strings,
            native values or None

    Returns:
        Validated query

    Raises:
        RequestValidationFailed: Naming every offending field
    """
    known = {}
    for name, value in raw.items():
        value = _raw_value(value)
        # Absent and blank parameters fall back to defaults.
        if name in _QUERY_ALIASES and value is not None:
            known[name] = value

    try:
        return TaskQuery.model_validate(known)
    except ValidationError as exc:
        errors = [
            {"field": _field_name(error["loc"]), "message": error["msg"]}
            for error in exc.errors()
        ]
        logger.debug(f"Rejected list query {known}: {errors}")
        raise RequestValidationFailed(errors) from exc


class Predicate(NamedTuple):
    """A named filter over tasks."""
    name: str
    test: Callable[[Task], bool]

    def __call__(self, task: Task) -> bool:
        return self.test(task)


def day_window(term: str) -> Optional[Tuple[datetime, datetime]]:
    """Return the UTC ``[start, end)`` window for a ``YYYY-MM-DD`` term.

    None when the term is not shaped like a day or is not a real date.
    """
    if not DAY_PATTERN.match(term):
        return None
    try:
        start = datetime.strptime(term, "%Y-%m-%d").replace(tzinfo=timezone.utc)
    except ValueError:
        return None
    return start, start + timedelta(days=1)


def _search_predicate(term: str) -> Predicate:
    needle = term.lower()
    window = day_window(term)

    def matches(task: Task) -> bool:
        if needle in task.description.lower():
            return True
        if window is not None and task.date is not None:
            return window[0] <= task.date < window[1]
        return False

    return Predicate("search", matches)


def _date_range_predicate(date_from: Optional[datetime], date_to: Optional[datetime]) -> Predicate:
    def matches(task: Task) -> bool:
        if task.date is None:
            return False
        if date_from is not None and task.date < date_from:
            return False
        if date_to is not None and task.date > date_to:
            return False
        return True

    return Predicate("date_range", matches)


def build_predicates(user_id: UUID, query: TaskQuery) -> List[Predicate]:
    """Build the conjunctive filter set for a list request.

    The first predicate always restricts to the caller's own tasks.
    """
    predicates = [Predicate("owner", lambda task: task.user_id == user_id)]

    if query.status is not None:
        stored = to_stored_status(query.status)
        predicates.append(Predicate("status", lambda task: task.status == stored))

    if query.pinned_only is True:
        predicates.append(Predicate("pinned", lambda task: task.pinned))

    if query.date_from is not None or query.date_to is not None:
        predicates.append(_date_range_predicate(query.date_from, query.date_to))

    if query.q:
        predicates.append(_search_predicate(query.q))

    return predicates


def matches_all(task: Task, predicates: Iterable[Predicate]) -> bool:
    return all(predicate(task) for predicate in predicates)


SortKey = Tuple[str, SortDirection]

TIE_BREAKERS: Tuple[SortKey, ...] = (
    ("pinned", SortDirection.DESC),
    ("pinned_at", SortDirection.DESC),
    ("created_at", SortDirection.DESC),
)

_PRIMARY_FIELDS = {
    SortBy.DATE: "date",
    SortBy.PRIORITY: "priority",
    SortBy.STATUS: "status",
    SortBy.CREATED_AT: "created_at",
    SortBy.PINNED: "pinned",
}

_RANKS: Dict[str, Mapping[Any, int]] = {
    "priority": PRIORITY_RANK,
    "status": STATUS_RANK,
}


def build_ordering(sort_by: SortBy, sort_dir: SortDirection) -> List[SortKey]:
    """Primary sort key followed by the fixed tie-break chain."""
    ordering: List[SortKey] = [(_PRIMARY_FIELDS[SortBy(sort_by)], SortDirection(sort_dir))]
    if sort_by == SortBy.PINNED:
        ordering.append(("pinned_at", SortDirection.DESC))
    ordering.extend(TIE_BREAKERS)
    return ordering


def _sort_value(task: Task, field: str) -> Tuple[bool, Any]:
    value = getattr(task, field)
    if value is None:
        # Missing values sort below everything: first ascending, last descending.
        return False, None
    if field in _RANKS:
        value = _RANKS[field][value]
    return True, value


def order_tasks(tasks: Iterable[Task], ordering: List[SortKey]) -> List[Task]:
    """Sort tasks by a list of ``(field, direction)`` pairs.

    Applies one stable sort per key, least significant first.
    """
    ordered = list(tasks)
    for field, direction in reversed(ordering):
        ordered.sort(
            key=lambda task: _sort_value(task, field),
            reverse=direction == SortDirection.DESC,
        )
    return ordered


def page_window(page: int, page_size: int) -> Tuple[int, int]:
    """Return ``(skip, take)`` for a page request."""
    take = max(1, page_size)
    skip = max(0, (page - 1) * page_size)
    return skip, take


def total_pages(total: int, take: int) -> int:
    """Number of pages for ``total`` items, never less than one."""
    return max(1, math.ceil(total / max(1, take)))
