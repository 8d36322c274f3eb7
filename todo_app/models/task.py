"""Domain models for the to-do task records."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class TaskStatus(str, Enum):
    """Task status as spelled on the API surface."""
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"


class StoredStatus(str, Enum):
    """Task status as spelled in storage."""
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


class Priority(str, Enum):
    """Task priority enumeration."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


# Declaration order doubles as sort order.
PRIORITY_RANK = {priority: rank for rank, priority in enumerate(Priority)}
STATUS_RANK = {status: rank for rank, status in enumerate(StoredStatus)}


def to_stored_status(status: TaskStatus) -> StoredStatus:
    """Map an API status onto its storage spelling."""
    return StoredStatus[TaskStatus(status).name]


def from_stored_status(status: StoredStatus) -> TaskStatus:
    """Map a stored status back onto its API spelling."""
    return TaskStatus[StoredStatus(status).name]


class Task(BaseModel):
    """Task domain model."""

    id: UUID = Field(default_factory=uuid4, description="Unique task identifier")
    user_id: UUID = Field(..., description="Owning user")
    description: str = Field(..., min_length=1, max_length=500, description="Task description")
    priority: Priority = Field(default=Priority.MEDIUM, description="Task priority")
    status: StoredStatus = Field(default=StoredStatus.PENDING, description="Task status (storage spelling)")
    date: Optional[datetime] = Field(None, description="Optional due date")
    pinned: bool = Field(default=False, description="Whether the task is pinned")
    pinned_at: Optional[datetime] = Field(None, description="When the task was last pinned")
    created_at: datetime = Field(default_factory=utc_now, description="Task creation timestamp")
    updated_at: datetime = Field(default_factory=utc_now, description="Task last update timestamp")

    def update_timestamp(self) -> None:
        """Update the updated_at timestamp."""
        self.updated_at = utc_now()

    def set_pinned(self, pinned: bool) -> None:
        """Apply a pin flag, keeping pinned_at in step with it.

        Repeating the current value leaves pinned_at untouched.
        """
        if pinned and not self.pinned:
            self.pinned_at = utc_now()
        elif not pinned and self.pinned:
            self.pinned_at = None
        self.pinned = pinned

    @property
    def api_status(self) -> TaskStatus:
        return from_stored_status(self.status)
