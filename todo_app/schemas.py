"""API request/response schemas for the to-do service."""

from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from .models.task import Priority, Task, TaskStatus
from .models.user import User
from .utils.coercion import coerce_flag, parse_iso8601


def _strip_text(value: Any, label: str) -> Any:
    """Trim a text field before its length limits apply; blank is rejected."""
    if not isinstance(value, str):
        return value
    value = value.strip()
    if not value:
        raise ValueError(f"{label} cannot be empty")
    return value


class CamelModel(BaseModel):
    """Base schema exposing camelCase keys while accepting either spelling."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# Task-related schemas
class TaskCreate(CamelModel):
    """Schema for creating a new task."""
    description: str = Field(..., min_length=1, max_length=500, description="Task description")
    priority: Priority = Field(default=Priority.MEDIUM, description="Task priority")
    date: Optional[datetime] = Field(None, description="Optional due date (ISO-8601)")
    status: Optional[TaskStatus] = Field(None, description="Initial status, pending when omitted")
    pinned: Optional[bool] = Field(None, description="Pin the task on creation")

    @field_validator("description", mode="before")
    @classmethod
    def strip_description(cls, value: Any) -> Any:
        return _strip_text(value, "Task description")

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, value: Any) -> Optional[datetime]:
        if value is None:
            return None
        return parse_iso8601(value)

    @field_validator("pinned", mode="before")
    @classmethod
    def parse_pinned(cls, value: Any) -> Optional[bool]:
        return coerce_flag(value)


class TaskUpdate(TaskCreate):
    """Schema for partially updating a task.

    Only fields present in the payload are applied. ``date: null`` clears
    the due date, an omitted ``date`` leaves it alone.
    """
    description: Optional[str] = Field(None, min_length=1, max_length=500, description="Task description")
    priority: Optional[Priority] = Field(None, description="Task priority")

    @property
    def clears_date(self) -> bool:
        return "date" in self.model_fields_set and self.date is None


class TaskResponse(CamelModel):
    """Schema for task API responses."""
    id: UUID = Field(..., description="Unique task identifier")
    user_id: UUID = Field(..., description="Owning user")
    description: str = Field(..., description="Task description")
    priority: Priority = Field(..., description="Task priority")
    status: TaskStatus = Field(..., description="Task status")
    date: Optional[datetime] = Field(None, description="Due date")
    pinned: bool = Field(..., description="Whether the task is pinned")
    pinned_at: Optional[datetime] = Field(None, description="When the task was pinned")
    created_at: datetime = Field(..., description="Task creation timestamp")
    updated_at: datetime = Field(..., description="Task last update timestamp")

    @classmethod
    def from_task(cls, task: Task) -> "TaskResponse":
        return cls(
            id=task.id,
            user_id=task.user_id,
            description=task.description,
            priority=task.priority,
            status=task.api_status,
            date=task.date,
            pinned=task.pinned,
            pinned_at=task.pinned_at,
            created_at=task.created_at,
            updated_at=task.updated_at,
        )


class PageMeta(CamelModel):
    """Pagination metadata for list responses."""
    total: int = Field(..., ge=0, description="Number of tasks matching the filters")
    page: int = Field(..., ge=1, description="Requested page")
    page_size: int = Field(..., ge=1, description="Items per page")
    total_pages: int = Field(..., ge=1, description="Number of pages, at least one")


class TaskListResponse(CamelModel):
    """Schema for task list API responses."""
    items: List[TaskResponse] = Field(..., description="Tasks on the requested page")
    meta: PageMeta = Field(..., description="Pagination metadata")


class TaskStatistics(CamelModel):
    """Per-user task counts."""
    total: int = Field(..., description="All tasks")
    pending: int = Field(..., description="Pending tasks")
    active: int = Field(..., description="Active tasks")
    completed: int = Field(..., description="Completed tasks")
    remaining: int = Field(..., description="Pending plus active tasks")
    pinned: int = Field(..., description="Pinned tasks")


# User/auth-related schemas
class RegisterRequest(CamelModel):
    """Schema for account registration."""
    name: str = Field(..., min_length=1, max_length=80, description="Display name")
    email: EmailStr = Field(..., description="E-mail address")
    password: str = Field(..., min_length=8, max_length=72, description="Password")

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value: Any) -> Any:
        return _strip_text(value, "Name")


class LoginRequest(CamelModel):
    """Schema for logging in."""
    email: EmailStr = Field(..., description="E-mail address")
    password: str = Field(..., min_length=1, description="Password")


class UserResponse(CamelModel):
    """Public projection of a user."""
    id: UUID = Field(..., description="Unique user identifier")
    name: str = Field(..., description="Display name")
    email: str = Field(..., description="E-mail address")
    created_at: datetime = Field(..., description="Account creation timestamp")

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(id=user.id, name=user.name, email=user.email, created_at=user.created_at)


class AuthResponse(CamelModel):
    """Schema returned by register and login."""
    user: UserResponse = Field(..., description="Authenticated user")
    access_token: str = Field(..., description="Bearer token")


class UserUpdate(CamelModel):
    """Schema for updating the caller's profile."""
    name: Optional[str] = Field(None, min_length=1, max_length=80, description="Display name")
    email: Optional[EmailStr] = Field(None, description="E-mail address")

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value: Any) -> Any:
        return _strip_text(value, "Name")


class PasswordChange(CamelModel):
    """Schema for changing the caller's password."""
    current_password: str = Field(..., min_length=8, max_length=72, description="Current password")
    new_password: str = Field(..., min_length=8, max_length=72, description="New password")


class SuccessResponse(BaseModel):
    """Generic acknowledgement."""
    success: bool = Field(default=True, description="Whether the operation succeeded")


# Health check schema
class HealthResponse(BaseModel):
    """Schema for health check responses."""
    status: str = Field(default="healthy", description="Service health status")
    timestamp: datetime = Field(..., description="Health check timestamp")
    version: str = Field(default="1.0.0", description="Application version")
