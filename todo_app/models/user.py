"""Domain model for application users."""

from datetime import datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from .task import utc_now


class User(BaseModel):
    """User domain model. Owns zero or more tasks."""

    id: UUID = Field(default_factory=uuid4, description="Unique user identifier")
    name: str = Field(..., min_length=1, max_length=80, description="Display name")
    email: str = Field(..., description="Unique e-mail address")
    password_hash: str = Field(..., description="Password hash")
    created_at: datetime = Field(default_factory=utc_now, description="Account creation timestamp")
