"""Shared test fixtures and configuration for the test suite."""

import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Dict
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

# Keep test runs from writing log files or relying on a real secret
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-unit-tests")

# Add the parent directory to the path for imports
sys.path.append(str(Path(__file__).parent.parent))

from todo_app.config import Settings
from todo_app.main import create_app
from todo_app.models.task import Priority, StoredStatus, Task
from todo_app.services.auth_service import AuthService
from todo_app.services.task_service import TaskService

BASE_TIME = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Create test settings with a temporary log directory."""
    return Settings(
        secret_key="test-secret-key-for-unit-tests",
        log_level="DEBUG",
        log_dir=tmp_path / "logs",
        log_to_file=False,
        environment="test",
    )


@pytest.fixture
def task_service() -> TaskService:
    """Task service over a fresh in-memory store."""
    return TaskService()


@pytest.fixture
def auth_service(test_settings) -> AuthService:
    """Auth service over a fresh in-memory user store."""
    return AuthService(test_settings)


@pytest.fixture
def user_id() -> UUID:
    return uuid4()


@pytest.fixture
def other_user_id() -> UUID:
    return uuid4()


@pytest.fixture
def make_task() -> Callable[..., Task]:
    """Build Task records with deterministic creation times.

    Each call is created one minute after the previous one unless
    ``created_at`` is given.
    """
    counter = {"n": 0}

    def factory(user_id: UUID, description: str = "Task", **fields) -> Task:
        counter["n"] += 1
        fields.setdefault("created_at", BASE_TIME + timedelta(minutes=counter["n"]))
        fields.setdefault("updated_at", fields["created_at"])
        if fields.get("pinned") and "pinned_at" not in fields:
            fields["pinned_at"] = fields["created_at"]
        fields.setdefault("priority", Priority.MEDIUM)
        fields.setdefault("status", StoredStatus.PENDING)
        return Task(user_id=user_id, description=description, **fields)

    return factory


@pytest.fixture
def client() -> TestClient:
    """Test client with startup/shutdown run, so every test starts empty."""
    with TestClient(create_app()) as test_client:
        yield test_client


@pytest.fixture
def register(client) -> Callable[..., Dict[str, str]]:
    """Register a user and return bearer headers for it."""
    counter = {"n": 0}

    def factory(name: str = "Test User", email: str = None, password: str = "password123") -> Dict[str, str]:
        counter["n"] += 1
        email = email or f"user{counter['n']}@example.com"
        response = client.post(
            "/auth/register",
            json={"name": name, "email": email, "password": password},
        )
        assert response.status_code == 201, response.text
        # Each user authenticates with its own header, not the shared cookie jar
        client.cookies.clear()
        return {"Authorization": f"Bearer {response.json()['accessToken']}"}

    return factory


@pytest.fixture
def auth_headers(register) -> Dict[str, str]:
    """Bearer headers for a freshly registered user."""
    return register()
