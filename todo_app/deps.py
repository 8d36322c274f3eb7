"""Dependency injection helpers for FastAPI."""

from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import Settings, settings
from .errors import AuthenticationError
from .models.user import User
from .services import auth_service, task_service, user_service
from .services.auth_service import AuthService
from .services.task_service import TaskService
from .services.user_service import UserService

bearer_scheme = HTTPBearer(auto_error=False)


@lru_cache()
def get_settings() -> Settings:
    """Get application settings (cached)."""
    return settings


def _unavailable(name: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"{name} service not available",
    )


def get_task_service() -> TaskService:
    """Get the task service initialized at startup."""
    service = task_service.get_task_service()
    if service is None:
        raise _unavailable("Task")
    return service


def get_auth_service() -> AuthService:
    """Get the auth service initialized at startup."""
    service = auth_service.get_auth_service()
    if service is None:
        raise _unavailable("Auth")
    return service


def get_user_service() -> UserService:
    """Get the user service initialized at startup."""
    service = user_service.get_user_service()
    if service is None:
        raise _unavailable("User")
    return service


def get_current_user(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
    auth: Annotated[AuthService, Depends(get_auth_service)],
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)] = None,
) -> User:
    """Resolve the caller from a bearer header or the auth cookie.

    An Authorization header, when sent, is authoritative: the cookie is
    only consulted when no header is present.
    """
    if credentials is not None:
        token = credentials.credentials
    elif request.headers.get("Authorization"):
        raise AuthenticationError()
    else:
        token = request.cookies.get(settings.auth_cookie_name)
    return auth.resolve_user(token)


CurrentUser = Annotated[User, Depends(get_current_user)]
