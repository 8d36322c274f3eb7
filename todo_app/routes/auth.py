"""Registration, login and logout routes."""

import logging

from fastapi import APIRouter, Depends, Response, status

from ..config import Settings
from ..deps import CurrentUser, get_auth_service, get_settings
from ..schemas import AuthResponse, LoginRequest, RegisterRequest, SuccessResponse, UserResponse
from ..services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _set_auth_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        max_age=settings.access_token_expire_minutes * 60,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    data: RegisterRequest,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
) -> AuthResponse:
    """Create an account and start a session.

    Raises:
        ConflictError: If the e-mail is already in use
    """
    user, token = auth.register(data)
    _set_auth_cookie(response, token, settings)
    return AuthResponse(user=UserResponse.from_user(user), access_token=token)


@router.post("/login", response_model=AuthResponse)
def login(
    data: LoginRequest,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
) -> AuthResponse:
    """Check credentials and start a session."""
    user, token = auth.login(data)
    _set_auth_cookie(response, token, settings)
    return AuthResponse(user=UserResponse.from_user(user), access_token=token)


@router.post("/logout", response_model=SuccessResponse)
async def logout(response: Response, settings: Settings = Depends(get_settings)) -> SuccessResponse:
    """End the cookie session."""
    response.delete_cookie(settings.auth_cookie_name)
    return SuccessResponse()


@router.get("/me", response_model=UserResponse)
async def me(user: CurrentUser) -> UserResponse:
    """Return the authenticated user."""
    return UserResponse.from_user(user)
