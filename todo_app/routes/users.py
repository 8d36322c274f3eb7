"""Profile routes for the authenticated user."""

from fastapi import APIRouter, Depends

from ..deps import CurrentUser, get_user_service
from ..schemas import PasswordChange, SuccessResponse, UserResponse, UserUpdate
from ..services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def get_me(user: CurrentUser, users: UserService = Depends(get_user_service)) -> UserResponse:
    return UserResponse.from_user(users.get_me(user.id))


@router.patch("/me", response_model=UserResponse)
async def update_me(
    data: UserUpdate,
    user: CurrentUser,
    users: UserService = Depends(get_user_service),
) -> UserResponse:
    """Update name and/or e-mail."""
    return UserResponse.from_user(users.update_me(user.id, data))


@router.patch("/me/password", response_model=SuccessResponse)
def change_password(
    data: PasswordChange,
    user: CurrentUser,
    users: UserService = Depends(get_user_service),
) -> SuccessResponse:
    """Change the password after confirming the current one."""
    users.change_password(user.id, data)
    return SuccessResponse()
