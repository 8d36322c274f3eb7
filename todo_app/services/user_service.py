"""Profile operations for the authenticated user."""

import logging
from typing import Optional
from uuid import UUID

from ..errors import AuthenticationError
from ..models.user import User
from ..schemas import PasswordChange, UserUpdate
from .auth_service import hash_password, verify_password
from .storage import UserStore

logger = logging.getLogger(__name__)


class UserService:
    """Reads and updates the caller's own account."""

    def __init__(self, users: UserStore):
        self.users = users

    def get_me(self, user_id: UUID) -> User:
        user = self.users.get(user_id)
        if user is None:
            raise AuthenticationError()
        return user

    def update_me(self, user_id: UUID, data: UserUpdate) -> User:
        """Change name and/or e-mail. An empty payload is a no-op.

        Raises:
            ConflictError: If the e-mail belongs to another account
        """
        if not data.name and not data.email:
            return self.get_me(user_id)

        def apply(user: User) -> None:
            if data.name:
                user.name = data.name
            if data.email:
                user.email = str(data.email)

        user = self.users.update(user_id, apply)
        if user is None:
            raise AuthenticationError()
        logger.info(f"Updated profile for {user_id}")
        return user

    def change_password(self, user_id: UUID, data: PasswordChange) -> None:
        """Replace the password after checking the current one.

        Raises:
            AuthenticationError: If the current password is wrong
        """
        user = self.get_me(user_id)
        if not verify_password(data.current_password, user.password_hash):
            raise AuthenticationError("Current password is incorrect")

        new_hash = hash_password(data.new_password)

        def apply(user: User) -> None:
            user.password_hash = new_hash

        self.users.update(user_id, apply)
        logger.info(f"Changed password for {user_id}")


_user_service: Optional[UserService] = None


def get_user_service() -> Optional[UserService]:
    """Get the global user service instance."""
    return _user_service


def initialize_user_service(users: UserStore) -> UserService:
    """Initialize the global user service over the given store."""
    global _user_service
    _user_service = UserService(users)
    return _user_service
