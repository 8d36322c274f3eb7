"""Account registration, login and access-token handling."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
from uuid import UUID

from jose import JWTError, jwt
from passlib.context import CryptContext

from ..config import Settings
from ..errors import AuthenticationError
from ..models.user import User
from ..schemas import LoginRequest, RegisterRequest
from .storage import UserStore

logger = logging.getLogger(__name__)

# pbkdf2_sha256 is pure Python, so no native bcrypt build is required.
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

INVALID_CREDENTIALS = "Invalid credentials"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


class AuthService:
    """Issues and verifies access tokens for users in a UserStore."""

    def __init__(self, settings: Settings, users: Optional[UserStore] = None):
        """Initialize the auth service.

        Args:
            settings: Application settings (secret, algorithm, token lifetime)
            users: Backing user store; a fresh in-memory one when omitted
        """
        self.settings = settings
        self.users = users or UserStore()
        logger.info("Auth service initialized")

    def create_access_token(self, user_id: UUID, expires_delta: Optional[timedelta] = None) -> str:
        """Sign a token whose subject is the user id."""
        expire = datetime.now(timezone.utc) + (
            expires_delta or timedelta(minutes=self.settings.access_token_expire_minutes)
        )
        # NumericDate (seconds since epoch) per RFC 7519
        payload = {"sub": str(user_id), "exp": int(expire.timestamp())}
        return jwt.encode(payload, self.settings.secret_key, algorithm=self.settings.jwt_algorithm)

    def decode_access_token(self, token: str) -> UUID:
        """Return the user id carried by a valid token.

        Raises:
            AuthenticationError: If the token is malformed, expired or tampered with
        """
        try:
            payload = jwt.decode(
                token, self.settings.secret_key, algorithms=[self.settings.jwt_algorithm]
            )
            return UUID(payload["sub"])
        except (JWTError, KeyError, TypeError, ValueError) as e:
            logger.info(f"Rejected access token: {str(e)}")
            raise AuthenticationError()

    def resolve_user(self, token: Optional[str]) -> User:
        """Resolve a bearer credential to its user.

        Raises:
            AuthenticationError: If the credential is missing, invalid or
                belongs to a user that no longer exists
        """
        if not token:
            raise AuthenticationError()
        user = self.users.get(self.decode_access_token(token))
        if user is None:
            raise AuthenticationError()
        return user

    def register(self, data: RegisterRequest) -> Tuple[User, str]:
        """Create an account and sign a token for it.

        Raises:
            ConflictError: If the e-mail is already registered
        """
        user = User(
            name=data.name,
            email=str(data.email),
            password_hash=hash_password(data.password),
        )
        user = self.users.add(user)
        logger.info(f"Registered user {user.id}")
        return user, self.create_access_token(user.id)

    def login(self, data: LoginRequest) -> Tuple[User, str]:
        """Check credentials and sign a token.

        Raises:
            AuthenticationError: For an unknown e-mail or a wrong password
        """
        user = self.users.get_by_email(str(data.email))
        if user is None or not verify_password(data.password, user.password_hash):
            logger.info("Login failed")
            raise AuthenticationError(INVALID_CREDENTIALS)
        logger.info(f"User {user.id} logged in")
        return user, self.create_access_token(user.id)


# Global auth service instance - will be initialized during app startup
_auth_service: Optional[AuthService] = None


def get_auth_service() -> Optional[AuthService]:
    """Get the global auth service instance."""
    return _auth_service


def initialize_auth_service(settings: Settings) -> AuthService:
    """Initialize the global auth service instance.

    Args:
        settings: Application settings

    Returns:
        Initialized auth service
    """
    global _auth_service
    _auth_service = AuthService(settings)
    return _auth_service
