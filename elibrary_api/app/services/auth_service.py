"""
Business logic for user accounts.

``AuthService`` registers users with a hashed password and exchanges
valid credentials for a signed access token.  Token claims carry the
user's id and username; the book catalog never looks at them beyond
the authentication dependency.
"""

import logging
from typing import Optional

from ..core.errors import AuthenticationError, ConflictError, PersistenceError
from ..core.security import create_access_token, hash_password, verify_password
from ..repositories.user_repository import UserRecord, UserRepository
from ..schemas.user import LoginRequest, LoginResponse, RegisterRequest, UserRead
from .audit_service import AuditService

logger = logging.getLogger(__name__)


def to_user_read(user: UserRecord) -> UserRead:
    return UserRead(
        id=user.id,
        username=user.username,
        email=user.email,
        full_name=user.full_name,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


class AuthService:
    """Registration, login and token issuance."""

    def __init__(
        self,
        users: UserRepository,
        secret_key: str,
        token_ttl_seconds: int,
        audit: Optional[AuditService] = None,
    ) -> None:
        self.users = users
        self.secret_key = secret_key
        self.token_ttl_seconds = token_ttl_seconds
        self.audit = audit

    async def register(self, data: RegisterRequest) -> UserRead:
        """Create a user.  Raises ``ConflictError`` if the username is taken."""
        logger.info("Registering user %s", data.username)
        if self.users.get_by_username(data.username) is not None:
            raise ConflictError("username already exists")
        try:
            user = self.users.create(
                username=data.username,
                email=data.email,
                password_hash=hash_password(data.password),
                full_name=data.full_name,
            )
        except PersistenceError as e:
            if e.constraint == "users.username":
                raise ConflictError("username already exists") from e
            raise
        if self.audit is not None:
            await self.audit.record(None, "create", "user", user.id, {"username": user.username})
        return to_user_read(user)

    def issue_token(self, user: UserRecord) -> str:
        return create_access_token(
            {"user_id": user.id, "username": user.username},
            self.secret_key,
            self.token_ttl_seconds,
        )

    async def login(self, data: LoginRequest) -> LoginResponse:
        """Check credentials and return a token plus the user."""
        user = self.users.get_by_username(data.username)
        if user is None or not verify_password(data.password, user.password):
            logger.info("Failed login for %s", data.username)
            raise AuthenticationError("invalid username or password")
        return LoginResponse(token=self.issue_token(user), user=to_user_read(user))
