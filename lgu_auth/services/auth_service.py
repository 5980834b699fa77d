"""
Auth service: login, registration, token refresh with rotation, password
change, profile update and logout. The only writer of users and refresh tokens
in the auth flow.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from lgu_auth.config import settings
from lgu_auth.core.auth import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    hash_password,
    refresh_token_lifetime,
    verify_password,
)
from lgu_auth.core.exceptions import NotFoundError, UnauthorizedError, ValidationError
from lgu_auth.models.user import User, UserRole
from lgu_auth.repositories import RefreshTokenRepository, UserRepository
from lgu_auth.schemas.auth import AuthResult, AuthTokens
from lgu_auth.schemas.user import UserOut
from lgu_auth.services.uniqueness import write_unique

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"
ACCOUNT_DEACTIVATED = "Account is deactivated"
INVALID_REFRESH_TOKEN = "Invalid refresh token"


class AuthService:
    def __init__(self, users: UserRepository, refresh_tokens: RefreshTokenRepository):
        self.users = users
        self.refresh_tokens = refresh_tokens

    @classmethod
    def from_session(cls, session: AsyncSession) -> "AuthService":
        return cls(UserRepository(session), RefreshTokenRepository(session))

    async def login(self, email: str, password: str) -> AuthResult:
        user = await self.users.find_by_email(email)
        if user is None:
            raise UnauthorizedError(INVALID_CREDENTIALS)
        if not user.is_active:
            raise UnauthorizedError(ACCOUNT_DEACTIVATED)
        if not verify_password(password, user.password):
            raise UnauthorizedError(INVALID_CREDENTIALS)

        await self.users.update(user, last_login_at=datetime.now(timezone.utc))
        tokens = await self._issue_tokens(user)
        logger.info("User %s logged in", user.id)
        return AuthResult(user=UserOut.model_validate(user), tokens=tokens)

    async def register(
        self,
        email: str,
        username: str,
        password: str,
        first_name: str,
        last_name: str,
        middle_name: str | None = None,
    ) -> AuthResult:
        password_hash = hash_password(password, settings.bcrypt_rounds)
        user = await write_unique(
            self.users,
            lambda: self.users.create(
                email=email,
                username=username,
                password=password_hash,
                first_name=first_name,
                last_name=last_name,
                middle_name=middle_name or None,
                role=UserRole.USER,
                is_active=True,
                is_verified=False,
                last_login_at=None,
            ),
            email=email,
            username=username,
        )
        tokens = await self._issue_tokens(user)
        logger.info("Registered user %s", user.id)
        return AuthResult(user=UserOut.model_validate(user), tokens=tokens)

    async def refresh_token(self, refresh_token: str) -> AuthTokens:
        """Exchange a refresh token for a new pair; the presented token is revoked first."""
        row = await self.refresh_tokens.find_usable(refresh_token)
        if row is None:
            raise UnauthorizedError(INVALID_REFRESH_TOKEN)
        try:
            decode_refresh_token(refresh_token)
        except JWTError:
            raise UnauthorizedError(INVALID_REFRESH_TOKEN)

        user = await self.users.find_by_id(row.user_id)
        if user is None or not user.is_active:
            raise UnauthorizedError("User not found or inactive")

        # Conditional revoke: a concurrent refresh that already consumed it leaves 0 rows
        if not await self.refresh_tokens.consume(refresh_token):
            logger.warning("Refresh token for user %s was consumed concurrently", user.id)
            raise UnauthorizedError(INVALID_REFRESH_TOKEN)
        return await self._issue_tokens(user)

    async def change_password(self, user_id: str, current_password: str, new_password: str) -> None:
        user = await self.users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        if not verify_password(current_password, user.password):
            raise ValidationError("Current password is incorrect")

        await self.users.update(user, password=hash_password(new_password, settings.bcrypt_rounds))
        # Every other session must re-authenticate
        await self.refresh_tokens.revoke_all_user_tokens(user.id)

    async def update_profile(self, user_id: str, **fields: Any) -> User:
        """Self-service update of names and email. Tokens already issued keep the old email claim."""
        user = await self.users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        if not fields:
            return user
        return await write_unique(
            self.users,
            lambda: self.users.update(user, **fields),
            email=fields.get("email"),
            exclude_id=user.id,
        )

    async def logout(self, refresh_token: str) -> None:
        await self.refresh_tokens.revoke_token(refresh_token)

    async def logout_all(self, user_id: str) -> int:
        return await self.refresh_tokens.revoke_all_user_tokens(user_id)

    async def _issue_tokens(self, user: User) -> AuthTokens:
        role = UserRole(user.role).value
        access = create_access_token(user.id, user.email, role)
        refresh = create_refresh_token(user.id, user.email, role)
        expires_at = datetime.now(timezone.utc) + refresh_token_lifetime()
        await self.refresh_tokens.create(user.id, refresh, expires_at)
        return AuthTokens(access_token=access, refresh_token=refresh)
