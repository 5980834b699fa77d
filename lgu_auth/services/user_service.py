"""Administrative user operations: listing, creation, updates, activation, role and password resets."""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from lgu_auth.config import settings
from lgu_auth.core.auth import hash_password
from lgu_auth.core.exceptions import ForbiddenError, NotFoundError
from lgu_auth.core.permissions import can_assign_role
from lgu_auth.models.user import User, UserRole
from lgu_auth.repositories import RefreshTokenRepository, UserRepository
from lgu_auth.schemas.user import CurrentUser
from lgu_auth.services.uniqueness import write_unique

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, users: UserRepository, refresh_tokens: RefreshTokenRepository):
        self.users = users
        self.refresh_tokens = refresh_tokens

    @classmethod
    def from_session(cls, session: AsyncSession) -> "UserService":
        return cls(UserRepository(session), RefreshTokenRepository(session))

    async def get(self, user_id: str) -> User:
        user = await self.users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def list_users(self, limit: int, offset: int, **filters: Any) -> tuple[list[User], int]:
        return await self.users.list_users(limit=limit, offset=offset, **filters)

    async def statistics(self) -> dict[str, Any]:
        return await self.users.statistics()

    @staticmethod
    def _guard_super_admin(actor: CurrentUser, user: User) -> None:
        if user.role == UserRole.SUPER_ADMIN and actor.role != UserRole.SUPER_ADMIN:
            raise ForbiddenError("Not allowed to modify a super admin")

    async def create(self, actor: CurrentUser, password: str, role: UserRole = UserRole.USER, **fields: Any) -> User:
        if role != UserRole.USER and not can_assign_role(actor.role, role):
            raise ForbiddenError(f"Not allowed to assign role {role.value}")
        password_hash = hash_password(password, settings.bcrypt_rounds)
        user = await write_unique(
            self.users,
            lambda: self.users.create(password=password_hash, role=role, **fields),
            email=fields.get("email"),
            username=fields.get("username"),
        )
        logger.info("User %s created user %s with role %s", actor.id, user.id, role.value)
        return user

    async def update(self, actor: CurrentUser, user_id: str, **fields: Any) -> User:
        """Partial update of profile fields and verification flag."""
        user = await self.get(user_id)
        self._guard_super_admin(actor, user)
        if not fields:
            return user
        return await write_unique(
            self.users,
            lambda: self.users.update(user, **fields),
            email=fields.get("email"),
            username=fields.get("username"),
            exclude_id=user.id,
        )

    async def toggle_status(self, actor: CurrentUser, user_id: str) -> User:
        if actor.id == user_id:
            raise ForbiddenError("Cannot deactivate your own account")
        user = await self.get(user_id)
        self._guard_super_admin(actor, user)
        await self.users.update(user, is_active=not user.is_active)
        if not user.is_active:
            await self.refresh_tokens.revoke_all_user_tokens(user.id)
        logger.info("User %s set is_active=%s for %s", actor.id, user.is_active, user.id)
        return user

    async def change_role(self, actor: CurrentUser, user_id: str, role: UserRole) -> User:
        if actor.id == user_id:
            raise ForbiddenError("Cannot change your own role")
        if not can_assign_role(actor.role, role):
            raise ForbiddenError(f"Not allowed to assign role {role.value}")
        user = await self.get(user_id)
        self._guard_super_admin(actor, user)
        await self.users.update(user, role=role)
        return user

    async def reset_password(self, actor: CurrentUser, user_id: str, password: str) -> User:
        user = await self.get(user_id)
        self._guard_super_admin(actor, user)
        await self.users.update(user, password=hash_password(password, settings.bcrypt_rounds))
        await self.refresh_tokens.revoke_all_user_tokens(user.id)
        return user
