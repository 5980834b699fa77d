"""
User Repository

Credential store: all reads and writes of the users table go through here.
"""

import logging
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from lgu_auth.models.user import User, UserRole

logger = logging.getLogger(__name__)


def _escape_like(value: str) -> str:
    """Make LIKE wildcards in user input match literally (escape char is a backslash)."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class UserRepository:
    """Repository for user data access, bound to one session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_id(self, user_id: str) -> User | None:
        return await self.session.get(User, user_id)

    async def find_by_email(self, email: str) -> User | None:
        r = await self.session.execute(select(User).where(User.email == email))
        return r.scalar_one_or_none()

    async def find_by_username(self, username: str) -> User | None:
        r = await self.session.execute(select(User).where(User.username == username))
        return r.scalar_one_or_none()

    async def _flush(self) -> None:
        """Flush pending writes; on a constraint violation the session is rolled back and the error re-raised."""
        try:
            await self.session.flush()
        except IntegrityError:
            await self.session.rollback()
            raise

    async def create(self, **fields: Any) -> User:
        user = User(**fields)
        self.session.add(user)
        await self._flush()
        await self.session.refresh(user)
        return user

    async def update(self, user: User, **fields: Any) -> User:
        for key, value in fields.items():
            setattr(user, key, value)
        await self._flush()
        # Reload onupdate columns (updated_at)
        await self.session.refresh(user)
        return user

    def _filtered(
        self,
        query,
        role: UserRole | None = None,
        is_active: bool | None = None,
        is_verified: bool | None = None,
        search: str | None = None,
    ):
        if role is not None:
            query = query.where(User.role == role)
        if is_active is not None:
            query = query.where(User.is_active.is_(is_active))
        if is_verified is not None:
            query = query.where(User.is_verified.is_(is_verified))
        if search:
            pattern = f"%{_escape_like(search.strip().lower())}%"
            query = query.where(
                or_(
                    func.lower(User.first_name).like(pattern, escape="\\"),
                    func.lower(User.last_name).like(pattern, escape="\\"),
                    func.lower(User.username).like(pattern, escape="\\"),
                    func.lower(User.email).like(pattern, escape="\\"),
                )
            )
        return query

    async def list_users(
        self,
        limit: int = 50,
        offset: int = 0,
        **filters: Any,
    ) -> tuple[list[User], int]:
        """Return (page of users newest first, total matching)."""
        total_q = self._filtered(select(func.count()).select_from(User), **filters)
        total = (await self.session.execute(total_q)).scalar_one()
        page_q = (
            self._filtered(select(User), **filters)
            .order_by(User.created_at.desc(), User.id)
            .limit(limit)
            .offset(offset)
        )
        users = list((await self.session.execute(page_q)).scalars().all())
        return users, total

    async def statistics(self) -> dict[str, Any]:
        total = (await self.session.execute(select(func.count()).select_from(User))).scalar_one()
        active = (
            await self.session.execute(select(func.count()).select_from(User).where(User.is_active.is_(True)))
        ).scalar_one()
        verified = (
            await self.session.execute(select(func.count()).select_from(User).where(User.is_verified.is_(True)))
        ).scalar_one()
        r = await self.session.execute(select(User.role, func.count()).group_by(User.role))
        by_role = {UserRole(role).value: count for role, count in r.all()}
        admins = by_role.get(UserRole.SUPER_ADMIN.value, 0) + by_role.get(UserRole.ADMIN.value, 0)
        return {
            "total_users": total,
            "active_users": active,
            "verified_users": verified,
            "admin_users": admins,
            "users_by_role": by_role,
        }
