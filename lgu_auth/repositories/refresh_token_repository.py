"""
Refresh Token Repository

Persists issued refresh tokens by their SHA-256 digest. Revocation is always
a conditional UPDATE so concurrent consumers of the same token cannot both win.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lgu_auth.core.auth import hash_refresh_token
from lgu_auth.models.refresh_token import RefreshToken

logger = logging.getLogger(__name__)


class RefreshTokenRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, user_id: str, token: str, expires_at: datetime) -> RefreshToken:
        row = RefreshToken(
            user_id=user_id,
            token_hash=hash_refresh_token(token),
            expires_at=expires_at,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def find_by_token(self, token: str) -> RefreshToken | None:
        r = await self.session.execute(
            select(RefreshToken).where(RefreshToken.token_hash == hash_refresh_token(token))
        )
        return r.scalar_one_or_none()

    async def find_usable(self, token: str) -> RefreshToken | None:
        """Token row if it is neither revoked nor expired."""
        r = await self.session.execute(
            select(RefreshToken).where(
                RefreshToken.token_hash == hash_refresh_token(token),
                RefreshToken.is_revoked.is_(False),
                RefreshToken.expires_at > datetime.now(timezone.utc),
            )
        )
        return r.scalar_one_or_none()

    async def consume(self, token: str) -> bool:
        """Revoke token only if still usable. True when this call revoked it."""
        result = await self.session.execute(
            update(RefreshToken)
            .where(
                RefreshToken.token_hash == hash_refresh_token(token),
                RefreshToken.is_revoked.is_(False),
                RefreshToken.expires_at > datetime.now(timezone.utc),
            )
            .values(is_revoked=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def revoke_token(self, token: str) -> None:
        """Revoke one token. Unknown or already revoked tokens are ignored."""
        await self.session.execute(
            update(RefreshToken)
            .where(
                RefreshToken.token_hash == hash_refresh_token(token),
                RefreshToken.is_revoked.is_(False),
            )
            .values(is_revoked=True)
            .execution_options(synchronize_session=False)
        )

    async def revoke_all_user_tokens(self, user_id: str) -> int:
        result = await self.session.execute(
            update(RefreshToken)
            .where(RefreshToken.user_id == user_id, RefreshToken.is_revoked.is_(False))
            .values(is_revoked=True)
            .execution_options(synchronize_session=False)
        )
        logger.info("Revoked %d refresh tokens for user %s", result.rowcount, user_id)
        return result.rowcount
