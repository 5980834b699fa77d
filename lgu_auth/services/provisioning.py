"""
Startup provisioning of the initial super admin account.

Runs once per process start; does nothing when the account already exists or
when the SUPER_ADMIN_* settings are incomplete.
"""

import logging

from sqlalchemy.exc import IntegrityError

from lgu_auth.config import Settings
from lgu_auth.core.auth import hash_password
from lgu_auth.db.session import Database
from lgu_auth.models.user import User, UserRole
from lgu_auth.repositories import UserRepository

logger = logging.getLogger(__name__)


async def ensure_super_admin(database: Database, config: Settings) -> User | None:
    """Create the configured SUPER_ADMIN if missing. Returns the created user, else None."""
    if not config.provision_super_admin:
        return None
    email = config.super_admin_email.strip().lower()
    username = config.super_admin_username.strip()
    async with database.session() as session:
        users = UserRepository(session)
        if await users.find_by_email(email) is not None:
            logger.debug("Super admin %s already provisioned", email)
            return None
        if await users.find_by_username(username) is not None:
            logger.warning("Cannot provision super admin: username %s is taken", username)
            return None
        try:
            user = await users.create(
                email=email,
                username=username,
                password=hash_password(config.super_admin_password, config.bcrypt_rounds),
                first_name="System",
                last_name="Administrator",
                role=UserRole.SUPER_ADMIN,
                is_active=True,
                is_verified=True,
            )
        except IntegrityError:
            # Another process provisioned it between the checks and the insert
            logger.info("Super admin %s was provisioned concurrently", email)
            return None
        logger.info("Provisioned super admin %s", email)
        return user
