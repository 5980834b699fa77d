"""
Email/username uniqueness for every write that sets them.

The SELECT pre-check gives the caller a precise message; the unique indexes
settle races. A write that loses a race fails with IntegrityError, after which
the same check is repeated so the caller still gets a 409 instead of a 500.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy.exc import IntegrityError

from lgu_auth.core.exceptions import ConflictError
from lgu_auth.repositories import UserRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")

EMAIL_TAKEN = "Email already registered"
USERNAME_TAKEN = "Username already taken"


async def ensure_available(
    users: UserRepository,
    email: str | None = None,
    username: str | None = None,
    exclude_id: str | None = None,
) -> None:
    """Raise ConflictError if email or username belongs to a user other than exclude_id. Email is checked first."""
    if email is not None:
        existing = await users.find_by_email(email)
        if existing is not None and existing.id != exclude_id:
            raise ConflictError(EMAIL_TAKEN)
    if username is not None:
        existing = await users.find_by_username(username)
        if existing is not None and existing.id != exclude_id:
            raise ConflictError(USERNAME_TAKEN)


async def write_unique(
    users: UserRepository,
    write: Callable[[], Awaitable[T]],
    email: str | None = None,
    username: str | None = None,
    exclude_id: str | None = None,
) -> T:
    await ensure_available(users, email, username, exclude_id)
    try:
        return await write()
    except IntegrityError as e:
        logger.warning("Unique constraint hit on user write: %s", e.orig)
        await ensure_available(users, email, username, exclude_id)
        raise
