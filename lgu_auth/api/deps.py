"""FastAPI dependencies: services per request, bearer identity, role/permission checks."""

from typing import Annotated

from fastapi import Depends, Request
from jose import JWTError
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from lgu_auth.core.auth import decode_access_token
from lgu_auth.core.exceptions import ForbiddenError, UnauthorizedError
from lgu_auth.core.permissions import has_permission
from lgu_auth.db.session import get_db
from lgu_auth.models.user import UserRole
from lgu_auth.schemas.user import CurrentUser
from lgu_auth.services.auth_service import AuthService
from lgu_auth.services.user_service import UserService


async def get_auth_service(session: Annotated[AsyncSession, Depends(get_db)]) -> AuthService:
    return AuthService.from_session(session)


async def get_user_service(session: Annotated[AsyncSession, Depends(get_db)]) -> UserService:
    return UserService.from_session(session)


async def get_current_user(request: Request) -> CurrentUser:
    """Identity from the bearer access token. Stateless: never reads the database."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise UnauthorizedError("Access token required")
    token = auth_header[7:].strip()
    if not token:
        raise UnauthorizedError("Access token required")
    try:
        payload = decode_access_token(token)
        user = CurrentUser(id=payload["id"], email=payload["email"], role=payload["role"])
    except (JWTError, KeyError, PydanticValidationError):
        raise UnauthorizedError("Invalid or expired token")
    return user


def require_roles(*roles: UserRole):
    """Dependency factory: caller's role must be in roles."""

    async def checker(user: Annotated[CurrentUser, Depends(get_current_user)]) -> CurrentUser:
        if user.role not in roles:
            raise ForbiddenError("Insufficient permissions")
        return user

    return checker


def require_permission(permission: str):
    """Dependency factory: caller's role must grant permission in the policy table."""

    async def checker(user: Annotated[CurrentUser, Depends(get_current_user)]) -> CurrentUser:
        if not has_permission(user.role, permission):
            raise ForbiddenError(f"Permission '{permission}' required")
        return user

    return checker
