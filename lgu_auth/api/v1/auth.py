"""Auth: login, register, refresh, change-password, logout, profile read and update."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from lgu_auth.api.deps import get_auth_service, get_current_user, require_permission
from lgu_auth.core.exceptions import UnauthorizedError
from lgu_auth.core.http import client_ip
from lgu_auth.core.metrics import AUTH_EVENTS
from lgu_auth.core.permissions import VIEW_PROFILE
from lgu_auth.db.session import get_database, get_db
from lgu_auth.schemas.auth import (
    AuthResult,
    AuthTokens,
    ChangePasswordBody,
    LoginBody,
    RefreshBody,
    RegisterBody,
    UpdateProfileBody,
)
from lgu_auth.schemas.response import ApiResponse, ok
from lgu_auth.schemas.user import CurrentUser, RevokedSessions, UserOut
from lgu_auth.services.audit import log_action
from lgu_auth.services.auth_service import AuthService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/login",
    response_model=ApiResponse[AuthResult],
    summary="Login with email and password",
    responses={401: {"description": "Invalid credentials or account deactivated"}},
)
async def login(
    request: Request,
    session: Annotated[AsyncSession, Depends(get_db)],
    service: Annotated[AuthService, Depends(get_auth_service)],
    body: LoginBody,
):
    try:
        result = await service.login(body.email, body.password)
    except UnauthorizedError as e:
        AUTH_EVENTS.labels(event="login", outcome="failure").inc()
        logger.warning("Login failed for %s: %s", body.email, e.message)
        # Own session: the request session is rolled back when this error propagates
        async with get_database(request).session() as audit_session:
            await log_action(
                audit_session,
                None,
                "login_failed",
                "auth",
                details={"email": body.email, "reason": e.message},
                ip_address=client_ip(request),
            )
        raise
    AUTH_EVENTS.labels(event="login", outcome="success").inc()
    await log_action(session, result.user.id, "login", "auth", ip_address=client_ip(request))
    return ok(result, "Login successful")


@router.post(
    "/register",
    response_model=ApiResponse[AuthResult],
    status_code=201,
    summary="Register a new user",
    responses={
        400: {"description": "Validation failed"},
        409: {"description": "Email already registered or username taken"},
    },
)
async def register(
    request: Request,
    session: Annotated[AsyncSession, Depends(get_db)],
    service: Annotated[AuthService, Depends(get_auth_service)],
    body: RegisterBody,
):
    result = await service.register(
        email=body.email,
        username=body.username,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        middle_name=body.middle_name,
    )
    AUTH_EVENTS.labels(event="register", outcome="success").inc()
    await log_action(
        session, result.user.id, "register", "user", resource_id=result.user.id, ip_address=client_ip(request)
    )
    return ok(result, "Registration successful")


@router.post(
    "/refresh",
    response_model=ApiResponse[AuthTokens],
    summary="Exchange refresh token for new access and refresh tokens",
    responses={401: {"description": "Refresh token invalid, revoked or expired"}},
)
async def refresh_tokens(
    request: Request,
    session: Annotated[AsyncSession, Depends(get_db)],
    service: Annotated[AuthService, Depends(get_auth_service)],
    body: RefreshBody,
):
    """Rotation: the presented refresh token is revoked and cannot be used again."""
    try:
        tokens = await service.refresh_token(body.refresh_token.strip())
    except UnauthorizedError:
        AUTH_EVENTS.labels(event="refresh", outcome="failure").inc()
        raise
    AUTH_EVENTS.labels(event="refresh", outcome="success").inc()
    await log_action(session, None, "refresh", "auth", ip_address=client_ip(request))
    return ok(tokens, "Token refreshed successfully")


@router.post(
    "/change-password",
    response_model=ApiResponse,
    summary="Change password and revoke all refresh tokens",
    responses={
        400: {"description": "Current password is incorrect"},
        401: {"description": "Not authenticated"},
        404: {"description": "User not found"},
    },
)
async def change_password(
    request: Request,
    session: Annotated[AsyncSession, Depends(get_db)],
    service: Annotated[AuthService, Depends(get_auth_service)],
    user: Annotated[CurrentUser, Depends(get_current_user)],
    body: ChangePasswordBody,
):
    await service.change_password(user.id, body.current_password, body.new_password)
    await log_action(session, user.id, "change_password", "user", resource_id=user.id, ip_address=client_ip(request))
    return ok(None, "Password changed successfully")


@router.post(
    "/logout",
    response_model=ApiResponse,
    summary="Revoke a refresh token",
)
async def logout(
    request: Request,
    session: Annotated[AsyncSession, Depends(get_db)],
    service: Annotated[AuthService, Depends(get_auth_service)],
    body: RefreshBody,
):
    await service.logout(body.refresh_token.strip())
    await log_action(session, None, "logout", "auth", ip_address=client_ip(request))
    return ok(None, "Logout successful")


@router.post(
    "/logout-all",
    response_model=ApiResponse[RevokedSessions],
    summary="Revoke every refresh token of the current user",
    responses={401: {"description": "Not authenticated"}},
)
async def logout_all(
    request: Request,
    session: Annotated[AsyncSession, Depends(get_db)],
    service: Annotated[AuthService, Depends(get_auth_service)],
    user: Annotated[CurrentUser, Depends(get_current_user)],
):
    revoked = await service.logout_all(user.id)
    await log_action(session, user.id, "logout_all", "auth", details={"revoked": revoked}, ip_address=client_ip(request))
    return ok(RevokedSessions(revoked=revoked), "Logged out from all devices successfully")


@router.get(
    "/profile",
    response_model=ApiResponse[CurrentUser],
    summary="Get the identity carried by the access token",
    responses={401: {"description": "Not authenticated or invalid token"}},
)
async def profile(user: Annotated[CurrentUser, Depends(require_permission(VIEW_PROFILE))]):
    return ok(user, "Profile retrieved successfully")


@router.put(
    "/profile",
    response_model=ApiResponse[UserOut],
    summary="Update the caller's names or email",
    responses={
        401: {"description": "Not authenticated"},
        404: {"description": "User not found"},
        409: {"description": "Email already registered"},
    },
)
async def update_profile(
    request: Request,
    session: Annotated[AsyncSession, Depends(get_db)],
    service: Annotated[AuthService, Depends(get_auth_service)],
    user: Annotated[CurrentUser, Depends(require_permission(VIEW_PROFILE))],
    body: UpdateProfileBody,
):
    changes = body.model_dump(exclude_unset=True)
    updated = await service.update_profile(user.id, **changes)
    await log_action(
        session,
        user.id,
        "profile_updated",
        "user",
        resource_id=user.id,
        details={"fields": sorted(changes)},
        ip_address=client_ip(request),
    )
    return ok(UserOut.model_validate(updated), "Profile updated successfully")
