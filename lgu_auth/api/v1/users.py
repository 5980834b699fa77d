"""User administration: list, create, update, statistics, activation, roles, password resets."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from lgu_auth.api.deps import get_user_service, require_permission
from lgu_auth.core.http import client_ip
from lgu_auth.core.permissions import MANAGE_ROLES, MANAGE_USERS, VIEW_USERS
from lgu_auth.db.session import get_db
from lgu_auth.models.user import UserRole
from lgu_auth.schemas.pagination import PaginatedResponse, PaginationParams
from lgu_auth.schemas.response import ApiResponse, ok
from lgu_auth.schemas.user import (
    CreateUserBody,
    CurrentUser,
    ResetPasswordBody,
    UpdateUserBody,
    UserOut,
    UserRoleBody,
    UserStatistics,
)
from lgu_auth.services.audit import log_action
from lgu_auth.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.get(
    "",
    response_model=ApiResponse[PaginatedResponse[UserOut]],
    summary="List users",
    responses={401: {"description": "Not authenticated"}, 403: {"description": "Permission denied"}},
)
async def list_users(
    service: Annotated[UserService, Depends(get_user_service)],
    _: Annotated[CurrentUser, Depends(require_permission(VIEW_USERS))],
    pagination: Annotated[PaginationParams, Depends()],
    role: UserRole | None = None,
    is_active: bool | None = None,
    is_verified: bool | None = None,
    search: Annotated[str | None, Query(max_length=100)] = None,
):
    users, total = await service.list_users(
        limit=pagination.limit,
        offset=pagination.offset,
        role=role,
        is_active=is_active,
        is_verified=is_verified,
        search=search,
    )
    page = PaginatedResponse[UserOut].build([UserOut.model_validate(u) for u in users], total, pagination)
    return ok(page, "Users retrieved successfully")


@router.post(
    "",
    response_model=ApiResponse[UserOut],
    status_code=201,
    summary="Create a user",
    responses={
        403: {"description": "Permission denied or role not assignable"},
        409: {"description": "Email already registered or username taken"},
    },
)
async def create_user(
    request: Request,
    session: Annotated[AsyncSession, Depends(get_db)],
    service: Annotated[UserService, Depends(get_user_service)],
    actor: Annotated[CurrentUser, Depends(require_permission(MANAGE_USERS))],
    body: CreateUserBody,
):
    user = await service.create(actor, **body.model_dump())
    await log_action(
        session,
        actor.id,
        "user_created",
        "user",
        resource_id=user.id,
        details={"role": UserRole(user.role).value},
        ip_address=client_ip(request),
    )
    return ok(UserOut.model_validate(user), "User created successfully")


@router.get(
    "/statistics",
    response_model=ApiResponse[UserStatistics],
    summary="User counts by status and role",
)
async def user_statistics(
    service: Annotated[UserService, Depends(get_user_service)],
    _: Annotated[CurrentUser, Depends(require_permission(VIEW_USERS))],
):
    stats = await service.statistics()
    return ok(UserStatistics(**stats), "User statistics retrieved successfully")


@router.get(
    "/{user_id}",
    response_model=ApiResponse[UserOut],
    summary="Get a user",
    responses={404: {"description": "User not found"}},
)
async def get_user(
    user_id: str,
    service: Annotated[UserService, Depends(get_user_service)],
    _: Annotated[CurrentUser, Depends(require_permission(VIEW_USERS))],
):
    user = await service.get(user_id)
    return ok(UserOut.model_validate(user), "User retrieved successfully")


@router.put(
    "/{user_id}",
    response_model=ApiResponse[UserOut],
    summary="Update a user's details",
    responses={
        403: {"description": "Permission denied"},
        404: {"description": "User not found"},
        409: {"description": "Email already registered or username taken"},
    },
)
async def update_user(
    user_id: str,
    request: Request,
    session: Annotated[AsyncSession, Depends(get_db)],
    service: Annotated[UserService, Depends(get_user_service)],
    actor: Annotated[CurrentUser, Depends(require_permission(MANAGE_USERS))],
    body: UpdateUserBody,
):
    changes = body.model_dump(exclude_unset=True)
    user = await service.update(actor, user_id, **changes)
    await log_action(
        session,
        actor.id,
        "user_updated",
        "user",
        resource_id=user.id,
        details={"fields": sorted(changes)},
        ip_address=client_ip(request),
    )
    return ok(UserOut.model_validate(user), "User updated successfully")


@router.post(
    "/{user_id}/toggle-status",
    response_model=ApiResponse[UserOut],
    summary="Activate or deactivate a user",
    responses={403: {"description": "Permission denied or own account"}, 404: {"description": "User not found"}},
)
async def toggle_status(
    user_id: str,
    request: Request,
    session: Annotated[AsyncSession, Depends(get_db)],
    service: Annotated[UserService, Depends(get_user_service)],
    actor: Annotated[CurrentUser, Depends(require_permission(MANAGE_USERS))],
):
    user = await service.toggle_status(actor, user_id)
    await log_action(
        session,
        actor.id,
        "user_status_changed",
        "user",
        resource_id=user.id,
        details={"is_active": user.is_active},
        ip_address=client_ip(request),
    )
    return ok(UserOut.model_validate(user), "User status updated successfully")


@router.patch(
    "/{user_id}/role",
    response_model=ApiResponse[UserOut],
    summary="Change a user's role",
    responses={403: {"description": "Permission denied"}, 404: {"description": "User not found"}},
)
async def change_role(
    user_id: str,
    request: Request,
    session: Annotated[AsyncSession, Depends(get_db)],
    service: Annotated[UserService, Depends(get_user_service)],
    actor: Annotated[CurrentUser, Depends(require_permission(MANAGE_ROLES))],
    body: UserRoleBody,
):
    user = await service.change_role(actor, user_id, body.role)
    await log_action(
        session,
        actor.id,
        "user_role_changed",
        "user",
        resource_id=user.id,
        details={"role": body.role.value},
        ip_address=client_ip(request),
    )
    return ok(UserOut.model_validate(user), "User role updated successfully")


@router.post(
    "/{user_id}/reset-password",
    response_model=ApiResponse,
    summary="Set a new password for a user and revoke their sessions",
    responses={404: {"description": "User not found"}},
)
async def reset_password(
    user_id: str,
    request: Request,
    session: Annotated[AsyncSession, Depends(get_db)],
    service: Annotated[UserService, Depends(get_user_service)],
    actor: Annotated[CurrentUser, Depends(require_permission(MANAGE_USERS))],
    body: ResetPasswordBody,
):
    user = await service.reset_password(actor, user_id, body.password)
    await log_action(session, actor.id, "user_password_reset", "user", resource_id=user.id, ip_address=client_ip(request))
    return ok(None, "Password reset successfully")
