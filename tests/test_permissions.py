"""Unit tests for the role → permission policy table."""

from typing import Annotated

import pytest
from fastapi import Depends, FastAPI
from httpx import ASGITransport, AsyncClient

from lgu_auth.api.deps import require_roles
from lgu_auth.core.auth import create_access_token
from lgu_auth.core.exceptions import register_exception_handlers
from lgu_auth.core.permissions import (
    ADMIN_ROLES,
    MANAGE_ROLES,
    MANAGE_USERS,
    VIEW_PROFILE,
    VIEW_USERS,
    can_assign_role,
    has_permission,
    permissions_for,
)
from lgu_auth.models.user import UserRole
from lgu_auth.schemas.user import CurrentUser


@pytest.mark.parametrize(
    "role,permission,expected",
    [
        (UserRole.SUPER_ADMIN, MANAGE_ROLES, True),
        (UserRole.SUPER_ADMIN, MANAGE_USERS, True),
        (UserRole.ADMIN, MANAGE_USERS, True),
        (UserRole.ADMIN, MANAGE_ROLES, False),
        (UserRole.USER, VIEW_USERS, False),
        (UserRole.USER, VIEW_PROFILE, True),
        ("ADMIN", VIEW_USERS, True),
    ],
)
def test_has_permission(role, permission, expected):
    assert has_permission(role, permission) is expected


def test_unknown_role_has_no_permissions():
    assert permissions_for("JANITOR") == frozenset()
    assert not has_permission("JANITOR", VIEW_PROFILE)


def test_only_super_admin_grants_super_admin():
    assert can_assign_role(UserRole.SUPER_ADMIN, UserRole.SUPER_ADMIN)
    assert not can_assign_role(UserRole.ADMIN, UserRole.SUPER_ADMIN)
    assert can_assign_role(UserRole.SUPER_ADMIN, UserRole.ADMIN)
    assert not can_assign_role(UserRole.USER, UserRole.USER)


def _role_app() -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/officials")
    async def officials(user: Annotated[CurrentUser, Depends(require_roles(*ADMIN_ROLES))]):
        return {"id": user.id}

    return app


@pytest.mark.asyncio
async def test_require_roles_allow_list():
    admin = create_access_token("u-1", "admin@test.com", "ADMIN")
    user = create_access_token("u-2", "user@test.com", "USER")
    async with AsyncClient(transport=ASGITransport(app=_role_app()), base_url="http://test") as client:
        ok = await client.get("/officials", headers={"Authorization": f"Bearer {admin}"})
        denied = await client.get("/officials", headers={"Authorization": f"Bearer {user}"})
        anonymous = await client.get("/officials")
    assert ok.status_code == 200
    assert ok.json() == {"id": "u-1"}
    assert denied.status_code == 403
    assert anonymous.status_code == 401
