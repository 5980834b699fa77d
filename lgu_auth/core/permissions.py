"""
Role-based access control.

A single policy table maps each role to the actions it may perform. Routers
ask for an action (``require_permission("manage-users")``) instead of keeping
their own role allow-lists.
"""

from lgu_auth.models.user import UserRole

VIEW_PROFILE = "view-profile"
VIEW_USERS = "view-users"
MANAGE_USERS = "manage-users"
MANAGE_ROLES = "manage-roles"

ROLE_PERMISSIONS: dict[UserRole, frozenset[str]] = {
    UserRole.SUPER_ADMIN: frozenset({VIEW_PROFILE, VIEW_USERS, MANAGE_USERS, MANAGE_ROLES}),
    UserRole.ADMIN: frozenset({VIEW_PROFILE, VIEW_USERS, MANAGE_USERS}),
    UserRole.USER: frozenset({VIEW_PROFILE}),
}

ADMIN_ROLES = (UserRole.SUPER_ADMIN, UserRole.ADMIN)


def _as_role(role: UserRole | str) -> UserRole | None:
    try:
        return UserRole(role)
    except ValueError:
        return None


def permissions_for(role: UserRole | str) -> frozenset[str]:
    """Actions allowed for role; unknown roles get none."""
    resolved = _as_role(role)
    if resolved is None:
        return frozenset()
    return ROLE_PERMISSIONS.get(resolved, frozenset())


def has_permission(role: UserRole | str, permission: str) -> bool:
    return permission in permissions_for(role)


def can_assign_role(actor_role: UserRole | str, target_role: UserRole) -> bool:
    """Only SUPER_ADMIN may hand out SUPER_ADMIN."""
    if target_role == UserRole.SUPER_ADMIN:
        return _as_role(actor_role) == UserRole.SUPER_ADMIN
    return has_permission(actor_role, MANAGE_ROLES)
