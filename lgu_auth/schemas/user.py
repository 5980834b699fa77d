import re
from datetime import datetime

from pydantic import ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from lgu_auth.models.user import UserRole
from lgu_auth.schemas.base import CamelModel

USERNAME_RE = re.compile(r"^[A-Za-z0-9._-]+$")


def normalize_email(value: str | None) -> str:
    email = (value or "").strip().lower()
    if "@" not in email:
        raise ValueError("must be a valid email address")
    return email


def clean_username(value: str | None) -> str:
    username = (value or "").strip()
    if not USERNAME_RE.match(username):
        raise ValueError("may only contain letters, digits, '.', '_' and '-'")
    return username


def clean_name(value: str | None) -> str:
    name = (value or "").strip()
    if not name:
        raise ValueError("must not be blank")
    return name


def clean_optional_name(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


class UserOut(CamelModel):
    """Public view of a user. Has no password field, so it can never be serialized."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    email: str
    username: str
    first_name: str
    last_name: str
    middle_name: str | None = None
    role: UserRole
    is_active: bool
    is_verified: bool
    last_login_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CurrentUser(CamelModel):
    """Identity decoded from a verified access token."""

    id: str
    email: str
    role: UserRole


class UserFields(CamelModel):
    """Shared normalisation for bodies that carry user fields; only fields a subclass declares are checked."""

    @field_validator("email", check_fields=False)
    @classmethod
    def check_email(cls, v: str | None) -> str:
        return normalize_email(v)

    @field_validator("username", check_fields=False)
    @classmethod
    def check_username(cls, v: str | None) -> str:
        return clean_username(v)

    @field_validator("first_name", "last_name", check_fields=False)
    @classmethod
    def require_name(cls, v: str | None) -> str:
        return clean_name(v)

    @field_validator("middle_name", check_fields=False)
    @classmethod
    def strip_middle_name(cls, v: str | None) -> str | None:
        return clean_optional_name(v)


class CreateUserBody(UserFields):
    email: str = Field(min_length=3, max_length=255)
    username: str = Field(min_length=3, max_length=50)
    password: str = Field(min_length=8, max_length=128)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    middle_name: str | None = Field(default=None, max_length=100)
    role: UserRole = UserRole.USER
    is_active: bool = True
    is_verified: bool = False


class UpdateUserBody(UserFields):
    """Partial update by an administrator; role, status and password have their own routes."""

    email: str | None = Field(default=None, min_length=3, max_length=255)
    username: str | None = Field(default=None, min_length=3, max_length=50)
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    middle_name: str | None = Field(default=None, max_length=100)
    is_verified: bool | None = None

    @field_validator("is_verified")
    @classmethod
    def not_null(cls, v: bool | None) -> bool:
        if v is None:
            raise ValueError("must not be null")
        return v


class UserRoleBody(CamelModel):
    role: UserRole


class ResetPasswordBody(CamelModel):
    password: str = Field(min_length=8, max_length=128)


class UserStatistics(CamelModel):
    total_users: int
    active_users: int
    verified_users: int
    admin_users: int
    users_by_role: dict[str, int]


class RevokedSessions(CamelModel):
    revoked: int
