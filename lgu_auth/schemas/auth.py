"""Request/response bodies for /auth."""

from pydantic import Field, field_validator

from lgu_auth.schemas.base import CamelModel
from lgu_auth.schemas.user import UserFields, UserOut, normalize_email


class LoginBody(CamelModel):
    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return normalize_email(v)


class RegisterBody(UserFields):
    email: str = Field(min_length=3, max_length=255)
    username: str = Field(min_length=3, max_length=50)
    password: str = Field(min_length=8, max_length=128)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    middle_name: str | None = Field(default=None, max_length=100)


class UpdateProfileBody(UserFields):
    """Fields a user may change on their own account; omitted fields are left as they are."""

    email: str | None = Field(default=None, min_length=3, max_length=255)
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    middle_name: str | None = Field(default=None, max_length=100)


class RefreshBody(CamelModel):
    refresh_token: str = Field(min_length=1)


class ChangePasswordBody(CamelModel):
    current_password: str = Field(min_length=1, max_length=128)
    new_password: str = Field(min_length=8, max_length=128)


class AuthTokens(CamelModel):
    access_token: str
    refresh_token: str


class AuthResult(CamelModel):
    user: UserOut
    tokens: AuthTokens
