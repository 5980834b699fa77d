"""Uniform response envelope shared by every endpoint.

Success bodies are ``{success, message, data}``. Error bodies carry ``errors``
instead of ``data`` and are built by ``core.exceptions.error_body``.
"""

from typing import Generic, TypeVar

from lgu_auth.schemas.base import CamelModel

T = TypeVar("T")


class ApiResponse(CamelModel, Generic[T]):
    success: bool = True
    message: str
    data: T | None = None


def ok(data=None, message: str = "OK") -> dict:
    return {"success": True, "message": message, "data": data}
