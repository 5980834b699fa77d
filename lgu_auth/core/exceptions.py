"""
Domain exceptions and FastAPI exception handlers.

Every error leaves the API in the same envelope as a success:
``{"success": false, "message": ..., "errors": [...]}``.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from lgu_auth.core.http import client_ip

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for expected errors; message is safe to show to the caller."""

    status_code: int = 400

    def __init__(self, message: str, errors: list[str] | None = None):
        self.message = message
        self.errors = errors
        super().__init__(message)


class ValidationError(AppError):
    status_code = 400


class UnauthorizedError(AppError):
    status_code = 401


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


def error_body(message: str, errors: list[str] | None = None) -> dict:
    body: dict = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return body


def flatten_validation_errors(errors: list[dict]) -> list[str]:
    """Turn pydantic error dicts into "<field>: <message>" strings."""
    flat = []
    for err in errors:
        # Drop the "body"/"query"/"path" location prefix
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc) or "request"
        flat.append(f"{field}: {err.get('msg', 'Invalid value')}")
    return flat


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.errors))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = flatten_validation_errors(list(exc.errors()))
        return JSONResponse(status_code=400, content=error_body("Validation failed", errors))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Unhandled exception on %s %s from %s",
            request.method,
            request.url,
            client_ip(request),
            exc_info=exc,
        )
        return JSONResponse(status_code=500, content=error_body("Internal server error"))
