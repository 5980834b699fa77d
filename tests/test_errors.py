"""Exception handlers: envelope shape, validation flattening, generic 500."""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel

from lgu_auth.core.exceptions import ForbiddenError, flatten_validation_errors, register_exception_handlers


class Item(BaseModel):
    name: str
    count: int


def _app() -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/boom")
    async def boom():
        raise RuntimeError("database password is hunter2")

    @app.get("/forbidden")
    async def forbidden():
        raise ForbiddenError("Insufficient permissions")

    @app.post("/items")
    async def items(item: Item):
        return item

    return app


@pytest.mark.asyncio
async def test_unhandled_exception_hides_detail(caplog):
    transport = ASGITransport(app=_app(), raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.get("/boom")
    assert resp.status_code == 500
    assert resp.json() == {"success": False, "message": "Internal server error"}
    assert "hunter2" not in resp.text
    assert any("Unhandled exception on GET" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_app_error_envelope():
    async with AsyncClient(transport=ASGITransport(app=_app()), base_url="http://test") as client:
        resp = await client.get("/forbidden")
    assert resp.status_code == 403
    assert resp.json() == {"success": False, "message": "Insufficient permissions"}


@pytest.mark.asyncio
async def test_request_validation_is_400_with_field_messages():
    async with AsyncClient(transport=ASGITransport(app=_app()), base_url="http://test") as client:
        resp = await client.post("/items", json={"count": "many"})
    assert resp.status_code == 400
    errors = resp.json()["errors"]
    assert any(e.startswith("name: ") for e in errors)
    assert any(e.startswith("count: ") for e in errors)


@pytest.mark.asyncio
async def test_unknown_route_uses_envelope():
    async with AsyncClient(transport=ASGITransport(app=_app()), base_url="http://test") as client:
        resp = await client.get("/nope")
    assert resp.status_code == 404
    assert resp.json()["success"] is False


def test_flatten_validation_errors():
    errors = [
        {"loc": ("body", "email"), "msg": "Field required"},
        {"loc": ("body", "profile", "age"), "msg": "Input should be a valid integer"},
        {"loc": (), "msg": "Bad"},
    ]
    assert flatten_validation_errors(errors) == [
        "email: Field required",
        "profile.age: Input should be a valid integer",
        "request: Bad",
    ]
