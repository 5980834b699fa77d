"""Service-level tests for AuthService against the repositories."""

import pytest
from sqlalchemy import select

from lgu_auth.core.auth import decode_access_token, decode_refresh_token, hash_refresh_token
from lgu_auth.core.exceptions import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from lgu_auth.models.refresh_token import RefreshToken
from lgu_auth.services.auth_service import AuthService


async def _register(database, email="a@x.com", username="alice", password="Passw0rd!"):
    async with database.session() as session:
        return await AuthService.from_session(session).register(email, username, password, "Alice", "A")


@pytest.mark.asyncio
async def test_register_stores_hash_not_password(database):
    result = await _register(database)
    async with database.session() as session:
        service = AuthService.from_session(session)
        user = await service.users.find_by_id(result.user.id)
        assert user.password != "Passw0rd!"
        assert user.password.startswith("$2")
        row = await service.refresh_tokens.find_by_token(result.tokens.refresh_token)
        assert row is not None
        assert row.token_hash == hash_refresh_token(result.tokens.refresh_token)
        assert row.is_revoked is False
    assert "password" not in result.user.model_dump()


@pytest.mark.asyncio
async def test_issued_tokens_carry_claims(database):
    result = await _register(database)
    access = decode_access_token(result.tokens.access_token)
    refresh = decode_refresh_token(result.tokens.refresh_token)
    for payload in (access, refresh):
        assert payload["id"] == result.user.id
        assert payload["email"] == "a@x.com"
        assert payload["role"] == "USER"
    assert access["type"] == "access"
    assert refresh["type"] == "refresh"
    assert refresh["exp"] > access["exp"]


@pytest.mark.asyncio
async def test_register_conflicts(database):
    await _register(database)
    with pytest.raises(ConflictError, match="Email already registered"):
        await _register(database, username="other")
    with pytest.raises(ConflictError, match="Username already taken"):
        await _register(database, email="other@x.com")


@pytest.mark.asyncio
async def test_register_rejected_by_unique_index_is_a_conflict(database):
    """The pre-check misses a row committed after it ran; the insert fails and is reported as a conflict."""
    await _register(database)
    async with database.session_maker() as session:
        service = AuthService.from_session(session)
        lookup = service.users.find_by_email
        calls = []

        async def stale_then_fresh(email):
            calls.append(email)
            return None if len(calls) == 1 else await lookup(email)

        service.users.find_by_email = stale_then_fresh
        with pytest.raises(ConflictError, match="Email already registered"):
            await service.register("a@x.com", "other", "Passw0rd!", "Alice", "A")
        assert len(calls) == 2

        # Session was rolled back and stays usable
        assert await service.users.find_by_username("other") is None


@pytest.mark.asyncio
async def test_update_profile(database):
    result = await _register(database)
    await _register(database, email="b@x.com", username="bob")
    async with database.session() as session:
        service = AuthService.from_session(session)
        user = await service.update_profile(result.user.id, first_name="Alicia")
        assert user.first_name == "Alicia"
        assert user.email == "a@x.com"
        with pytest.raises(ConflictError, match="Email already registered"):
            await service.update_profile(result.user.id, email="b@x.com")
        with pytest.raises(NotFoundError):
            await service.update_profile("missing", first_name="X")


@pytest.mark.asyncio
async def test_login_errors(database):
    await _register(database)
    async with database.session_maker() as session:
        service = AuthService.from_session(session)
        with pytest.raises(UnauthorizedError, match="Invalid credentials"):
            await service.login("a@x.com", "nope")
        with pytest.raises(UnauthorizedError, match="Invalid credentials"):
            await service.login("missing@x.com", "Passw0rd!")


@pytest.mark.asyncio
async def test_refresh_race_second_consumer_loses(database):
    """A consumer that validated the token before another consumed it must not get a new pair."""
    result = await _register(database)
    token = result.tokens.refresh_token

    async with database.session_maker() as slow_session:
        slow = AuthService.from_session(slow_session)
        assert await slow.refresh_tokens.find_usable(token) is not None

        async with database.session() as fast_session:
            await AuthService.from_session(fast_session).refresh_token(token)

        assert await slow.refresh_tokens.consume(token) is False
        with pytest.raises(UnauthorizedError, match="Invalid refresh token"):
            await slow.refresh_token(token)


@pytest.mark.asyncio
async def test_refresh_creates_new_row_and_revokes_old(database):
    result = await _register(database)
    async with database.session() as session:
        tokens = await AuthService.from_session(session).refresh_token(result.tokens.refresh_token)
    async with database.session() as session:
        r = await session.execute(select(RefreshToken).order_by(RefreshToken.id))
        rows = r.scalars().all()
    assert len(rows) == 2
    assert rows[0].token_hash == hash_refresh_token(result.tokens.refresh_token)
    assert rows[0].is_revoked is True
    assert rows[1].token_hash == hash_refresh_token(tokens.refresh_token)
    assert rows[1].is_revoked is False


@pytest.mark.asyncio
async def test_change_password_errors(database):
    result = await _register(database)
    async with database.session_maker() as session:
        service = AuthService.from_session(session)
        with pytest.raises(NotFoundError):
            await service.change_password("missing-id", "Passw0rd!", "N3wPassw0rd!")
        with pytest.raises(ValidationError, match="Current password is incorrect"):
            await service.change_password(result.user.id, "wrong", "N3wPassw0rd!")


@pytest.mark.asyncio
async def test_logout_unknown_token_is_noop(database):
    async with database.session() as session:
        await AuthService.from_session(session).logout("never-issued")
