"""Unit tests for JWT encode/decode, invalid signature, expiration and token types."""

from datetime import datetime, timezone, timedelta
from unittest.mock import patch

import pytest
from jose import JWTError, jwt

from lgu_auth.config import settings
from lgu_auth.core.auth import (
    create_access_token,
    create_refresh_token,
    decode_access_token,
    decode_refresh_token,
    hash_password,
    hash_refresh_token,
    verify_password,
)


def test_create_and_decode_access_token_roundtrip():
    token = create_access_token(user_id="u-42", email="u@example.com", role="ADMIN")
    assert isinstance(token, str)
    payload = decode_access_token(token)
    assert payload["id"] == "u-42"
    assert payload["email"] == "u@example.com"
    assert payload["role"] == "ADMIN"
    assert payload["type"] == "access"
    assert "exp" in payload


def test_tokens_issued_together_differ():
    first = create_refresh_token("u-1", "a@b.com", "USER")
    second = create_refresh_token("u-1", "a@b.com", "USER")
    assert first != second


def test_decode_invalid_signature_raises():
    token = create_access_token(user_id="u-1", email="a@b.com", role="USER")
    # Tamper: replace one character so signature is invalid
    bad_token = token[:-1] + ("x" if token[-1] != "x" else "y")
    with pytest.raises(JWTError):
        decode_access_token(bad_token)


def test_decode_expired_token_raises():
    """Build an expired token manually so we don't depend on clock."""
    payload = {
        "id": "u-1",
        "email": "u@test.com",
        "role": "USER",
        "type": "access",
        "exp": datetime.now(timezone.utc) - timedelta(minutes=1),
    }
    token = jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    with pytest.raises(JWTError):
        decode_access_token(token)


def test_decode_wrong_key_raises():
    token = create_access_token(user_id="u-1", email="a@b.com", role="USER")
    with patch.object(settings, "jwt_secret", "other-secret"):
        with pytest.raises(JWTError):
            decode_access_token(token)


def test_access_and_refresh_secrets_are_not_interchangeable():
    access = create_access_token("u-1", "a@b.com", "USER")
    refresh = create_refresh_token("u-1", "a@b.com", "USER")
    with pytest.raises(JWTError):
        decode_refresh_token(access)
    with pytest.raises(JWTError):
        decode_access_token(refresh)


def test_refresh_token_exp_follows_refresh_days():
    with patch.object(settings, "refresh_token_expire_days", 3):
        payload = decode_refresh_token(create_refresh_token("u-1", "a@b.com", "USER"))
    lifetime = payload["exp"] - payload["iat"]
    assert lifetime == 3 * 24 * 3600


def test_password_hash_roundtrip():
    hashed = hash_password("Passw0rd!", rounds=4)
    assert hashed != "Passw0rd!"
    assert verify_password("Passw0rd!", hashed)
    assert not verify_password("passw0rd!", hashed)


def test_verify_password_malformed_hash():
    assert verify_password("anything", "not-a-bcrypt-hash") is False


def test_refresh_token_digest_is_sha256_hex():
    digest = hash_refresh_token("abc")
    assert len(digest) == 64
    assert digest == hash_refresh_token("abc")
