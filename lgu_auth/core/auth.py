"""Password hashing, JWT creation/verification and refresh-token digests."""

import hashlib
import secrets
from datetime import datetime, timezone, timedelta
from typing import Any

import bcrypt
from jose import JWTError, jwt

from lgu_auth.config import settings

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


def hash_password(password: str, rounds: int | None = None) -> str:
    """Hash password with bcrypt. Bytes truncated to 72 (bcrypt limit)."""
    pwd_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    return bcrypt.hashpw(pwd_bytes, salt).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    """Verify password with bcrypt (constant-time). Plain password truncated to 72 bytes."""
    plain_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(plain_bytes, password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def _claims(user_id: str, email: str, role: str) -> dict[str, Any]:
    return {"id": user_id, "email": email, "role": role}


def _encode(payload: dict[str, Any], key: str, token_type: str, expires_delta: timedelta) -> str:
    now = datetime.now(timezone.utc)
    to_encode = {
        **payload,
        "type": token_type,
        "jti": secrets.token_urlsafe(16),
        "iat": now,
        "exp": now + expires_delta,
    }
    result = jwt.encode(to_encode, key, algorithm=settings.jwt_algorithm)
    return result if isinstance(result, str) else result.decode("utf-8")


def refresh_token_lifetime() -> timedelta:
    return timedelta(days=settings.refresh_token_expire_days)


def create_access_token(user_id: str, email: str, role: str) -> str:
    return _encode(
        _claims(user_id, email, role),
        settings.jwt_secret,
        ACCESS_TOKEN_TYPE,
        timedelta(minutes=settings.access_token_expire_minutes),
    )


def create_refresh_token(user_id: str, email: str, role: str) -> str:
    """Signed refresh JWT; caller must persist its digest with a matching expires_at."""
    return _encode(
        _claims(user_id, email, role),
        settings.jwt_refresh_secret,
        REFRESH_TOKEN_TYPE,
        refresh_token_lifetime(),
    )


def hash_refresh_token(token: str) -> str:
    """SHA256 hex digest of a refresh token for storage and lookup."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _decode(token: str, key: str, token_type: str) -> dict[str, Any]:
    payload = jwt.decode(token, key, algorithms=[settings.jwt_algorithm])
    if payload.get("type") != token_type:
        raise JWTError("Unexpected token type")
    return payload


def decode_access_token(token: str) -> dict[str, Any]:
    """Verify signature, expiry and type of an access token. Raises JWTError."""
    return _decode(token, settings.jwt_secret, ACCESS_TOKEN_TYPE)


def decode_refresh_token(token: str) -> dict[str, Any]:
    """Verify signature, expiry and type of a refresh token. Raises JWTError."""
    return _decode(token, settings.jwt_refresh_secret, REFRESH_TOKEN_TYPE)
