"""Cryptographic utilities - invitation tokens and JWT access tokens."""

import secrets
from datetime import UTC, datetime, timedelta
from hashlib import sha256
from typing import Any
from uuid import UUID

from jose import JWTError, jwt

from src.crewgate.core.config import get_settings

# 32 random bytes = 256 bits of entropy, ~43 url-safe characters
INVITATION_TOKEN_BYTES = 32


def generate_invitation_token() -> str:
    """Generate an opaque bearer token for an invitation link."""
    return secrets.token_urlsafe(INVITATION_TOKEN_BYTES)


def hash_token(token: str) -> str:
    """Hash a token using SHA256 for storage. Only the hash is persisted."""
    return sha256(token.encode()).hexdigest()


def create_access_token(subject: str | UUID, expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token identifying a user."""
    settings = get_settings()
    expire = datetime.now(UTC) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode = {
        "sub": str(subject),
        "exp": expire,
        "type": "access",
    }
    return jwt.encode(  # type: ignore[no-any-return]
        to_encode,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


def decode_token(token: str) -> dict[str, Any] | None:
    """Decode and validate a JWT. Returns None on any error."""
    settings = get_settings()
    try:
        return jwt.decode(  # type: ignore[no-any-return]
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        return None
