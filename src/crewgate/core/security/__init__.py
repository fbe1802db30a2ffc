"""Security utilities.

Re-exports crypto helpers for convenience.
"""

from src.crewgate.core.security.crypto import (
    INVITATION_TOKEN_BYTES,
    create_access_token,
    decode_token,
    generate_invitation_token,
    hash_token,
)

__all__ = [
    "INVITATION_TOKEN_BYTES",
    "create_access_token",
    "decode_token",
    "generate_invitation_token",
    "hash_token",
]
