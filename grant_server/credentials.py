"""
Identifier generation and secret hashing.
All identifiers come from the OS CSPRNG; secrets are stored as bcrypt hashes only.
"""
import secrets
from datetime import datetime, timezone

import bcrypt

from grant_server.config import SECRET_HASH_ROUNDS

# 32 bytes = 256 bits of entropy per identifier
IDENTIFIER_BYTES = 32

_BCRYPT_MAX_BYTES = 72
_dummy_hash: bytes | None = None


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def generate_identifier(nbytes: int = IDENTIFIER_BYTES) -> str:
    """Opaque, URL-safe, unguessable identifier."""
    return secrets.token_urlsafe(nbytes)


def _encode(secret: str) -> bytes:
    # Bcrypt has a 72-byte limit
    return secret.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_secret(secret: str, rounds: int | None = None) -> str:
    return bcrypt.hashpw(_encode(secret), bcrypt.gensalt(rounds=rounds or SECRET_HASH_ROUNDS)).decode("utf-8")


def verify_secret(plain: str | None, hashed: str | None) -> bool:
    """
    Constant-time check of plain against a bcrypt hash.
    A missing secret or hash still pays for one bcrypt comparison so callers cannot time the difference.
    """
    global _dummy_hash
    if not plain or not hashed:
        if _dummy_hash is None:
            _dummy_hash = hash_secret(generate_identifier()).encode("utf-8")
        bcrypt.checkpw(_encode(plain or ""), _dummy_hash)
        return False
    return bcrypt.checkpw(_encode(plain), hashed.encode("utf-8"))
