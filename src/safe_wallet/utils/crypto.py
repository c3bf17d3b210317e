"""Cryptographic helpers: hashing and deterministic identifiers."""

from __future__ import annotations

import hashlib
import uuid


def sha3_256(data: bytes) -> bytes:
    """Single SHA3-256 hash, the kernel's default hash."""
    return hashlib.sha3_256(data).digest()


def sha512(data: bytes) -> bytes:
    """Single SHA-512 hash."""
    return hashlib.sha512(data).digest()


def unique_object_id(*args: str) -> str:
    """Derive a stable UUID from the given strings.

    The same arguments always yield the same id, which makes it suitable as
    an idempotency hint for requests re-issued after a crash.
    """
    digest = hashlib.md5("".join(args).encode("utf-8"), usedforsecurity=False).digest()
    return str(uuid.UUID(bytes=digest, version=3))


def is_uuid(value: str) -> bool:
    """Check whether *value* is a canonical lowercase UUID string."""
    try:
        return str(uuid.UUID(value)) == value
    except ValueError:
        return False
