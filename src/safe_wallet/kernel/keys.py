"""Ed25519 key arithmetic for one-time (ghost) keys.

Keys on this ledger are raw 32-byte scalars rather than RFC 8032 seeds:
- Scalar helpers (canonical decode, uniform reduction, clamped expansion)
- Public key derivation from a private scalar
- Deterministic signing with a private scalar, verifiable as plain Ed25519
- Ghost key derivation for senders and recipients

All point and scalar operations are delegated to libsodium via PyNaCl.
"""

from __future__ import annotations

import nacl.bindings
import nacl.exceptions
import nacl.signing
import nacl.utils

from safe_wallet.utils.crypto import sha3_256, sha512

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Order of the Ed25519 base point
CURVE_ORDER = 2**252 + 27742317777372353535851937790883648493

KEY_SIZE = 32
SIGNATURE_SIZE = 64
ZERO_SCALAR = b"\x00" * KEY_SIZE


# ---------------------------------------------------------------------------
# Scalars
# ---------------------------------------------------------------------------


def scalar_from_canonical(data: bytes) -> bytes:
    """Accept *data* as a scalar only if it is already reduced mod L.

    Raises:
        ValueError: If the length is wrong or the value is >= L.
    """
    if len(data) != KEY_SIZE:
        msg = f"Invalid scalar length: {len(data)}"
        raise ValueError(msg)
    if int.from_bytes(data, "little") >= CURVE_ORDER:
        msg = "Scalar is not canonical"
        raise ValueError(msg)
    return data


def scalar_from_uniform(data: bytes) -> bytes:
    """Reduce a 64-byte uniform value to a scalar mod L."""
    if len(data) != 64:
        msg = f"Invalid uniform scalar length: {len(data)}"
        raise ValueError(msg)
    return nacl.bindings.crypto_core_ed25519_scalar_reduce(data)


def scalar_from_clamped(data: bytes) -> bytes:
    """Clamp 32 bytes the X25519 way, then reduce mod L."""
    if len(data) != KEY_SIZE:
        msg = f"Invalid scalar length: {len(data)}"
        raise ValueError(msg)
    clamped = bytearray(data)
    clamped[0] &= 248
    clamped[31] &= 127
    clamped[31] |= 64
    return nacl.bindings.crypto_core_ed25519_scalar_reduce(bytes(clamped) + b"\x00" * 32)


def scalar_add(a: bytes, b: bytes) -> bytes:
    """Add two scalars mod L."""
    return nacl.bindings.crypto_core_ed25519_scalar_add(a, b)


def random_scalar() -> bytes:
    """Generate a uniformly random non-zero scalar."""
    while True:
        scalar = scalar_from_uniform(nacl.utils.random(64))
        if scalar != ZERO_SCALAR:
            return scalar


def expand_spend_key(spend_key: bytes) -> bytes:
    """Expand a long-term spend secret into its private scalar.

    SHA-512 of the secret, first half clamped and reduced, exactly as
    Ed25519 expands a seed.
    """
    if len(spend_key) != KEY_SIZE:
        msg = f"Invalid spend key length: {len(spend_key)}"
        raise ValueError(msg)
    return scalar_from_clamped(sha512(spend_key)[:32])


# ---------------------------------------------------------------------------
# Points
# ---------------------------------------------------------------------------


def public_key(private: bytes) -> bytes:
    """Derive the public point ``private * G``."""
    return nacl.bindings.crypto_scalarmult_ed25519_base_noclamp(private)


def is_valid_point(point: bytes) -> bool:
    """Check if *point* encodes a valid, non-small-order curve point."""
    if len(point) != KEY_SIZE:
        return False
    return nacl.bindings.crypto_core_ed25519_is_valid_point(point)


# ---------------------------------------------------------------------------
# Signatures
# ---------------------------------------------------------------------------


def sign(private: bytes, message: bytes) -> bytes:
    """Sign *message* with a raw private scalar.

    The nonce is derived from the scalar and the message, so signing is
    deterministic. The result is ``R || s`` and verifies as a standard
    Ed25519 signature under ``public_key(private)``.
    """
    prefix = sha512(private)[32:]
    nonce = scalar_from_uniform(sha512(prefix + message))
    r_point = public_key(nonce)
    a_point = public_key(private)
    hram = scalar_from_uniform(sha512(r_point + a_point + message))
    s = scalar_add(nacl.bindings.crypto_core_ed25519_scalar_mul(hram, private), nonce)
    return r_point + s


def verify(public: bytes, message: bytes, signature: bytes) -> bool:
    """Verify an Ed25519 signature against a public point."""
    try:
        nacl.signing.VerifyKey(public).verify(message, signature)
    except (nacl.exceptions.BadSignatureError, nacl.exceptions.ValueError):
        return False
    return True


# ---------------------------------------------------------------------------
# Ghost keys
# ---------------------------------------------------------------------------


def _encode_uvarint(n: int) -> bytes:
    out = bytearray()
    while n >= 0x80:
        out.append((n & 0x7F) | 0x80)
        n >>= 7
    out.append(n)
    return bytes(out)


def hash_scalar(shared: bytes, index: int) -> bytes:
    """Hash a shared point and an output index into a scalar."""
    h1 = sha3_256(shared + _encode_uvarint(index))
    h2 = sha3_256(h1)
    s = scalar_from_uniform(h1 + h2)
    h1 = sha3_256(s)
    h2 = sha3_256(h1)
    return scalar_from_uniform(h1 + h2)


def derive_ghost_public_key(r: bytes, view_public: bytes, spend_public: bytes, index: int) -> bytes:
    """Sender side: one-time key ``H(r*V, index)*G + S`` for one member."""
    shared = nacl.bindings.crypto_scalarmult_ed25519_noclamp(r, view_public)
    return nacl.bindings.crypto_core_ed25519_add(public_key(hash_scalar(shared, index)), spend_public)


def derive_view_scalar(view_private: bytes, mask: bytes, index: int) -> bytes:
    """Recipient side: the scalar ``H(v*R, index)`` bound to an output."""
    shared = nacl.bindings.crypto_scalarmult_ed25519_noclamp(view_private, mask)
    return hash_scalar(shared, index)


def derive_ghost_private_key(view_scalar: bytes, spend_private: bytes) -> bytes:
    """Combine a view scalar with the spend scalar into the one-time key."""
    return scalar_add(view_scalar, spend_private)
