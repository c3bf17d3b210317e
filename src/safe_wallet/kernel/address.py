"""Address encoding: member hashing, XIN public addresses, MIX addresses.

Ledger addresses:
- ``hash_members``: owner scope key used by the outputs listing
- XIN address: Base58 of a (spend, view) public key pair with checksum
- MIX address: Base58 of a threshold policy over UUID or XIN members
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Self

from safe_wallet.errors.definitions import InvalidAddress
from safe_wallet.kernel.keys import KEY_SIZE, public_key
from safe_wallet.utils.crypto import is_uuid, sha3_256

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

XIN_PREFIX = "XIN"
MIX_PREFIX = "MIX"
MIX_VERSION = 2
MAX_MEMBERS = 64

_CHECKSUM_SIZE = 4
_UUID_SIZE = 16


# ---------------------------------------------------------------------------
# Base58 encoding / decoding
# ---------------------------------------------------------------------------

_B58_ALPHABET = b"123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"


def base58_encode(payload: bytes) -> str:
    """Encode raw bytes to Base58 (no checksum)."""
    n = int.from_bytes(payload, "big")
    result: list[int] = []
    while n > 0:
        n, remainder = divmod(n, 58)
        result.append(_B58_ALPHABET[remainder])
    # Preserve leading zero bytes
    for byte in payload:
        if byte == 0:
            result.append(_B58_ALPHABET[0])
        else:
            break
    return bytes(reversed(result)).decode("ascii")


def base58_decode(s: str) -> bytes:
    """Decode a Base58 string to raw bytes (no checksum).

    Raises:
        ValueError: On characters outside the Base58 alphabet.
    """
    n = 0
    for char in s:
        index = _B58_ALPHABET.find(char.encode("ascii", errors="replace"))
        if index < 0:
            msg = f"Invalid Base58 character {char!r}"
            raise ValueError(msg)
        n = n * 58 + index
    result = n.to_bytes((n.bit_length() + 7) // 8, "big") if n > 0 else b""
    pad_count = len(s) - len(s.lstrip("1"))
    return b"\x00" * pad_count + result


def _checksum(prefix: str, payload: bytes) -> bytes:
    return sha3_256(prefix.encode("ascii") + payload)[:_CHECKSUM_SIZE]


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------


def hash_members(ids: list[str] | tuple[str, ...]) -> str:
    """Owner scope key: SHA3-256 of the sorted member ids concatenated."""
    return sha3_256("".join(sorted(ids)).encode("utf-8")).hex()


# ---------------------------------------------------------------------------
# XIN public address
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PublicAddress:
    """A member addressed by its public spend and view keys."""

    spend_key: bytes
    view_key: bytes

    @classmethod
    def from_private(cls, view_private: bytes, spend_private: bytes) -> Self:
        """Build the public address for a pair of private scalars."""
        return cls(spend_key=public_key(spend_private), view_key=public_key(view_private))

    @classmethod
    def from_string(cls, text: str) -> Self:
        """Parse an ``XIN...`` address.

        Raises:
            InvalidAddress: On bad prefix, encoding, length or checksum.
        """
        if not text.startswith(XIN_PREFIX):
            raise InvalidAddress(f"invalid address prefix {text}")
        try:
            data = base58_decode(text[len(XIN_PREFIX):])
        except ValueError as exc:
            raise InvalidAddress(f"invalid address {text}") from exc
        if len(data) != 2 * KEY_SIZE + _CHECKSUM_SIZE:
            raise InvalidAddress(f"invalid address length {text}")
        payload, checksum = data[:-_CHECKSUM_SIZE], data[-_CHECKSUM_SIZE:]
        if checksum != _checksum(XIN_PREFIX, payload):
            raise InvalidAddress(f"invalid address checksum {text}")
        return cls(spend_key=payload[:KEY_SIZE], view_key=payload[KEY_SIZE:])

    def to_string(self) -> str:
        """Serialize to the ``XIN...`` form."""
        payload = self.spend_key + self.view_key
        return XIN_PREFIX + base58_encode(payload + _checksum(XIN_PREFIX, payload))

    def __str__(self) -> str:
        return self.to_string()


def is_public_address(member: str) -> bool:
    """Whether *member* looks like an ``XIN`` public address."""
    return member.startswith(XIN_PREFIX)


# ---------------------------------------------------------------------------
# MIX address
# ---------------------------------------------------------------------------


def validate_policy(members: list[str] | tuple[str, ...], threshold: int) -> None:
    """Check a (members, threshold) policy.

    Raises:
        InvalidAddress: If members are empty, too many or duplicated, or the
            threshold is outside ``[1, len(members)]``.
    """
    if not members:
        raise InvalidAddress("address has no members")
    if len(members) > MAX_MEMBERS:
        raise InvalidAddress(f"too many members {len(members)}")
    if len(set(members)) != len(members):
        raise InvalidAddress("duplicated address members")
    if threshold < 1 or threshold > len(members):
        raise InvalidAddress(f"invalid threshold {threshold}/{len(members)}")


@dataclass(frozen=True)
class MixAddress:
    """Threshold policy over UUID accounts or XIN public addresses.

    Attributes:
        members: Member ids: UUID strings, or ``XIN`` addresses.
        threshold: Minimum signer count required to spend.
    """

    members: tuple[str, ...]
    threshold: int

    def __post_init__(self) -> None:
        validate_policy(self.members, self.threshold)
        kinds = {is_public_address(m) for m in self.members}
        if len(kinds) > 1:
            raise InvalidAddress("address mixes account and public key members")
        if kinds == {False} and not all(is_uuid(m) for m in self.members):
            raise InvalidAddress("address members must be UUIDs or XIN addresses")

    @property
    def uses_public_keys(self) -> bool:
        """True when members are ``XIN`` addresses rather than accounts."""
        return is_public_address(self.members[0])

    @classmethod
    def from_string(cls, text: str) -> Self:
        """Parse a ``MIX...`` address.

        Raises:
            InvalidAddress: On any encoding, checksum or policy problem.
        """
        if not text.startswith(MIX_PREFIX):
            raise InvalidAddress(f"invalid address prefix {text}")
        try:
            data = base58_decode(text[len(MIX_PREFIX):])
        except ValueError as exc:
            raise InvalidAddress(f"invalid address {text}") from exc
        if len(data) < 3 + _CHECKSUM_SIZE:
            raise InvalidAddress(f"invalid address length {text}")
        payload, checksum = data[:-_CHECKSUM_SIZE], data[-_CHECKSUM_SIZE:]
        if checksum != _checksum(MIX_PREFIX, payload):
            raise InvalidAddress(f"invalid address checksum {text}")
        version, threshold, total = payload[0], payload[1], payload[2]
        if version != MIX_VERSION:
            raise InvalidAddress(f"invalid address version {version}")
        body = payload[3:]
        if len(body) == total * _UUID_SIZE:
            members = tuple(
                str(uuid.UUID(bytes=body[i : i + _UUID_SIZE]))
                for i in range(0, len(body), _UUID_SIZE)
            )
        elif len(body) == total * 2 * KEY_SIZE:
            step = 2 * KEY_SIZE
            members = tuple(
                PublicAddress(
                    spend_key=body[i : i + KEY_SIZE],
                    view_key=body[i + KEY_SIZE : i + step],
                ).to_string()
                for i in range(0, len(body), step)
            )
        else:
            raise InvalidAddress(f"invalid address members length {text}")
        return cls(members=members, threshold=threshold)

    def to_string(self) -> str:
        """Serialize to the ``MIX...`` form."""
        payload = bytes([MIX_VERSION, self.threshold, len(self.members)])
        for member in self.members:
            if self.uses_public_keys:
                pa = PublicAddress.from_string(member)
                payload += pa.spend_key + pa.view_key
            else:
                payload += uuid.UUID(member).bytes
        return MIX_PREFIX + base58_encode(payload + _checksum(MIX_PREFIX, payload))

    def __str__(self) -> str:
        return self.to_string()
