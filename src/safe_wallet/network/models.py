"""API data models: unspent outputs, ghost keys, sequencer requests.

Data classes representing request/response objects of the ``/safe`` API.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any

from safe_wallet.kernel.amount import parse_amount
from safe_wallet.kernel.keys import is_valid_point

# ---------------------------------------------------------------------------
# Sequencer state
# ---------------------------------------------------------------------------


class SequencerState(enum.StrEnum):
    """Server-authoritative lifecycle of a transaction keyed by trace id.

    Lifecycle: UNSPENT -> SIGNED -> SPENT
    """

    UNSPENT = "unspent"
    SIGNED = "signed"
    SPENT = "spent"
    UNKNOWN = "unknown"

    @classmethod
    def from_string(cls, value: str) -> SequencerState:
        """Parse a state string, returning UNKNOWN for unrecognised values."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


# ---------------------------------------------------------------------------
# Unspent outputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UnspentOutput:
    """An output owned by the caller, as listed by the network.

    Attributes:
        transaction_hash: Hex hash of the transaction that created it.
        output_index: Position of the output in that transaction.
        amount: Amount in 10^-8 units.
        asset: Hex kernel asset hash.
        output_id: Network identifier of the output.
        sequence: Monotonic listing cursor.
        state: Output state reported by the network.
    """

    transaction_hash: str
    output_index: int
    amount: int
    asset: str
    output_id: str = ""
    sequence: int = 0
    state: str = "unspent"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UnspentOutput:
        """Create an UnspentOutput from an API JSON object."""
        return cls(
            transaction_hash=data["transaction_hash"],
            output_index=int(data["output_index"]),
            amount=parse_amount(str(data["amount"])),
            asset=data.get("asset", data.get("kernel_asset_id", "")),
            output_id=data.get("output_id", ""),
            sequence=int(data.get("sequence", 0)),
            state=data.get("state", "unspent"),
        )


# ---------------------------------------------------------------------------
# Ghost keys
# ---------------------------------------------------------------------------


def _point_from_hex(value: str) -> bytes:
    point = bytes.fromhex(value)
    if not is_valid_point(point):
        msg = f"invalid curve point {value}"
        raise ValueError(msg)
    return point


@dataclass(frozen=True)
class GhostKeyRequest:
    """Request for one-time keys for a single output position."""

    receivers: tuple[str, ...]
    index: int
    hint: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"receivers": list(self.receivers), "index": self.index, "hint": self.hint}


@dataclass(frozen=True)
class GhostKeys:
    """One-time destination keys for one output.

    Attributes:
        mask: Public mask key ``r*G``.
        keys: One one-time public key per address member, in member order.
    """

    mask: bytes
    keys: tuple[bytes, ...]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GhostKeys:
        """Create GhostKeys from an API JSON object (hex keys).

        Raises:
            ValueError: If the mask or a key is not hex of a valid curve point.
        """
        return cls(
            mask=_point_from_hex(data["mask"]),
            keys=tuple(_point_from_hex(k) for k in data["keys"]),
        )


# ---------------------------------------------------------------------------
# Sequencer
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TransactionRequest:
    """Body entry of the verify and submit calls."""

    request_id: str
    raw: str

    def to_dict(self) -> dict[str, Any]:
        return {"request_id": self.request_id, "raw": self.raw}


@dataclass(frozen=True)
class SequencerResult:
    """Sequencer record of a transaction.

    Attributes:
        raw_transaction: Hex raw bytes the sequencer recorded.
        state: Lifecycle state.
        views: Hex view keys, one per input, only while unspent.
        request_id: The trace id the record is keyed by.
    """

    raw_transaction: str = ""
    state: SequencerState = SequencerState.UNKNOWN
    views: tuple[str, ...] = field(default_factory=tuple)
    request_id: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SequencerResult:
        """Create a SequencerResult from an API JSON object.

        A missing or non-string ``raw_transaction`` becomes ``""``.
        """
        raw = data.get("raw_transaction")
        return cls(
            raw_transaction=raw if isinstance(raw, str) else "",
            state=SequencerState.from_string(data.get("state", "")),
            views=tuple(data.get("views") or ()),
            request_id=data.get("request_id", ""),
        )
