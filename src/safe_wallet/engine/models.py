"""Engine models: caller identity, recipients, selection and outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Self

from safe_wallet.errors.definitions import InvalidAddress, InvalidAmount
from safe_wallet.kernel.address import MixAddress, validate_policy
from safe_wallet.kernel.amount import parse_amount

if TYPE_CHECKING:
    from safe_wallet.kernel.transaction import RawTransaction
    from safe_wallet.network.models import SequencerState, UnspentOutput


@dataclass(frozen=True)
class SafeUser:
    """Caller identity.

    Attributes:
        user_id: Account id; change is returned to ``[user_id]``, threshold 1.
        spend_key: 32-byte long-term spend secret. Never transmitted.
        session_id: Session id used by request authentication.
        session_key: Session private key used by request authentication.
    """

    user_id: str
    spend_key: bytes = field(repr=False)
    session_id: str = ""
    session_key: str = field(default="", repr=False)

    @classmethod
    def from_hex(cls, user_id: str, spend_key: str, **kwargs: str) -> Self:
        """Build from a hex spend key (only the first 64 hex chars are used)."""
        try:
            key = bytes.fromhex(spend_key[:64])
        except ValueError as exc:
            msg = "spend key is not valid hex"
            raise ValueError(msg) from exc
        if len(key) != 32:
            msg = f"spend key must be 32 bytes, got {len(key)}"
            raise ValueError(msg)
        return cls(user_id=user_id, spend_key=key, **kwargs)


# ---------------------------------------------------------------------------
# Recipients
# ---------------------------------------------------------------------------


def _positive_amount(amount: int) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmount(amount)
    return amount


@dataclass(frozen=True)
class ScriptRecipient:
    """Stealth output to a threshold policy over address members.

    Attributes:
        members: Account ids (UUID) or ``XIN`` public addresses.
        threshold: Minimum signer count required to spend.
        amount: Amount in 10^-8 units.
    """

    members: tuple[str, ...]
    threshold: int
    amount: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "members", tuple(self.members))
        validate_policy(self.members, self.threshold)
        _positive_amount(self.amount)

    @classmethod
    def from_mix_address(cls, address: str, amount: str | int | Decimal) -> Self:
        """Build a recipient from a ``MIX...`` address and a decimal amount."""
        ma = MixAddress.from_string(address)
        return cls(members=ma.members, threshold=ma.threshold, amount=parse_amount(amount))

    @property
    def mix_address(self) -> MixAddress:
        return MixAddress(members=self.members, threshold=self.threshold)


@dataclass(frozen=True)
class WithdrawalRecipient:
    """Plain withdrawal output to an external chain address."""

    destination: str
    amount: int
    tag: str = ""

    def __post_init__(self) -> None:
        if not self.destination:
            raise InvalidAddress("withdrawal destination is empty")
        _positive_amount(self.amount)


Recipient = ScriptRecipient | WithdrawalRecipient


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Selection:
    """Outputs covering a target, in listing order, and the change left."""

    outputs: tuple[UnspentOutput, ...]
    change: int

    @property
    def total(self) -> int:
        return sum(o.amount for o in self.outputs)


@dataclass(frozen=True)
class TransactionOutcome:
    """Result of one ``send_transaction`` attempt.

    Attributes:
        state: Sequencer state reported by Verify.
        transaction: The transaction, signed when ``submitted``.
        raw: Hex raw bytes of ``transaction``.
        submitted: False when Verify reported the trace id as already
            signed or spent, in which case nothing was signed or sent.
    """

    state: SequencerState
    transaction: RawTransaction
    raw: str
    submitted: bool
