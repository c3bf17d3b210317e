"""Application-level errors raised while selecting, building and signing.

None of these are retried automatically; they are surfaced to the caller
unchanged.
"""

from __future__ import annotations

from safe_wallet.errors.safe_errors import SafeError

# -- Validation ------------------------------------------------------------


class InvalidAssetId(SafeError):
    """Asset id is neither a UUID nor a 32-byte kernel asset hash."""

    def __init__(self, asset_id: str) -> None:
        super().__init__(f"invalid asset id {asset_id}", status_code=400, code="invalid-asset-id")
        self.asset_id = asset_id


class InvalidAddress(SafeError):
    """Recipient members or threshold cannot form a valid address."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=400, code="invalid-address")


class InvalidAmount(SafeError):
    """Amount is negative, non-numeric or has more than 8 decimals."""

    def __init__(self, amount: object) -> None:
        super().__init__(f"invalid amount {amount!r}", status_code=400, code="invalid-amount")
        self.amount = amount


class ExtraTooLarge(SafeError):
    """Transaction memo exceeds the kernel extra limit."""

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(
            f"extra data is too long: {size} > {limit} bytes",
            status_code=400,
            code="extra-too-large",
        )
        self.size = size
        self.limit = limit


# -- Funds -----------------------------------------------------------------


class InsufficientFunds(SafeError):
    """Every listed output together does not cover the requested total.

    Attributes:
        available: Sum of all listed unspent outputs (10^-8 units).
        requested: Requested total (10^-8 units).
        count: Number of outputs that were listed.
    """

    def __init__(self, available: int, requested: int, *, count: int = 0) -> None:
        from safe_wallet.kernel.amount import format_amount

        super().__init__(
            f"insufficient outputs {format_amount(available)}@{count} "
            f"{format_amount(requested)}",
            status_code=422,
            code="insufficient-funds",
        )
        self.available = available
        self.requested = requested
        self.count = count


# -- Consistency -----------------------------------------------------------


class ViewKeyCountMismatch(SafeError):
    """Sequencer returned a view key count that differs from the input count."""

    def __init__(self, expected: int, got: int) -> None:
        super().__init__(
            f"invalid view keys count {got} {expected}",
            status_code=502,
            code="view-key-count-mismatch",
        )
        self.expected = expected
        self.got = got


class IntegrityMismatch(SafeError):
    """Raw transaction echoed by the sequencer differs from the bytes sent."""

    def __init__(self, sent: str, echoed: str) -> None:
        super().__init__(
            "sequencer echoed a different raw transaction",
            status_code=502,
            code="integrity-mismatch",
        )
        self.sent = sent
        self.echoed = echoed
