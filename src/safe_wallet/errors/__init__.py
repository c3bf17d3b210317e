"""Error hierarchy rooted at :class:`SafeError`."""

from safe_wallet.errors.api_errors import (
    APIError,
    InvalidViewKey,
    ProtocolError,
    RequestTimeout,
    ServerError,
)
from safe_wallet.errors.definitions import (
    ExtraTooLarge,
    InsufficientFunds,
    IntegrityMismatch,
    InvalidAddress,
    InvalidAmount,
    InvalidAssetId,
    ViewKeyCountMismatch,
)
from safe_wallet.errors.safe_errors import SafeError

__all__ = [
    "APIError",
    "ExtraTooLarge",
    "InsufficientFunds",
    "IntegrityMismatch",
    "InvalidAddress",
    "InvalidAmount",
    "InvalidAssetId",
    "InvalidViewKey",
    "ProtocolError",
    "RequestTimeout",
    "SafeError",
    "ServerError",
    "ViewKeyCountMismatch",
]
