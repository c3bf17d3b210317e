"""Safe API: outputs listing, ghost keys and sequencer calls."""

from safe_wallet.network.auth import StaticTokenSigner, TokenSigner
from safe_wallet.network.client import SafeAPIClient
from safe_wallet.network.models import (
    GhostKeyRequest,
    GhostKeys,
    SequencerResult,
    SequencerState,
    TransactionRequest,
    UnspentOutput,
)

__all__ = [
    "GhostKeyRequest",
    "GhostKeys",
    "SafeAPIClient",
    "SequencerResult",
    "SequencerState",
    "StaticTokenSigner",
    "TokenSigner",
    "TransactionRequest",
    "UnspentOutput",
]
