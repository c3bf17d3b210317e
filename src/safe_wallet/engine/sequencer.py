"""Sequencer protocol: two-phase verify then submit, keyed by trace id.

Verify is idempotent on the server: repeating it for a trace id that was
already processed returns the stored state instead of new view keys. That
is the crash-recovery path, so callers re-run Verify rather than reuse an
old response.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from safe_wallet.errors.api_errors import ProtocolError
from safe_wallet.errors.definitions import IntegrityMismatch, ViewKeyCountMismatch
from safe_wallet.kernel.transaction import KernelCodec
from safe_wallet.network.models import SequencerResult, SequencerState, TransactionRequest

if TYPE_CHECKING:
    from safe_wallet.kernel.transaction import Codec, RawTransaction
    from safe_wallet.network.client import SafeAPIClient

logger = logging.getLogger(__name__)


def _hex_to_bytes(value: str) -> bytes | None:
    try:
        return bytes.fromhex(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class VerifyResult:
    """Outcome of Verify.

    ``views`` is only populated when ``state`` is ``unspent``; any other
    state is terminal for this trace id and nothing must be signed.
    """

    state: SequencerState
    views: tuple[str, ...]
    raw_transaction: str = ""

    @property
    def can_sign(self) -> bool:
        return self.state == SequencerState.UNSPENT


class SequencerProtocol:
    """Drives Verify and Submit against the sequencer."""

    def __init__(self, api: SafeAPIClient, codec: Codec | None = None) -> None:
        self._api = api
        self._codec = codec or KernelCodec()

    async def verify(self, trace_id: str, tx: RawTransaction) -> VerifyResult:
        """Register the unsigned transaction and obtain view keys.

        Raises:
            ViewKeyCountMismatch: If the state is ``unspent`` and the view
                key count differs from the input count.
            ProtocolError: If the response does not hold exactly one record.
            ServerError: If the network returned an error object.
        """
        raw = self._codec.marshal(tx).hex()
        result = self._single(
            await self._api.create_transaction_requests([TransactionRequest(trace_id, raw)])
        )
        if result.state != SequencerState.UNSPENT:
            logger.info("Trace %s already processed, state %s", trace_id, result.state.value)
            return VerifyResult(state=result.state, views=(), raw_transaction=result.raw_transaction)
        if len(result.views) != len(tx.inputs):
            raise ViewKeyCountMismatch(expected=len(tx.inputs), got=len(result.views))
        return VerifyResult(
            state=result.state,
            views=result.views,
            raw_transaction=result.raw_transaction,
        )

    async def submit(self, trace_id: str, tx: RawTransaction) -> SequencerResult:
        """Submit the signed transaction and check the echoed bytes.

        Raises:
            IntegrityMismatch: If the recorded raw bytes differ from the
                bytes sent, whatever state the server reports.
            ProtocolError: If the response does not hold exactly one record.
            ServerError: If the network returned an error object.
        """
        raw_bytes = self._codec.marshal(tx)
        raw = raw_bytes.hex()
        result = self._single(
            await self._api.create_transactions([TransactionRequest(trace_id, raw)])
        )
        if _hex_to_bytes(result.raw_transaction) != raw_bytes:
            logger.error("Trace %s: sequencer recorded different raw bytes", trace_id)
            raise IntegrityMismatch(sent=raw, echoed=result.raw_transaction)
        logger.info("Trace %s submitted, state %s", trace_id, result.state.value)
        return result

    @staticmethod
    def _single(results: list[SequencerResult]) -> SequencerResult:
        if len(results) != 1:
            raise ProtocolError(f"invalid response size {len(results)}")
        return results[0]
