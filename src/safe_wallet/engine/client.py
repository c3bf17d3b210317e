"""SafeWalletEngine: owns the API client and runs the send pipeline."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Self

from safe_wallet.engine.builder import TransactionBuilder, encode_memo
from safe_wallet.engine.ghost import MixedGhostKeyProvider
from safe_wallet.engine.models import TransactionOutcome
from safe_wallet.engine.outputs import OutputSelector
from safe_wallet.engine.sequencer import SequencerProtocol
from safe_wallet.engine.signer import Signer
from safe_wallet.kernel.address import hash_members
from safe_wallet.kernel.asset import normalize_asset_id
from safe_wallet.kernel.transaction import KernelCodec
from safe_wallet.network.auth import StaticTokenSigner
from safe_wallet.network.client import SafeAPIClient

if TYPE_CHECKING:
    from types import TracebackType

    from safe_wallet.config.settings import AppConfig
    from safe_wallet.engine.ghost import GhostKeyProvider
    from safe_wallet.engine.models import Recipient, SafeUser
    from safe_wallet.kernel.transaction import Codec
    from safe_wallet.network.auth import TokenSigner

logger = logging.getLogger(__name__)

# Error messages
_ERR_NOT_INITIALIZED = "Engine not initialized. Call initialize() first."


class SafeWalletEngine:
    """Central engine wiring selection, building, sequencing and signing.

    Usage::

        async with SafeWalletEngine(config, user, signer=auth) as engine:
            outcome = await engine.send_transaction(asset_id, recipients, trace_id)
    """

    def __init__(
        self,
        config: AppConfig,
        user: SafeUser,
        *,
        signer: TokenSigner | None = None,
        codec: Codec | None = None,
        ghost: GhostKeyProvider | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            config: Application configuration.
            user: Caller identity holding the spend key.
            signer: Request authentication; defaults to the configured
                static API token.
            codec: Transaction codec; defaults to :class:`KernelCodec`.
            ghost: Ghost key provider; defaults to network/local dispatch.

        Raises:
            ValueError: If no signer is given and no API token is configured.
        """
        self._config = config
        self._user = user
        self._codec = codec or KernelCodec()
        self._api = SafeAPIClient(config.api, signer or StaticTokenSigner(config.api.token))
        self._selector = OutputSelector(
            self._api,
            page_limit=config.outputs.page_limit,
            order=config.outputs.order,
        )
        self._builder = TransactionBuilder(ghost or MixedGhostKeyProvider(self._api), user.user_id)
        self._sequencer = SequencerProtocol(self._api, self._codec)
        self._signer = Signer(self._codec)
        self._initialized = False

    async def initialize(self) -> None:
        """Open the API client.

        Raises:
            RuntimeError: If already initialized.
        """
        if self._initialized:
            msg = "Engine already initialized"
            raise RuntimeError(msg)
        await self._api.connect()
        self._initialized = True

    async def close(self) -> None:
        """Close the API client."""
        await self._api.close()
        self._initialized = False

    async def __aenter__(self) -> Self:
        await self.initialize()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def api(self) -> SafeAPIClient:
        return self._api

    @property
    def selector(self) -> OutputSelector:
        return self._selector

    @property
    def builder(self) -> TransactionBuilder:
        return self._builder

    @property
    def sequencer(self) -> SequencerProtocol:
        return self._sequencer

    @property
    def signer(self) -> Signer:
        return self._signer

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def send_transaction(
        self,
        asset_id: str,
        recipients: Sequence[Recipient],
        trace_id: str,
        memo: str | bytes = "",
    ) -> TransactionOutcome:
        """Select, build, verify, sign and submit one transaction.

        Re-running with the same *trace_id* is safe: if the sequencer
        already holds the trace as signed or spent, the outcome reports
        that state with ``submitted=False`` and nothing is signed or sent.

        Raises:
            InvalidAssetId, InvalidAddress, ExtraTooLarge,
            InsufficientFunds, ViewKeyCountMismatch, IntegrityMismatch,
            ProtocolError, ServerError: Surfaced unchanged.
        """
        if not self._initialized:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        if not recipients:
            msg = "at least one recipient is required"
            raise ValueError(msg)

        asset = normalize_asset_id(asset_id)
        encode_memo(memo)

        target = sum(r.amount for r in recipients)
        selection = await self._selector.select(asset, hash_members([self._user.user_id]), target)
        logger.info(
            "Trace %s: %d inputs selected for %d, change %d",
            trace_id,
            len(selection.outputs),
            target,
            selection.change,
        )

        tx = await self._builder.build(
            asset,
            selection.outputs,
            recipients,
            memo,
            change=selection.change,
            trace_id=trace_id,
        )

        verified = await self._sequencer.verify(trace_id, tx)
        if not verified.can_sign:
            return TransactionOutcome(
                state=verified.state,
                transaction=tx,
                raw=self._codec.marshal(tx).hex(),
                submitted=False,
            )

        signed = self._signer.sign_transaction(tx, verified.views, self._user.spend_key)
        result = await self._sequencer.submit(trace_id, signed)
        return TransactionOutcome(
            state=result.state,
            transaction=signed,
            raw=result.raw_transaction,
            submitted=True,
        )
