"""Transaction builder: inputs, recipients and memo into a RawTransaction."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, assert_never

from safe_wallet.engine.ghost import ghost_hint
from safe_wallet.engine.models import ScriptRecipient, WithdrawalRecipient
from safe_wallet.errors.api_errors import ProtocolError
from safe_wallet.errors.definitions import ExtraTooLarge
from safe_wallet.kernel.keys import KEY_SIZE
from safe_wallet.kernel.script import OutputType, threshold_script
from safe_wallet.kernel.transaction import (
    EXTRA_SIZE_LIMIT,
    InputRef,
    Output,
    RawTransaction,
    WithdrawalData,
)

if TYPE_CHECKING:
    from safe_wallet.engine.ghost import GhostKeyProvider
    from safe_wallet.engine.models import Recipient
    from safe_wallet.network.models import GhostKeys, UnspentOutput

logger = logging.getLogger(__name__)


def encode_memo(memo: str | bytes) -> bytes:
    """Encode a memo as transaction extra.

    Raises:
        ExtraTooLarge: If the encoded memo exceeds 512 bytes.
    """
    extra = memo.encode("utf-8") if isinstance(memo, str) else bytes(memo)
    if len(extra) > EXTRA_SIZE_LIMIT:
        raise ExtraTooLarge(len(extra), EXTRA_SIZE_LIMIT)
    return extra


def _input_ref(output: UnspentOutput) -> InputRef:
    try:
        tx_hash = bytes.fromhex(output.transaction_hash)
    except ValueError as exc:
        raise ProtocolError(f"invalid transaction hash {output.transaction_hash}") from exc
    if len(tx_hash) != KEY_SIZE:
        raise ProtocolError(f"invalid transaction hash {output.transaction_hash}")
    return InputRef(hash=tx_hash, index=output.output_index)


class TransactionBuilder:
    """Assembles unsigned transactions.

    Inputs keep the selection order and outputs keep the recipient order.
    Script recipients get ghost key positions ``0..N-1`` in recipient
    order; change, if any, is the last script output and is owned by
    ``owner_id`` alone with threshold 1.
    """

    def __init__(self, ghost: GhostKeyProvider, owner_id: str) -> None:
        self._ghost = ghost
        self._owner_id = owner_id

    async def build(
        self,
        asset: str,
        inputs: Sequence[UnspentOutput],
        recipients: Sequence[Recipient],
        memo: str | bytes = "",
        *,
        change: int = 0,
        trace_id: str = "",
    ) -> RawTransaction:
        """Build the unsigned transaction.

        Args:
            asset: Hex kernel asset hash.
            inputs: Selected outputs, in selection order.
            recipients: Recipients, in output order.
            memo: Transaction extra, at most 512 bytes once encoded.
            change: Change returned to the owner, 10^-8 units.
            trace_id: Used to derive stable ghost key request hints.

        Raises:
            ExtraTooLarge: Before any network call, if the memo is too long.
            InvalidAddress: If a script recipient cannot be resolved.
        """
        extra = encode_memo(memo)
        recipients = list(recipients)
        if change > 0:
            recipients.append(ScriptRecipient(members=(self._owner_id,), threshold=1, amount=change))

        ghosts = iter(await self._resolve_ghost_keys(recipients, trace_id))

        outputs: list[Output] = []
        for recipient in recipients:
            match recipient:
                case WithdrawalRecipient(destination=destination, tag=tag, amount=amount):
                    outputs.append(
                        Output(
                            type=OutputType.WITHDRAWAL_SUBMIT,
                            amount=amount,
                            withdrawal=WithdrawalData(address=destination, tag=tag),
                        )
                    )
                case ScriptRecipient(threshold=threshold, amount=amount):
                    ghost = next(ghosts)
                    outputs.append(
                        Output(
                            type=OutputType.SCRIPT,
                            amount=amount,
                            keys=ghost.keys,
                            mask=ghost.mask,
                            script=threshold_script(threshold),
                        )
                    )
                case _:
                    assert_never(recipient)

        tx = RawTransaction(
            asset=bytes.fromhex(asset),
            inputs=tuple(_input_ref(o) for o in inputs),
            outputs=tuple(outputs),
            extra=extra,
        )
        logger.debug("Built transaction with %d inputs, %d outputs", len(tx.inputs), len(tx.outputs))
        return tx

    async def _resolve_ghost_keys(
        self, recipients: list[Recipient], trace_id: str
    ) -> list[GhostKeys]:
        """Resolve every script recipient concurrently, one position each.

        If any request fails, the others are cancelled before the error
        propagates.
        """
        scripts = [r for r in recipients if isinstance(r, ScriptRecipient)]
        tasks = [
            asyncio.ensure_future(
                self._ghost.resolve(r.members, r.threshold, index, hint=ghost_hint(trace_id, index))
            )
            for index, r in enumerate(scripts)
        ]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
