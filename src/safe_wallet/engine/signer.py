"""Signer: one-time signing scalars from view keys and the spend key.

For input ``i`` the one-time private key is ``k = x_i + y (mod L)``, where
``x_i`` is the view scalar issued by Verify and ``y`` the expanded spend
key. ``k*G`` is the ghost key the output was created with, so a signature
under ``k`` proves spend authority without disclosing ``y``.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from safe_wallet.errors.api_errors import InvalidViewKey
from safe_wallet.errors.definitions import ViewKeyCountMismatch
from safe_wallet.kernel.keys import (
    derive_ghost_private_key,
    expand_spend_key,
    scalar_from_canonical,
    sign,
)
from safe_wallet.kernel.transaction import InputSignature, KernelCodec

if TYPE_CHECKING:
    from safe_wallet.kernel.transaction import Codec, RawTransaction


def decode_view_key(view: str, index: int) -> bytes:
    """Decode a hex view key into a canonical scalar.

    Raises:
        InvalidViewKey: On bad hex, wrong length or a non-canonical scalar.
    """
    try:
        return scalar_from_canonical(bytes.fromhex(view))
    except ValueError as exc:
        raise InvalidViewKey(index, str(exc)) from exc


class Signer:
    """Produces single-signer signatures, one per input in slot 0.

    Signatures are deterministic: the same payload hash, view keys and
    spend key always give byte-identical signatures.
    """

    def __init__(self, codec: Codec | None = None) -> None:
        self._codec = codec or KernelCodec()

    def sign(
        self,
        payload_hash: bytes,
        view_keys: Sequence[str],
        spend_key: bytes,
    ) -> tuple[InputSignature, ...]:
        """Sign *payload_hash* once per view key.

        Args:
            payload_hash: Hash of the unsigned transaction payload.
            view_keys: Hex view keys from Verify, one per input.
            spend_key: 32-byte long-term spend secret.

        Returns:
            One signature per input, in input order.
        """
        y = expand_spend_key(spend_key)
        signatures = []
        for i, view in enumerate(view_keys):
            k = derive_ghost_private_key(decode_view_key(view, i), y)
            signatures.append(InputSignature(signature=sign(k, payload_hash), slot=0))
        return tuple(signatures)

    def sign_transaction(
        self,
        tx: RawTransaction,
        view_keys: Sequence[str],
        spend_key: bytes,
    ) -> RawTransaction:
        """Return *tx* with one signature attached per input.

        Raises:
            ViewKeyCountMismatch: Before signing anything, if the view key
                count differs from the input count.
        """
        if len(view_keys) != len(tx.inputs):
            raise ViewKeyCountMismatch(expected=len(tx.inputs), got=len(view_keys))
        signatures = self.sign(self._codec.payload_hash(tx), view_keys, spend_key)
        return tx.with_signatures(signatures)
