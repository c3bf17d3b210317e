"""Output selection: first-fit prefix over the network listing order."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from safe_wallet.config.settings import OutputOrder
from safe_wallet.engine.models import Selection
from safe_wallet.errors.definitions import InsufficientFunds

if TYPE_CHECKING:
    from safe_wallet.network.client import SafeAPIClient
    from safe_wallet.network.models import UnspentOutput

logger = logging.getLogger(__name__)


class OutputSelector:
    """Picks the shortest listing prefix whose sum covers a target.

    Outputs are accumulated exactly in the order the network lists them for
    ``order``; they are never re-sorted and a selected prefix is never
    trimmed. Selection therefore depends on the listing order: if the
    network changes how it orders a listing, selection and change change
    with it. The order is passed explicitly to the listing call and
    non-monotonic sequences are logged.
    """

    def __init__(
        self,
        api: SafeAPIClient,
        *,
        page_limit: int = 500,
        order: OutputOrder = OutputOrder.ASC,
    ) -> None:
        self._api = api
        self._page_limit = page_limit
        self._order = order

    @property
    def order(self) -> OutputOrder:
        return self._order

    async def select(
        self,
        asset: str,
        members_hash: str,
        target: int,
        *,
        threshold: int = 1,
    ) -> Selection:
        """Select outputs of *asset* covering *target*.

        Args:
            asset: Hex kernel asset hash.
            members_hash: Owner scope key.
            target: Amount to cover, in 10^-8 units.
            threshold: Threshold of the owner scope.

        Returns:
            The consumed prefix and ``change = sum(prefix) - target``.

        Raises:
            InsufficientFunds: If the whole listing does not cover *target*.
        """
        selected: list[UnspentOutput] = []
        total = 0
        offset = 0
        last_sequence: int | None = None
        while True:
            page = await self._api.list_outputs(
                members_hash,
                threshold,
                asset,
                offset=offset,
                limit=self._page_limit,
                order=self._order,
            )
            for output in page:
                self._check_order(last_sequence, output)
                last_sequence = output.sequence
                selected.append(output)
                total += output.amount
                if total >= target:
                    change = total - target
                    logger.debug(
                        "Selected %d outputs for %d, change %d", len(selected), target, change
                    )
                    return Selection(outputs=tuple(selected), change=change)
            if len(page) < self._page_limit or page[-1].sequence == offset:
                break
            offset = page[-1].sequence

        raise InsufficientFunds(available=total, requested=target, count=len(selected))

    def _check_order(self, last: int | None, output: UnspentOutput) -> None:
        if last is None:
            return
        in_order = output.sequence > last if self._order == OutputOrder.ASC else output.sequence < last
        if not in_order:
            logger.warning(
                "Outputs listed out of %s order: sequence %d after %d (output %s)",
                self._order.value,
                output.sequence,
                last,
                output.output_id,
            )
