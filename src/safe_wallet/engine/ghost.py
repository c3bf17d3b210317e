"""Ghost key providers: one-time destination keys per output position.

- ``NetworkGhostKeyProvider`` asks the network (account members)
- ``LocalGhostKeyProvider`` derives keys locally (``XIN`` members)
- ``MixedGhostKeyProvider`` dispatches on the member kind

Every call yields fresh keys for exactly one position; nothing is cached.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol

from safe_wallet.errors.api_errors import ProtocolError
from safe_wallet.errors.definitions import InvalidAddress
from safe_wallet.kernel.address import MixAddress, PublicAddress
from safe_wallet.kernel.keys import derive_ghost_public_key, public_key, random_scalar
from safe_wallet.network.models import GhostKeyRequest, GhostKeys
from safe_wallet.utils.crypto import unique_object_id

if TYPE_CHECKING:
    from safe_wallet.network.client import SafeAPIClient


class GhostKeyProvider(Protocol):
    """Resolves one-time keys for a (members, threshold) policy at a position."""

    async def resolve(
        self,
        members: Sequence[str],
        threshold: int,
        index: int,
        *,
        hint: str = "",
    ) -> GhostKeys: ...


def ghost_hint(trace_id: str, index: int) -> str:
    """Stable request hint for the keys of output *index* of a trace."""
    return unique_object_id(trace_id, f"index:{index}")


class NetworkGhostKeyProvider:
    """Requests ghost keys for account members from ``POST /safe/keys``."""

    def __init__(self, api: SafeAPIClient) -> None:
        self._api = api

    async def resolve(
        self,
        members: Sequence[str],
        threshold: int,
        index: int,
        *,
        hint: str = "",
    ) -> GhostKeys:
        """Request keys for one output position.

        Raises:
            InvalidAddress: If the policy is invalid.
            ProtocolError: If the network does not return one key set with
                one key per member.
        """
        address = MixAddress(members=tuple(members), threshold=threshold)
        request = GhostKeyRequest(receivers=address.members, index=index, hint=hint)
        results = await self._api.request_ghost_keys([request])
        if len(results) != 1:
            raise ProtocolError(f"expected 1 ghost key set, got {len(results)}")
        ghost = results[0]
        if len(ghost.keys) != len(members):
            raise ProtocolError(f"expected {len(members)} ghost keys, got {len(ghost.keys)}")
        return ghost


class LocalGhostKeyProvider:
    """Derives ghost keys locally for ``XIN`` public address members."""

    async def resolve(
        self,
        members: Sequence[str],
        threshold: int,
        index: int,
        *,
        hint: str = "",
    ) -> GhostKeys:
        """Derive ``mask = r*G`` and one key per member with a fresh ``r``.

        Raises:
            InvalidAddress: If the policy is invalid or a member is not a
                public address.
        """
        address = MixAddress(members=tuple(members), threshold=threshold)
        if not address.uses_public_keys:
            raise InvalidAddress("local ghost keys need XIN address members")
        r = random_scalar()
        keys = []
        for member in address.members:
            pa = PublicAddress.from_string(member)
            keys.append(derive_ghost_public_key(r, pa.view_key, pa.spend_key, index))
        return GhostKeys(mask=public_key(r), keys=tuple(keys))


class MixedGhostKeyProvider:
    """Routes account members to the network and ``XIN`` members to local derivation."""

    def __init__(self, api: SafeAPIClient) -> None:
        self._network = NetworkGhostKeyProvider(api)
        self._local = LocalGhostKeyProvider()

    async def resolve(
        self,
        members: Sequence[str],
        threshold: int,
        index: int,
        *,
        hint: str = "",
    ) -> GhostKeys:
        address = MixAddress(members=tuple(members), threshold=threshold)
        provider = self._local if address.uses_public_keys else self._network
        return await provider.resolve(address.members, threshold, index, hint=hint)
