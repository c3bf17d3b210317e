"""Tests for ghost key providers."""

from __future__ import annotations

import hashlib
import uuid

import httpx
import pytest
from helpers import ALICE, BOB, envelope, ghost_keys_dict, request_json

from safe_wallet.engine.ghost import (
    LocalGhostKeyProvider,
    MixedGhostKeyProvider,
    NetworkGhostKeyProvider,
    ghost_hint,
)
from safe_wallet.errors import InvalidAddress, ProtocolError
from safe_wallet.kernel.address import PublicAddress
from safe_wallet.kernel.keys import (
    derive_ghost_private_key,
    derive_view_scalar,
    public_key,
    random_scalar,
)


def _keypair() -> tuple[bytes, bytes, str]:
    view, spend = random_scalar(), random_scalar()
    return view, spend, PublicAddress.from_private(view, spend).to_string()


class TestGhostHint:
    def test_stable_per_position(self) -> None:
        assert ghost_hint("trace", 0) == ghost_hint("trace", 0)
        assert ghost_hint("trace", 0) != ghost_hint("trace", 1)
        assert ghost_hint("trace", 0) != ghost_hint("other", 0)

    def test_name_based_md5_uuid(self) -> None:
        hint = uuid.UUID(ghost_hint("trace", 2))
        assert hint.version == 3
        digest = bytearray(hashlib.md5(b"traceindex:2").digest())
        digest[6] = (digest[6] & 0x0F) | 0x30
        digest[8] = (digest[8] & 0x3F) | 0x80
        assert hint.bytes == bytes(digest)


class TestNetworkProvider:
    async def test_request_shape(self, make_api) -> None:
        bodies: list = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(request_json(request))
            return httpx.Response(200, json=envelope([ghost_keys_dict(2)]))

        provider = NetworkGhostKeyProvider(make_api(handler))
        ghost = await provider.resolve([ALICE, BOB], 2, 4, hint="h")

        assert len(ghost.keys) == 2
        assert bodies == [[{"receivers": [ALICE, BOB], "index": 4, "hint": "h"}]]

    async def test_wrong_key_count(self, make_api) -> None:
        provider = NetworkGhostKeyProvider(
            make_api(lambda request: httpx.Response(200, json=envelope([ghost_keys_dict(1)])))
        )
        with pytest.raises(ProtocolError, match="expected 2 ghost keys"):
            await provider.resolve([ALICE, BOB], 1, 0)

    async def test_wrong_set_count(self, make_api) -> None:
        provider = NetworkGhostKeyProvider(
            make_api(lambda request: httpx.Response(200, json=envelope([])))
        )
        with pytest.raises(ProtocolError, match="expected 1 ghost key set"):
            await provider.resolve([ALICE], 1, 0)

    async def test_short_keys_rejected(self, make_api) -> None:
        body = envelope([{"mask": "aa", "keys": ["bb"]}])
        provider = NetworkGhostKeyProvider(make_api(lambda request: httpx.Response(200, json=body)))
        with pytest.raises(ProtocolError, match="invalid curve point"):
            await provider.resolve([ALICE], 1, 0)

    async def test_invalid_policy_before_request(self, make_api) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(200, json=envelope([]))

        provider = NetworkGhostKeyProvider(make_api(handler))
        with pytest.raises(InvalidAddress):
            await provider.resolve([ALICE], 2, 0)
        assert calls == 0


class TestLocalProvider:
    async def test_recipient_can_recover_key(self) -> None:
        view, spend, address = _keypair()
        ghost = await LocalGhostKeyProvider().resolve([address], 1, 3)

        x = derive_view_scalar(view, ghost.mask, 3)
        assert public_key(derive_ghost_private_key(x, spend)) == ghost.keys[0]

    async def test_fresh_keys_per_call(self) -> None:
        _, _, address = _keypair()
        provider = LocalGhostKeyProvider()
        first = await provider.resolve([address], 1, 0)
        second = await provider.resolve([address], 1, 0)
        assert first.mask != second.mask
        assert first.keys != second.keys

    async def test_one_key_per_member_in_order(self) -> None:
        members = [_keypair() for _ in range(3)]
        ghost = await LocalGhostKeyProvider().resolve([m[2] for m in members], 2, 1)
        assert len(ghost.keys) == 3
        for (view, spend, _), key in zip(members, ghost.keys, strict=True):
            x = derive_view_scalar(view, ghost.mask, 1)
            assert public_key(derive_ghost_private_key(x, spend)) == key

    async def test_rejects_account_members(self) -> None:
        with pytest.raises(InvalidAddress, match="XIN"):
            await LocalGhostKeyProvider().resolve([ALICE], 1, 0)


class TestMixedProvider:
    async def test_routes_accounts_to_network(self, make_api) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(200, json=envelope([ghost_keys_dict(1)]))

        provider = MixedGhostKeyProvider(make_api(handler))
        await provider.resolve([ALICE], 1, 0)
        assert calls == 1

    async def test_routes_addresses_locally(self, make_api) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("network must not be called")

        _, _, address = _keypair()
        provider = MixedGhostKeyProvider(make_api(handler))
        ghost = await provider.resolve([address], 1, 0)
        assert len(ghost.keys) == 1

    async def test_rejects_mixed_members(self, make_api) -> None:
        _, _, address = _keypair()
        provider = MixedGhostKeyProvider(make_api(lambda request: httpx.Response(500)))
        with pytest.raises(InvalidAddress, match="mixes"):
            await provider.resolve([ALICE, address], 1, 0)
