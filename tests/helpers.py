"""Helpers shared by the test modules: mock API wiring and payload builders."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import httpx

from safe_wallet.config.settings import APIConfig
from safe_wallet.kernel.keys import public_key, random_scalar

if TYPE_CHECKING:
    from collections.abc import Callable

    from safe_wallet.network.client import SafeAPIClient

API_URL = "https://api.test.com"
USER_ID = "7b3f0a94-aaaa-4c3d-b1b4-2f4e1e0c9d01"
ALICE = "0b1a2c3d-1111-4e5f-8a9b-0c1d2e3f4a5b"
BOB = "9f8e7d6c-2222-4b3a-9c8d-7e6f5a4b3c2d"
SPEND_KEY = bytes(range(32))
ASSET_UUID = "c6d0c728-2624-429b-8e0d-d9d19b6592fa"
ASSET_HASH = "ab" * 32


def api_config(**overrides: Any) -> APIConfig:
    """API config pointing at the mock host, with no retry delay."""
    defaults: dict[str, Any] = {
        "url": API_URL,
        "token": "test-token",
        "timeout": 5.0,
        "deadline": 5.0,
        "max_retries": 2,
        "retry_delay": 0.0,
    }
    defaults.update(overrides)
    return APIConfig(**defaults)


def envelope(data: Any = None, error: dict[str, Any] | None = None) -> dict[str, Any]:
    """Build an API response body."""
    body: dict[str, Any] = {"data": data}
    if error is not None:
        body["error"] = error
    return body


def request_json(request: httpx.Request) -> Any:
    return json.loads(request.content)


def random_point_hex() -> str:
    return public_key(random_scalar()).hex()


def output_dict(amount: str, index: int, *, sequence: int | None = None) -> dict[str, Any]:
    """An ``/safe/outputs`` entry with a distinct transaction hash."""
    return {
        "output_id": f"out-{index}",
        "transaction_hash": f"{index:02x}" * 32,
        "output_index": index,
        "asset": ASSET_HASH,
        "amount": amount,
        "sequence": index + 1 if sequence is None else sequence,
        "state": "unspent",
    }


def ghost_keys_dict(count: int) -> dict[str, Any]:
    return {"mask": random_point_hex(), "keys": [random_point_hex() for _ in range(count)]}


def connect_mock(api: SafeAPIClient, handler: Callable[[httpx.Request], Any]) -> SafeAPIClient:
    """Install an httpx MockTransport as the client's connection."""
    api._client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=API_URL)
    return api
