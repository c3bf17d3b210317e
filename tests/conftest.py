"""Shared test fixtures for py-safe test suite."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest
from helpers import SPEND_KEY, USER_ID, api_config, connect_mock

from safe_wallet.config.settings import AppConfig
from safe_wallet.engine.models import SafeUser
from safe_wallet.network.auth import StaticTokenSigner
from safe_wallet.network.client import SafeAPIClient

if TYPE_CHECKING:
    from collections.abc import Callable

    import httpx


@pytest.fixture
def app_config() -> AppConfig:
    """Provide a test AppConfig with safe defaults."""
    return AppConfig(debug=True, api=api_config())


@pytest.fixture
def user() -> SafeUser:
    return SafeUser(user_id=USER_ID, spend_key=SPEND_KEY, session_id="session-1")


@pytest.fixture
def make_api() -> Callable[..., SafeAPIClient]:
    """Factory returning a SafeAPIClient wired to a mock handler."""

    def _make(handler: Callable[[httpx.Request], Any], **overrides: Any) -> SafeAPIClient:
        api = SafeAPIClient(api_config(**overrides), StaticTokenSigner("test-token"))
        return connect_mock(api, handler)

    return _make
