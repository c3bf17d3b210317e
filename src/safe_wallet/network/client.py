"""Safe API HTTP client: outputs, ghost keys, sequencer calls.

Provides an async HTTP client for the ``/safe`` API:
- GET /safe/outputs: list unspent outputs of an owner scope
- POST /safe/keys: request ghost keys for output positions
- POST /safe/transaction/requests: verify a raw transaction
- POST /safe/transactions: submit a signed raw transaction

Transient failures (transport errors, 429, 5xx) are retried; the server is
idempotent per request id, so re-issuing the same call is safe.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from typing import TYPE_CHECKING, Any
from urllib.parse import urlencode

import httpx

from safe_wallet.config.settings import OutputOrder
from safe_wallet.errors.api_errors import APIError, ProtocolError, RequestTimeout, ServerError
from safe_wallet.errors.safe_errors import SafeError
from safe_wallet.network.models import (
    GhostKeyRequest,
    GhostKeys,
    SequencerResult,
    TransactionRequest,
    UnspentOutput,
)

if TYPE_CHECKING:
    from safe_wallet.config.settings import APIConfig
    from safe_wallet.network.auth import TokenSigner

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


class SafeAPIClient:
    """Async HTTP client for the safe API.

    Usage::

        api = SafeAPIClient(config, signer)
        await api.connect()
        try:
            outputs = await api.list_outputs(members_hash, 1, asset)
        finally:
            await api.close()
    """

    def __init__(self, config: APIConfig, signer: TokenSigner) -> None:
        """Initialize the API client.

        Args:
            config: API configuration (url, timeouts, retry policy).
            signer: Produces the bearer token for each request.
        """
        self._config = config
        self._signer = signer
        self._client: httpx.AsyncClient | None = None

    async def connect(self) -> None:
        """Create the underlying HTTP client."""
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            base_url=self._config.url.rstrip("/"),
            headers={
                "Content-Type": "application/json",
                "User-Agent": self._config.user_agent,
            },
            timeout=self._config.timeout,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def is_connected(self) -> bool:
        """Check if the HTTP client is active."""
        return self._client is not None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def list_outputs(
        self,
        members_hash: str,
        threshold: int,
        asset: str,
        *,
        state: str = "unspent",
        offset: int = 0,
        limit: int = 500,
        order: OutputOrder = OutputOrder.ASC,
    ) -> list[UnspentOutput]:
        """List outputs of an owner scope, in the requested order.

        Args:
            members_hash: Owner scope key (see ``hash_members``).
            threshold: Threshold of the owner scope.
            asset: Hex kernel asset hash.
            state: Output state filter.
            offset: Listing cursor: sequence to continue after.
            limit: Page size.
            order: Listing order by sequence.

        Returns:
            Outputs exactly in the order the network returned them.

        Raises:
            ProtocolError: If the payload is not a list of outputs.
        """
        params = {
            "members": members_hash,
            "threshold": threshold,
            "asset": asset,
            "state": state,
            "offset": offset,
            "limit": limit,
            "order": order.value,
        }
        data = await self._request("GET", "/safe/outputs?" + urlencode(params))
        if not isinstance(data, list):
            raise ProtocolError("outputs payload is not a list")
        try:
            return [UnspentOutput.from_dict(item) for item in data]
        except (KeyError, TypeError, ValueError) as exc:
            raise ProtocolError(f"malformed output: {exc}") from exc

    async def request_ghost_keys(self, requests: list[GhostKeyRequest]) -> list[GhostKeys]:
        """Request one-time keys for one or more output positions."""
        data = await self._request("POST", "/safe/keys", body=[r.to_dict() for r in requests])
        if not isinstance(data, list):
            raise ProtocolError("ghost keys payload is not a list")
        try:
            return [GhostKeys.from_dict(item) for item in data]
        except (KeyError, TypeError, ValueError) as exc:
            raise ProtocolError(f"malformed ghost keys: {exc}") from exc

    async def create_transaction_requests(
        self, requests: list[TransactionRequest]
    ) -> list[SequencerResult]:
        """Verify raw transactions with the sequencer (idempotent per request id)."""
        return await self._sequencer_call("/safe/transaction/requests", requests)

    async def create_transactions(
        self, requests: list[TransactionRequest]
    ) -> list[SequencerResult]:
        """Submit signed raw transactions to the sequencer."""
        return await self._sequencer_call("/safe/transactions", requests)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _sequencer_call(
        self, path: str, requests: list[TransactionRequest]
    ) -> list[SequencerResult]:
        data = await self._request("POST", path, body=[r.to_dict() for r in requests])
        if not isinstance(data, list):
            raise ProtocolError("sequencer payload is not a list")
        try:
            return [SequencerResult.from_dict(item) for item in data]
        except (AttributeError, TypeError) as exc:
            raise ProtocolError(f"malformed sequencer record: {exc}") from exc

    def _ensure_connected(self) -> httpx.AsyncClient:
        """Return the HTTP client, raising if not connected."""
        if self._client is None:
            msg = "Safe API client not connected. Call connect() first."
            raise SafeError(msg, status_code=500, code="not-connected")
        return self._client

    async def _request(self, method: str, path: str, *, body: Any = None) -> Any:
        """Send an authenticated request and unwrap the ``data`` envelope.

        The whole call, retries included, runs under the configured deadline.

        Raises:
            RequestTimeout: If the deadline expires.
            APIError: If transient failures persist past the retry budget.
            ServerError: If the envelope carries an error object.
            ProtocolError: If the response is not a JSON envelope.
        """
        client = self._ensure_connected()
        content = json.dumps(body, separators=(",", ":")).encode("utf-8") if body is not None else b""
        try:
            async with asyncio.timeout(self._config.deadline):
                response = await self._send_with_retries(client, method, path, content)
        except TimeoutError as exc:
            raise RequestTimeout(path, self._config.deadline) from exc
        return self._unwrap(response, path)

    async def _send_with_retries(
        self,
        client: httpx.AsyncClient,
        method: str,
        path: str,
        content: bytes,
    ) -> httpx.Response:
        attempts = self._config.max_retries + 1
        failure = ""
        for attempt in range(attempts):
            headers = {
                "Authorization": f"Bearer {self._signer.sign(method, path, content)}",
                "X-Request-Id": str(uuid.uuid4()),
            }
            try:
                response = await client.request(method, path, content=content or None, headers=headers)
            except httpx.TransportError as exc:
                failure = str(exc) or type(exc).__name__
                logger.warning(
                    "%s %s transport error: %s (attempt %d/%d)",
                    method,
                    path,
                    failure,
                    attempt + 1,
                    attempts,
                )
            else:
                if response.status_code not in _RETRYABLE_STATUS:
                    return response
                failure = f"HTTP {response.status_code}"
                logger.warning(
                    "%s %s returned %d (attempt %d/%d)",
                    method,
                    path,
                    response.status_code,
                    attempt + 1,
                    attempts,
                )
            if attempt < attempts - 1:
                await asyncio.sleep(self._config.retry_delay * (attempt + 1))

        raise APIError(f"{method} {path} failed after {attempts} attempts: {failure}")

    @staticmethod
    def _unwrap(response: httpx.Response, path: str) -> Any:
        """Return the ``data`` member of a response envelope."""
        try:
            body = response.json()
        except ValueError as exc:
            raise ProtocolError(f"invalid JSON from {path}") from exc
        if not isinstance(body, dict):
            raise ProtocolError(f"response from {path} is not an object")
        error = body.get("error")
        if isinstance(error, dict) and error.get("code"):
            try:
                server_error = ServerError.from_dict(error)
            except (TypeError, ValueError) as exc:
                raise ProtocolError(f"malformed error object from {path}: {error}") from exc
            if server_error.server_code > 0:
                raise server_error
        if response.status_code >= 400:
            raise APIError(
                f"request {path} failed ({response.status_code})",
                status_code=response.status_code,
            )
        return body.get("data")
