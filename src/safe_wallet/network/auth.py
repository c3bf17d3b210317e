"""Request authentication seam.

Token signing is provided by the caller; the client only asks for a token
per request.
"""

from __future__ import annotations

from typing import Protocol


class TokenSigner(Protocol):
    """Produces the bearer token authenticating one request."""

    def sign(self, method: str, path: str, body: bytes) -> str: ...


class StaticTokenSigner:
    """Signer returning a fixed, pre-issued token for every request."""

    def __init__(self, token: str) -> None:
        if not token:
            msg = "StaticTokenSigner requires a non-empty token"
            raise ValueError(msg)
        self._token = token

    def sign(self, method: str, path: str, body: bytes) -> str:
        return self._token
