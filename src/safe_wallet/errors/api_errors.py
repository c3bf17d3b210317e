"""Network-facing errors: sequencer protocol faults and API failures."""

from __future__ import annotations

from safe_wallet.errors.safe_errors import SafeError


class ProtocolError(SafeError):
    """Response did not follow the expected envelope or payload shape."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"protocol error: {reason}", status_code=502, code="protocol-error")
        self.reason = reason


class InvalidViewKey(ProtocolError):
    """A view key is not valid hex or not a canonical scalar."""

    def __init__(self, index: int, detail: str) -> None:
        super().__init__(f"invalid view key at input {index}: {detail}")
        self.index = index


class ServerError(SafeError):
    """Error object returned by the network, passed through verbatim.

    Attributes:
        server_code: Network-defined numeric error code.
        description: Network-provided description.
        status: HTTP-like status reported inside the error object.
    """

    def __init__(self, server_code: int, description: str = "", *, status: int = 0) -> None:
        super().__init__(
            f"server error {server_code}: {description}",
            status_code=status or 502,
            code="server-error",
        )
        self.server_code = server_code
        self.description = description
        self.status = status

    @classmethod
    def from_dict(cls, data: dict) -> ServerError:
        """Create a ServerError from an API ``error`` object.

        Raises:
            ValueError: If ``code`` or ``status`` is not an integer.
        """
        return cls(
            int(data.get("code") or 0),
            str(data.get("description") or ""),
            status=int(data.get("status") or 0),
        )


class APIError(SafeError):
    """Transport failure or unexpected HTTP status from the API."""

    def __init__(self, message: str, *, status_code: int = 502) -> None:
        super().__init__(message, status_code=status_code, code="api-error")


class RequestTimeout(APIError):
    """The call did not complete before its deadline."""

    def __init__(self, path: str, deadline: float) -> None:
        super().__init__(f"request {path} exceeded deadline of {deadline}s", status_code=504)
        self.path = path
        self.deadline = deadline
