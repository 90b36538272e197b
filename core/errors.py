from typing import Any, Optional


class RPCClientError(Exception):
    """Base class for every failure of a JSON-RPC call."""


class RPCTimeoutError(RPCClientError, TimeoutError):
    """The transport did not complete within its configured bound."""


class NetworkError(RPCClientError, ConnectionError):
    """Transport-level failure (DNS, connection refused, TLS)."""


class ProtocolError(RPCClientError, ValueError):
    """The HTTP body is not JSON, or not a JSON object."""


class RpcError(RPCClientError):
    """
    The endpoint answered with a well-formed envelope carrying an error.

    Keeps the raw ``error`` member around so callers can inspect
    ``code`` and ``data`` when the server sent them.
    """

    def __init__(self, message: str, error: Any = None):
        super().__init__(message)
        self.message = message
        self.error = error
        self.code: Optional[int] = None
        self.data: Any = None
        if isinstance(error, dict):
            self.code = error.get("code")
            self.data = error.get("data")
