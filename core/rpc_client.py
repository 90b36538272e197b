from typing import Any, Callable, Dict, List, Optional, Union
from urllib.parse import urlsplit, SplitResult
import base64
import json
import time

from config.config import RPC_VERBOSE
from core.errors import ProtocolError, RpcError
from data.schemas.rpc import RPCRequest, RequestOptions
from infra.http_client import TimeoutFetcher

DEFAULT_PORTS = {"http": 80, "https": 443}


def timestamp_id() -> str:
    """Current epoch time in milliseconds, as a string."""
    return str(int(time.time() * 1000))


def _origin(parts: SplitResult) -> str:
    host = parts.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    port = parts.port
    if port is not None and port != DEFAULT_PORTS.get(parts.scheme):
        host = f"{host}:{port}"
    return f"{parts.scheme}://{host}"


class JsonRpcClient:
    """
    Sends single JSON-RPC 2.0 calls over HTTP(S).

    Basic-auth credentials embedded in the URL are moved into an
    Authorization header before anything goes on the wire.
    """

    def __init__(
        self,
        fetcher: Optional[TimeoutFetcher] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        """
        Args:
            fetcher: Transport with an async ``fetch(url, **config)``; a
                TimeoutFetcher built from config is used (and owned) if None
            id_factory: Produces the envelope id (epoch millis by default)
        """
        self._owns_fetcher = fetcher is None
        self.fetcher = fetcher if fetcher is not None else TimeoutFetcher()
        self.id_factory = id_factory or timestamp_id
        self.verbose = RPC_VERBOSE

    def prepare_target(self, rpc_url: str):
        """
        Split basic-auth out of the URL.

        Returns:
            Tuple of (fetch_url, headers). fetch_url is rpc_url itself unless
            it carried userinfo. Only a complete username:password pair
            becomes an Authorization header; partial userinfo is dropped.
        """
        parts = urlsplit(rpc_url)
        if not parts.scheme or not parts.netloc:
            raise ValueError(f"Invalid RPC URL: {rpc_url}")

        fetch_url = rpc_url
        headers = {"Content-Type": "application/json"}

        # aiohttp turns any userinfo left in the URL into its own auth header
        if "@" in parts.netloc:
            search = f"?{parts.query}" if parts.query else ""
            fetch_url = f"{_origin(parts)}{parts.path or '/'}{search}"

        username, password = parts.username, parts.password
        if username and password:
            token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
            headers["Authorization"] = f"Basic {token}"

        return fetch_url, headers

    async def request(
        self,
        rpc_url: str,
        rpc_method: str,
        rpc_params: Optional[List[Any]] = None,
        options: Union[RequestOptions, Dict[str, Any], None] = None,
    ) -> Any:
        """
        Call ``rpc_method`` on the endpoint and return its result.

        Raises:
            RPCTimeoutError: If the transport exceeds its bound
            NetworkError: On transport failures of the main call
            ProtocolError: If the body is not a JSON object
            RpcError: If the envelope carries an error
            ValueError: On an invalid URL or empty method
        """
        options = self._coerce_options(options)
        envelope = RPCRequest(
            id=self.id_factory(),
            method=rpc_method,
            params=[] if rpc_params is None else rpc_params,
        )
        fetch_url, headers = self.prepare_target(rpc_url)

        if options.send_credentials:
            await self._prime_credentials(fetch_url)

        http_response = await self.fetcher.fetch(
            fetch_url,
            method="POST",
            data=json.dumps(envelope.model_dump()),
            headers=headers,
            cache="default",
            credentials="include" if options.send_credentials else "same-origin",
        )
        json_rpc_response = http_response.json()

        if not isinstance(json_rpc_response, dict):
            raise ProtocolError(f"RPC endpoint {rpc_url} returned non-object response.")

        error = json_rpc_response.get("error")
        result = json_rpc_response.get("result")

        if error:
            message = error.get("message") if isinstance(error, dict) else None
            raise RpcError(str(message or error), error=error)
        return result

    async def _prime_credentials(self, fetch_url: str):
        # Lets the server refresh cookies; the outcome never matters
        try:
            await self.fetcher.fetch(fetch_url, credentials="include", mode="no-cors")
        except Exception as e:
            if self.verbose:
                print(f"[JsonRpcClient] Credential pre-flight to {fetch_url} failed: {e}")

    @staticmethod
    def _coerce_options(options) -> RequestOptions:
        if options is None:
            return RequestOptions()
        if isinstance(options, RequestOptions):
            return options
        return RequestOptions.model_validate(options)

    async def close(self):
        if self._owns_fetcher:
            await self.fetcher.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


async def json_rpc_request(
    rpc_url: str,
    rpc_method: str,
    rpc_params: Optional[List[Any]] = None,
    options: Union[RequestOptions, Dict[str, Any], None] = None,
    *,
    fetcher: Optional[TimeoutFetcher] = None,
) -> Any:
    """One-shot call through a short-lived client."""
    async with JsonRpcClient(fetcher=fetcher) as client:
        return await client.request(rpc_url, rpc_method, rpc_params, options)
