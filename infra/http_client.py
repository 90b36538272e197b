from dataclasses import dataclass, field
from typing import Dict, Any, Optional
import asyncio
import json
import time

import aiohttp
from yarl import URL

from config.config import RPC_TIMEOUT_SECONDS, RPC_USER_AGENT, RPC_VERBOSE
from core.errors import NetworkError, ProtocolError, RPCTimeoutError

CREDENTIALS_MODES = ("omit", "same-origin", "include")
REQUEST_MODES = ("cors", "no-cors", "same-origin")
CACHE_MODES = ("default", "no-store", "reload", "no-cache")


@dataclass
class HttpResponse:
    status: int
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    opaque: bool = False

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> Any:
        if self.opaque:
            raise ProtocolError(f"Response from {self.url} is opaque")
        try:
            return json.loads(self.body.decode("utf-8-sig"))
        except (UnicodeDecodeError, ValueError) as e:
            raise ProtocolError(f"Invalid JSON response from {self.url}: {e}") from e


class TimeoutFetcher:
    """
    Performs HTTP requests bounded by a total timeout.

    Owns one aiohttp session plus a private cookie jar. Cookies only flow
    (sent and stored) for requests made with ``credentials="include"``.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
        verbose: Optional[bool] = None,
    ):
        """
        Args:
            timeout: Bound for a whole exchange in seconds (config default if None)
            user_agent: User-Agent header sent with every request
            verbose: Print diagnostics (config default if None)
        """
        self.timeout = RPC_TIMEOUT_SECONDS if timeout is None else timeout
        self.user_agent = user_agent or RPC_USER_AGENT
        self.verbose = RPC_VERBOSE if verbose is None else verbose
        self.session: Optional[aiohttp.ClientSession] = None
        self.cookie_jar: Optional[aiohttp.CookieJar] = None

    def _ensure_session(self) -> aiohttp.ClientSession:
        # aiohttp wants a running loop for both of these
        if self.session is None or self.session.closed:
            self.cookie_jar = aiohttp.CookieJar(unsafe=True)
            self.session = aiohttp.ClientSession(
                cookie_jar=aiohttp.DummyCookieJar(),
                headers={"User-Agent": self.user_agent},
            )
        return self.session

    async def fetch(
        self,
        url: str,
        *,
        method: str = "GET",
        data: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        credentials: str = "same-origin",
        mode: str = "cors",
        cache: str = "default",
    ) -> HttpResponse:
        """
        Send one HTTP request and read its response.

        HTTP error statuses are returned, not raised: JSON-RPC servers
        answer failures with an envelope in a 4xx/5xx body.

        Raises:
            RPCTimeoutError: If the exchange exceeds the timeout
            NetworkError: On DNS, connection or TLS failures
            ValueError: On unknown credentials/mode/cache values
        """
        if credentials not in CREDENTIALS_MODES:
            raise ValueError(f"Unsupported credentials mode: {credentials}")
        if mode not in REQUEST_MODES:
            raise ValueError(f"Unsupported request mode: {mode}")
        if cache not in CACHE_MODES:
            raise ValueError(f"Unsupported cache mode: {cache}")

        session = self._ensure_session()
        request_headers = dict(headers or {})
        if cache != "default":
            request_headers["Cache-Control"] = "no-cache"

        cookies = None
        if credentials == "include":
            cookies = {
                name: morsel.value
                for name, morsel in self.cookie_jar.filter_cookies(URL(url)).items()
            }

        start_time = time.time()

        try:
            async with session.request(
                method,
                url,
                data=data,
                headers=request_headers,
                cookies=cookies or None,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                if credentials == "include":
                    self.cookie_jar.update_cookies(response.cookies, response.url)

                opaque = mode == "no-cors"
                body = b"" if opaque else await response.read()

                return HttpResponse(
                    status=response.status,
                    url=str(response.url),
                    headers=dict(response.headers),
                    body=body,
                    opaque=opaque,
                )

        # aiohttp's ServerTimeoutError is also a ClientError, so this goes first
        except asyncio.TimeoutError as e:
            latency_ms = (time.time() - start_time) * 1000
            self._log(f"Request to {url} timed out after {latency_ms:.0f}ms")
            raise RPCTimeoutError(
                f"Request to {url} timed out after {latency_ms:.0f}ms"
            ) from e

        except aiohttp.ClientError as e:
            self._log(f"Failed to connect to {url}: {e}")
            raise NetworkError(f"Failed to connect to {url}: {str(e)}") from e

    def _log(self, message: str):
        if self.verbose:
            print(f"[TimeoutFetcher] {message}")

    async def close(self):
        """
        Close the session and release connections.
        """
        if self.session is not None and not self.session.closed:
            await self.session.close()
        self.session = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
