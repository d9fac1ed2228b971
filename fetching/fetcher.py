"""
SCOUT — Bounded HTTP Fetcher
Single GET with a hard deadline, rotated client identity and real
cancellation. No retries here: callers that know the semantic cost of a retry
wrap calls in a RetryPolicy.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

import aiohttp

from stealth.fingerprint import FingerprintManager
from stealth.proxy import ProxyManager
from .errors import FetchTimeout, NetworkError

logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    """What a completed GET produced."""
    status: int
    url: str                      # final URL after redirects
    text: str = ""
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class Fetcher:
    """
    Thin wrapper over one shared aiohttp.ClientSession.

    Every call races the request against `timeout` with asyncio.wait_for. On
    expiry the request task is cancelled, which unwinds the `async with
    session.get(...)` block and releases the connection back to the pool.
    """

    def __init__(
        self,
        fingerprints: Optional[FingerprintManager] = None,
        proxies: Optional[ProxyManager] = None,
        max_connections: int = 10,
    ):
        self.fingerprints = fingerprints or FingerprintManager()
        self.proxies = proxies
        self.max_connections = max_connections
        self._session: Optional[aiohttp.ClientSession] = None
        self._requests = 0
        self._timeouts = 0
        self._errors = 0

    async def __aenter__(self) -> "Fetcher":
        self._ensure_session()
        return self

    async def __aexit__(self, *exc):
        await self.close()

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(limit=self.max_connections)
            self._session = aiohttp.ClientSession(connector=connector)
        return self._session

    async def close(self):
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def fetch(
        self,
        url: str,
        timeout: float,
        body_timeout: Optional[float] = None,
        allow_redirects: bool = True,
    ) -> FetchResult:
        """
        GET `url`, returning status, headers, decoded body and final URL.

        Raises:
            FetchTimeout: the request (or the body read) exceeded its budget.
            NetworkError: DNS, connection, TLS or protocol failure.
        """
        self._requests += 1
        try:
            return await asyncio.wait_for(
                self._do_fetch(url, body_timeout, allow_redirects),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            self._timeouts += 1
            raise FetchTimeout(url, timeout)

    async def _do_fetch(self, url: str, body_timeout: Optional[float], allow_redirects: bool) -> FetchResult:
        session = self._ensure_session()
        headers = self.fingerprints.headers()
        proxy = self.proxies.get_proxy() if self.proxies else None

        try:
            async with session.get(
                url,
                headers=headers,
                allow_redirects=allow_redirects,
                proxy=proxy,
            ) as resp:
                if body_timeout is not None:
                    try:
                        text = await asyncio.wait_for(resp.text(errors="replace"), timeout=body_timeout)
                    except asyncio.TimeoutError:
                        self._timeouts += 1
                        raise FetchTimeout(url, body_timeout, stage="body read")
                else:
                    text = await resp.text(errors="replace")
                return FetchResult(
                    status=resp.status,
                    url=str(resp.url),
                    text=text,
                    headers=dict(resp.headers),
                )
        except (aiohttp.ClientError, OSError, ValueError) as e:
            self._errors += 1
            logger.debug(f"  Fetch failed for {url}: {e}")
            raise NetworkError(f"{type(e).__name__}: {e}") from e

    @property
    def stats(self) -> dict:
        return {
            "requests": self._requests,
            "timeouts": self._timeouts,
            "errors": self._errors,
            **self.fingerprints.stats,
        }
