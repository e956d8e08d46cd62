"""HTTP page fetcher for Sitescribe.

A thin aiohttp wrapper used by discovery, extraction, research providers and
the estimator. Every request carries a browser-like User-Agent and a short
timeout. Transport failures, timeouts and non-2xx responses raise
`FetchError`; callers decide whether to soft-fail.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from config.pipeline_loader import pipeline_config

logger = logging.getLogger(__name__)

TEXT_CONTENT_TYPES = ('text/', 'application/xml', 'application/xhtml', 'application/rss')


class FetchError(Exception):
    """Raised when a URL cannot be fetched."""

    def __init__(self, url: str, message: str, status: Optional[int] = None):
        super().__init__(f"{url}: {message}")
        self.url = url
        self.status = status


class PageFetcher:
    """Asynchronous HTTP fetcher with a shared session."""

    def __init__(self,
                 request_timeout: float = 5.0,
                 user_agent: str = None,
                 max_connections: int = 20):
        """Initialize fetcher.

        Args:
            request_timeout: Per-request timeout in seconds
            user_agent: User agent string (defaults to pipeline config)
            max_connections: Connection pool size
        """
        self.request_timeout = request_timeout
        self.user_agent = user_agent or pipeline_config.get_user_agent()
        self.max_connections = max_connections
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            connector = aiohttp.TCPConnector(limit=self.max_connections)
            timeout = aiohttp.ClientTimeout(total=self.request_timeout)
            self.session = aiohttp.ClientSession(
                connector=connector,
                timeout=timeout,
                headers={'User-Agent': self.user_agent}
            )
        return self.session

    async def close(self):
        """Close the fetcher session."""
        if self.session:
            await self.session.close()
            self.session = None

    def _timeout(self, timeout: Optional[float]) -> Optional[aiohttp.ClientTimeout]:
        return aiohttp.ClientTimeout(total=timeout) if timeout else None

    async def get_text(self, url: str, timeout: Optional[float] = None) -> str:
        """GET a URL and return its body as text."""
        session = await self._ensure_session()
        try:
            async with session.get(url, allow_redirects=True, timeout=self._timeout(timeout)) as response:
                if response.status < 200 or response.status >= 300:
                    raise FetchError(url, f"HTTP {response.status}", response.status)
                content_type = response.headers.get('content-type', '').lower()
                if content_type and not content_type.startswith(TEXT_CONTENT_TYPES):
                    raise FetchError(url, f"Non-text content type: {content_type}", response.status)
                return await response.text(errors='replace')
        except (asyncio.TimeoutError, aiohttp.ClientError) as e:
            raise FetchError(url, f"{type(e).__name__}: {e}") from e

    async def get_json(self,
                       url: str,
                       params: Optional[Dict[str, Any]] = None,
                       headers: Optional[Dict[str, str]] = None,
                       timeout: Optional[float] = None) -> Any:
        """GET a JSON API endpoint."""
        session = await self._ensure_session()
        try:
            async with session.get(url, params=params, headers=headers,
                                   timeout=self._timeout(timeout)) as response:
                if response.status < 200 or response.status >= 300:
                    raise FetchError(url, f"HTTP {response.status}", response.status)
                return await response.json(content_type=None)
        except (asyncio.TimeoutError, aiohttp.ClientError, ValueError) as e:
            raise FetchError(url, f"{type(e).__name__}: {e}") from e

    async def exists(self, url: str, timeout: Optional[float] = None) -> bool:
        """HEAD first, then GET; any 2xx on either means the URL exists."""
        session = await self._ensure_session()
        for method in ('HEAD', 'GET'):
            try:
                async with session.request(method, url, allow_redirects=True,
                                           timeout=self._timeout(timeout)) as response:
                    if 200 <= response.status < 300:
                        return True
            except (asyncio.TimeoutError, aiohttp.ClientError) as e:
                logger.debug(f"{method} {url} failed: {e}")
        return False
