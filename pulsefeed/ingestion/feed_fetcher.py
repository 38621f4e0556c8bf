"""
Feed Fetcher
============

Retrieves raw feed content over HTTP(S) with aiohttp. Every failure mode
(invalid URL, non-200 status, transport error, timeout) surfaces as a
FeedFetchError so callers can isolate it per source.
"""

import asyncio
import ssl
from typing import Optional

import aiohttp
import certifi

from ..config.settings import IngestionSettings
from ..utils.exceptions import ErrorCode, FeedFetchError, ValidationError
from ..utils.logging import get_logger_for_component
from ..utils.validators import normalize_feed_url


class FeedFetcher:
    """HTTP feed fetcher.

    Use as an async context manager to share one ClientSession across many
    fetches; without it, each fetch opens a short-lived session.
    """

    def __init__(self, settings: Optional[IngestionSettings] = None):
        self.settings = settings or IngestionSettings()
        self.timeout = self.settings.request_timeout
        self.logger = get_logger_for_component("feed_fetcher")
        self.ssl_context = ssl.create_default_context(cafile=certifi.where())
        self._session: Optional[aiohttp.ClientSession] = None

    def _create_session(self) -> aiohttp.ClientSession:
        connector = aiohttp.TCPConnector(
            ssl=self.ssl_context,
            limit_per_host=5,
            enable_cleanup_closed=True,
        )
        headers = {
            "User-Agent": self.settings.user_agent,
            "Accept": "application/rss+xml, application/atom+xml, application/xml, text/xml, */*",
            "Accept-Encoding": "gzip, deflate",
        }
        return aiohttp.ClientSession(
            connector=connector,
            timeout=aiohttp.ClientTimeout(total=self.timeout),
            headers=headers,
        )

    async def __aenter__(self) -> "FeedFetcher":
        if self._session is None:
            self._session = self._create_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def fetch(self, url: str) -> str:
        """Fetch raw feed content.

        Args:
            url: Feed URL

        Returns:
            Response body as text

        Raises:
            FeedFetchError: On invalid URL, HTTP error, network error or timeout
        """
        try:
            validated_url = normalize_feed_url(url)
        except ValidationError as e:
            raise FeedFetchError(
                f"Invalid feed URL: {url}",
                feed_url=url,
                error_code=ErrorCode.FEED_INVALID_URL,
            ) from e

        if self._session is not None:
            return await self._fetch_with(self._session, validated_url)

        async with self._create_session() as session:
            return await self._fetch_with(session, validated_url)

    async def _fetch_with(self, session: aiohttp.ClientSession, url: str) -> str:
        self.logger.debug(f"Fetching feed: {url}")

        try:
            async with session.get(url) as response:
                if response.status != 200:
                    raise FeedFetchError(
                        f"HTTP {response.status}: {response.reason}",
                        feed_url=url,
                        error_code=ErrorCode.FEED_HTTP_ERROR,
                        context={"status": response.status},
                    )
                content = await response.text(errors="replace")

        except asyncio.TimeoutError as e:
            raise FeedFetchError(
                f"Request timeout after {self.timeout}s",
                feed_url=url,
                error_code=ErrorCode.FEED_FETCH_TIMEOUT,
            ) from e
        except aiohttp.ClientError as e:
            raise FeedFetchError(
                f"Network error: {e}",
                feed_url=url,
                error_code=ErrorCode.FEED_NETWORK_ERROR,
            ) from e

        self.logger.debug(f"Fetched {len(content)} characters from {url}")
        return content
