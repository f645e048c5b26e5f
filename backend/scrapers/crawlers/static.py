"""
Static HTML crawler using httpx and BeautifulSoup.

This crawler is used for sites that render their listing and product pages
on the server. It is faster and lighter than the Playwright-based crawler.
"""

import asyncio
import time
from typing import Optional, Dict
from bs4 import BeautifulSoup
import httpx
import logging

from .headers import default_headers, random_user_agent, DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)


class StaticCrawler:
    """
    Wrapper for fetching static HTML pages.

    Uses httpx for async HTTP requests and BeautifulSoup for parsing.
    Provides rate limiting, user-agent rotation, connection pooling and retries.
    """

    def __init__(
        self,
        rate_limit: float = 1.0,
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_delay: float = 5.0,
        referer: Optional[str] = None,
        rotate_user_agents: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the static crawler.

        Args:
            rate_limit: Minimum seconds between two requests
            timeout: Request timeout in seconds
            max_retries: Number of attempts per URL
            retry_delay: Base delay before a retry (doubled each attempt)
            referer: Referer header sent with every request
            rotate_user_agents: Pick a random user agent per request
            transport: Optional httpx transport (used by tests)
        """
        self.rate_limit = rate_limit
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.referer = referer
        self.rotate_user_agents = rotate_user_agents
        self.transport = transport
        self._last_request_time = 0.0
        self._client: Optional[httpx.AsyncClient] = None

    async def _wait_for_rate_limit(self):
        """Wait to respect rate limit."""
        elapsed = time.monotonic() - self._last_request_time
        if elapsed < self.rate_limit:
            await asyncio.sleep(self.rate_limit - elapsed)
        self._last_request_time = time.monotonic()

    def _request_headers(self) -> Dict[str, str]:
        user_agent = random_user_agent() if self.rotate_user_agents else DEFAULT_USER_AGENT
        return default_headers(referer=self.referer, user_agent=user_agent)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create reusable HTTP client with connection pooling."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                follow_redirects=True,
                timeout=self.timeout,
                transport=self.transport,
                limits=httpx.Limits(
                    max_keepalive_connections=5,
                    max_connections=10,
                    keepalive_expiry=30.0
                )
            )
        return self._client

    async def close(self):
        """Close the HTTP client and release resources."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def fetch(self, url: str) -> str:
        """
        Fetch a URL and return HTML content.

        Args:
            url: URL to fetch

        Returns:
            HTML content as string

        Raises:
            httpx.HTTPError: On request failure after retries
        """
        logger.debug(f"StaticCrawler fetching: {url}")
        await self._wait_for_rate_limit()

        last_error = None
        client = await self._get_client()

        for attempt in range(self.max_retries):
            try:
                response = await client.get(url, headers=self._request_headers())
                response.raise_for_status()
                return response.text

            except httpx.HTTPError as e:
                last_error = e
                logger.warning(f"Attempt {attempt + 1}/{self.max_retries} failed for {url}: {e}")
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(self.retry_delay * (2 ** attempt))

        raise last_error

    async def fetch_soup(self, url: str) -> BeautifulSoup:
        """
        Fetch a URL and return parsed BeautifulSoup.

        Args:
            url: URL to fetch

        Returns:
            BeautifulSoup object
        """
        html = await self.fetch(url)
        return BeautifulSoup(html, 'html.parser')
