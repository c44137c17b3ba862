"""
Page retrieval for the scraping stage.

The pipeline only needs final HTML. HttpxPageFetcher downloads it directly;
StaticPageFetcher serves HTML that an external renderer (e.g. a headless
browser pass) has already produced.
"""

import logging
from typing import Protocol
from urllib.parse import urlparse

import httpx

import config
from errors import FetchError

logger = logging.getLogger(__name__)

PAGE_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
IMAGE_ACCEPT = "image/avif,image/webp,image/apng,image/*,*/*;q=0.8"


def url_origin(url: str) -> str:
    """Scheme and host of a URL: https://a.example.com/x?y → https://a.example.com."""
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


def browser_headers(url: str, accept: str = PAGE_ACCEPT) -> dict[str, str]:
    """Browser-like request headers, with Referer/Origin set to the URL's own origin."""
    origin = url_origin(url)
    return {
        "User-Agent": config.USER_AGENT,
        "Accept": accept,
        "Accept-Language": "en-US,en;q=0.9",
        "Referer": origin + "/",
        "Origin": origin,
        "Cache-Control": "no-cache",
        "Pragma": "no-cache",
    }


class PageFetcher(Protocol):
    async def fetch(self, url: str) -> str:
        """Return the page HTML or raise FetchError."""
        ...


class HttpxPageFetcher:
    """Fetch page HTML over HTTP. Non-2xx, network errors and timeouts raise FetchError."""

    def __init__(self, client: httpx.AsyncClient, timeout: float = config.FETCH_TIMEOUT):
        self._client = client
        self._timeout = timeout

    async def fetch(self, url: str) -> str:
        try:
            resp = await self._client.get(
                url,
                headers=browser_headers(url),
                timeout=self._timeout,
                follow_redirects=True,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchError(url, str(e) or type(e).__name__) from e
        if not resp.is_success:
            raise FetchError(url, f"HTTP {resp.status_code}")
        logger.debug(f"Fetched {url}: {len(resp.text)} chars")
        return resp.text


class StaticPageFetcher:
    """Serve pre-rendered HTML, either one document for every URL or a URL → HTML map."""

    def __init__(self, html: str | dict[str, str]):
        self._html = html

    async def fetch(self, url: str) -> str:
        if isinstance(self._html, str):
            return self._html
        if url not in self._html:
            raise FetchError(url, "no rendered HTML supplied")
        return self._html[url]
