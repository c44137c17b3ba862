"""
Existence validation for candidate image URLs.

Each candidate is fetched with a GET and classified as an image when the
server says so (Content-Type image/*) or, failing that, when the first body
bytes carry a known image file signature. Candidates are checked in
fixed-size batches: requests inside a batch run concurrently, batches run
one after another, and every batch runs even once images have been found.

A failing candidate (network error, timeout, non-image response) is simply
left out. Nothing raised while checking one URL escapes the validator.
"""

import asyncio
import logging
from collections.abc import Iterator, Sequence
from typing import Protocol, TypeVar

import httpx

import config
from errors import ProbeError
from fetcher import IMAGE_ACCEPT, browser_headers
from models import ProbeResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Magic bytes of the formats a product image is served in
IMAGE_SIGNATURES = (
    b"\xff\xd8\xff",  # JPEG
    b"\x89PNG",  # PNG
    b"GIF8",  # GIF87a / GIF89a
)

# Failures that mean "not a valid image" for a single URL
CHECK_ERRORS = (httpx.HTTPError, httpx.InvalidURL, ProbeError, asyncio.TimeoutError, OSError, ValueError)


class HttpProbe(Protocol):
    async def probe(self, url: str) -> ProbeResult:
        """Request a URL and report status, content type and the first body bytes."""
        ...


class HttpxProbe:
    """HttpProbe over httpx: streamed GET that stops reading after the prefix.

    Pass a shared client, or use as an async context manager to own one.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = config.PROBE_TIMEOUT,
        max_redirects: int = config.MAX_REDIRECTS,
        prefix_bytes: int = config.PREFIX_BYTES,
    ):
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout
        self._max_redirects = max_redirects
        self._prefix_bytes = prefix_bytes

    async def __aenter__(self) -> "HttpxProbe":
        if self._client is None:
            self._client = httpx.AsyncClient(max_redirects=self._max_redirects)
        return self

    async def __aexit__(self, *exc_info) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def probe(self, url: str) -> ProbeResult:
        if self._client is None:
            raise ProbeError("HttpxProbe used outside its context and without a client")

        async with self._client.stream(
            "GET",
            url,
            headers=browser_headers(url, accept=IMAGE_ACCEPT),
            timeout=self._timeout,
            follow_redirects=True,
        ) as resp:
            prefix = b""
            if resp.status_code < 400:
                async for chunk in resp.aiter_bytes():
                    prefix += chunk
                    if len(prefix) >= self._prefix_bytes:
                        break
            return ProbeResult(
                status_code=resp.status_code,
                content_type=resp.headers.get("content-type", ""),
                body_prefix=prefix[: self._prefix_bytes],
            )


def has_image_signature(prefix: bytes) -> bool:
    """True when the body starts with a JPEG, PNG, GIF or WEBP signature."""
    if prefix.startswith(IMAGE_SIGNATURES):
        return True
    return prefix[:4] == b"RIFF" and prefix[8:12] == b"WEBP"


def is_image_response(result: ProbeResult) -> bool:
    """Status below 400 and either an image/* Content-Type or image magic bytes."""
    if result.status_code >= 400:
        return False
    content_type = result.content_type.split(";")[0].strip().lower()
    if content_type.startswith("image/"):
        return True
    return has_image_signature(result.body_prefix)


def batched(items: Sequence[T], size: int) -> Iterator[list[T]]:
    """Consecutive fixed-size chunks; the last one may be shorter."""
    if size < 1:
        raise ValueError(f"batch size must be positive, got {size}")
    for start in range(0, len(items), size):
        yield list(items[start : start + size])


class ExistenceValidator:
    def __init__(
        self,
        probe: HttpProbe,
        batch_size: int = config.VALIDATION_BATCH_SIZE,
        timeout: float | None = config.PROBE_TIMEOUT,
    ):
        if batch_size < 1:
            raise ValueError(f"batch size must be positive, got {batch_size}")
        self.probe = probe
        self.batch_size = batch_size
        self.timeout = timeout
        self.last_batch_sizes: list[int] = []

    async def check(self, url: str) -> bool:
        """Probe one URL. Every failure counts as "not an image"."""
        try:
            if self.timeout is None:
                result = await self.probe.probe(url)
            else:
                result = await asyncio.wait_for(self.probe.probe(url), timeout=self.timeout)
        except CHECK_ERRORS as e:
            logger.debug(f"Probe failed for {url}: {type(e).__name__}: {e}")
            return False
        valid = is_image_response(result)
        if not valid:
            logger.debug(f"Not an image: {url} (HTTP {result.status_code}, {result.content_type or 'no content-type'})")
        return valid

    async def filter_valid(self, urls: Sequence[str]) -> list[str]:
        """URLs confirmed to serve images, in input order."""
        valid: list[str] = []
        self.last_batch_sizes = []

        for batch in batched(list(urls), self.batch_size):
            self.last_batch_sizes.append(len(batch))
            # Each check fills its own result slot; aggregate after the batch completes
            results = await asyncio.gather(*(self.check(url) for url in batch))
            valid.extend(url for url, ok in zip(batch, results) if ok)

        logger.info(f"Validated {len(valid)}/{len(urls)} candidates in {len(self.last_batch_sizes)} batches")
        return valid
