"""
Image discovery pipeline: product page URL -> validated image list.

Stages:
  1) Detect brand and extract a product code from the URL (free)
  2) Generate candidate URLs from the code (free, skipped without a code)
  3) Fetch the page and scrape candidate URLs from it (one request)
  4) Merge, dedup, cluster similar URLs, keep one per cluster (free)
  5) Validate existence in concurrent batches (one request per candidate)

Only a malformed page URL raises. A missing code, a failed fetch or
unreachable candidates all just mean fewer (possibly zero) images.
"""

import itertools
import logging
import time
from urllib.parse import urlparse

import httpx

import config
from brands import Brand, detect_brand
from candidates import dedup
from codes import normalize_code
from errors import ExtractionFailure, FetchError, InputError
from fetcher import HttpxPageFetcher, PageFetcher
from models import PipelineMetrics, ValidatedImage
from profiles import cluster_candidates, extract_page_candidates, extract_product_code, generate_candidates
from validator import ExistenceValidator, HttpProbe, HttpxProbe

logger = logging.getLogger(__name__)


def validate_page_url(url: str) -> str:
    """Return the stripped URL, or raise InputError when it can't be a page URL."""
    if not isinstance(url, str) or not url.strip():
        raise InputError("A product page URL is required")
    url = url.strip()
    try:
        parsed = urlparse(url)
        parsed.port  # raises on a non-numeric or out-of-range port
        httpx.URL(url)
    except (ValueError, httpx.InvalidURL) as e:
        raise InputError(f"Invalid URL: {url!r}: {e}") from e
    if parsed.scheme not in ("http", "https"):
        raise InputError(f"Invalid URL scheme {parsed.scheme!r}: expected http or https")
    if not parsed.netloc or not parsed.hostname:
        raise InputError(f"Invalid URL: {url!r} has no host")
    return url


def require_product_code(url: str, brand: Brand) -> str:
    """Product code for the URL, or ExtractionFailure when none is recognizable."""
    code = extract_product_code(url, brand)
    if code is None:
        raise ExtractionFailure(f"No product code in {url} ({brand.value})")
    return code


def to_validated_images(urls: list[str]) -> list[ValidatedImage]:
    """Number survivors 1..n in order; duplicate src values are dropped."""
    return [ValidatedImage(src=src, alt=f"Image {i}") for i, src in enumerate(dedup(urls), start=1)]


class ImagePipeline:
    """Composes brand detection, generation, scraping, clustering and validation."""

    def __init__(
        self,
        fetcher: PageFetcher,
        probe: HttpProbe,
        batch_size: int = config.VALIDATION_BATCH_SIZE,
        max_generated: int = config.MAX_GENERATED_CANDIDATES,
        probe_timeout: float | None = config.PROBE_TIMEOUT,
    ):
        self.fetcher = fetcher
        self.validator = ExistenceValidator(probe, batch_size=batch_size, timeout=probe_timeout)
        self.max_generated = max_generated
        self.last_metrics = PipelineMetrics()

    async def get_images(self, url: str) -> list[ValidatedImage]:
        """Validated images for a product page URL. Raises InputError only."""
        url = validate_page_url(url)
        metrics = PipelineMetrics(url=url)
        self.last_metrics = metrics
        t_start = time.monotonic()

        # Stage 1: brand + product code
        brand = detect_brand(url)
        try:
            code = require_product_code(url, brand)
        except ExtractionFailure as e:
            logger.info(f"{e}; using page candidates only")
            code = None
        metrics.brand = brand.value
        metrics.product_code = code

        # Stage 2: generated candidates
        generated = self._generate(code, brand, url, metrics) if code else []

        # Stage 3: page-scraped candidates
        scraped = await self._scrape(url, brand, metrics)

        images = await self._reduce_and_validate(generated + scraped, brand, metrics)
        metrics.total_time = time.monotonic() - t_start
        logger.info(
            f"{url}: brand={brand.value} code={code} generated={metrics.generated} "
            f"scraped={metrics.scraped} clusters={metrics.clusters} valid={metrics.validated} "
            f"({metrics.total_time:.2f}s)"
        )
        return images

    async def get_images_for_code(self, code: str, brand: Brand = Brand.UNKNOWN) -> list[ValidatedImage]:
        """Validated images from a bare product code; no page is fetched."""
        metrics = PipelineMetrics(brand=brand.value)
        self.last_metrics = metrics
        t_start = time.monotonic()

        normalized = normalize_code(code) if isinstance(code, str) else None
        if normalized is None:
            raise InputError(f"Invalid product code: {code!r}")
        metrics.product_code = normalized

        generated = self._generate(normalized, brand, None, metrics)
        images = await self._reduce_and_validate(generated, brand, metrics)
        metrics.total_time = time.monotonic() - t_start
        return images

    def _generate(self, code: str, brand: Brand, page_url: str | None, metrics: PipelineMetrics) -> list[str]:
        t0 = time.monotonic()
        # Generation is lazy; only the first max_generated combinations are built
        generated = list(itertools.islice(generate_candidates(code, brand, page_url), self.max_generated))
        metrics.generate_time = time.monotonic() - t0
        metrics.generated = len(generated)
        logger.debug(f"Generated {len(generated)} candidates for {code}")
        return generated

    async def _scrape(self, url: str, brand: Brand, metrics: PipelineMetrics) -> list[str]:
        t0 = time.monotonic()
        try:
            html = await self.fetcher.fetch(url)
        except FetchError as e:
            logger.warning(f"{e}; continuing without page candidates")
            metrics.fetch_failed = True
            metrics.fetch_time = time.monotonic() - t0
            return []
        metrics.fetch_time = time.monotonic() - t0

        t0 = time.monotonic()
        scraped = extract_page_candidates(html, url, brand)
        metrics.scrape_time = time.monotonic() - t0
        metrics.scraped = len(scraped)
        logger.info(f"Scraped {len(scraped)} candidates from {url}")
        return scraped

    async def _reduce_and_validate(
        self, candidates: list[str], brand: Brand, metrics: PipelineMetrics
    ) -> list[ValidatedImage]:
        merged = dedup(candidates)
        metrics.merged = len(merged)
        if not merged:
            return []

        t0 = time.monotonic()
        clusters = cluster_candidates(merged, brand)
        chosen = [c.representative for c in clusters]
        metrics.cluster_time = time.monotonic() - t0
        metrics.clusters = len(clusters)
        logger.info(f"After similarity filtering: {len(chosen)} candidates from {len(merged)}")

        t0 = time.monotonic()
        valid = await self.validator.filter_valid(chosen)
        metrics.validate_time = time.monotonic() - t0
        metrics.batches = list(self.validator.last_batch_sizes)
        metrics.validated = len(valid)

        return to_validated_images(valid)


async def get_images(url: str) -> list[ValidatedImage]:
    """Pipeline entry point with the default HTTP collaborators.

    One httpx client is shared by the page fetch and every probe, and closed
    when the run ends.
    """
    url = validate_page_url(url)
    async with httpx.AsyncClient(max_redirects=config.MAX_REDIRECTS) as client:
        pipeline = ImagePipeline(HttpxPageFetcher(client), HttpxProbe(client))
        return await pipeline.get_images(url)
