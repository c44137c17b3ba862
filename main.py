"""
Command-line image discovery.

Runs the pipeline for one or more product page URLs (or a bare product code)
concurrently with asyncio.gather, prints the images found plus a per-stage
report, and optionally writes the results to a JSON file.
"""

import argparse
import asyncio
import logging
import time
from pathlib import Path

import httpx
import orjson

import config
from brands import Brand
from errors import InputError
from fetcher import HttpxPageFetcher
from models import ImagesResponse, PipelineMetrics
from pipeline import ImagePipeline
from validator import HttpxProbe

logger = logging.getLogger(__name__)


async def process_url(client: httpx.AsyncClient, url: str) -> tuple[ImagesResponse, PipelineMetrics]:
    """Run one URL through the pipeline. Returns (response, metrics)."""
    logger.info(f"Processing {url}...")
    pipeline = ImagePipeline(HttpxPageFetcher(client), HttpxProbe(client))
    images = await pipeline.get_images(url)
    metrics = pipeline.last_metrics
    response = ImagesResponse(
        url=url,
        brand=Brand(metrics.brand),
        product_code=metrics.product_code,
        images=images,
    )
    return response, metrics


async def process_code(client: httpx.AsyncClient, code: str, brand: Brand) -> tuple[ImagesResponse, PipelineMetrics]:
    logger.info(f"Processing code {code} ({brand.value})...")
    pipeline = ImagePipeline(HttpxPageFetcher(client), HttpxProbe(client))
    images = await pipeline.get_images_for_code(code, brand)
    metrics = pipeline.last_metrics
    return ImagesResponse(brand=brand, product_code=metrics.product_code, images=images), metrics


async def process_all(urls: list[str]) -> tuple[list[ImagesResponse], list[PipelineMetrics], int]:
    """Process all URLs concurrently. Returns (responses, metrics_list, failure_count)."""
    async with httpx.AsyncClient(max_redirects=config.MAX_REDIRECTS) as client:
        results = await asyncio.gather(
            *[process_url(client, url) for url in urls],
            return_exceptions=True,
        )

    responses: list[ImagesResponse] = []
    all_metrics: list[PipelineMetrics] = []
    failures = 0

    for url, result in zip(urls, results):
        if isinstance(result, Exception):
            logger.error(f"Failed to process {url}: {result}")
            failures += 1
        else:
            response, metrics = result
            responses.append(response)
            all_metrics.append(metrics)

    return responses, all_metrics, failures


def print_report(all_metrics: list[PipelineMetrics], failures: int, wall_clock: float) -> None:
    """Print candidate counts and timings per stage."""
    total = len(all_metrics) + failures

    print(f"\n{'='*70}")
    print("IMAGE DISCOVERY REPORT")
    print(f"{'='*70}")

    print(f"\n── Reliability ──")
    print(f"  URLs attempted:   {total}")
    print(f"  Succeeded:        {len(all_metrics)}")
    print(f"  Failed (input):   {failures}")

    if not all_metrics:
        print("\n  No successful runs to report on.")
        return

    print(f"\n── Candidates per stage ──")
    print(f"  {'Target':<40} {'Brand':<12} {'Code':<14} {'Gen':>5} {'Page':>5} {'Clus':>5} {'Valid':>6}")
    print(f"  {'-'*91}")
    for m in all_metrics:
        target = (m.url or m.product_code or "")[-40:]
        page = "fail" if m.fetch_failed else str(m.scraped)
        print(f"  {target:<40} {m.brand:<12} {(m.product_code or '-'):<14} "
              f"{m.generated:>5} {page:>5} {m.clusters:>5} {m.validated:>6}")

    print(f"\n── Timing ──")
    print(f"  Wall clock (total):  {wall_clock:.2f}s")
    print(f"  {'Target':<40} {'Fetch':>8} {'Scrape':>8} {'Cluster':>8} {'Validate':>9} {'Total':>8}")
    print(f"  {'-'*85}")
    for m in all_metrics:
        target = (m.url or m.product_code or "")[-40:]
        print(f"  {target:<40} {m.fetch_time:>7.2f}s {m.scrape_time:>7.3f}s "
              f"{m.cluster_time:>7.3f}s {m.validate_time:>8.2f}s {m.total_time:>7.2f}s")
        if m.batches:
            print(f"    batches: {m.batches}")

    print(f"\n{'='*70}")


def print_images(responses: list[ImagesResponse]) -> None:
    for r in responses:
        label = r.url or f"{r.product_code} ({r.brand.value})"
        print(f"\n  {label}")
        print(f"    Brand: {r.brand.value}   Code: {r.product_code or '-'}   Images: {len(r.images)}")
        for image in r.images:
            print(f"    {image.alt:<10} {image.src}")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Discover and validate product images")
    parser.add_argument("urls", nargs="*", help="Product page URLs")
    parser.add_argument("--code", help="Product code to expand instead of a page URL")
    parser.add_argument(
        "--brand",
        choices=[b.value for b in Brand],
        default=Brand.UNKNOWN.value,
        help="Brand for --code (default: unknown)",
    )
    parser.add_argument("--output", type=Path, help="Write results as JSON to this file")
    args = parser.parse_args(argv)
    if not args.urls and not args.code:
        parser.error("give at least one URL or --code")
    return args


async def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    t_wall_start = time.monotonic()

    responses, all_metrics, failures = await process_all(args.urls) if args.urls else ([], [], 0)
    if args.code:
        try:
            async with httpx.AsyncClient(max_redirects=config.MAX_REDIRECTS) as client:
                response, metrics = await process_code(client, args.code, Brand(args.brand))
        except InputError as e:
            logger.error(f"Failed to process code {args.code!r}: {e}")
            failures += 1
        else:
            responses.append(response)
            all_metrics.append(metrics)

    wall_clock = time.monotonic() - t_wall_start

    print(f"\n{'='*60}")
    print(f"Found images for {len(responses)} target(s):")
    print(f"{'='*60}")
    print_images(responses)

    if args.output:
        args.output.write_bytes(
            orjson.dumps([r.model_dump(mode="json") for r in responses], option=orjson.OPT_INDENT_2)
        )
        logger.info(f"Wrote {len(responses)} results to {args.output}")

    print_report(all_metrics, failures, wall_clock)


if __name__ == "__main__":
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    asyncio.run(main())
