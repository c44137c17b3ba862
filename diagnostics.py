"""
Diagnostic: run the offline stages only (no network).
Reports brand, product code, generated and scraped candidates, and the
cluster representatives that would be sent to validation.

Usage: python diagnostics.py URL [saved_page.html] [--limit N]
"""

import argparse
import itertools
from pathlib import Path

import config
from brands import detect_brand
from candidates import dedup
from profiles import cluster_candidates, extract_page_candidates, extract_product_code, generate_candidates


def diagnose(url: str, html: str = "", limit: int = 10) -> dict:
    brand = detect_brand(url)
    code = extract_product_code(url, brand)

    generated: list[str] = []
    if code:
        generated = list(itertools.islice(generate_candidates(code, brand, url), config.MAX_GENERATED_CANDIDATES))
    scraped = extract_page_candidates(html, url, brand) if html else []

    merged = dedup(generated + scraped)
    clusters = cluster_candidates(merged, brand)

    return {
        "url": url,
        "brand": brand.value,
        "product_code": code,
        "generated_count": len(generated),
        "generated_sample": generated[:limit],
        "scraped_count": len(scraped),
        "scraped_sample": scraped[:limit],
        "merged_count": len(merged),
        "clusters": [
            {"representative": c.representative, "size": len(c.members)} for c in clusters
        ],
    }


def print_diagnosis(report: dict, limit: int) -> None:
    print(f"\n{'='*70}")
    print(f"  {report['url']}")
    print(f"{'='*70}")
    print(f"  Brand:        {report['brand']}")
    print(f"  Product code: {report['product_code'] or 'NOT FOUND'}")

    print(f"\n  Generated candidates: {report['generated_count']}")
    for url in report["generated_sample"]:
        print(f"    {url}")
    if report["generated_count"] > limit:
        print(f"    ... and {report['generated_count'] - limit} more")

    print(f"\n  Scraped candidates: {report['scraped_count']}")
    for url in report["scraped_sample"]:
        print(f"    {url}")
    if report["scraped_count"] > limit:
        print(f"    ... and {report['scraped_count'] - limit} more")

    clusters = report["clusters"]
    print(f"\n  Clusters: {len(clusters)} (from {report['merged_count']} unique candidates)")
    for c in clusters:
        print(f"    [{c['size']:>4}] {c['representative']}")


def main():
    parser = argparse.ArgumentParser(description="Offline pipeline diagnostics")
    parser.add_argument("url", help="Product page URL")
    parser.add_argument("html_file", nargs="?", type=Path, help="Saved/rendered HTML of the page")
    parser.add_argument("--limit", type=int, default=10, help="Sample size per list")
    args = parser.parse_args()

    html = args.html_file.read_text(encoding="utf-8") if args.html_file else ""
    report = diagnose(args.url, html, args.limit)
    print_diagnosis(report, args.limit)


if __name__ == "__main__":
    main()
