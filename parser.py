"""
Candidate image URL extraction from rendered product page HTML.

Pulls image URLs out of universal page sources: <img> and <picture>
attributes, Open Graph meta tags, inline CSS backgrounds, JSON-LD Product
data, embedded JSON state objects, script text, and zoom/large-image links.
Brand profiles add ranked gallery selectors on top (see select_gallery).

Every source is tried independently. A malformed JSON blob or an odd
attribute only skips that one attempt.
"""

import json
import logging
import re
from collections.abc import Iterable
from typing import Any
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup, Tag

from candidates import dedup

logger = logging.getLogger(__name__)

IMG_ATTRS = ("src", "data-src", "data-lazy")
SRCSET_ATTRS = ("srcset", "data-srcset")
META_IMAGE_KEYS = ("og:image", "og:image:secure_url", "og:image:url", "twitter:image")

_CSS_URL_RE = re.compile(r"url\(\s*[\"']?(.*?)[\"']?\s*\)", re.IGNORECASE)
_IMAGE_EXT_RE = re.compile(r"\.(?:jpe?g|png|webp|gif|avif)(?:$|[?#])", re.IGNORECASE)
_ZOOM_HREF_RE = re.compile(r"(?i)(zoom|large|hi-?res|full(?:size)?|original|/is/image/)")
_ZOOM_ATTR_RE = re.compile(r"^data-(?:zoom|large|full|hi-?res|highres|original)", re.IGNORECASE)
# Quoted absolute or protocol-relative image URLs inside script text
_SCRIPT_IMAGE_URL_RE = re.compile(
    r"[\"'](?P<url>(?:https?:)?//[^\"'\s<>]+?\.(?:jpe?g|png|webp|gif|avif)(?:\?[^\"'\s<>]*)?)[\"']",
    re.IGNORECASE,
)
_SCENE7_URL_RE = re.compile(r"[\"'](?P<url>(?:https?:)?//[^\"'\s<>]+/is/image/[^\"'\s<>]+)[\"']", re.IGNORECASE)
_WINDOW_GLOBAL_RE = re.compile(r"window\.(__[A-Za-z][A-Za-z0-9_]*__|[A-Za-z_][A-Za-z0-9_]*State)\s*=\s*")
_IMAGE_KEY_RE = re.compile(r"(?i)(image|img|photo|picture|media|gallery|zoom|src|url|thumbnail)")
_SKIP_IMAGE_RE = re.compile(r"(?i)(favicon|logo|sprite|pixel|tracking|analytics|1x1|spacer|blank\.gif|\.svg(?:$|[?#]))")
_SKIP_SCHEMES = ("data:", "blob:", "javascript:", "about:", "mailto:")

_STRUCTURED_SCRIPT_TYPES = ("application/json", "text/json", "application/ld+json")


def make_soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "lxml")


def page_base_url(soup: BeautifulSoup, base_url: str) -> str:
    """Honor <base href> when present, resolved against the page URL."""
    base = soup.find("base", href=True)
    if base and isinstance(base.get("href"), str) and base["href"].strip():
        return urljoin(base_url, base["href"].strip())
    return base_url


def resolve_url(raw: Any, base_url: str) -> str | None:
    """Resolve a raw attribute/JSON value to an absolute http(s) image URL.

    Returns None for empty values, non-http schemes, obvious page chrome and
    URLs httpx cannot request (e.g. a non-numeric port).
    """
    if not isinstance(raw, str):
        return None
    url = raw.strip().replace("\\/", "/")
    if not url or url.lower().startswith(_SKIP_SCHEMES):
        return None
    if url.startswith("//"):
        url = "https:" + url
    elif not url.startswith(("http://", "https://")):
        if not base_url:
            return None
        url = urljoin(base_url, url)
    if not url.startswith(("http://", "https://")):
        return None
    if _SKIP_IMAGE_RE.search(url):
        return None
    try:
        httpx.URL(url)
    except httpx.InvalidURL:
        logger.debug(f"Dropping unrequestable URL {url!r}")
        return None
    return url


def srcset_urls(srcset: Any) -> list[str]:
    """Split a srcset value into its URL tokens (descriptors dropped)."""
    if not srcset or not isinstance(srcset, str):
        return []
    urls = []
    for entry in srcset.split(","):
        parts = entry.strip().split()
        if parts and parts[0]:
            urls.append(parts[0])
    return urls


def extract_generic_candidates(soup: BeautifulSoup, base_url: str) -> list[str]:
    """Run every generic extraction rule and merge the results in order."""
    base = page_base_url(soup, base_url)
    raw: list[str] = []

    for rule in (
        _extract_img_tags,
        _extract_picture_sources,
        _extract_meta_images,
        _extract_css_backgrounds,
        _extract_json_ld_images,
        _extract_embedded_json_images,
        _extract_script_urls,
        _extract_zoom_links,
    ):
        try:
            found = rule(soup)
        except (AttributeError, TypeError, ValueError, RecursionError):
            # One broken rule must not take the others down
            logger.debug(f"Extraction rule {rule.__name__} failed", exc_info=True)
            continue
        raw.extend(found)

    return resolve_all(raw, base)


def resolve_all(raw: Iterable[Any], base_url: str) -> list[str]:
    """Resolve, filter and dedup raw URL values preserving order."""
    resolved = (resolve_url(u, base_url) for u in raw)
    return dedup(u for u in resolved if u)


# ---------------------------------------------------------------------------
# Brand gallery selectors
# ---------------------------------------------------------------------------


def urls_from_elements(elements: Iterable[Tag]) -> list[str]:
    """Image-bearing attribute values of matched gallery elements.

    Works for <img>, <source>, <a href> and any element carrying data-zoom*
    style attributes or an inline background image.
    """
    raw: list[str] = []
    for el in elements:
        for attr in IMG_ATTRS:
            value = el.get(attr)
            if value:
                raw.append(value)
        for attr in SRCSET_ATTRS:
            raw.extend(srcset_urls(el.get(attr)))
        for attr, value in el.attrs.items():
            if _ZOOM_ATTR_RE.match(attr) and isinstance(value, str):
                raw.append(value)
        if el.name == "a" and isinstance(el.get("href"), str):
            raw.append(el["href"])
        style = el.get("style")
        if isinstance(style, str):
            raw.extend(_CSS_URL_RE.findall(style))
        # Gallery containers: descend into their images
        if el.name not in ("img", "source"):
            for img in el.find_all(["img", "source"]):
                for attr in IMG_ATTRS:
                    value = img.get(attr)
                    if value:
                        raw.append(value)
                for attr in SRCSET_ATTRS:
                    raw.extend(srcset_urls(img.get(attr)))
    return raw


def select_gallery(soup: BeautifulSoup, base_url: str, selector_lists: list[list[str]]) -> list[str]:
    """Try ranked CSS selector lists; the first list yielding any URL wins.

    Each list holds alternative selectors for one storefront template
    version. Later lists are only tried when earlier ones find nothing.
    """
    base = page_base_url(soup, base_url)
    for rank, selectors in enumerate(selector_lists):
        elements: list[Tag] = []
        for selector in selectors:
            elements.extend(soup.select(selector))
        urls = resolve_all(urls_from_elements(elements), base)
        if urls:
            logger.debug(f"Gallery selector list #{rank} matched {len(urls)} URLs")
            return urls
    return []


# ---------------------------------------------------------------------------
# DOM attributes
# ---------------------------------------------------------------------------


def _extract_img_tags(soup: BeautifulSoup) -> list[str]:
    """<img> src, data-src, data-lazy and srcset tokens.

    All lazy-load attributes are kept: src is often a placeholder while the
    real image sits in data-src.
    """
    urls: list[str] = []
    for img in soup.find_all("img"):
        for attr in IMG_ATTRS:
            value = img.get(attr)
            if value and isinstance(value, str) and value.strip():
                urls.append(value)
        for attr in SRCSET_ATTRS:
            urls.extend(srcset_urls(img.get(attr)))
    return urls


def _extract_picture_sources(soup: BeautifulSoup) -> list[str]:
    """<picture><source srcset> tokens."""
    urls: list[str] = []
    for source in soup.select("picture source"):
        for attr in SRCSET_ATTRS:
            urls.extend(srcset_urls(source.get(attr)))
    return urls


def _extract_meta_images(soup: BeautifulSoup) -> list[str]:
    """og:image and twitter:image meta content. Handles property= and name=."""
    urls: list[str] = []
    for meta in soup.find_all("meta"):
        prop = meta.get("property", "") or meta.get("name", "")
        if not isinstance(prop, str) or prop.lower() not in META_IMAGE_KEYS:
            continue
        content = meta.get("content", "")
        if content:
            urls.append(content)
    return urls


def _extract_css_backgrounds(soup: BeautifulSoup) -> list[str]:
    """background-image url(...) values from inline styles and <style> blocks.

    Computed styles are not available from static HTML, so only declared
    styles are seen here.
    """
    urls: list[str] = []
    for el in soup.find_all(style=True):
        style = el.get("style")
        if isinstance(style, str) and "url(" in style:
            urls.extend(_CSS_URL_RE.findall(style))
    for tag in soup.find_all("style"):
        text = tag.string
        if text and "background" in text:
            for match in _CSS_URL_RE.findall(text):
                if _IMAGE_EXT_RE.search(match):
                    urls.append(match)
    return urls


def _extract_zoom_links(soup: BeautifulSoup) -> list[str]:
    """Anchors to zoom/large images and data-zoom* style attributes."""
    urls: list[str] = []
    for a in soup.find_all("a", href=True):
        href = a["href"]
        if isinstance(href, str) and _IMAGE_EXT_RE.search(href) and (
            _ZOOM_HREF_RE.search(href) or a.find("img") is not None
        ):
            urls.append(href)
    for el in soup.find_all(True):
        for attr, value in el.attrs.items():
            if _ZOOM_ATTR_RE.match(attr) and isinstance(value, str):
                urls.append(value)
    return urls


# ---------------------------------------------------------------------------
# JSON-LD
# ---------------------------------------------------------------------------


def _json_ld_blocks(soup: BeautifulSoup) -> list[dict]:
    """All JSON-LD objects on the page, with arrays and @graph flattened."""
    results: list[dict] = []
    for tag in soup.find_all("script", attrs={"type": "application/ld+json"}):
        text = tag.string
        if not text:
            continue
        try:
            data = json.loads(text)
        except (json.JSONDecodeError, TypeError, RecursionError):
            logger.debug("Skipping malformed JSON-LD block")
            continue
        stack = data if isinstance(data, list) else [data]
        for item in stack:
            if not isinstance(item, dict):
                continue
            results.append(item)
            graph = item.get("@graph")
            if isinstance(graph, list):
                results.extend(g for g in graph if isinstance(g, dict))
    return results


def _is_product_block(block: dict) -> bool:
    types = block.get("@type")
    if isinstance(types, str):
        types = [types]
    return isinstance(types, list) and any(
        isinstance(t, str) and t.lower() in ("product", "productgroup", "individualproduct") for t in types
    )


def _json_ld_image_values(value: Any) -> list[str]:
    """Product.image may be a string, an ImageObject, or a list of either."""
    if isinstance(value, str):
        return [value]
    if isinstance(value, dict):
        for key in ("contentUrl", "url", "@id"):
            if isinstance(value.get(key), str):
                return [value[key]]
        return []
    if isinstance(value, list):
        urls: list[str] = []
        for item in value:
            urls.extend(_json_ld_image_values(item))
        return urls
    return []


def _extract_json_ld_images(soup: BeautifulSoup) -> list[str]:
    urls: list[str] = []
    for block in _json_ld_blocks(soup):
        if not _is_product_block(block):
            continue
        urls.extend(_json_ld_image_values(block.get("image")))
        # ProductGroup variants carry their own images
        for variant in block.get("hasVariant") or []:
            if isinstance(variant, dict):
                urls.extend(_json_ld_image_values(variant.get("image")))
    return urls


# ---------------------------------------------------------------------------
# Embedded JSON state objects
# ---------------------------------------------------------------------------


def _extract_embedded_json_images(soup: BeautifulSoup) -> list[str]:
    """Image-looking strings inside JSON script tags and window globals."""
    urls: list[str] = []
    for data in _embedded_json_objects(soup):
        urls.extend(_collect_image_urls_recursive(data))
    return urls


def _embedded_json_objects(soup: BeautifulSoup) -> list[Any]:
    objects: list[Any] = []

    # Pattern 1: <script type="application/json"> (e.g. __NEXT_DATA__)
    for tag in soup.find_all("script"):
        tag_type = (tag.get("type") or "").lower()
        if tag_type not in ("application/json", "text/json"):
            continue
        text = tag.string
        if not text:
            continue
        try:
            objects.append(json.loads(text))
        except (json.JSONDecodeError, TypeError, RecursionError):
            logger.debug(f"Skipping malformed JSON in script#{tag.get('id')}")

    # Pattern 2: window.__STATE__ = {...} assignments
    for tag in _inline_scripts(soup):
        text = tag.string or ""
        for match in _WINDOW_GLOBAL_RE.finditer(text):
            start = match.end()
            while start < len(text) and text[start] in " \t\n\r":
                start += 1
            json_str = _brace_match(text, start)
            if not json_str:
                continue
            try:
                objects.append(json.loads(json_str))
            except (json.JSONDecodeError, TypeError, RecursionError):
                logger.debug(f"Skipping malformed JSON for window.{match.group(1)}")

    return objects


def _inline_scripts(soup: BeautifulSoup) -> list[Tag]:
    """Inline executable scripts (no src, no structured-data type)."""
    return [
        tag
        for tag in soup.find_all("script")
        if not tag.get("src") and (tag.get("type") or "").lower() not in _STRUCTURED_SCRIPT_TYPES
    ]


def _collect_image_urls_recursive(data: Any, key: str = "", depth: int = 0, max_depth: int = 12) -> list[str]:
    """Walk JSON collecting strings that look like image URLs.

    Strings under image-ish keys are accepted when absolute even without a
    file extension (CDN image servers often omit one).
    """
    if depth > max_depth:
        return []
    urls: list[str] = []
    if isinstance(data, str):
        s = data.strip()
        if s.startswith(("http://", "https://", "//")) and (
            _IMAGE_EXT_RE.search(s) or "/is/image/" in s or (key and _IMAGE_KEY_RE.search(key) and "/image" in s)
        ):
            urls.append(s)
    elif isinstance(data, dict):
        for k, v in data.items():
            urls.extend(_collect_image_urls_recursive(v, str(k), depth + 1, max_depth))
    elif isinstance(data, list):
        for item in data:
            urls.extend(_collect_image_urls_recursive(item, key, depth + 1, max_depth))
    return urls


def _extract_script_urls(soup: BeautifulSoup) -> list[str]:
    """Regex sweep of inline script text for quoted image URLs."""
    urls: list[str] = []
    for tag in _inline_scripts(soup):
        text = tag.string
        if not text:
            continue
        urls.extend(m.group("url") for m in _SCRIPT_IMAGE_URL_RE.finditer(text))
        urls.extend(m.group("url") for m in _SCENE7_URL_RE.finditer(text))
    return urls


def _brace_match(text: str, start: int) -> str | None:
    """Extract a balanced JSON object/array from text starting at position start.

    Handles nested braces/brackets and string literals with escaped quotes.
    """
    if start >= len(text) or text[start] not in ("{", "["):
        return None

    depth = 0
    in_string = False
    escape_next = False
    i = start

    while i < len(text):
        c = text[i]

        if escape_next:
            escape_next = False
            i += 1
            continue

        if c == "\\" and in_string:
            escape_next = True
            i += 1
            continue

        if c == '"':
            in_string = not in_string
            i += 1
            continue

        if in_string:
            i += 1
            continue

        if c in ("{", "["):
            depth += 1
        elif c in ("}", "]"):
            depth -= 1
            if depth == 0:
                return text[start : i + 1]

        i += 1

    return None
