"""
Product code extraction helpers.

A product code is a normalized token: uppercase alphanumerics joined by
single underscores. Brand profiles supply their own ordered patterns and
fall back to the generic path and query patterns defined here.
"""

import logging
import re
from urllib.parse import parse_qsl, urlparse

logger = logging.getLogger(__name__)

_SEPARATOR_RE = re.compile(r"[-\s]+")
_REPEATED_UNDERSCORE_RE = re.compile(r"_+")
_INVALID_CHARS_RE = re.compile(r"[^A-Z0-9_]")

# Path-segment shapes, most specific first
GENERIC_PATH_PATTERNS = [
    # /dp/B0ABCDEF12 (Amazon-style ASIN)
    re.compile(r"/dp/([A-Z0-9]{10})(?:[/?#]|$)", re.IGNORECASE),
    # /p/<code>.html, /product/<code>, /products/<code>
    re.compile(r"/(?:p|product|products|item|sku)/((?=[A-Za-z0-9_-]*\d)[A-Za-z0-9]+(?:[-_][A-Za-z0-9]+)*)(?:\.html?)?(?:[/?#]|$)"),
    # trailing segment shaped like AB1234-001 (style + colorway)
    re.compile(r"/([A-Za-z]{1,3}\d{3,6})[-_](\d{2,4})(?:\.html?)?(?:[/?#]|$)"),
    # last segment with an .html extension containing both letters and digits
    re.compile(r"/((?=[A-Za-z0-9_-]*\d)(?=[A-Za-z0-9_-]*[A-Za-z])[A-Za-z0-9]+(?:[-_][A-Za-z0-9]+)*)\.html?(?:[?#]|$)"),
]

# Query parameters that commonly carry the product code, in priority order
GENERIC_QUERY_KEYS = ["pid", "sku", "productid", "product_id", "style", "code", "item", "id"]

_QUERY_VALUE_RE = re.compile(r"^[A-Za-z0-9]+(?:[-_][A-Za-z0-9]+)*$")


def normalize_code(*parts: str | None) -> str | None:
    """Join matched groups into a normalized product code.

    Hyphens and whitespace become underscores, runs of underscores collapse,
    and the result is uppercased. Returns None when nothing usable is left.
    """
    joined = "_".join(p.strip() for p in parts if p and p.strip())
    if not joined:
        return None
    code = _SEPARATOR_RE.sub("_", joined).upper()
    code = _INVALID_CHARS_RE.sub("", code)
    code = _REPEATED_UNDERSCORE_RE.sub("_", code).strip("_")
    return code or None


def match_code(url: str, patterns: list[re.Pattern]) -> str | None:
    """Return the normalized code from the first pattern that matches the URL.

    All non-empty groups of the match are joined. There is no re-ranking:
    once a pattern matches, later patterns are not tried.
    """
    for pattern in patterns:
        match = pattern.search(url)
        if not match:
            continue
        groups = match.groups() or (match.group(0),)
        code = normalize_code(*groups)
        if code:
            return code
    return None


def match_query_code(url: str, keys: list[str] = GENERIC_QUERY_KEYS) -> str | None:
    """Look for a product code in well-known query parameters."""
    try:
        params = parse_qsl(urlparse(url).query)
    except ValueError:
        return None
    by_key: dict[str, str] = {}
    for key, value in params:
        by_key.setdefault(key.lower(), value)
    for key in keys:
        value = by_key.get(key, "").strip()
        # Require at least one digit so ?style=casual does not count as a code
        if value and _QUERY_VALUE_RE.match(value) and any(c.isdigit() for c in value):
            logger.debug(f"Product code from query parameter {key!r}: {value!r}")
            return normalize_code(value)
    return None


def extract_generic_code(url: str) -> str | None:
    """Generic fallback: path-segment patterns first, then query parameters."""
    path_url = url.split("?", 1)[0].split("#", 1)[0]
    return match_code(path_url, GENERIC_PATH_PATTERNS) or match_query_code(url)
