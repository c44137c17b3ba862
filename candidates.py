"""
Candidate image URL generation.

Generate-then-validate: a product code is expanded over a cross product of
naming axes (code spelling, view, region, size/format suffix, CDN host) into
a large, lazy stream of URLs that may or may not exist. Existence is decided
later by the validator, so over-generation here is expected.

Everything in this module is pure string construction with no network access.
"""

import itertools
import re
from collections.abc import Iterable, Iterator
from urllib.parse import urlparse

# Fallback {brand} tokens tried for unknown sites after the code-derived ones
DEFAULT_BRAND_VOCABULARY = ["shop", "store", "static", "media"]

# Generic CDN layouts seen across storefront platforms. {brand} is filled
# from brand_tokens(); the remaining axes match the known-brand expansion.
GENERIC_CDN_TEMPLATES = [
    "https://images.{brand}.com/is/image/{brand}/{code}{view}{region}{size}",
    "https://{brand}.scene7.com/is/image/{brand}/{code}{view}{region}{size}",
    "https://cdn.{brand}.com/images/{code}{view}{region}.jpg{size}",
    "https://www.{brand}.com/media/catalog/product/{code}{view}{region}.jpg{size}",
    "https://static.{brand}.com/products/{code}{view}{region}.jpg{size}",
]
GENERIC_VIEWS = ["", "_1", "_2", "_3", "_4", "_main", "_front", "_back", "_side"]
GENERIC_REGIONS = [""]
GENERIC_SIZES = ["", "?wid=1800", "?width=1200"]

_ALPHA_RUN_RE = re.compile(r"[A-Za-z]{2,}")
_HOST_LABEL_RE = re.compile(r"^[a-z0-9-]{2,}$")
# Second-level labels that are not a brand name on their own
_NON_BRAND_LABELS = frozenset({"www", "shop", "store", "co", "com", "net", "org", "m"})


def unique(urls: Iterable[str]) -> Iterator[str]:
    """Yield each URL once, in first-seen order. Lazy."""
    seen: set[str] = set()
    for url in urls:
        if url not in seen:
            seen.add(url)
            yield url


def dedup(urls: Iterable[str]) -> list[str]:
    """Exact-string dedup preserving order."""
    return list(unique(urls))


def code_variants(code: str) -> list[str]:
    """Case and separator spellings of a product code.

    "1203A474_002" → ["1203A474_002", "1203a474_002", "1203A474-002",
    "1203a474-002", "1203A474002", "1203a474002"]
    """
    variants = []
    for sep in ("_", "-", ""):
        spelled = code.replace("_", sep)
        variants.append(spelled)
        variants.append(spelled.lower())
    return dedup(variants)


def expand(templates: list[str], **axes: list[str]) -> Iterator[str]:
    """Lazily format every template with every combination of axis values.

    Axes are iterated in declared order with the last axis varying fastest,
    then the template. Nothing is materialized beyond the current combination.
    """
    names = list(axes)
    for values in itertools.product(*(axes[name] for name in names)):
        fields = dict(zip(names, values))
        for template in templates:
            yield template.format(**fields)


def brand_tokens(code: str, page_url: str | None = None) -> list[str]:
    """Guess lowercase brand names for {brand} placeholders.

    Uses the alphabetic runs inside the product code, then the page host's
    registrable label when a page URL is known, then a fixed vocabulary.
    """
    tokens = [run.lower() for run in _ALPHA_RUN_RE.findall(code)]
    if page_url:
        label = _host_label(page_url)
        if label:
            tokens.append(label)
    tokens.extend(DEFAULT_BRAND_VOCABULARY)
    return dedup(tokens)


def _host_label(page_url: str) -> str | None:
    """Registrable label of the page host: www.example-shoes.co.uk → example-shoes."""
    try:
        host = (urlparse(page_url).hostname or "").lower()
    except ValueError:
        return None
    labels = [part for part in host.split(".") if part and part not in _NON_BRAND_LABELS]
    if len(labels) < 2:
        return labels[0] if labels and _HOST_LABEL_RE.match(labels[0]) else None
    # drop the TLD, take the label right before it
    label = labels[-2]
    return label if _HOST_LABEL_RE.match(label) else None


def generate_generic_candidates(code: str, page_url: str | None = None) -> Iterator[str]:
    """Fallback expansion over generic CDN layouts for unknown brands."""
    return unique(
        expand(
            GENERIC_CDN_TEMPLATES,
            brand=brand_tokens(code, page_url),
            code=code_variants(code),
            view=GENERIC_VIEWS,
            region=GENERIC_REGIONS,
            size=GENERIC_SIZES,
        )
    )
