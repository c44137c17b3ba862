"""
Similarity clustering of candidate image URLs.

Candidates that probably depict the same image (same product and view,
different size suffix, CDN mirror, or cache-busting query) are grouped and
one representative per group is kept, preferring the highest resolution.

Clustering is a greedy single pass: the first unclustered URL seeds a
cluster and absorbs every later unclustered URL similar to the seed.
Similarity is not transitive, so the result depends on input order.
"""

import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

# Resolution markers, highest first. Score = len(markers) - position.
RESOLUTION_MARKERS = ["zoom", "1800", "1200", "900", "600"]

# Trailing WxH size descriptor on a filename stem: image_800x600, image-1200x, image_x900
_SIZE_SUFFIX_RE = re.compile(r"[-_](?:\d+x\d*|\d*x\d+)$", re.IGNORECASE)
_EXTENSION_RE = re.compile(r"\.[A-Za-z0-9]{2,5}$")


@dataclass
class URLCluster:
    """Candidate URLs judged to depict the same image.

    The seed is always the first member; the rest keep input order.
    """

    seed: str
    members: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.members:
            self.members = [self.seed]

    @property
    def representative(self) -> str:
        return pick_representative(self.members)


def resolution_score(url: str) -> int:
    """Heuristic resolution priority inferred from substrings of the URL."""
    lowered = url.lower()
    for i, marker in enumerate(RESOLUTION_MARKERS):
        if marker in lowered:
            return len(RESOLUTION_MARKERS) - i
    return 0


def pick_representative(members: list[str]) -> str:
    """Highest resolution score wins; ties keep member order (stable sort)."""
    return sorted(members, key=resolution_score, reverse=True)[0]


def _split_path(url: str) -> tuple[str, str]:
    """Strip query and fragment, return (directory, filename)."""
    path = url.split("#", 1)[0].split("?", 1)[0]
    if "/" in path:
        head, _, filename = path.rpartition("/")
        return head, filename
    return "", path


def _strip_filename(filename: str) -> tuple[str, str]:
    """Split a filename into (stem without size suffix, extension)."""
    ext_match = _EXTENSION_RE.search(filename)
    ext = ext_match.group(0) if ext_match else ""
    stem = filename[: len(filename) - len(ext)] if ext else filename
    return _SIZE_SUFFIX_RE.sub("", stem), ext


def strip_size_suffix(url: str) -> str:
    """Drop query, fragment and a trailing WxH size suffix from the filename.

    https://x.com/a/shoe_800x600.jpg?v=3 → https://x.com/a/shoe.jpg
    """
    head, filename = _split_path(url)
    stem, ext = _strip_filename(filename)
    stripped = stem + ext
    return f"{head}/{stripped}" if head else stripped


def bare_filename(url: str) -> str:
    """Filename without extension, query or size suffix, lowercased."""
    _, filename = _split_path(url)
    stem, _ = _strip_filename(filename)
    return stem.lower()


def generic_similar(a: str, b: str) -> bool:
    """Same image if the URLs match once query and size suffix are stripped,
    or, failing that, if their bare filenames are equal."""
    if a == b:
        return True
    if strip_size_suffix(a) == strip_size_suffix(b):
        return True
    name_a = bare_filename(a)
    return bool(name_a) and name_a == bare_filename(b)


Signature = tuple[str, str]  # (product code, view token); view may be ""


def signature_similar(a: str, b: str, signature: Callable[[str], Signature | None]) -> bool:
    """Brand rule: compare structural (code, view) signatures.

    Two URLs without a view component are the same "base" image. When either
    URL has no recognizable signature, the generic rule decides.
    """
    if a == b:
        return True
    sig_a = signature(a)
    sig_b = signature(b)
    if sig_a is None or sig_b is None:
        return generic_similar(a, b)
    return sig_a == sig_b


def cluster_urls(urls: Iterable[str], is_similar: Callable[[str, str], bool]) -> list[URLCluster]:
    """Greedy, order-dependent clustering.

    Every input URL lands in exactly one cluster. Duplicate strings are
    absorbed by the first occurrence's cluster.
    """
    items = list(urls)
    clustered = [False] * len(items)
    clusters: list[URLCluster] = []

    for i, seed in enumerate(items):
        if clustered[i]:
            continue
        clustered[i] = True
        cluster = URLCluster(seed=seed)
        for j in range(i + 1, len(items)):
            if not clustered[j] and is_similar(seed, items[j]):
                clustered[j] = True
                cluster.members.append(items[j])
        clusters.append(cluster)

    logger.debug(f"Clustered {len(items)} URLs into {len(clusters)} clusters")
    return clusters


def representatives(clusters: list[URLCluster]) -> list[str]:
    """One URL per cluster, in cluster order."""
    return [c.representative for c in clusters]
