"""
Brand profiles: the brand-specific half of every pipeline stage.

Each profile bundles what is known about one brand's storefront and CDN:
product code patterns, image URL templates and naming axes, gallery CSS
selectors, and the structural signature used to decide whether two image
URLs show the same picture. GenericProfile supplies the fallbacks used for
unknown sites; known brands override only the data they have.

Module-level functions dispatch on Brand through PROFILES so callers never
branch on brand themselves.
"""

import functools
import logging
import re
from collections.abc import Iterator

from brands import Brand, detect_brand
from candidates import code_variants, dedup, expand, generate_generic_candidates, unique
from clustering import Signature, URLCluster, cluster_urls, generic_similar, representatives, signature_similar
from codes import extract_generic_code, match_code, normalize_code
from parser import extract_generic_candidates, make_soup, select_gallery

logger = logging.getLogger(__name__)


@functools.lru_cache(maxsize=65536)
def _match_signature(pattern: re.Pattern, url: str) -> Signature | None:
    """(code, view) from a brand signature pattern, or None when it doesn't match.

    Patterns use named groups: style (required), color and view (optional).
    """
    match = pattern.search(url)
    if not match:
        return None
    groups = match.groupdict()
    code = normalize_code(groups.get("style"), groups.get("color"))
    if not code:
        return None
    view = (groups.get("view") or "").upper()
    return code, view


class GenericProfile:
    """Fallback behaviour for unknown brands, and the base for known ones."""

    brand = Brand.UNKNOWN

    # Ordered, most specific first. Generic patterns are always tried after.
    code_patterns: list[re.Pattern] = []

    # URL templates formatted with {code}{view}{region}{size}
    cdn_templates: list[str] = []
    views: list[str] = [""]
    regions: list[str] = [""]
    sizes: list[str] = [""]

    # Ranked selector lists, one per storefront template version
    gallery_selectors: list[list[str]] = []

    signature_pattern: re.Pattern | None = None

    def extract_code(self, url: str) -> str | None:
        code = match_code(url, self.code_patterns) if self.code_patterns else None
        return code or extract_generic_code(url)

    def code_variants(self, code: str) -> list[str]:
        return code_variants(code)

    def generate_candidates(self, code: str, page_url: str | None = None) -> Iterator[str]:
        if not self.cdn_templates:
            return generate_generic_candidates(code, page_url)
        return unique(
            expand(
                self.cdn_templates,
                code=self.code_variants(code),
                view=self.views,
                region=self.regions,
                size=self.sizes,
            )
        )

    def scrape_page(self, html: str, base_url: str) -> list[str]:
        if not html or not html.strip():
            return []
        soup = make_soup(html)
        gallery = select_gallery(soup, base_url, self.gallery_selectors) if self.gallery_selectors else []
        return dedup(gallery + extract_generic_candidates(soup, base_url))

    def signature(self, url: str) -> Signature | None:
        if self.signature_pattern is None:
            return None
        return _match_signature(self.signature_pattern, url)

    def is_similar(self, a: str, b: str) -> bool:
        if self.signature_pattern is None:
            return generic_similar(a, b)
        return signature_similar(a, b, self.signature)


class AsicsProfile(GenericProfile):
    brand = Brand.ASICS

    code_patterns = [
        # /p/ANA_1203A474-002.html, /p/AJP_1011B548.001.html
        re.compile(r"/p/(?:[A-Z]{2,3}_)?(\d{4}[A-Z]\d{3})[-_.](\d{3})", re.IGNORECASE),
        # style and color anywhere in the path or query
        re.compile(r"(\d{4}[A-Z]\d{3})[-_.](\d{3})", re.IGNORECASE),
        # style only: /p/ANA_1203A474.html
        re.compile(r"/p/(?:[A-Z]{2,3}_)?(\d{4}[A-Z]\d{3})(?:\.html|[/?#]|$)", re.IGNORECASE),
    ]
    cdn_templates = [
        "https://images.asics.com/is/image/asics/{code}{view}{region}{size}",
        "https://asics.scene7.com/is/image/asics/{code}{view}{region}{size}",
    ]
    views = ["_SR_RT", "_SB_FR", "_SB_BK", "_SB_TP", "_SB_BT", "_SR_LT", "_SB_FL", "_SB_BR", ""]
    regions = ["_GLB", "_AJP", ""]
    sizes = ["?$zoom$", "?wid=1800", "?$sfcc-product$", "?wid=1200", ""]

    gallery_selectors = [
        [".product-carousel__image img", ".pdp-image-carousel img", "[data-zoom-image]"],
        [".product-primary-image img", ".primary-images .carousel-item img"],
        [".product-detail__images img"],
    ]

    signature_pattern = re.compile(
        r"(?P<style>\d{4}[A-Z]\d{3})[-_]?(?P<color>\d{3})(?:_(?P<view>S[BR]_[A-Z]{2}))?",
        re.IGNORECASE,
    )


class NikeProfile(GenericProfile):
    brand = Brand.NIKE

    code_patterns = [
        # /t/air-force-1-07-shoes-WrLlWX/CW2288-111
        re.compile(r"/t/[^/]+/([A-Z]{2}\d{4})-(\d{3})(?:[/?#]|$)", re.IGNORECASE),
        re.compile(r"[?&](?:pid|style-color|styleColor)=([A-Z]{2}\d{4})[-_](\d{3})", re.IGNORECASE),
        re.compile(r"\b([A-Z]{2}\d{4})-(\d{3})\b"),
    ]
    cdn_templates = [
        "https://images.nike.com/is/image/DotCom/{code}{view}{region}{size}",
        "https://secure-images.nike.com/is/image/DotCom/{code}{view}{region}{size}",
    ]
    views = ["_A", "_B", "_C", "_D", "_E", "_F", "_H", "_K", ""]
    regions = ["_PREM", ""]
    sizes = ["?fmt=png-alpha&wid=1800&hei=1800", "?wid=1200&hei=1200", "?$PDP_HERO_ZOOM$", ""]

    gallery_selectors = [
        ["[data-testid='HeroImgContainer'] img", "[data-testid='Thumbnail'] img"],
        ["#pdp-6-up img", ".css-du206p img"],
        [".exp-pdp-product-image img", ".product-image img"],
    ]

    signature_pattern = re.compile(
        r"(?P<style>[A-Z]{2}\d{4})[-_]?(?P<color>\d{3})(?:_(?P<view>[A-Z]\d?))?(?=_PREM|[?./]|$)",
        re.IGNORECASE,
    )


class AdidasProfile(GenericProfile):
    brand = Brand.ADIDAS

    code_patterns = [
        # /us/samba-og-shoes/B75806.html
        re.compile(r"/([A-Z]{1,2}\d{4,5})\.html", re.IGNORECASE),
        re.compile(r"[?&](?:pid|article|articleId)=([A-Z]{1,2}\d{4,5})\b", re.IGNORECASE),
    ]
    cdn_templates = [
        "https://assets.adidas.com/images/{size}{code}{view}{region}.jpg",
        "https://assets.adidas.com/images/{size}{code}{view}{region}.png",
    ]
    views = ["_01", "_02", "_03", "_04", "_05", "_06", "_09", "_41", "_42"]
    regions = ["_standard", "_standard_hover", "_detail", "_laydown"]
    sizes = ["w_1800,f_auto,q_auto/", "w_1200,f_auto,q_auto/", "w_600,f_auto,q_auto/", ""]

    gallery_selectors = [
        ["[data-testid='pdp-gallery-desktop-grid-container'] img", "[data-auto-id='image-grid'] img"],
        ["#pdp-gallery-desktop img", ".view-carousel img"],
        [".product-image-container img"],
    ]

    signature_pattern = re.compile(
        r"/(?P<style>[A-Z]{1,2}\d{4,5})(?:_(?P<view>\d{2}))?(?:_[a-z_]+)?\.(?:jpe?g|png|webp)",
        re.IGNORECASE,
    )

    def code_variants(self, code: str) -> list[str]:
        # Article numbers never carry separators; only case varies
        return dedup([code, code.lower()])


class NewBalanceProfile(GenericProfile):
    brand = Brand.NEW_BALANCE

    code_patterns = [
        # ?dwvar_M990V6-42937_style=M990GL6 names the exact colorway
        re.compile(r"dwvar_[A-Za-z0-9-]+_style=([A-Z0-9]{4,16})", re.IGNORECASE),
        # /pd/990v6/M990GL6.html or /pd/990v6/M990V6-42937.html
        re.compile(r"/pd/[^/]+/([A-Z0-9]{4,16})(?:-\d+)?\.html", re.IGNORECASE),
    ]
    cdn_templates = [
        "https://nb.scene7.com/is/image/NB/{code}{view}{region}{size}",
        "https://images.newbalance.com/is/image/NB/{code}{view}{region}{size}",
    ]
    views = ["_nb_02_i", "_nb_03_i", "_nb_04_i", "_nb_05_i", "_nb_06_i", "_nb_07_i", "_nb_01_i", ""]
    regions = [""]
    sizes = ["?$pdpflexf2$&wid=1800&hei=1800", "?$pdpflexf2$&wid=1200&hei=1200", "?$dw_detail_main_lg$", ""]

    gallery_selectors = [
        [".pdp-main-image img", ".product-images-carousel img"],
        ["[data-zoom-src]", ".pdp-image-container img"],
        [".primary-images img"],
    ]

    signature_pattern = re.compile(
        r"/(?P<style>[A-Z]{1,3}\d{2,4}[A-Z0-9]*?)(?:_(?P<view>nb_\d{2}_i))?(?=[?./]|$)",
        re.IGNORECASE,
    )

    def code_variants(self, code: str) -> list[str]:
        # Scene7 asset names are lowercase
        return dedup([code.lower(), code])


PROFILES: dict[Brand, GenericProfile] = {
    Brand.ASICS: AsicsProfile(),
    Brand.NIKE: NikeProfile(),
    Brand.ADIDAS: AdidasProfile(),
    Brand.NEW_BALANCE: NewBalanceProfile(),
    Brand.UNKNOWN: GenericProfile(),
}


def get_profile(brand: Brand | None) -> GenericProfile:
    return PROFILES.get(brand or Brand.UNKNOWN, PROFILES[Brand.UNKNOWN])


# ---------------------------------------------------------------------------
# Brand-dispatched operations
# ---------------------------------------------------------------------------


def extract_product_code(url: str, brand: Brand | None = None) -> str | None:
    """Normalized product code for a page URL, or None when nothing matches."""
    if brand is None:
        brand = detect_brand(url)
    return get_profile(brand).extract_code(url)


def generate_candidates(code: str, brand: Brand | None = None, page_url: str | None = None) -> Iterator[str]:
    """Lazy, deduplicated stream of hypothesized image URLs for a code."""
    return get_profile(brand).generate_candidates(code, page_url)


def extract_page_candidates(html: str, base_url: str, brand: Brand | None = None) -> list[str]:
    """Candidate image URLs scraped from rendered page HTML."""
    return get_profile(brand).scrape_page(html, base_url)


def is_similar(a: str, b: str, brand: Brand | None = None) -> bool:
    return get_profile(brand).is_similar(a, b)


def cluster_candidates(urls: list[str], brand: Brand | None = None) -> list[URLCluster]:
    """Exact-dedup then greedy similarity clustering with the brand's rule."""
    return cluster_urls(dedup(urls), get_profile(brand).is_similar)


def select_representatives(urls: list[str], brand: Brand | None = None) -> list[str]:
    """One highest-resolution URL per cluster, in cluster order."""
    return representatives(cluster_candidates(urls, brand))
