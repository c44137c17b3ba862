"""Brand detection from raw URL text."""

from enum import Enum


class Brand(str, Enum):
    ASICS = "asics"
    NIKE = "nike"
    ADIDAS = "adidas"
    NEW_BALANCE = "new_balance"
    UNKNOWN = "unknown"


# Ordered marker table: first marker found in the lowercased URL wins.
# CDN hosts are listed too so image URLs classify the same as page URLs.
BRAND_MARKERS: list[tuple[str, Brand]] = [
    ("asics.com", Brand.ASICS),
    ("asics.co.jp", Brand.ASICS),
    ("images.asics", Brand.ASICS),
    ("onitsukatiger", Brand.ASICS),
    ("nike.com", Brand.NIKE),
    ("nikeid", Brand.NIKE),
    ("adidas", Brand.ADIDAS),
    ("newbalance", Brand.NEW_BALANCE),
    ("new-balance", Brand.NEW_BALANCE),
    ("nb.scene7.com", Brand.NEW_BALANCE),
]


def detect_brand(url: str) -> Brand:
    """Classify a URL into a known brand, or Brand.UNKNOWN."""
    if not isinstance(url, str):
        return Brand.UNKNOWN
    lowered = url.lower()
    for marker, brand in BRAND_MARKERS:
        if marker in lowered:
            return brand
    return Brand.UNKNOWN
