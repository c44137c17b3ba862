from dataclasses import dataclass, field

from pydantic import BaseModel, field_validator

import config
from brands import Brand


class ValidatedImage(BaseModel):
    """An image URL confirmed to serve image content in this run."""

    src: str
    # Placeholders: dimensions are never measured from pixels
    width: str = config.PLACEHOLDER_WIDTH
    height: str = config.PLACEHOLDER_HEIGHT
    alt: str = ""

    @field_validator("src")
    @classmethod
    def validate_src(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Image src must be an absolute http(s) URL, got {v!r}")
        return v


class ProbeResult(BaseModel):
    """What an HTTP probe saw for one candidate URL."""

    status_code: int
    content_type: str = ""  # raw header value, may carry parameters
    body_prefix: bytes = b""  # first bytes of the body, for signature sniffing


class ImagesResponse(BaseModel):
    """Payload returned by the HTTP surface and written by the CLI."""

    url: str | None = None
    brand: Brand
    product_code: str | None = None
    images: list[ValidatedImage]


@dataclass
class PipelineMetrics:
    """Per-run counters and stage timings collected by the pipeline."""

    url: str = ""
    brand: str = ""
    product_code: str | None = None
    # Candidate counts per stage
    generated: int = 0
    scraped: int = 0
    merged: int = 0
    clusters: int = 0
    validated: int = 0
    batches: list[int] = field(default_factory=list)
    fetch_failed: bool = False
    # Stage timing (seconds)
    generate_time: float = 0.0
    fetch_time: float = 0.0
    scrape_time: float = 0.0
    cluster_time: float = 0.0
    validate_time: float = 0.0
    total_time: float = 0.0
