"""Error types for the image discovery pipeline.

Only InputError is ever surfaced to callers of the pipeline. Every other
failure degrades toward "fewer images" and is handled where it occurs.
"""


class ImageDiscoveryError(Exception):
    """Base class for all pipeline errors."""


class InputError(ImageDiscoveryError, ValueError):
    """The product page URL is malformed; the pipeline does not run."""


class ExtractionFailure(ImageDiscoveryError):
    """No product code could be extracted from a URL."""


class FetchError(ImageDiscoveryError):
    """The product page could not be retrieved or rendered."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason


class ProbeError(ImageDiscoveryError):
    """A single candidate URL could not be probed."""
