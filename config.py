"""
Runtime configuration.

Central place for tunable parameters. Each value can be overridden with an
IMAGE_DISCOVERY_<NAME> environment variable, read once at import time.
"""

import logging
import os

logger = logging.getLogger(__name__)

_ENV_PREFIX = "IMAGE_DISCOVERY_"


def _env_str(name: str, default: str) -> str:
    return os.environ.get(_ENV_PREFIX + name, default)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(_ENV_PREFIX + name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer {_ENV_PREFIX}{name}={raw!r}, using {default}")
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(_ENV_PREFIX + name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {_ENV_PREFIX}{name}={raw!r}, using {default}")
        return default


# Existence validation
VALIDATION_BATCH_SIZE = _env_int("VALIDATION_BATCH_SIZE", 5)  # concurrent probes per batch
PROBE_TIMEOUT = _env_float("PROBE_TIMEOUT", 5.0)  # seconds per candidate
MAX_REDIRECTS = _env_int("MAX_REDIRECTS", 5)
PREFIX_BYTES = _env_int("PREFIX_BYTES", 16)  # body bytes kept for signature sniffing

# Page fetch
FETCH_TIMEOUT = _env_float("FETCH_TIMEOUT", 15.0)

# Upper bound on generated candidates consumed per run. Clustering is O(n^2),
# so this caps the brute-force expansion before it reaches the clusterer.
MAX_GENERATED_CANDIDATES = _env_int("MAX_GENERATED_CANDIDATES", 600)

# Output placeholders (no pixel measurement is done)
PLACEHOLDER_WIDTH = _env_str("PLACEHOLDER_WIDTH", "640")
PLACEHOLDER_HEIGHT = _env_str("PLACEHOLDER_HEIGHT", "480")

USER_AGENT = _env_str(
    "USER_AGENT",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
)

# HTTP surface
CORS_ORIGINS = [o.strip() for o in _env_str("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()]
LOG_LEVEL = _env_str("LOG_LEVEL", "INFO")
