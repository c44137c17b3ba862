"""In-memory collaborators shared by the async tests."""

import asyncio

import httpx

from models import ProbeResult

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 24


class FakeProbe:
    """HttpProbe double that records calls and peak concurrency.

    URLs in `failing` raise a connection error, URLs in `missing` answer 404,
    everything else (or only `valid`, when given) answers with an image.
    """

    def __init__(self, valid=None, failing=(), missing=(), delay=0.01):
        self.valid = set(valid) if valid is not None else None
        self.failing = set(failing)
        self.missing = set(missing)
        self.delay = delay
        self.calls: list[str] = []
        self.active = 0
        self.max_active = 0

    async def probe(self, url: str) -> ProbeResult:
        self.calls.append(url)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delay)
            if url in self.failing:
                raise httpx.ConnectError(f"connection refused: {url}")
            if url in self.missing or (self.valid is not None and url not in self.valid):
                return ProbeResult(status_code=404, content_type="text/html")
            return ProbeResult(status_code=200, content_type="image/jpeg")
        finally:
            self.active -= 1
