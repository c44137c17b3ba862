"""
FastAPI server for product image discovery.

Endpoints:
- GET /api/images?url=...              → validated images for a product page
- GET /api/images/code?code=&brand=    → validated images for a bare product code
- GET /api/health                      → liveness
"""

import logging

import httpx
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import ORJSONResponse

import config
from brands import Brand
from errors import InputError
from fetcher import HttpxPageFetcher
from models import ImagesResponse
from pipeline import ImagePipeline
from validator import HttpxProbe

logger = logging.getLogger("server")


def _make_pipeline(client: httpx.AsyncClient) -> ImagePipeline:
    return ImagePipeline(HttpxPageFetcher(client), HttpxProbe(client))


async def _run_for_url(url: str) -> ImagesResponse:
    async with httpx.AsyncClient(max_redirects=config.MAX_REDIRECTS) as client:
        pipeline = _make_pipeline(client)
        images = await pipeline.get_images(url)
        metrics = pipeline.last_metrics
    return ImagesResponse(
        url=metrics.url,
        brand=Brand(metrics.brand),
        product_code=metrics.product_code,
        images=images,
    )


async def _run_for_code(code: str, brand: Brand) -> ImagesResponse:
    async with httpx.AsyncClient(max_redirects=config.MAX_REDIRECTS) as client:
        pipeline = _make_pipeline(client)
        images = await pipeline.get_images_for_code(code, brand)
        metrics = pipeline.last_metrics
    return ImagesResponse(brand=brand, product_code=metrics.product_code, images=images)


# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Product Image Discovery API",
    default_response_class=ORJSONResponse,
)

app.add_middleware(GZipMiddleware, minimum_size=500)
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_methods=["GET"],
    allow_headers=["*"],
    max_age=86400,
)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@app.get("/api/health")
async def health():
    return {"status": "ok"}


@app.get("/api/images", response_model=ImagesResponse)
async def get_images(url: str = Query(..., description="Product page URL")):
    """Discover and validate product images for a page URL.

    An empty image list is a normal result; only a malformed URL is an error.
    """
    logger.info("Image request: %s", url)
    try:
        response = await _run_for_url(url)
    except InputError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    logger.info("Returning %d images for %s", len(response.images), url)
    return response


@app.get("/api/images/code", response_model=ImagesResponse)
async def get_images_for_code(
    code: str = Query(..., description="Product code, e.g. 1203A474-002"),
    brand: Brand = Query(Brand.UNKNOWN),
):
    """Discover and validate product images from a bare product code."""
    try:
        return await _run_for_code(code, brand)
    except InputError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
