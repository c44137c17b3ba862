"""Tests for the HTTP surface, with the pipeline's collaborators replaced."""

import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient

import server
from fakes import FakeProbe
from fetcher import StaticPageFetcher
from pipeline import ImagePipeline

PAGE = """
<html><body>
  <img src="https://cdn.example.com/front.jpg">
  <img src="https://cdn.example.com/back.jpg">
</body></html>
"""


def _fake_pipeline(client) -> ImagePipeline:
    return ImagePipeline(StaticPageFetcher(PAGE), FakeProbe(delay=0))


class TestServer(unittest.TestCase):
    def setUp(self) -> None:
        patcher = patch.object(server, "_make_pipeline", _fake_pipeline)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.client = TestClient(server.app)

    def test_health(self) -> None:
        resp = self.client.get("/api/health")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"status": "ok"})

    def test_images_for_page(self) -> None:
        resp = self.client.get("/api/images", params={"url": "https://shop.example.com/"})
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["brand"], "unknown")
        self.assertIsNone(body["product_code"])
        self.assertEqual(
            body["images"],
            [
                {"src": "https://cdn.example.com/front.jpg", "width": "640", "height": "480", "alt": "Image 1"},
                {"src": "https://cdn.example.com/back.jpg", "width": "640", "height": "480", "alt": "Image 2"},
            ],
        )

    def test_malformed_url_is_400(self) -> None:
        resp = self.client.get("/api/images", params={"url": "ftp://shop.example.com/a"})
        self.assertEqual(resp.status_code, 400)
        self.assertIn("scheme", resp.json()["detail"])

    def test_unusable_port_is_400(self) -> None:
        resp = self.client.get("/api/images", params={"url": "https://shop.example.com:abc/p/ab-1234"})
        self.assertEqual(resp.status_code, 400)
        self.assertIn("Invalid URL", resp.json()["detail"])

    def test_missing_url_is_422(self) -> None:
        self.assertEqual(self.client.get("/api/images").status_code, 422)

    def test_images_for_code(self) -> None:
        resp = self.client.get("/api/images/code", params={"code": "1203A474-002", "brand": "asics"})
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["brand"], "asics")
        self.assertEqual(body["product_code"], "1203A474_002")
        # One image per view: eight named views plus the view-less base image
        self.assertEqual(len(body["images"]), 9)
        self.assertEqual(body["images"][0]["src"], "https://images.asics.com/is/image/asics/1203A474_002_SR_RT_GLB?$zoom$")

    def test_invalid_code_is_400(self) -> None:
        self.assertEqual(self.client.get("/api/images/code", params={"code": "---"}).status_code, 400)

    def test_unknown_brand_value_is_422(self) -> None:
        resp = self.client.get("/api/images/code", params={"code": "AB1234", "brand": "acme"})
        self.assertEqual(resp.status_code, 422)
