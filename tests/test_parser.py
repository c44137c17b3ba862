"""
Tests for page content extraction.

Each generic rule is exercised on a small HTML fragment; brand gallery
selectors are tested through select_gallery and the Asics profile.
"""

import unittest

from brands import Brand
from parser import extract_generic_candidates, make_soup, resolve_url, select_gallery, srcset_urls
from profiles import extract_page_candidates

BASE = "https://shop.example.com/products/runner-1"


def _page(body: str, head: str = "") -> str:
    return f"<!DOCTYPE html><html><head>{head}</head><body>{body}</body></html>"


def _extract(body: str, head: str = "", base_url: str = BASE) -> list[str]:
    return extract_generic_candidates(make_soup(_page(body, head)), base_url)


class TestResolveUrl(unittest.TestCase):
    def test_relative_and_protocol_relative(self) -> None:
        self.assertEqual(resolve_url("/img/a.jpg", BASE), "https://shop.example.com/img/a.jpg")
        self.assertEqual(resolve_url("//cdn.example.com/a.jpg", BASE), "https://cdn.example.com/a.jpg")

    def test_escaped_slashes_from_json(self) -> None:
        self.assertEqual(resolve_url("https:\\/\\/cdn.example.com\\/a.jpg", BASE), "https://cdn.example.com/a.jpg")

    def test_rejected_values(self) -> None:
        for raw in (None, "", "   ", "data:image/png;base64,AAAA", "javascript:void(0)", "/static/logo.png", "/favicon.ico"):
            with self.subTest(raw=raw):
                self.assertIsNone(resolve_url(raw, BASE))

    def test_unrequestable_url_dropped(self) -> None:
        self.assertIsNone(resolve_url("https://cdn.example.com:abc/a.jpg", BASE))

    def test_srcset_tokens(self) -> None:
        self.assertEqual(
            srcset_urls("https://cdn.example.com/a_600.jpg 600w, https://cdn.example.com/a_1200.jpg 1200w"),
            ["https://cdn.example.com/a_600.jpg", "https://cdn.example.com/a_1200.jpg"],
        )
        self.assertEqual(srcset_urls(None), [])


class TestGenericRules(unittest.TestCase):
    def test_img_src_resolved_against_page(self) -> None:
        self.assertEqual(_extract('<img src="/img/shoe.jpg">'), ["https://shop.example.com/img/shoe.jpg"])

    def test_lazy_attributes_all_kept(self) -> None:
        """A placeholder src must not hide the real data-src image."""
        urls = _extract('<img src="/img/placeholder.gif" data-src="/img/real.jpg" data-lazy="/img/lazy.jpg">')
        self.assertIn("https://shop.example.com/img/real.jpg", urls)
        self.assertIn("https://shop.example.com/img/lazy.jpg", urls)

    def test_img_srcset(self) -> None:
        urls = _extract('<img srcset="https://cdn.example.com/a_600.jpg 600w, https://cdn.example.com/a_1200.jpg 1200w">')
        self.assertEqual(urls, ["https://cdn.example.com/a_600.jpg", "https://cdn.example.com/a_1200.jpg"])

    def test_picture_sources(self) -> None:
        urls = _extract('<picture><source srcset="https://cdn.example.com/p.webp 1x"><img src="https://cdn.example.com/p.jpg"></picture>')
        self.assertIn("https://cdn.example.com/p.webp", urls)
        self.assertIn("https://cdn.example.com/p.jpg", urls)

    def test_open_graph_and_twitter_meta(self) -> None:
        head = (
            '<meta property="og:image" content="https://cdn.example.com/og.jpg">'
            '<meta name="twitter:image" content="https://cdn.example.com/tw.jpg">'
        )
        self.assertEqual(_extract("", head), ["https://cdn.example.com/og.jpg", "https://cdn.example.com/tw.jpg"])

    def test_inline_and_block_css_backgrounds(self) -> None:
        head = "<style>.hero { background: url(/img/hero.jpg) no-repeat; }</style>"
        body = "<div style=\"background-image: url('https://cdn.example.com/bg.jpg')\"></div>"
        urls = _extract(body, head)
        self.assertIn("https://cdn.example.com/bg.jpg", urls)
        self.assertIn("https://shop.example.com/img/hero.jpg", urls)

    def test_json_ld_product_images(self) -> None:
        body = """
        <script type="application/ld+json">
        {"@context": "https://schema.org", "@type": "Product", "name": "Runner",
         "image": ["https://cdn.example.com/ld1.jpg",
                   {"@type": "ImageObject", "url": "https://cdn.example.com/ld2.jpg"}]}
        </script>
        """
        self.assertEqual(_extract(body), ["https://cdn.example.com/ld1.jpg", "https://cdn.example.com/ld2.jpg"])

    def test_json_ld_graph(self) -> None:
        body = """
        <script type="application/ld+json">
        {"@graph": [{"@type": "WebPage"}, {"@type": "Product", "image": "https://cdn.example.com/graph.jpg"}]}
        </script>
        """
        self.assertEqual(_extract(body), ["https://cdn.example.com/graph.jpg"])

    def test_malformed_json_does_not_stop_other_rules(self) -> None:
        body = """
        <img src="https://cdn.example.com/ok.jpg">
        <script type="application/ld+json">{"@type": "Product", "image": </script>
        <script type="application/json" id="__NEXT_DATA__">{not json</script>
        """
        self.assertEqual(_extract(body), ["https://cdn.example.com/ok.jpg"])

    def test_deeply_nested_json_is_skipped(self) -> None:
        """JSON nested past the decoder's recursion limit only skips that block."""
        nested = "[" * 100000 + "]" * 100000
        for script in (
            f'<script type="application/json">{nested}</script>',
            f'<script type="application/ld+json">{nested}</script>',
            f"<script>window.__STATE__ = {nested};</script>",
        ):
            with self.subTest(script=script[:40]):
                urls = _extract(script + '<img src="https://cdn.example.com/ok.jpg">')
                self.assertEqual(urls, ["https://cdn.example.com/ok.jpg"])

    def test_embedded_state_objects(self) -> None:
        body = """
        <script id="__NEXT_DATA__" type="application/json">
        {"props": {"product": {"gallery": [{"src": "https://cdn.example.com/next.jpg"}]}}}
        </script>
        <script>
        window.__INITIAL_STATE__ = {"product": {"media": [{"url": "https://cdn.example.com/state.jpg"}]}};
        </script>
        """
        urls = _extract(body)
        self.assertIn("https://cdn.example.com/next.jpg", urls)
        self.assertIn("https://cdn.example.com/state.jpg", urls)

    def test_script_regex_sweep(self) -> None:
        body = "<script>var imgs = ['https://cdn.example.com/sweep.png?v=2'];</script>"
        self.assertEqual(_extract(body), ["https://cdn.example.com/sweep.png?v=2"])

    def test_zoom_links_and_attributes(self) -> None:
        body = (
            '<a href="/images/shoe_zoom.jpg">Zoom</a>'
            '<div data-zoom-image="https://cdn.example.com/z.jpg"></div>'
            '<a href="/help">Help</a>'
        )
        self.assertEqual(
            _extract(body),
            ["https://shop.example.com/images/shoe_zoom.jpg", "https://cdn.example.com/z.jpg"],
        )

    def test_base_href_is_honoured(self) -> None:
        urls = _extract('<img src="img/a.jpg">', '<base href="https://static.example.com/assets/">')
        self.assertEqual(urls, ["https://static.example.com/assets/img/a.jpg"])

    def test_chrome_and_data_uris_dropped(self) -> None:
        body = '<img src="data:image/png;base64,AAAA"><img src="/static/logo.png"><img src="/img/sprite.png">'
        self.assertEqual(_extract(body), [])

    def test_output_has_no_duplicates(self) -> None:
        body = '<img src="https://cdn.example.com/a.jpg"><a href="https://cdn.example.com/a.jpg"><img src="https://cdn.example.com/a.jpg"></a>'
        self.assertEqual(_extract(body), ["https://cdn.example.com/a.jpg"])


class TestGallerySelectors(unittest.TestCase):
    """Ranked selector lists: the first list that yields anything wins."""

    HTML = _page(
        '<div class="product-carousel__image"><img src="https://images.asics.com/g1.jpg"></div>'
        '<div class="product-primary-image"><img src="https://images.asics.com/g2.jpg"></div>'
        '<img src="https://images.asics.com/other.jpg">'
    )

    def test_first_matching_list_short_circuits(self) -> None:
        soup = make_soup(self.HTML)
        urls = select_gallery(soup, BASE, [[".product-carousel__image img"], [".product-primary-image img"]])
        self.assertEqual(urls, ["https://images.asics.com/g1.jpg"])

    def test_falls_through_to_next_list(self) -> None:
        soup = make_soup(self.HTML)
        urls = select_gallery(soup, BASE, [[".missing img"], [".product-primary-image img"]])
        self.assertEqual(urls, ["https://images.asics.com/g2.jpg"])

    def test_brand_gallery_comes_first(self) -> None:
        urls = extract_page_candidates(self.HTML, "https://www.asics.com/us/en-us/p/ANA_1203A474-002.html", Brand.ASICS)
        self.assertEqual(urls[0], "https://images.asics.com/g1.jpg")
        self.assertIn("https://images.asics.com/g2.jpg", urls)
        self.assertEqual(len(urls), len(set(urls)))

    def test_empty_html(self) -> None:
        self.assertEqual(extract_page_candidates("", BASE), [])
        self.assertEqual(extract_page_candidates("   ", BASE, Brand.NIKE), [])
