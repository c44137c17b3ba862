"""Tests for similarity clustering and representative selection."""

import unittest

from brands import Brand
from clustering import (
    URLCluster,
    cluster_urls,
    generic_similar,
    pick_representative,
    resolution_score,
    strip_size_suffix,
)
from profiles import cluster_candidates, is_similar, select_representatives

ASICS_CDN = "https://images.asics.com/is/image/asics/"


class TestResolutionScore(unittest.TestCase):
    def test_marker_priority(self) -> None:
        self.assertEqual(resolution_score("https://x.com/a.jpg?$ZOOM$"), 5)
        self.assertEqual(resolution_score("https://x.com/a.jpg?wid=1800"), 4)
        self.assertEqual(resolution_score("https://x.com/a.jpg?wid=1200"), 3)
        self.assertEqual(resolution_score("https://x.com/a_900.jpg"), 2)
        self.assertEqual(resolution_score("https://x.com/a_600.jpg"), 1)
        self.assertEqual(resolution_score("https://x.com/a.jpg"), 0)

    def test_zoom_wins_tie_break(self) -> None:
        members = [
            "https://x.com/a_600.jpg",
            "https://x.com/a_900.jpg",
            "https://x.com/a_1800.jpg",
            "https://x.com/a_zoom.jpg",
        ]
        self.assertEqual(pick_representative(members), "https://x.com/a_zoom.jpg")

    def test_equal_scores_keep_member_order(self) -> None:
        members = ["https://x.com/b.jpg?wid=1200", "https://x.com/a.jpg?wid=1200"]
        self.assertEqual(pick_representative(members), "https://x.com/b.jpg?wid=1200")


class TestGenericSimilarity(unittest.TestCase):
    def test_size_suffix_and_query_stripped(self) -> None:
        self.assertEqual(strip_size_suffix("https://x.com/a/shoe_800x600.jpg?v=3"), "https://x.com/a/shoe.jpg")
        self.assertTrue(generic_similar("https://cdn.x.com/img/shoe_800x600.jpg?v=3", "https://cdn.x.com/img/shoe.jpg"))

    def test_same_bare_filename_on_mirror(self) -> None:
        self.assertTrue(generic_similar("https://a.com/x/shoe.jpg", "https://b.com/y/shoe.png"))

    def test_different_views_are_distinct(self) -> None:
        self.assertFalse(generic_similar("https://a.com/shoe-front.jpg", "https://a.com/shoe-back.jpg"))


class TestSignatureSimilarity(unittest.TestCase):
    """Brand rule: same (code, view) signature means same image."""

    def test_same_view_across_mirrors_and_sizes(self) -> None:
        a = ASICS_CDN + "1203A474_002_SR_RT_GLB?$zoom$"
        b = "https://asics.scene7.com/is/image/asics/1203A474_002_SR_RT_GLB?wid=1200"
        self.assertTrue(is_similar(a, b, Brand.ASICS))

    def test_different_view(self) -> None:
        a = ASICS_CDN + "1203A474_002_SR_RT_GLB"
        b = ASICS_CDN + "1203A474_002_SB_FR_GLB"
        self.assertFalse(is_similar(a, b, Brand.ASICS))

    def test_base_images_without_view_match(self) -> None:
        self.assertTrue(is_similar(ASICS_CDN + "1203A474_002_GLB", ASICS_CDN + "1203a474-002", Brand.ASICS))

    def test_missing_signature_falls_back_to_generic(self) -> None:
        self.assertTrue(is_similar("https://x.com/a/promo.jpg", "https://x.com/b/promo_800x600.jpg", Brand.ASICS))

    def test_nike_views(self) -> None:
        base = "https://images.nike.com/is/image/DotCom/"
        self.assertTrue(is_similar(base + "CW2288_111_A_PREM?wid=1200", base + "CW2288_111_A_PREM", Brand.NIKE))
        self.assertFalse(is_similar(base + "CW2288_111_A_PREM", base + "CW2288_111_B_PREM", Brand.NIKE))


class TestClusterUrls(unittest.TestCase):
    def test_every_url_in_exactly_one_cluster(self) -> None:
        urls = [
            "https://x.com/a.jpg",
            "https://x.com/b.jpg",
            "https://x.com/a_800x600.jpg",
            "https://y.com/a.png",
            "https://x.com/c.jpg?v=1",
            "https://x.com/c.jpg?v=2",
        ]
        clusters = cluster_urls(urls, generic_similar)
        members = [m for c in clusters for m in c.members]
        self.assertEqual(sorted(members), sorted(urls))
        self.assertEqual(len(clusters), 3)

    def test_seed_is_first_member(self) -> None:
        cluster = URLCluster(seed="https://x.com/a.jpg")
        self.assertEqual(cluster.members, ["https://x.com/a.jpg"])

    def test_greedy_result_depends_on_order(self) -> None:
        """Similarity need not be transitive; the first seed decides."""

        def near(a: str, b: str) -> bool:
            return abs(int(a) - int(b)) <= 1

        self.assertEqual([c.members for c in cluster_urls(["1", "2", "3"], near)], [["1", "2"], ["3"]])
        self.assertEqual([c.members for c in cluster_urls(["2", "1", "3"], near)], [["2", "1", "3"]])

    def test_empty(self) -> None:
        self.assertEqual(cluster_urls([], generic_similar), [])


class TestSelectRepresentatives(unittest.TestCase):
    def test_one_highest_resolution_url_per_view(self) -> None:
        urls = [
            ASICS_CDN + "1203A474_002_SR_RT_GLB?wid=1200",
            ASICS_CDN + "1203A474_002_SR_RT_GLB?$zoom$",
            ASICS_CDN + "1203A474_002_SB_FR_GLB?wid=1800",
        ]
        self.assertEqual(
            select_representatives(urls, Brand.ASICS),
            [ASICS_CDN + "1203A474_002_SR_RT_GLB?$zoom$", ASICS_CDN + "1203A474_002_SB_FR_GLB?wid=1800"],
        )

    def test_exact_duplicates_removed_first(self) -> None:
        clusters = cluster_candidates(["https://x.com/a.jpg", "https://x.com/a.jpg"], Brand.UNKNOWN)
        self.assertEqual([c.members for c in clusters], [["https://x.com/a.jpg"]])
