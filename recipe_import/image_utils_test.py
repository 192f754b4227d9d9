# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================



import unittest
from unittest.mock import patch

from bs4 import BeautifulSoup

from recipe_import import image_utils

PAGE_URL = "https://cooking.example.com/recipes/goulash"


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


class ImageUtilsTest(unittest.TestCase):

    def test_make_absolute(self):
        """Tests resolving the different forms of image references."""
        self.assertEqual(
            image_utils.make_absolute("https://cdn.example.com/a.jpg", PAGE_URL),
            "https://cdn.example.com/a.jpg",
        )
        self.assertEqual(
            image_utils.make_absolute("//cdn.example.com/a.jpg", PAGE_URL),
            "https://cdn.example.com/a.jpg",
        )
        self.assertEqual(
            image_utils.make_absolute("/img/a.jpg", PAGE_URL),
            "https://cooking.example.com/img/a.jpg",
        )
        self.assertEqual(
            image_utils.make_absolute("img/a.jpg", PAGE_URL),
            "https://cooking.example.com/img/a.jpg",
        )

    def test_is_excluded_image(self):
        for src in [
            "https://x.com/site-logo.png",
            "https://x.com/icons/star.svg",
            "https://x.com/users/avatar-1.jpg",
            "https://x.com/ads/banner.gif",
            "https://ad.doubleclick.net/pixel.gif",
            "https://x.com/img/ad_300x250.jpg",
        ]:
            self.assertTrue(image_utils.is_excluded_image(src), src)

    def test_ad_matches_anywhere_in_url(self):
        for src in [
            "https://x.com/img/salad.jpg",
            "https://x.com/uploads/goulash.jpg",
            "https://x.com/img/bread-loaded.jpg",
        ]:
            self.assertTrue(image_utils.is_excluded_image(src), src)
        for src in [
            "https://x.com/img/stew.jpg",
            "https://x.com/photos/goulash.webp",
        ]:
            self.assertFalse(image_utils.is_excluded_image(src), src)

    def test_is_recipe_image(self):
        self.assertTrue(image_utils.is_recipe_image("/a.jpg", "Finished dish"))
        self.assertTrue(image_utils.is_recipe_image("/food/a.jpg", ""))
        self.assertFalse(image_utils.is_recipe_image("/a.jpg", "our team"))

    def test_open_graph_wins(self):
        html = """
        <html><head>
          <meta name="twitter:image" content="https://x.com/twitter.jpg">
          <meta property="og:image" content="/og.jpg">
        </head><body>
          <img src="/recipe-photo.jpg" alt="recipe">
        </body></html>
        """
        self.assertEqual(
            image_utils.extract_best_image(_soup(html), PAGE_URL),
            "https://cooking.example.com/og.jpg",
        )

    def test_excluded_candidates_are_skipped(self):
        html = """
        <html><head><meta property="og:image" content="https://x.com/logo.png"></head>
        <body><div class="recipe-card"><img src="/photos/stew.jpg"></div></body></html>
        """
        self.assertEqual(
            image_utils.extract_best_image(_soup(html), PAGE_URL),
            "https://cooking.example.com/photos/stew.jpg",
        )

    def test_priority_order(self):
        html = """
        <body>
          <img src="/plain.jpg">
          <img src="/big.jpg" width="640" height="480">
          <section id="food-gallery"><img src="/gallery.jpg"></section>
          <img src="/meal.jpg" alt="A hearty meal">
        </body>
        """
        candidates = image_utils.collect_image_candidates(_soup(html), PAGE_URL)
        priorities = [(c.src.rsplit("/", 1)[-1], c.priority) for c in candidates]
        self.assertEqual(
            priorities,
            [
                ("meal.jpg", image_utils.PRIORITY_KEYWORD_MATCH),
                ("gallery.jpg", image_utils.PRIORITY_RECIPE_CONTAINER),
                ("big.jpg", image_utils.PRIORITY_LARGE_IMAGE),
                ("plain.jpg", image_utils.PRIORITY_ANY_IMAGE),
            ],
        )

    def test_lazy_loaded_images_use_data_src(self):
        html = '<body><img data-src="/lazy/dish.jpg" alt="dish"></body>'
        self.assertEqual(
            image_utils.extract_best_image(_soup(html), PAGE_URL),
            "https://cooking.example.com/lazy/dish.jpg",
        )

    def test_no_images(self):
        self.assertIsNone(
            image_utils.extract_best_image(_soup("<p>text only</p>"), PAGE_URL)
        )

    def test_errors_yield_none(self):
        with patch.object(
            image_utils, "collect_image_candidates", side_effect=RuntimeError("boom")
        ):
            self.assertIsNone(image_utils.extract_best_image(_soup("<img>"), PAGE_URL))


if __name__ == "__main__":
    unittest.main()
