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

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)

RECIPE_ALT_KEYWORDS = (
    "recipe",
    "food",
    "dish",
    "meal",
    "cooking",
    "kitchen",
    "ingredient",
)
RECIPE_SRC_KEYWORDS = ("recipe", "food")
RECIPE_CONTAINER_SELECTOR = (
    ':is([class*="recipe"], [class*="food"], [class*="dish"], '
    '[id*="recipe"], [id*="food"]) img'
)
LARGE_IMAGE_MIN_DIMENSION = 300

EXCLUDED_SUBSTRINGS = (
    "logo",
    "icon",
    "avatar",
    "profile",
    "banner",
    "ad",
    "advertisement",
)

PRIORITY_OPEN_GRAPH = 1
PRIORITY_TWITTER_CARD = 2
PRIORITY_KEYWORD_MATCH = 3
PRIORITY_RECIPE_CONTAINER = 4
PRIORITY_LARGE_IMAGE = 5
PRIORITY_ANY_IMAGE = 6


@dataclass
class ImageCandidate:
    src: str
    priority: int
    alt: str = ""


def make_absolute(src: str, page_url: str) -> str:
    """
    Resolves an image reference against the origin of the page it came from.

    Args:
        src (str): The raw src or content attribute value.
        page_url (str): The URL of the page the image was found on.

    Returns:
        str: An absolute URL. Protocol-relative URLs are given https.
    """
    src = src.strip()
    if src.startswith("http"):
        return src
    if src.startswith("//"):
        return f"https:{src}"

    parsed = urlparse(page_url)
    origin = f"{parsed.scheme}://{parsed.netloc}"
    if src.startswith("/"):
        return f"{origin}{src}"
    return f"{origin}/{src}"


def is_recipe_image(src: str, alt: str = "") -> bool:
    alt_lower = (alt or "").lower()
    src_lower = src.lower()
    return any(keyword in alt_lower for keyword in RECIPE_ALT_KEYWORDS) or any(
        keyword in src_lower for keyword in RECIPE_SRC_KEYWORDS
    )


def is_excluded_image(src: str) -> bool:
    """Returns True for URLs that look like logos, icons, avatars or ads."""
    src_lower = src.lower()
    return any(part in src_lower for part in EXCLUDED_SUBSTRINGS)


def _image_src(img: Tag) -> str:
    src = img.get("src") or img.get("data-src") or ""
    return src.strip()


def _parse_dimension(value: Optional[str]) -> int:
    if not value:
        return 0
    match = re.match(r"\s*(\d+)", str(value))
    return int(match.group(1)) if match else 0


def collect_image_candidates(soup: BeautifulSoup, page_url: str) -> List[ImageCandidate]:
    """
    Collects image candidates from a parsed page, ordered by priority.

    Within a priority, candidates keep document order. The same image may
    appear under several priorities, except for the catch-all pass which
    only adds images that are not candidates yet.
    """
    candidates: List[ImageCandidate] = []

    for meta in soup.find_all("meta", attrs={"property": "og:image"}):
        content = (meta.get("content") or "").strip()
        if content:
            candidates.append(
                ImageCandidate(make_absolute(content, page_url), PRIORITY_OPEN_GRAPH)
            )

    for meta in soup.find_all("meta", attrs={"name": "twitter:image"}):
        content = (meta.get("content") or "").strip()
        if content:
            candidates.append(
                ImageCandidate(make_absolute(content, page_url), PRIORITY_TWITTER_CARD)
            )

    images = soup.find_all("img")

    for img in images:
        src = _image_src(img)
        alt = img.get("alt") or ""
        if src and is_recipe_image(src, alt):
            candidates.append(
                ImageCandidate(make_absolute(src, page_url), PRIORITY_KEYWORD_MATCH, alt)
            )

    for img in soup.select(RECIPE_CONTAINER_SELECTOR):
        src = _image_src(img)
        if src:
            candidates.append(
                ImageCandidate(
                    make_absolute(src, page_url),
                    PRIORITY_RECIPE_CONTAINER,
                    img.get("alt") or "",
                )
            )

    for img in images:
        src = _image_src(img)
        width = _parse_dimension(img.get("width"))
        height = _parse_dimension(img.get("height"))
        if src and (
            width > LARGE_IMAGE_MIN_DIMENSION or height > LARGE_IMAGE_MIN_DIMENSION
        ):
            candidates.append(
                ImageCandidate(
                    make_absolute(src, page_url),
                    PRIORITY_LARGE_IMAGE,
                    img.get("alt") or "",
                )
            )

    for img in images:
        src = _image_src(img)
        if not src:
            continue
        absolute = make_absolute(src, page_url)
        if not any(candidate.src == absolute for candidate in candidates):
            candidates.append(
                ImageCandidate(absolute, PRIORITY_ANY_IMAGE, img.get("alt") or "")
            )

    # sort() is stable, so document order survives within a priority.
    candidates.sort(key=lambda candidate: candidate.priority)
    return candidates


def extract_best_image(soup: BeautifulSoup, page_url: str) -> Optional[str]:
    """
    Picks the image most likely to show the finished dish.

    Args:
        soup (BeautifulSoup): The parsed page.
        page_url (str): The URL the page was fetched from.

    Returns:
        Optional[str]: The absolute image URL, or None if nothing suitable
            was found.
    """
    try:
        for candidate in collect_image_candidates(soup, page_url):
            if not is_excluded_image(candidate.src):
                return candidate.src
    except Exception:
        logger.exception("Error extracting image from %s", page_url)
    return None
