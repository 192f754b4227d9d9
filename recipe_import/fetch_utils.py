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

from urllib.parse import urlparse

import requests

REQUEST_TIMEOUT = 30  # seconds
USER_AGENT = "Mozilla/5.0 (compatible; RecipeSimplifier/1.0)"
ALLOWED_SCHEMES = ("http", "https")


class RecipeFetchError(Exception):
    pass


def is_valid_page_url(url: str) -> bool:
    """Returns True for absolute http(s) URLs with a host."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ALLOWED_SCHEMES and bool(parsed.netloc)


def fetch_page_html(url: str) -> str:
    """
    Fetches the HTML of a recipe page.

    Args:
        url (str): The page to fetch.

    Returns:
        str: The decoded response body.

    Raises:
        RecipeFetchError: If the page could not be fetched or returned a
            non-success status.
    """
    try:
        response = requests.get(
            url,
            headers={"User-Agent": USER_AGENT},
            timeout=REQUEST_TIMEOUT,
        )
    except requests.RequestException as e:
        raise RecipeFetchError(f"Could not fetch {url}: {e}") from e

    if not response.ok:
        raise RecipeFetchError(f"HTTP error! status: {response.status_code}")

    return response.text
