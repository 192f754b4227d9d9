"""
Parses a single recipe page and prints the result as JSON.

Useful for checking the extraction and prompt against a real site without
running the API:

    GEMINI_API_KEY=... python scripts/parse_recipe_local.py https://example.com/recipe
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.config import get_settings
from recipe_import import fetch_utils, recipe_parser
from shared import json_utils

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Parse a recipe page locally")
    parser.add_argument("url", type=str, help="The recipe page to parse.")
    parser.add_argument(
        "--locale",
        default="en",
        help="Locale that picks the output language (en, cs)",
    )
    parser.add_argument(
        "--instructions",
        default="",
        help="Customizations, separated by ';'",
    )
    parser.add_argument(
        "--content-only",
        action="store_true",
        help="Print the extracted page content instead of calling the model",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    if not fetch_utils.is_valid_page_url(args.url):
        logger.error("Invalid URL format: %s", args.url)
        return 2

    settings = get_settings()
    try:
        if args.content_only:
            html = fetch_utils.fetch_page_html(args.url)
            content = recipe_parser.extract_page_content(html, args.url)
            output = {
                "title": content.title,
                "image": content.image,
                "body_text": content.body_text,
            }
        else:
            recipe = recipe_parser.parse_recipe_from_url(
                args.url,
                locale=args.locale,
                instructions=args.instructions,
                api_key=settings.gemini_api_key,
                model=settings.gemini_model,
            )
            output = json_utils.recipe_to_dict(recipe)
    except (fetch_utils.RecipeFetchError, recipe_parser.RecipeParseError) as exc:
        logger.error("Failed to parse recipe: %s", exc)
        return 1

    print(json.dumps(output, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
