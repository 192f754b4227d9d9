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

import json
import logging
import re
from typing import Any, List, Optional

from bs4 import BeautifulSoup

from models import api_config
from models import gemini
from models import prompts
from recipe_import import fetch_utils
from recipe_import import image_utils
from shared.types import Ingredient, PageContent, ParsedRecipe, RecipeStep

logger = logging.getLogger(__name__)

MAX_CONTENT_CHARACTERS = 8000
DEFAULT_TITLE = "Untitled Recipe"
MAX_TITLE_LENGTH = 500
NON_CONTENT_TAGS = ["script", "style", "noscript", "template"]
CODE_FENCE_START = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
CODE_FENCE_END = re.compile(r"\s*```$")


class RecipeParseError(Exception):
    pass


def _collapse_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def extract_page_content(html: str, url: str) -> PageContent:
    """
    Pulls the title, visible text and best-guess image out of a page.

    Args:
        html (str): The page HTML.
        url (str): The URL the page was fetched from.

    Returns:
        PageContent: The extracted content. The body text is truncated to
            MAX_CONTENT_CHARACTERS.
    """
    soup = BeautifulSoup(html, "html.parser")

    # The image heuristic runs before non-content tags are removed, since
    # <noscript> often holds the only non-lazy <img>.
    image = image_utils.extract_best_image(soup, url)

    title = ""
    h1 = soup.find("h1")
    if h1:
        title = h1.get_text().strip()
    if not title and soup.title:
        title = soup.title.get_text().strip()

    for tag in soup.find_all(NON_CONTENT_TAGS):
        tag.decompose()
    body = soup.body or soup
    body_text = _collapse_whitespace(body.get_text(" "))

    return PageContent(
        title=_collapse_whitespace(title),
        body_text=body_text[:MAX_CONTENT_CHARACTERS],
        image=image,
    )


def strip_code_fences(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = CODE_FENCE_START.sub("", cleaned)
        cleaned = CODE_FENCE_END.sub("", cleaned)
    return cleaned


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_servings(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _parse_ingredients(value: Any) -> List[Ingredient]:
    if not isinstance(value, list):
        return []
    ingredients = []
    for item in value:
        if isinstance(item, str):
            if item.strip():
                ingredients.append(Ingredient(name=item.strip()))
            continue
        if not isinstance(item, dict):
            continue
        name = _optional_str(item.get("name"))
        if not name:
            continue
        ingredients.append(
            Ingredient(
                name=name,
                amount=_optional_str(item.get("amount")),
                unit=_optional_str(item.get("unit")),
            )
        )
    return ingredients


def _parse_steps(value: Any) -> List[RecipeStep]:
    if not isinstance(value, list):
        return []
    steps = []
    for item in value:
        if isinstance(item, str):
            instruction = item.strip()
            number = len(steps) + 1
        elif isinstance(item, dict):
            instruction = _optional_str(item.get("instruction")) or ""
            try:
                number = int(item.get("step"))
            except (TypeError, ValueError):
                number = len(steps) + 1
        else:
            continue
        if instruction:
            steps.append(RecipeStep(step=number, instruction=instruction))
    return steps


def parse_model_response(
    response_text: str, fallback_image: Optional[str] = None
) -> ParsedRecipe:
    """
    Turns the model's JSON reply into a ParsedRecipe.

    Args:
        response_text (str): The raw model output, optionally wrapped in a
            markdown code fence.
        fallback_image (Optional[str]): Used when the model returns no image.

    Returns:
        ParsedRecipe: The validated recipe.

    Raises:
        RecipeParseError: If the reply is empty or not a JSON object.
    """
    if not response_text or not response_text.strip():
        raise RecipeParseError("No response from Gemini")

    try:
        data = json.loads(strip_code_fences(response_text))
    except json.JSONDecodeError as e:
        raise RecipeParseError(f"Gemini returned invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise RecipeParseError("Gemini returned JSON that is not an object")

    return ParsedRecipe(
        title=(_optional_str(data.get("title")) or DEFAULT_TITLE)[:MAX_TITLE_LENGTH],
        image=_optional_str(data.get("image")) or fallback_image,
        ingredients=_parse_ingredients(data.get("ingredients")),
        steps=_parse_steps(data.get("steps")),
        servings=_parse_servings(data.get("servings")),
        prep_time=_optional_str(data.get("prepTime")),
        cook_time=_optional_str(data.get("cookTime")),
        total_time=_optional_str(data.get("totalTime")),
    )


def parse_recipe_from_html(
    html: str,
    url: str,
    locale: str = "en",
    instructions: str = "",
    api_key: str | None = None,
    model: str = api_config.DEFAULT_MODEL,
) -> ParsedRecipe:
    """Extracts a recipe from already fetched page HTML."""
    content = extract_page_content(html, url)
    prompt = prompts.make_recipe_extraction_prompt(
        url=url,
        title=content.title,
        content=content.body_text,
        image=content.image,
        locale=locale,
        instructions=instructions,
    )
    try:
        response_text = gemini.call_predict(
            prompt, model=model, api_key=api_key, json_output=True
        )
    except (
        gemini.GeminiInvalidResponseException,
        gemini.GeminiNotConfiguredException,
    ) as e:
        raise RecipeParseError(str(e)) from e
    except Exception as e:
        logger.exception("Gemini call failed for %s", url)
        raise RecipeParseError("Failed to parse recipe with Gemini") from e

    return parse_model_response(response_text, fallback_image=content.image)


def parse_recipe_from_url(
    url: str,
    locale: str = "en",
    instructions: str = "",
    api_key: str | None = None,
    model: str = api_config.DEFAULT_MODEL,
) -> ParsedRecipe:
    """
    Fetches a recipe page and extracts a structured recipe from it.

    Args:
        url (str): The recipe page.
        locale (str): Picks the output language.
        instructions (str): Free-text customizations, `;`-separated.
        api_key (str | None): The Gemini API key.
        model (str): The Gemini model.

    Returns:
        ParsedRecipe: The extracted recipe.

    Raises:
        RecipeParseError: If the page could not be fetched or parsed.
    """
    logger.info("Parsing recipe from %s (locale=%s)", url, locale)
    try:
        html = fetch_utils.fetch_page_html(url)
    except fetch_utils.RecipeFetchError as e:
        raise RecipeParseError(str(e)) from e
    return parse_recipe_from_html(
        html,
        url,
        locale=locale,
        instructions=instructions,
        api_key=api_key,
        model=model,
    )
