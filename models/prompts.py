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

from typing import Optional

DEFAULT_LANGUAGE = "English"
LANGUAGE_NAMES = {
    "en": "English",
    "cs": "Czech",
}

RECIPE_EXTRACTION_PROMPT = """Extract recipe information from this recipe and return it as JSON. Focus on finding the recipe title, ingredients list, and step-by-step instructions.

IMPORTANT: Return all text content (title, ingredient names, instructions, time values) in {language} language.

URL: {url}
Title: {title}
{image_line}

Content: {content}{instructions_block}

Return JSON in this exact format:
{{
  "title": "Recipe Title in {language}",
  "image": "{image}",
  "ingredients": [
    {{"name": "ingredient name in {language}", "amount": "1", "unit": "cup"}},
    {{"name": "another ingredient in {language}", "amount": "2", "unit": "tbsp"}}
  ],
  "steps": [
    {{"step": 1, "instruction": "First step instruction in {language}"}},
    {{"step": 2, "instruction": "Second step instruction in {language}"}}
  ],
  "servings": 4,
  "prepTime": "15 minutes",
  "cookTime": "30 minutes",
  "totalTime": "45 minutes"
}}

Only return valid JSON, no other text."""

CUSTOM_INSTRUCTIONS_BLOCK = """

CUSTOM INSTRUCTIONS: {instructions}
Please follow these instructions when processing the recipe."""


def get_output_language(locale: Optional[str]) -> str:
    return LANGUAGE_NAMES.get((locale or "").lower(), DEFAULT_LANGUAGE)


def make_recipe_extraction_prompt(
    url: str,
    title: str,
    content: str,
    image: Optional[str] = None,
    locale: str = "en",
    instructions: str = "",
) -> str:
    """
    Builds the prompt asking the model to turn page text into recipe JSON.

    Args:
        url (str): The page URL, given to the model for context.
        title (str): The page title.
        content (str): The (already truncated) page text.
        image (Optional[str]): The scraped image URL, if any.
        locale (str): The user's locale, which picks the output language.
        instructions (str): Free-text customizations from the user.

    Returns:
        str: The prompt.
    """
    language = get_output_language(locale)
    instructions_block = ""
    if instructions and instructions.strip():
        instructions_block = CUSTOM_INSTRUCTIONS_BLOCK.format(instructions=instructions)

    return RECIPE_EXTRACTION_PROMPT.format(
        language=language,
        url=url,
        title=title,
        image_line=f"Image: {image}" if image else "",
        content=content,
        instructions_block=instructions_block,
        image=image or "",
    )
