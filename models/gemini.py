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

import time
import logging
from google import genai
from google.genai import types
from models import api_config

logger = logging.getLogger(__name__)

API_KEY_LOGGING_MESSAGE = "Ran with user-specified API key"
RECIPE_RESPONSE_MAX_OUTPUT_TOKENS = 8000


class GeminiInvalidResponseException(Exception):
    pass


class GeminiNotConfiguredException(Exception):
    pass


def _get_client(api_key: str | None) -> genai.Client:
    if not api_key:
        api_key = api_config.DEFAULT_API_KEY
    else:
        logger.info(API_KEY_LOGGING_MESSAGE)
    if not api_key:
        raise GeminiNotConfiguredException("Gemini API key not configured")
    return genai.Client(api_key=api_key)


def call_predict(
    query: str,
    model: str = api_config.DEFAULT_MODEL,
    api_key: str | None = None,
    json_output: bool = False,
) -> str:
    """
    Calls Gemini with a text prompt and returns the response text.

    Args:
        query (str): The prompt.
        model (str): The model to call.
        api_key (str | None): Overrides the configured API key.
        json_output (bool): If true, asks the model for a JSON response body.

    Returns:
        str: The response text.

    Raises:
        GeminiNotConfiguredException: If no API key is available.
        GeminiInvalidResponseException: If the model returned no text.
    """
    client = _get_client(api_key)
    start_time = time.time()
    truncated_query = (query[:200] + "...") if len(query) > 200 else query
    logger.info("Calling Gemini (%s), prompt: '%s'", model, truncated_query)

    config = types.GenerateContentConfig(
        temperature=0,
        max_output_tokens=RECIPE_RESPONSE_MAX_OUTPUT_TOKENS,
        response_mime_type="application/json" if json_output else None,
    )
    response = client.models.generate_content(
        model=model,
        contents=query,
        config=config,
    )
    logger.info("Gemini call took: %.2fs", time.time() - start_time)
    if not response.text:
        raise GeminiInvalidResponseException("No response from Gemini")
    return response.text
