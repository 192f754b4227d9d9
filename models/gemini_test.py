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
from unittest.mock import MagicMock, patch

from models import api_config, gemini, prompts


class PromptsTest(unittest.TestCase):

    def test_output_language(self):
        self.assertEqual(prompts.get_output_language("cs"), "Czech")
        self.assertEqual(prompts.get_output_language("CS"), "Czech")
        self.assertEqual(prompts.get_output_language("de"), "English")
        self.assertEqual(prompts.get_output_language(None), "English")

    def test_prompt_without_image_or_instructions(self):
        prompt = prompts.make_recipe_extraction_prompt(
            url="https://x.com/r", title="Soup", content="Boil water."
        )
        self.assertIn("URL: https://x.com/r", prompt)
        self.assertIn("Content: Boil water.", prompt)
        self.assertNotIn("Image:", prompt)
        self.assertIn("Title: Soup\n\n\nContent: Boil water.", prompt)
        self.assertNotIn("CUSTOM INSTRUCTIONS", prompt)
        self.assertIn('"image": ""', prompt)
        self.assertIn('"prepTime"', prompt)

    def test_prompt_with_image_and_instructions(self):
        prompt = prompts.make_recipe_extraction_prompt(
            url="https://x.com/r",
            title="Soup",
            content="Boil water.",
            image="https://x.com/soup.jpg",
            locale="cs",
            instructions="no salt; double",
        )
        self.assertIn("Title: Soup\nImage: https://x.com/soup.jpg\n\nContent:", prompt)
        self.assertIn("CUSTOM INSTRUCTIONS: no salt; double\n", prompt)
        self.assertIn("Recipe Title in Czech", prompt)


class GeminiTest(unittest.TestCase):

    @patch.object(api_config, "DEFAULT_API_KEY", "")
    def test_missing_api_key(self):
        with self.assertRaises(gemini.GeminiNotConfiguredException):
            gemini.call_predict("hello")

    @patch("models.gemini.genai.Client")
    def test_call_predict_returns_text(self, client_cls):
        client = MagicMock()
        client.models.generate_content.return_value.text = '{"title": "x"}'
        client_cls.return_value = client

        result = gemini.call_predict("prompt", api_key="key", json_output=True)

        self.assertEqual(result, '{"title": "x"}')
        client_cls.assert_called_once_with(api_key="key")
        config = client.models.generate_content.call_args.kwargs["config"]
        self.assertEqual(config.response_mime_type, "application/json")
        self.assertEqual(config.temperature, 0)

    @patch("models.gemini.genai.Client")
    def test_empty_response(self, client_cls):
        client_cls.return_value.models.generate_content.return_value.text = ""
        with self.assertRaises(gemini.GeminiInvalidResponseException):
            gemini.call_predict("prompt", api_key="key")


if __name__ == "__main__":
    unittest.main()
