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

from dataclasses import asdict
from typing import Any, Type, TypeVar

from dacite import Config, from_dict

from shared.types import Ingredient, ParsedRecipe, RecipeStep

T = TypeVar("T", bound=ParsedRecipe)

# Amounts and step numbers come back from the model and from JSON columns in
# whatever shape they were written; coerce them on the way in.
RECIPE_DACITE_CONFIG = Config(type_hooks={str: str}, cast=[int])


def recipe_to_dict(recipe: ParsedRecipe) -> dict:
    return asdict(recipe)


def recipe_from_dict(data: dict, data_class: Type[T] = ParsedRecipe) -> T:
    """Builds a recipe dataclass from a plain dict, ignoring unknown keys."""
    return from_dict(data_class=data_class, data=data, config=RECIPE_DACITE_CONFIG)


def ingredients_to_json(recipe: ParsedRecipe) -> list[dict[str, Any]]:
    return [asdict(ingredient) for ingredient in recipe.ingredients]


def steps_to_json(recipe: ParsedRecipe) -> list[dict[str, Any]]:
    return [asdict(step) for step in recipe.steps]


def ingredients_from_json(items: list | None) -> list[Ingredient]:
    return [
        from_dict(data_class=Ingredient, data=item, config=RECIPE_DACITE_CONFIG)
        for item in items or []
    ]


def steps_from_json(items: list | None) -> list[RecipeStep]:
    return [
        from_dict(data_class=RecipeStep, data=item, config=RECIPE_DACITE_CONFIG)
        for item in items or []
    ]
