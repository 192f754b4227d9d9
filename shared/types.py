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

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import List, Optional


class Plan(StrEnum):
    FREE = "free"
    PREMIUM = "premium"
    LIFETIME = "lifetime"


class SubscriptionStatus(StrEnum):
    ACTIVE = "active"
    CANCELED = "canceled"
    PAST_DUE = "past_due"
    INACTIVE = "inactive"


PREMIUM_PLANS = (Plan.PREMIUM, Plan.LIFETIME)


@dataclass
class Ingredient:
    name: str
    amount: Optional[str] = None
    unit: Optional[str] = None


@dataclass
class RecipeStep:
    step: int
    instruction: str


@dataclass
class ParsedRecipe:
    """A recipe as extracted from a web page."""

    title: str
    image: Optional[str] = None
    ingredients: List[Ingredient] = field(default_factory=list)
    steps: List[RecipeStep] = field(default_factory=list)
    servings: Optional[int] = None
    prep_time: Optional[str] = None
    cook_time: Optional[str] = None
    total_time: Optional[str] = None


@dataclass
class SavedRecipe(ParsedRecipe):
    """A recipe stored in a user's cookbook."""

    id: str = ""
    user_id: str = ""
    created_at: Optional[datetime] = None


@dataclass
class PageContent:
    """Text pulled out of a recipe page before it is sent to the model."""

    title: str
    body_text: str
    image: Optional[str] = None
