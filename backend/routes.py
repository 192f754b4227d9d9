"""
HTTP routes for recipe parsing, usage, and the cookbook.
"""

from __future__ import annotations

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException

from backend.auth import AuthUser
from backend.config import get_settings
from backend.db import DbClient, SubscriptionRecord
from backend.dependencies import get_current_user, get_db_client
from backend.schemas import (
    ParseRecipeRequest,
    ParseRecipeResponse,
    RecipeListResponse,
    RecipeModel,
    SavedRecipeModel,
    SaveRecipeRequest,
    SubscriptionSummary,
    SuccessResponse,
    UsageResponse,
    UsageSummary,
)
from recipe_import import recipe_parser
from recipe_import.fetch_utils import is_valid_page_url
from shared import json_utils, premium
from shared.types import Plan, SubscriptionStatus

logger = logging.getLogger(__name__)

router = APIRouter()


def _subscription_summary(record: SubscriptionRecord | None) -> SubscriptionSummary:
    if record is None:
        return SubscriptionSummary(
            plan=Plan.FREE.value,
            status=SubscriptionStatus.INACTIVE.value,
            is_premium=False,
        )
    return SubscriptionSummary(
        plan=str(record.plan),
        status=str(record.status),
        is_premium=record.is_premium,
        current_period_end=record.current_period_end,
        cancel_at_period_end=record.cancel_at_period_end,
    )


@router.post("/parse-recipe", response_model=ParseRecipeResponse)
def parse_recipe(
    payload: ParseRecipeRequest,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    """
    Fetches a recipe page and returns the simplified recipe.

    Free users are capped per day on both recipes and customizations; the
    counters only move once the recipe has been parsed.
    """
    url = (payload.url or "").strip()
    if not url:
        raise HTTPException(status_code=400, detail="URL is required")
    if not is_valid_page_url(url):
        raise HTTPException(status_code=400, detail="Invalid URL format")

    instructions = (payload.instructions or "").strip()
    requested = premium.count_customizations(instructions)
    subscription = db.get_subscription(user.id)
    usage = db.get_daily_usage(user.id)
    if not premium.can_parse_recipe(subscription, usage):
        raise HTTPException(
            status_code=403,
            detail="Daily recipe limit reached. Upgrade to premium for unlimited recipes.",
        )
    if requested and not premium.can_use_customizations(
        subscription, usage, requested_count=requested
    ):
        raise HTTPException(
            status_code=403,
            detail="Daily customization limit reached. Upgrade to premium for unlimited customizations.",
        )

    settings = get_settings()
    try:
        recipe = recipe_parser.parse_recipe_from_url(
            url,
            locale=payload.locale or "en",
            instructions=instructions,
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
        )
    except recipe_parser.RecipeParseError as e:
        logger.warning("Failed to parse recipe %s: %s", url, e)
        raise HTTPException(
            status_code=500, detail=f"Failed to parse recipe: {e}"
        ) from e

    response = ParseRecipeResponse(
        recipe=RecipeModel(**json_utils.recipe_to_dict(recipe))
    )
    db.increment_usage(user.id, recipes_count=1, customizations_count=requested)
    return response


@router.post("/ensure-user", response_model=SuccessResponse)
def ensure_user(user: AuthUser = Depends(get_current_user)):
    # get_current_user has already created the row.
    return SuccessResponse(success=True)


@router.get("/usage", response_model=UsageResponse)
def get_usage(
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    subscription = db.get_subscription(user.id)
    usage = db.get_daily_usage(user.id)
    max_recipes = premium.get_max_recipes_per_day(subscription)
    max_customizations = premium.get_max_customizations_per_day(subscription)
    return UsageResponse(
        subscription=_subscription_summary(subscription),
        usage=UsageSummary(**asdict(usage)),
        has_premium_access=premium.has_premium_access(subscription),
        can_parse_recipe=premium.can_parse_recipe(subscription, usage),
        max_recipes_per_day=max_recipes,
        max_customizations_per_day=max_customizations,
        recipes_remaining=max(0, max_recipes - usage.recipes_parsed),
        customizations_remaining=max(
            0, max_customizations - usage.customizations_used
        ),
    )


@router.post("/recipes", response_model=SavedRecipeModel, status_code=201)
def save_recipe(
    payload: SaveRecipeRequest,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    if not premium.has_premium_access(db.get_subscription(user.id)):
        raise HTTPException(
            status_code=403, detail="Saving recipes requires a premium subscription"
        )
    recipe = json_utils.recipe_from_dict(payload.recipe.model_dump())
    saved = db.save_recipe(user.id, recipe)
    logger.info("Saved recipe %s for user %s", saved.id, user.id)
    return SavedRecipeModel(**asdict(saved))


@router.get("/recipes", response_model=RecipeListResponse)
def list_recipes(
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    recipes = db.list_recipes(user.id)
    return RecipeListResponse(
        recipes=[SavedRecipeModel(**asdict(recipe)) for recipe in recipes]
    )


@router.get("/recipes/{recipe_id}", response_model=SavedRecipeModel)
def get_recipe(recipe_id: str, db: DbClient = Depends(get_db_client)):
    recipe = db.get_recipe(recipe_id)
    if not recipe:
        raise HTTPException(status_code=404, detail="Recipe not found")
    return SavedRecipeModel(**asdict(recipe))


@router.delete("/recipes/{recipe_id}", response_model=SuccessResponse)
def delete_recipe(
    recipe_id: str,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    if not db.delete_recipe(recipe_id, user.id):
        raise HTTPException(status_code=404, detail="Recipe not found")
    return SuccessResponse(success=True)
