"""
Pydantic schemas for the Recipe Simplifier API.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys, as the web client sends them."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class IngredientModel(BaseModel):
    name: str
    amount: Optional[str] = None
    unit: Optional[str] = None


class RecipeStepModel(BaseModel):
    step: int
    instruction: str


class RecipeModel(BaseModel):
    title: str = Field(..., max_length=500)
    image: Optional[str] = None
    ingredients: list[IngredientModel] = Field(default_factory=list)
    steps: list[RecipeStepModel] = Field(default_factory=list)
    servings: Optional[int] = None
    prep_time: Optional[str] = None
    cook_time: Optional[str] = None
    total_time: Optional[str] = None


class SavedRecipeModel(RecipeModel):
    id: str
    user_id: str
    created_at: Optional[datetime] = None


class ParseRecipeRequest(BaseModel):
    url: Optional[str] = None
    instructions: Optional[str] = Field(default="", max_length=2000)
    locale: Optional[str] = "en"


class ParseRecipeResponse(BaseModel):
    recipe: RecipeModel


class SaveRecipeRequest(BaseModel):
    recipe: RecipeModel


class RecipeListResponse(BaseModel):
    recipes: list[SavedRecipeModel]


class SuccessResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None


class SubscriptionSummary(BaseModel):
    plan: str
    status: str
    is_premium: bool
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False


class UsageSummary(BaseModel):
    date: date
    recipes_parsed: int
    customizations_used: int


class UsageResponse(BaseModel):
    subscription: SubscriptionSummary
    usage: UsageSummary
    has_premium_access: bool
    can_parse_recipe: bool
    max_recipes_per_day: int
    max_customizations_per_day: int
    recipes_remaining: int
    customizations_remaining: int


class CheckoutSessionRequest(BaseModel):
    locale: Optional[str] = "en"


class CheckoutSessionResponse(CamelModel):
    session_id: str
    url: Optional[str] = None


class VerifySessionRequest(CamelModel):
    session_id: Optional[str] = None


class PriceDetails(CamelModel):
    id: str
    active: bool
    unit_amount: Optional[int] = None
    currency: str


class BillingStatusResponse(CamelModel):
    stripe_configured: bool
    price_id: Optional[str] = None
    price_id_valid: bool
    webhook_secret: bool
    publishable_key: bool
    price_exists: Optional[bool] = None
    price_details: Optional[PriceDetails] = None
    price_error: Optional[str] = None


class WebhookResponse(BaseModel):
    received: bool


class UserSummary(BaseModel):
    id: str
    email: str


class CheckStatusResponse(CamelModel):
    is_admin: bool
    user: UserSummary


class SearchUserRequest(BaseModel):
    email: Optional[str] = None


class AdminUserDetail(BaseModel):
    id: str
    email: str
    is_admin: bool
    created_at: datetime
    subscription: Optional[dict] = None
    recent_usage: list[dict] = Field(default_factory=list)


class SearchUserResponse(BaseModel):
    user: Optional[AdminUserDetail] = None


class GrantLifetimeRequest(CamelModel):
    user_id: Optional[str] = None


class AddSubscriptionRequest(CamelModel):
    user_id: Optional[str] = None
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None


class AddSubscriptionResponse(SuccessResponse):
    data: Optional[dict] = None


class ManageAdminRequest(CamelModel):
    action: Optional[str] = None
    target_user_id: Optional[str] = None


class AdminUser(BaseModel):
    id: str
    email: str
    created_at: datetime


class AdminUsersResponse(CamelModel):
    admin_users: list[AdminUser]
