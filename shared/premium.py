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

"""Entitlement rules for premium features and the free daily quota."""

from datetime import datetime, timezone
from typing import Any, Optional, Protocol

from shared.types import Plan, SubscriptionStatus

FREE_DAILY_RECIPES = 3
FREE_DAILY_CUSTOMIZATIONS = 3
UNLIMITED_DAILY = 999999
CUSTOMIZATION_SEPARATOR = ";"


class SubscriptionLike(Protocol):
    plan: str
    status: str
    is_premium: bool
    current_period_end: Optional[datetime]


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def has_premium_access(
    subscription: Optional[SubscriptionLike], now: Optional[datetime] = None
) -> bool:
    """
    Returns whether the subscription unlocks premium features.

    Lifetime plans always do. Other plans need to be premium, active, and
    still inside the current billing period. A subscription canceled at
    period end keeps access until that period is over.

    Args:
        subscription: The user's subscription, or None if they have none.
        now (datetime): Overrides the current time, used by tests.

    Returns:
        bool: True if the user has premium access.
    """
    if subscription is None:
        return False

    if subscription.plan == Plan.LIFETIME:
        return True

    if subscription.is_premium and subscription.status == SubscriptionStatus.ACTIVE:
        if subscription.current_period_end is not None:
            now = _as_utc(now or datetime.now(timezone.utc))
            return now < _as_utc(subscription.current_period_end)
        return True

    return False


def _count(usage: Any, attribute: str) -> int:
    if usage is None:
        return 0
    return getattr(usage, attribute, 0) or 0


def can_parse_recipe(
    subscription: Optional[SubscriptionLike],
    usage: Any,
    now: Optional[datetime] = None,
) -> bool:
    if has_premium_access(subscription, now):
        return True
    return _count(usage, "recipes_parsed") < FREE_DAILY_RECIPES


def can_use_customizations(
    subscription: Optional[SubscriptionLike],
    usage: Any,
    requested_count: int = 1,
    now: Optional[datetime] = None,
) -> bool:
    if has_premium_access(subscription, now):
        return True
    return (
        _count(usage, "customizations_used") + requested_count
        <= FREE_DAILY_CUSTOMIZATIONS
    )


def get_max_recipes_per_day(
    subscription: Optional[SubscriptionLike], now: Optional[datetime] = None
) -> int:
    return UNLIMITED_DAILY if has_premium_access(subscription, now) else FREE_DAILY_RECIPES


def get_max_customizations_per_day(
    subscription: Optional[SubscriptionLike], now: Optional[datetime] = None
) -> int:
    if has_premium_access(subscription, now):
        return UNLIMITED_DAILY
    return FREE_DAILY_CUSTOMIZATIONS


def count_customizations(instructions: Optional[str]) -> int:
    """Number of non-blank customizations in a `;`-joined instruction string."""
    if not instructions:
        return 0
    return len(
        [part for part in instructions.split(CUSTOMIZATION_SEPARATOR) if part.strip()]
    )
