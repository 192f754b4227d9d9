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
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from shared import premium


NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def _usage(recipes_parsed=0, customizations_used=0):
    return SimpleNamespace(
        recipes_parsed=recipes_parsed, customizations_used=customizations_used
    )


def _subscription(plan="premium", status="active", end=NOW + timedelta(days=5)):
    return SimpleNamespace(
        plan=plan,
        status=status,
        is_premium=plan in ("premium", "lifetime"),
        current_period_end=end,
    )


class HasPremiumAccessTest(unittest.TestCase):

    def test_no_subscription(self):
        self.assertFalse(premium.has_premium_access(None, NOW))

    def test_lifetime_ignores_status_and_period(self):
        sub = _subscription(plan="lifetime", status="canceled", end=NOW - timedelta(days=1))
        self.assertTrue(premium.has_premium_access(sub, NOW))

    def test_active_premium_inside_period(self):
        self.assertTrue(premium.has_premium_access(_subscription(), NOW))
        self.assertTrue(premium.has_premium_access(_subscription(end=None), NOW))

    def test_period_over(self):
        sub = _subscription(end=NOW - timedelta(seconds=1))
        self.assertFalse(premium.has_premium_access(sub, NOW))
        self.assertFalse(premium.has_premium_access(_subscription(end=NOW), NOW))

    def test_naive_period_end_is_utc(self):
        sub = _subscription(end=datetime(2025, 6, 1, 13, 0))
        self.assertTrue(premium.has_premium_access(sub, NOW))

    def test_inactive_or_free(self):
        self.assertFalse(premium.has_premium_access(_subscription(status="past_due"), NOW))
        self.assertFalse(premium.has_premium_access(_subscription(status="canceled"), NOW))
        self.assertFalse(premium.has_premium_access(_subscription(plan="free"), NOW))


class QuotaTest(unittest.TestCase):

    def test_free_recipe_quota(self):
        self.assertTrue(premium.can_parse_recipe(None, None))
        self.assertTrue(premium.can_parse_recipe(None, _usage(recipes_parsed=2)))
        self.assertFalse(premium.can_parse_recipe(None, _usage(recipes_parsed=3)))

    def test_free_customization_quota(self):
        usage = _usage(customizations_used=1)
        self.assertTrue(premium.can_use_customizations(None, usage, requested_count=2))
        self.assertFalse(premium.can_use_customizations(None, usage, requested_count=3))

    def test_premium_is_unlimited(self):
        usage = _usage(recipes_parsed=500, customizations_used=500)
        sub = _subscription()
        self.assertTrue(premium.can_parse_recipe(sub, usage, NOW))
        self.assertTrue(premium.can_use_customizations(sub, usage, 10, NOW))
        self.assertEqual(premium.get_max_recipes_per_day(sub, NOW), premium.UNLIMITED_DAILY)
        self.assertEqual(
            premium.get_max_customizations_per_day(sub, NOW), premium.UNLIMITED_DAILY
        )

    def test_free_maxima(self):
        self.assertEqual(premium.get_max_recipes_per_day(None), 3)
        self.assertEqual(premium.get_max_customizations_per_day(None), 3)

    def test_count_customizations(self):
        self.assertEqual(premium.count_customizations(None), 0)
        self.assertEqual(premium.count_customizations(""), 0)
        self.assertEqual(premium.count_customizations("vegan"), 1)
        self.assertEqual(premium.count_customizations("vegan; ; half portion;"), 2)


if __name__ == "__main__":
    unittest.main()
