import unittest
from datetime import date, datetime, timedelta, timezone

from backend.db import PostgresDbClient
from shared.types import Ingredient, ParsedRecipe, Plan, RecipeStep, SubscriptionStatus


class PostgresDbClientTests(unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the Postgres client logic.
    """

    @classmethod
    def setUpClass(cls):
        cls.db = PostgresDbClient("sqlite+pysqlite:///:memory:")

    def test_ensure_user_is_idempotent(self):
        first = self.db.ensure_user_exists("u-ensure", "Mixed@Example.com")
        second = self.db.ensure_user_exists("u-ensure", "other@example.com")
        self.assertEqual(first.email, "mixed@example.com")
        self.assertEqual(second.email, "mixed@example.com")
        self.assertFalse(second.is_admin)
        self.assertEqual(self.db.find_user_by_email("MIXED@example.com").id, "u-ensure")

    def test_admin_flags(self):
        self.db.ensure_user_exists("u-admin", "boss@example.com")
        self.assertFalse(self.db.is_user_admin("u-admin"))
        self.assertTrue(self.db.set_user_admin("u-admin", True))
        self.assertTrue(self.db.is_user_admin("u-admin"))
        self.assertIn("u-admin", [user.id for user in self.db.list_admin_users()])
        self.assertFalse(self.db.set_user_admin("u-missing", True))

    def test_upsert_and_update_subscription(self):
        self.db.ensure_user_exists("u-sub", "sub@example.com")
        end = datetime(2030, 1, 1, tzinfo=timezone.utc)
        created = self.db.upsert_subscription(
            "u-sub",
            stripe_subscription_id="sub_db",
            status=SubscriptionStatus.ACTIVE,
            plan=Plan.PREMIUM,
            current_period_end=end,
        )
        self.assertTrue(created.is_premium)
        self.assertEqual(created.current_period_end, end)

        again = self.db.upsert_subscription("u-sub", cancel_at_period_end=True)
        self.assertEqual(again.id, created.id)
        self.assertEqual(again.status, "active")
        self.assertTrue(again.cancel_at_period_end)

        updated = self.db.update_subscription_by_stripe_id(
            "sub_db", status=SubscriptionStatus.PAST_DUE
        )
        self.assertEqual(updated.status, "past_due")
        self.assertEqual(self.db.get_subscription_by_stripe_id("sub_db").user_id, "u-sub")
        self.assertIsNone(
            self.db.update_subscription_by_stripe_id("sub_nope", status="canceled")
        )

    def test_unknown_subscription_field(self):
        with self.assertRaises(ValueError):
            self.db.upsert_subscription("u-bad", colour="red")

    def test_grant_lifetime_access(self):
        self.db.ensure_user_exists("u-life", "life@example.com")
        record = self.db.grant_lifetime_access("u-life", granted_by="u-admin")
        self.assertEqual(record.plan, "lifetime")
        self.assertEqual(record.status, "active")
        self.assertIsNone(record.current_period_end)

    def test_increment_usage(self):
        today = date(2024, 5, 1)
        self.assertEqual(self.db.get_daily_usage("u-usage", today).recipes_parsed, 0)
        self.db.increment_usage("u-usage", today, recipes_count=1)
        usage = self.db.increment_usage(
            "u-usage", today, recipes_count=1, customizations_count=2
        )
        self.assertEqual(usage.recipes_parsed, 2)
        self.assertEqual(usage.customizations_used, 2)

        self.db.increment_usage("u-usage", today - timedelta(days=1), recipes_count=5)
        recent = self.db.list_recent_usage("u-usage")
        self.assertEqual([record.date for record in recent], [today, today - timedelta(days=1)])

    def test_recent_usage_is_limited(self):
        start = date(2024, 1, 1)
        for offset in range(10):
            self.db.increment_usage("u-many", start + timedelta(days=offset), recipes_count=1)
        recent = self.db.list_recent_usage("u-many")
        self.assertEqual(len(recent), 7)
        self.assertEqual(recent[0].date, start + timedelta(days=9))

    def test_recipe_roundtrip_and_delete(self):
        recipe = ParsedRecipe(
            title="Goulash",
            ingredients=[Ingredient(name="beef", amount="1", unit="kg")],
            steps=[RecipeStep(step=1, instruction="Brown the beef.")],
            servings=6,
            total_time="2 hours",
        )
        saved = self.db.save_recipe("u-cook", recipe)
        loaded = self.db.get_recipe(saved.id)
        self.assertEqual(loaded.title, "Goulash")
        self.assertEqual(loaded.ingredients[0].unit, "kg")
        self.assertEqual(loaded.steps[0].instruction, "Brown the beef.")
        self.assertEqual(loaded.servings, 6)
        self.assertEqual([r.id for r in self.db.list_recipes("u-cook")], [saved.id])

        self.assertFalse(self.db.delete_recipe(saved.id, "u-someone-else"))
        self.assertTrue(self.db.delete_recipe(saved.id, "u-cook"))
        self.assertIsNone(self.db.get_recipe(saved.id))


if __name__ == "__main__":
    unittest.main()
