import os
import unittest
from datetime import timedelta

os.environ.setdefault("USE_IN_MEMORY_BACKENDS", "true")

from fastapi.testclient import TestClient

from backend.app import create_app
from backend.auth import InMemoryAuthClient
from backend.db import InMemoryDbClient
from backend.dependencies import get_auth_client, get_db_client

ADMIN_ID = "user-admin"
MEMBER_ID = "user-carol"


class AdminApiTests(unittest.TestCase):
    def setUp(self):
        self.client = TestClient(create_app())
        self.db = get_db_client()
        if isinstance(self.db, InMemoryDbClient):
            self.db.reset()
        auth = get_auth_client()
        if isinstance(auth, InMemoryAuthClient):
            auth.reset()
            auth.add_token("token-admin", ADMIN_ID, "admin@example.com")
            auth.add_token("token-carol", MEMBER_ID, "carol@example.com")
        self.db.ensure_user_exists(ADMIN_ID, "admin@example.com")
        self.db.set_user_admin(ADMIN_ID, True)
        self.db.ensure_user_exists(MEMBER_ID, "carol@example.com")
        self.admin = {"Authorization": "Bearer token-admin"}
        self.member = {"Authorization": "Bearer token-carol"}

    def test_check_status(self):
        response = self.client.get("/api/admin/check-status", headers=self.admin)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(),
            {"isAdmin": True, "user": {"id": ADMIN_ID, "email": "admin@example.com"}},
        )

        response = self.client.get("/api/admin/check-status", headers=self.member)
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["isAdmin"])

        response = self.client.get("/api/admin/check-status")
        self.assertEqual(response.status_code, 401)

    def test_non_admin_is_rejected(self):
        for path, body in [
            ("/api/admin/search-user", {"email": "carol@example.com"}),
            ("/api/admin/grant-lifetime", {"userId": MEMBER_ID}),
            ("/api/admin/add-subscription", {"userId": MEMBER_ID}),
            ("/api/admin/manage-admin", {"action": "grant_admin", "targetUserId": MEMBER_ID}),
        ]:
            response = self.client.post(path, json=body, headers=self.member)
            self.assertEqual(response.status_code, 403, path)
        response = self.client.get("/api/admin/manage-admin", headers=self.member)
        self.assertEqual(response.status_code, 403)

    def test_search_user(self):
        self.db.increment_usage(MEMBER_ID, recipes_count=2)
        response = self.client.post(
            "/api/admin/search-user",
            json={"email": "Carol@Example.com"},
            headers=self.admin,
        )
        self.assertEqual(response.status_code, 200)
        user = response.json()["user"]
        self.assertEqual(user["id"], MEMBER_ID)
        self.assertFalse(user["is_admin"])
        self.assertIsNone(user["subscription"])
        self.assertEqual(user["recent_usage"][0]["recipes_parsed"], 2)

        response = self.client.post(
            "/api/admin/search-user",
            json={"email": "nobody@example.com"},
            headers=self.admin,
        )
        self.assertEqual(response.json(), {"user": None})

        response = self.client.post("/api/admin/search-user", json={}, headers=self.admin)
        self.assertEqual(response.status_code, 400)

    def test_grant_lifetime(self):
        response = self.client.post(
            "/api/admin/grant-lifetime", json={"userId": MEMBER_ID}, headers=self.admin
        )
        self.assertEqual(response.status_code, 200)
        record = self.db.get_subscription(MEMBER_ID)
        self.assertEqual(record.plan, "lifetime")
        self.assertEqual(record.status, "active")
        self.assertIsNone(record.current_period_end)

        usage = self.client.get("/api/usage", headers=self.member).json()
        self.assertTrue(usage["has_premium_access"])

    def test_grant_lifetime_validation(self):
        response = self.client.post(
            "/api/admin/grant-lifetime", json={}, headers=self.admin
        )
        self.assertEqual(response.status_code, 400)
        response = self.client.post(
            "/api/admin/grant-lifetime", json={"userId": "missing"}, headers=self.admin
        )
        self.assertEqual(response.status_code, 404)

    def test_add_subscription_defaults(self):
        response = self.client.post(
            "/api/admin/add-subscription", json={"userId": MEMBER_ID}, headers=self.admin
        )
        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(data["stripe_customer_id"], f"manual_{MEMBER_ID}")
        self.assertEqual(data["stripe_subscription_id"], f"manual_sub_{MEMBER_ID}")
        self.assertEqual(data["plan"], "premium")

        record = self.db.get_subscription(MEMBER_ID)
        self.assertEqual(
            record.current_period_end - record.current_period_start, timedelta(days=30)
        )

    def test_add_subscription_with_stripe_ids(self):
        response = self.client.post(
            "/api/admin/add-subscription",
            json={
                "userId": MEMBER_ID,
                "stripeCustomerId": "cus_9",
                "stripeSubscriptionId": "sub_9",
            },
            headers=self.admin,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            self.db.get_subscription_by_stripe_id("sub_9").user_id, MEMBER_ID
        )

    def test_manage_admin(self):
        response = self.client.post(
            "/api/admin/manage-admin",
            json={"action": "grant_admin", "targetUserId": MEMBER_ID},
            headers=self.admin,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["message"], "Admin access granted successfully")
        self.assertTrue(self.db.is_user_admin(MEMBER_ID))

        response = self.client.get("/api/admin/manage-admin", headers=self.admin)
        ids = sorted(user["id"] for user in response.json()["adminUsers"])
        self.assertEqual(ids, [ADMIN_ID, MEMBER_ID])

        response = self.client.post(
            "/api/admin/manage-admin",
            json={"action": "revoke_admin", "targetUserId": MEMBER_ID},
            headers=self.admin,
        )
        self.assertEqual(response.status_code, 200)
        self.assertFalse(self.db.is_user_admin(MEMBER_ID))

    def test_manage_admin_validation(self):
        response = self.client.post(
            "/api/admin/manage-admin",
            json={"action": "revoke_admin", "targetUserId": ADMIN_ID},
            headers=self.admin,
        )
        self.assertEqual(response.status_code, 400)
        self.assertTrue(self.db.is_user_admin(ADMIN_ID))

        response = self.client.post(
            "/api/admin/manage-admin",
            json={"action": "promote", "targetUserId": MEMBER_ID},
            headers=self.admin,
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Invalid action")

        response = self.client.post(
            "/api/admin/manage-admin", json={"action": "grant_admin"}, headers=self.admin
        )
        self.assertEqual(response.status_code, 400)


if __name__ == "__main__":
    unittest.main()
