"""Tests for the user blueprint."""

import unittest
from datetime import timedelta

from tests.helpers import ApiTestCase
from wefed.constants import USERS_COLLECTION
from wefed.user.models import is_premium
from wefed.utils import utcnow


class UserRoutesTestCase(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.create_user("alice", name="Alice Smith", bio="Climate economist")
        self.create_user("bob", name="Bob Jones", bio="Impact investor")

    def test_view_profile_anonymously(self):
        self.create_post("p1", "alice")
        self.create_post("p2", "alice", isDeleted=True)
        response = self.client.get("/api/users/alice")
        self.assertEqual(response.status_code, 200)
        user = response.get_json()["user"]
        self.assertEqual(user["name"], "Alice Smith")
        self.assertEqual(user["postCount"], 1)
        self.assertNotIn("isFollowing", user)
        self.assertNotIn("passwordHash", user)
        self.assertNotIn("stripeCustomerId", user)

    def test_view_missing_profile(self):
        response = self.client.get("/api/users/nobody")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json()["error"], "User not found")

    def test_follow_and_unfollow(self):
        headers = self.auth_headers("bob")
        response = self.client.post("/api/users/alice/follow", headers=headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.get_doc(USERS_COLLECTION, "alice")["followers"], ["bob"])
        self.assertEqual(self.get_doc(USERS_COLLECTION, "bob")["following"], ["alice"])

        profile = self.client.get("/api/users/alice", headers=headers).get_json()
        self.assertTrue(profile["user"]["isFollowing"])
        self.assertEqual(profile["user"]["followerCount"], 1)

        again = self.client.post("/api/users/alice/follow", headers=headers)
        self.assertEqual(again.status_code, 400)
        self.assertEqual(again.get_json()["error"], "Already following this user")

        response = self.client.delete("/api/users/alice/follow", headers=headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.get_doc(USERS_COLLECTION, "alice")["followers"], [])
        self.assertEqual(self.get_doc(USERS_COLLECTION, "bob")["following"], [])

    def test_cannot_follow_yourself(self):
        response = self.client.post(
            "/api/users/alice/follow", headers=self.auth_headers("alice")
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["error"], "Cannot follow yourself")

    def test_follow_requires_login(self):
        response = self.client.post("/api/users/alice/follow")
        self.assertEqual(response.status_code, 401)

    def test_followers_and_following_lists(self):
        self.create_user("carol", name="Carol", following=["alice"])
        self.db.collection(USERS_COLLECTION).document("alice").update(
            {"followers": ["bob", "carol"]}
        )
        body = self.client.get("/api/users/alice/followers?limit=1").get_json()
        self.assertEqual(body["total"], 2)
        self.assertEqual(body["pages"], 2)
        self.assertEqual([u["id"] for u in body["followers"]], ["bob"])

        body = self.client.get("/api/users/carol/following").get_json()
        self.assertEqual([u["id"] for u in body["following"]], ["alice"])
        self.assertEqual(
            set(body["following"][0]), {"id", "name", "avatar", "role", "isVerified"}
        )

    def test_update_profile_changes_only_sent_fields(self):
        response = self.client.put(
            "/api/users/profile",
            json={"bio": "  New bio  ", "website": "https://alice.example.com"},
            headers=self.auth_headers("alice"),
        )
        self.assertEqual(response.status_code, 200)
        stored = self.get_doc(USERS_COLLECTION, "alice")
        self.assertEqual(stored["bio"], "New bio")
        self.assertEqual(stored["website"], "https://alice.example.com")
        self.assertEqual(stored["name"], "Alice Smith")

    def test_update_profile_validates_fields(self):
        response = self.client.put(
            "/api/users/profile",
            json={"name": "A", "bio": "x" * 501, "website": "not a url"},
            headers=self.auth_headers("alice"),
        )
        self.assertEqual(response.status_code, 400)
        fields = {error["field"] for error in response.get_json()["errors"]}
        self.assertEqual(fields, {"name", "bio", "website"})

    def test_search_matches_name_and_bio(self):
        self.create_user("dave", name="Dave Climate", isActive=False)
        body = self.client.get("/api/users/search?q=CLIMATE").get_json()
        self.assertEqual([u["id"] for u in body["users"]], ["alice"])
        self.assertEqual(body["total"], 1)

        body = self.client.get("/api/users/search?q=o").get_json()
        self.assertEqual(body["error"], "Search query must be at least 2 characters")

    def test_user_posts_respect_visibility(self):
        self.create_post("public", "alice")
        self.create_post("followers", "alice", visibility="followers")
        self.create_post("private", "alice", visibility="private")

        def visible(headers=None):
            body = self.client.get("/api/users/alice/posts", headers=headers).get_json()
            return {post["id"] for post in body["posts"]}

        self.assertEqual(visible(), {"public"})
        self.assertEqual(visible(self.auth_headers("bob")), {"public"})
        self.db.collection(USERS_COLLECTION).document("alice").update(
            {"followers": ["bob"]}
        )
        self.assertEqual(visible(self.auth_headers("bob")), {"public", "followers"})
        self.assertEqual(
            visible(self.auth_headers("alice")), {"public", "followers", "private"}
        )


class PremiumTestCase(unittest.TestCase):
    def test_free_tier_is_not_premium(self):
        self.assertFalse(is_premium({"tier": "free", "subscriptionStatus": "active"}))

    def test_active_subscription_is_premium(self):
        user = {
            "tier": "premium",
            "subscriptionStatus": "active",
            "subscriptionEndDate": utcnow() + timedelta(days=1),
        }
        self.assertTrue(is_premium(user))

    def test_lapsed_subscription_is_not_premium(self):
        user = {
            "tier": "premium",
            "subscriptionStatus": "active",
            "subscriptionEndDate": utcnow() - timedelta(days=1),
        }
        self.assertFalse(is_premium(user))
        user["subscriptionEndDate"] = None
        user["subscriptionStatus"] = "past_due"
        self.assertFalse(is_premium(user))
