"""Tests for the post blueprint."""

import unittest
from datetime import timedelta

from tests.helpers import ApiTestCase
from wefed.constants import FOLLOWED_AUTHORS_CHUNK, POSTS_COLLECTION, USERS_COLLECTION
from wefed.post.models import feed_order, trending_score
from wefed.post.services import PostService
from wefed.utils import utcnow


class PostModelTestCase(unittest.TestCase):
    def test_trending_score_weights_engagement(self):
        post = {"likes": ["a"] * 5, "comments": [{}] * 3, "shares": [{}] * 2}
        self.assertEqual(trending_score(post), 5 + 6 + 6)

    def test_feed_order_puts_pinned_first(self):
        now = utcnow()
        posts = [
            {"id": "old", "createdAt": now - timedelta(hours=2)},
            {"id": "new", "createdAt": now},
            {"id": "pinned", "isPinned": True, "createdAt": now - timedelta(days=3)},
        ]
        self.assertEqual([p["id"] for p in feed_order(posts)], ["pinned", "new", "old"])


class PostRoutesTestCase(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.create_user("alice", name="Alice")
        self.create_user("bob", name="Bob")
        self.alice = self.auth_headers("alice")
        self.bob = self.auth_headers("bob")

    def test_create_post(self):
        response = self.client.post(
            "/api/posts",
            json={
                "content": "  Green bonds are growing  ",
                "tags": ["Finance", "ESG"],
                "media": [{"type": "image", "url": "https://img.example.com/1.png"}],
            },
            headers=self.alice,
        )
        self.assertEqual(response.status_code, 201)
        post = response.get_json()["post"]
        self.assertEqual(post["content"], "Green bonds are growing")
        self.assertEqual(post["tags"], ["finance", "esg"])
        self.assertEqual(post["author"]["name"], "Alice")
        self.assertEqual(post["likeCount"], 0)
        self.assertEqual(post["visibility"], "public")
        self.assertFalse(post["liked"])

    def test_create_post_validation(self):
        response = self.client.post(
            "/api/posts",
            json={"content": "", "media": [{"type": "audio", "url": "x"}]},
            headers=self.alice,
        )
        self.assertEqual(response.status_code, 400)
        fields = {error["field"] for error in response.get_json()["errors"]}
        self.assertEqual(fields, {"content", "media"})

        too_long = self.client.post(
            "/api/posts", json={"content": "x" * 5001}, headers=self.alice
        )
        self.assertEqual(too_long.status_code, 400)

    def test_create_post_requires_login(self):
        response = self.client.post("/api/posts", json={"content": "Hi"})
        self.assertEqual(response.status_code, 401)

    def test_like_toggles(self):
        self.create_post("p1", "alice")
        first = self.client.post("/api/posts/p1/like", headers=self.bob).get_json()
        self.assertEqual(first, {"liked": True, "likeCount": 1})
        self.assertEqual(self.get_doc(POSTS_COLLECTION, "p1")["likes"], ["bob"])

        second = self.client.post("/api/posts/p1/like", headers=self.bob).get_json()
        self.assertEqual(second, {"liked": False, "likeCount": 0})
        self.assertEqual(self.get_doc(POSTS_COLLECTION, "p1")["likes"], [])

    def test_bookmarks(self):
        self.create_post("p1", "alice")
        self.create_post("p2", "alice")
        response = self.client.post("/api/posts/p1/bookmark", headers=self.bob)
        self.assertEqual(response.get_json(), {"bookmarked": True})

        body = self.client.get("/api/posts/bookmarks", headers=self.bob).get_json()
        self.assertEqual([p["id"] for p in body["posts"]], ["p1"])
        self.assertTrue(body["posts"][0]["bookmarked"])
        self.assertFalse(body["hasMore"])

        response = self.client.post("/api/posts/p1/bookmark", headers=self.bob)
        self.assertEqual(response.get_json(), {"bookmarked": False})

    def test_share_counts(self):
        self.create_post("p1", "alice")
        self.client.post("/api/posts/p1/share", headers=self.bob)
        response = self.client.post("/api/posts/p1/share", headers=self.bob)
        self.assertEqual(response.get_json(), {"shareCount": 2})

    def test_comment_and_delete(self):
        self.create_post("p1", "alice")
        response = self.client.post(
            "/api/posts/p1/comment", json={"content": "Great point"}, headers=self.bob
        )
        self.assertEqual(response.status_code, 201)
        comment = response.get_json()["comment"]
        self.assertEqual(comment["author"]["id"], "bob")

        post = self.client.get("/api/posts/p1").get_json()["post"]
        self.assertEqual(post["commentCount"], 1)
        self.assertEqual(post["comments"][0]["content"], "Great point")

        self.create_user("carol")
        forbidden = self.client.delete(
            f"/api/posts/p1/comment/{comment['id']}", headers=self.auth_headers("carol")
        )
        self.assertEqual(forbidden.status_code, 403)

        # The post's author may remove comments on it.
        response = self.client.delete(
            f"/api/posts/p1/comment/{comment['id']}", headers=self.alice
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.get_doc(POSTS_COLLECTION, "p1")["comments"], [])

        missing = self.client.delete("/api/posts/p1/comment/nope", headers=self.alice)
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.get_json()["error"], "Comment not found")

    def test_update_and_delete_own_post_only(self):
        self.create_post("p1", "alice")
        forbidden = self.client.put(
            "/api/posts/p1", json={"content": "Hijacked"}, headers=self.bob
        )
        self.assertEqual(forbidden.status_code, 403)

        response = self.client.put(
            "/api/posts/p1", json={"content": "Edited"}, headers=self.alice
        )
        self.assertEqual(response.status_code, 200)
        post = response.get_json()["post"]
        self.assertEqual(post["content"], "Edited")
        self.assertTrue(post["isEdited"])
        self.assertIsNotNone(post["editedAt"])

        blank = self.client.put(
            "/api/posts/p1", json={"content": ""}, headers=self.alice
        )
        self.assertEqual(blank.status_code, 400)

        self.assertEqual(
            self.client.delete("/api/posts/p1", headers=self.bob).status_code, 403
        )
        self.assertEqual(
            self.client.delete("/api/posts/p1", headers=self.alice).status_code, 200
        )
        self.assertTrue(self.get_doc(POSTS_COLLECTION, "p1")["isDeleted"])
        self.assertEqual(self.client.get("/api/posts/p1").status_code, 404)

    def test_hidden_posts_look_missing(self):
        self.create_post("private", "alice", visibility="private")
        self.create_post("followers", "alice", visibility="followers")

        self.assertEqual(self.client.get("/api/posts/private").status_code, 404)
        self.assertEqual(
            self.client.get("/api/posts/followers", headers=self.bob).status_code, 404
        )
        self.assertEqual(
            self.client.get("/api/posts/private", headers=self.alice).status_code, 200
        )

        self.create_user("carol", following=["alice"])
        response = self.client.get(
            "/api/posts/followers", headers=self.auth_headers("carol")
        )
        self.assertEqual(response.status_code, 200)

    def test_global_feed_shows_public_posts_newest_first(self):
        now = utcnow()
        self.create_post("older", "alice", createdAt=now - timedelta(hours=1))
        self.create_post("newer", "bob", createdAt=now)
        self.create_post("hidden", "bob", visibility="followers")
        self.create_post("in-group", "bob", groupId="g1", visibility="group")

        body = self.client.get("/api/posts/feed", headers=self.alice).get_json()
        self.assertEqual([p["id"] for p in body["posts"]], ["newer", "older"])
        self.assertFalse(body["hasMore"])

        response = self.client.get("/api/posts/feed?limit=1", headers=self.alice)
        body = response.get_json()
        self.assertEqual([p["id"] for p in body["posts"]], ["newer"])
        self.assertTrue(body["hasMore"])

    def test_following_feed(self):
        self.create_user("carol")
        self.create_post("mine", "alice")
        self.create_post("followed", "bob", visibility="followers")
        self.create_post("stranger", "carol")
        self.db.collection(USERS_COLLECTION).document("alice").update(
            {"following": ["bob"]}
        )

        body = self.client.get(
            "/api/posts/feed?type=following", headers=self.alice
        ).get_json()
        self.assertEqual({p["id"] for p in body["posts"]}, {"mine", "followed"})

    def test_trending_ranks_by_engagement_within_a_day(self):
        now = utcnow()
        self.create_post(
            "busy",
            "alice",
            likes=["u1", "u2", "u3", "u4", "u5", "u6", "u7", "u8", "u9", "u10"],
            comments=[{"id": str(i), "authorId": "bob"} for i in range(5)],
            shares=[{"userId": "bob"} for _ in range(2)],
        )
        self.create_post(
            "quiet",
            "bob",
            likes=["u%d" % i for i in range(15)],
        )
        self.create_post(
            "stale",
            "bob",
            likes=["u%d" % i for i in range(50)],
            createdAt=now - timedelta(hours=25),
        )

        body = self.client.get("/api/posts/trending").get_json()
        self.assertEqual([p["id"] for p in body["posts"]], ["busy", "quiet"])

        body = self.client.get("/api/posts/trending?limit=1").get_json()
        self.assertEqual([p["id"] for p in body["posts"]], ["busy"])

    def test_group_visibility_is_rejected_outside_groups(self):
        response = self.client.post(
            "/api/posts",
            json={"content": "Only for my circle", "visibility": "group"},
            headers=self.alice,
        )
        self.assertEqual(response.status_code, 400)
        fields = {error["field"] for error in response.get_json()["errors"]}
        self.assertEqual(fields, {"visibility"})

        self.create_post("p1", "alice")
        response = self.client.put(
            "/api/posts/p1", json={"visibility": "group"}, headers=self.alice
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.get_doc(POSTS_COLLECTION, "p1")["visibility"], "public")

    def test_tags_must_be_an_array(self):
        response = self.client.post(
            "/api/posts", json={"content": "Hello", "tags": "abc"}, headers=self.alice
        )
        self.assertEqual(response.status_code, 400)
        fields = {error["field"] for error in response.get_json()["errors"]}
        self.assertEqual(fields, {"tags"})

    def test_global_feed_pages_pinned_posts_first(self):
        now = utcnow()
        self.create_post(
            "pinned", "alice", isPinned=True, createdAt=now - timedelta(days=2)
        )
        self.create_post("recent", "bob", createdAt=now)
        self.create_post("earlier", "bob", createdAt=now - timedelta(hours=3))
        self.create_post("removed", "bob", isDeleted=True, createdAt=now)

        pages = [
            self.client.get(
                f"/api/posts/feed?page={page}&limit=1", headers=self.alice
            ).get_json()
            for page in (1, 2, 3)
        ]
        self.assertEqual(
            [[p["id"] for p in body["posts"]] for body in pages],
            [["pinned"], ["recent"], ["earlier"]],
        )
        self.assertEqual([body["hasMore"] for body in pages], [True, True, False])


class PostServiceTestCase(ApiTestCase):
    def test_posts_outside_groups_match_the_null_group_filter(self):
        self.create_post("own", "alice")
        self.create_post("grouped", "alice", groupId="g1", visibility="group")
        self.create_post("deleted", "alice", isDeleted=True)
        self.assertEqual(PostService.count_user_posts(self.db, "alice"), 1)

    def test_personalized_feed_merges_author_chunks(self):
        now = utcnow()
        following = [f"author{i}" for i in range(FOLLOWED_AUTHORS_CHUNK + 5)]
        for i, author_id in enumerate(following):
            self.create_post(f"p{i}", author_id, createdAt=now - timedelta(minutes=i))
        self.create_post(
            "secret",
            "author0",
            visibility="private",
            createdAt=now + timedelta(hours=1),
        )
        reader = {"id": "reader", "following": following}

        posts, has_more = PostService.get_personalized_feed(self.db, reader, 1, 5)
        self.assertEqual([p["id"] for p in posts], ["p0", "p1", "p2", "p3", "p4"])
        self.assertTrue(has_more)

        posts, has_more = PostService.get_personalized_feed(self.db, reader, 4, 5)
        self.assertEqual([p["id"] for p in posts], ["p15", "p16", "p17", "p18", "p19"])
        self.assertFalse(has_more)

    def test_user_posts_total_counts_every_visible_post(self):
        for i in range(3):
            self.create_post(f"p{i}", "alice")
        self.create_post("mine-only", "alice", visibility="private")
        author = {"id": "alice", "followers": []}

        posts, total = PostService.get_user_posts(self.db, author, None, 1, 2)
        self.assertEqual(len(posts), 2)
        self.assertEqual(total, 3)


if __name__ == "__main__":
    unittest.main()
