"""Service layer for posts, engagement and feeds."""

from __future__ import annotations

import uuid
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from firebase_admin import firestore
from google.cloud.firestore import FieldFilter

from wefed.constants import (
    FOLLOWED_AUTHORS_CHUNK,
    GROUPS_COLLECTION,
    POSTS_COLLECTION,
    PRIVACY_PUBLIC,
    TRENDING_WINDOW_HOURS,
    VISIBILITY_FOLLOWERS,
    VISIBILITY_PRIVATE,
    VISIBILITY_PUBLIC,
)
from wefed.core import IdSet
from wefed.errors import NotFoundError, PermissionDeniedError
from wefed.user.services import UserService
from wefed.utils import count_query, page_query, paginate, utcnow

from .models import (
    author_ids,
    created_at,
    feed_order,
    new_post,
    serialize_comment,
    serialize_post,
    trending_score,
)

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client


def _stream_posts(query: Any) -> list[dict[str, Any]]:
    posts = []
    for doc in query.stream():
        data = doc.to_dict()
        if data is not None:
            data["id"] = doc.id
            posts.append(data)
    return posts


def _live_posts_query(db: Client, *filters: FieldFilter) -> Any:
    query = db.collection(POSTS_COLLECTION).where(
        filter=FieldFilter("isDeleted", "==", False)
    )
    for field_filter in filters:
        query = query.where(filter=field_filter)
    return query


def _feed_ordered(query: Any) -> Any:
    """Pinned posts first, then newest first."""
    return query.order_by("isPinned", direction=firestore.Query.DESCENDING).order_by(
        "createdAt", direction=firestore.Query.DESCENDING
    )


def _page_of(query: Any, page: int, limit: int):
    posts = _stream_posts(page_query(query, page, limit))
    return posts[:limit], len(posts) > limit


class PostService:
    """Service class for post-related operations."""

    @staticmethod
    def serialize(
        db: Client, posts: list[dict[str, Any]], viewer_id: str | None
    ) -> list[dict[str, Any]]:
        """Serialize posts with their author and commenter summaries."""
        authors = UserService.get_users_by_ids(db, author_ids(posts))
        return [serialize_post(post, viewer_id, authors) for post in posts]

    @staticmethod
    def get_post(db: Client, post_id: str) -> dict[str, Any]:
        """Fetch a live post or raise NotFoundError."""
        doc = db.collection(POSTS_COLLECTION).document(post_id).get()
        data = doc.to_dict() if doc.exists else None
        if not data or data.get("isDeleted"):
            raise NotFoundError("Post not found")
        data["id"] = doc.id
        return data

    @staticmethod
    def can_view(
        db: Client, post: dict[str, Any], viewer: dict[str, Any] | None
    ) -> bool:
        """Apply the post's visibility to a (possibly anonymous) viewer."""
        viewer_id = viewer["id"] if viewer else None
        if viewer_id and viewer_id == post.get("authorId"):
            return True
        if post.get("groupId"):
            doc = db.collection(GROUPS_COLLECTION).document(post["groupId"]).get()
            group = doc.to_dict() if doc.exists else None
            if not group:
                return False
            return (
                group.get("privacy") == PRIVACY_PUBLIC
                or viewer_id in IdSet(group.get("memberIds"))
            )
        visibility = post.get("visibility")
        if visibility == VISIBILITY_PUBLIC:
            return True
        if visibility == VISIBILITY_FOLLOWERS and viewer:
            return post.get("authorId") in IdSet(viewer.get("following"))
        return False

    @staticmethod
    def get_visible_post(
        db: Client, post_id: str, viewer: dict[str, Any] | None
    ) -> dict[str, Any]:
        """Fetch a post the viewer may see. Hidden posts look missing."""
        post = PostService.get_post(db, post_id)
        if not PostService.can_view(db, post, viewer):
            raise NotFoundError("Post not found")
        return post

    @staticmethod
    def create_post(
        db: Client, author_id: str, data: dict[str, Any], group_id: str | None = None
    ) -> dict[str, Any]:
        """Create a post, optionally inside a group."""
        post_data = new_post(
            author_id,
            data["content"],
            media=data.get("media"),
            post_type=data.get("postType") or "standard",
            visibility=data.get("visibility") or VISIBILITY_PUBLIC,
            tags=data.get("tags"),
            group_id=group_id,
        )
        _, post_ref = db.collection(POSTS_COLLECTION).add(post_data)
        return {**post_data, "id": post_ref.id}

    @staticmethod
    def _get_own_post(db: Client, post_id: str, user_id: str) -> dict[str, Any]:
        post = PostService.get_post(db, post_id)
        if post.get("authorId") != user_id:
            raise PermissionDeniedError("Not authorized to modify this post")
        return post

    @staticmethod
    def update_post(
        db: Client, post_id: str, user_id: str, updates: dict[str, Any]
    ) -> dict[str, Any]:
        """Edit content, visibility or tags of the caller's own post."""
        post = PostService._get_own_post(db, post_id, user_id)
        if updates:
            now = utcnow()
            updates = {**updates, "isEdited": True, "editedAt": now, "updatedAt": now}
            db.collection(POSTS_COLLECTION).document(post_id).update(updates)
            post.update(updates)
        return post

    @staticmethod
    def delete_post(db: Client, post_id: str, user_id: str) -> None:
        """Soft-delete the caller's own post."""
        PostService._get_own_post(db, post_id, user_id)
        db.collection(POSTS_COLLECTION).document(post_id).update(
            {"isDeleted": True, "updatedAt": utcnow()}
        )

    @staticmethod
    def toggle_like(
        db: Client, post: dict[str, Any], user_id: str
    ) -> tuple[bool, int]:
        """Like or unlike a post. Returns the new state and like count."""
        likes = IdSet(post.get("likes"))
        liked = likes.toggle(user_id)
        change = firestore.ArrayUnion if liked else firestore.ArrayRemove
        db.collection(POSTS_COLLECTION).document(post["id"]).update(
            {"likes": change([user_id])}
        )
        return liked, len(likes)

    @staticmethod
    def toggle_bookmark(db: Client, post: dict[str, Any], user_id: str) -> bool:
        """Bookmark or unbookmark a post. Returns whether it is now bookmarked."""
        bookmarks = IdSet(post.get("bookmarkedBy"))
        bookmarked = bookmarks.toggle(user_id)
        change = firestore.ArrayUnion if bookmarked else firestore.ArrayRemove
        db.collection(POSTS_COLLECTION).document(post["id"]).update(
            {"bookmarkedBy": change([user_id])}
        )
        return bookmarked

    @staticmethod
    def share_post(db: Client, post: dict[str, Any], user_id: str) -> int:
        """Record a share and return the new share count."""
        share = {"userId": user_id, "sharedAt": utcnow()}
        db.collection(POSTS_COLLECTION).document(post["id"]).update(
            {"shares": firestore.ArrayUnion([share])}
        )
        return len(post.get("shares") or []) + 1

    @staticmethod
    def add_comment(
        db: Client, post: dict[str, Any], author: dict[str, Any], content: str
    ) -> dict[str, Any]:
        """Append a comment and return it serialized."""
        comment = {
            "id": uuid.uuid4().hex,
            "authorId": author["id"],
            "content": content,
            "likes": [],
            "createdAt": utcnow(),
        }
        db.collection(POSTS_COLLECTION).document(post["id"]).update(
            {"comments": firestore.ArrayUnion([comment])}
        )
        return serialize_comment(comment, {author["id"]: author})

    @staticmethod
    def delete_comment(
        db: Client, post: dict[str, Any], comment_id: str, user_id: str
    ) -> None:
        """Remove a comment. Its author or the post's author may do so."""
        comments = post.get("comments") or []
        comment = next((c for c in comments if c.get("id") == comment_id), None)
        if comment is None:
            raise NotFoundError("Comment not found")
        if user_id not in (comment.get("authorId"), post.get("authorId")):
            raise PermissionDeniedError("Not authorized to delete this comment")
        remaining = [c for c in comments if c.get("id") != comment_id]
        db.collection(POSTS_COLLECTION).document(post["id"]).update(
            {"comments": remaining}
        )

    @staticmethod
    def get_global_feed(db: Client, page: int, limit: int):
        """Public, non-group posts, pinned first then newest first."""
        query = _live_posts_query(
            db,
            FieldFilter("visibility", "==", VISIBILITY_PUBLIC),
            FieldFilter("groupId", "==", None),
        )
        return _page_of(_feed_ordered(query), page, limit)

    @staticmethod
    def get_personalized_feed(
        db: Client, user: dict[str, Any], page: int, limit: int
    ):
        """Posts by followed users and the caller, public or followers-only.

        Authors are queried in chunks, each chunk returning at most the
        posts needed to fill this page, and the chunks are merged.
        """
        authors = IdSet(user.get("following"))
        authors.add(user["id"])
        author_list = list(authors)
        wanted = page * limit + 1
        posts = []
        for start in range(0, len(author_list), FOLLOWED_AUTHORS_CHUNK):
            chunk = author_list[start : start + FOLLOWED_AUTHORS_CHUNK]
            query = _live_posts_query(
                db,
                FieldFilter("groupId", "==", None),
                FieldFilter("authorId", "in", chunk),
                FieldFilter(
                    "visibility", "in", [VISIBILITY_PUBLIC, VISIBILITY_FOLLOWERS]
                ),
            )
            posts.extend(_stream_posts(_feed_ordered(query).limit(wanted)))
        posts = feed_order(posts)
        return paginate(posts, page, limit), len(posts) > page * limit

    @staticmethod
    def get_trending(db: Client, limit: int, now=None) -> list[dict[str, Any]]:
        """Public posts from the last day ranked by engagement, newest first on ties."""
        since = (now or utcnow()) - timedelta(hours=TRENDING_WINDOW_HOURS)
        query = _live_posts_query(
            db,
            FieldFilter("visibility", "==", VISIBILITY_PUBLIC),
            FieldFilter("groupId", "==", None),
            FieldFilter("createdAt", ">=", since),
        ).order_by("createdAt", direction=firestore.Query.DESCENDING)
        # Engagement is computed from array lengths, so ranking stays in Python.
        posts = _stream_posts(query)
        posts.sort(key=lambda p: (trending_score(p), created_at(p)), reverse=True)
        return posts[:limit]

    @staticmethod
    def get_bookmarks(db: Client, user_id: str, page: int, limit: int):
        """The caller's bookmarked posts, newest first."""
        query = _live_posts_query(
            db, FieldFilter("bookmarkedBy", "array_contains", user_id)
        ).order_by("createdAt", direction=firestore.Query.DESCENDING)
        return _page_of(query, page, limit)

    @staticmethod
    def get_user_posts(
        db: Client,
        author: dict[str, Any],
        viewer: dict[str, Any] | None,
        page: int,
        limit: int,
    ) -> tuple[list[dict[str, Any]], int]:
        """A user's own timeline as seen by ``viewer``. Returns posts and total."""
        viewer_id = viewer["id"] if viewer else None
        if viewer_id == author["id"]:
            allowed = [VISIBILITY_PUBLIC, VISIBILITY_FOLLOWERS, VISIBILITY_PRIVATE]
        elif viewer_id in IdSet(author.get("followers")):
            allowed = [VISIBILITY_PUBLIC, VISIBILITY_FOLLOWERS]
        else:
            allowed = [VISIBILITY_PUBLIC]
        query = _live_posts_query(
            db,
            FieldFilter("groupId", "==", None),
            FieldFilter("authorId", "==", author["id"]),
            FieldFilter("visibility", "in", allowed),
        )
        total = count_query(query)
        posts, _ = _page_of(_feed_ordered(query), page, limit)
        return posts, total

    @staticmethod
    def count_user_posts(db: Client, user_id: str) -> int:
        """Count a user's live posts outside groups."""
        return count_query(
            _live_posts_query(
                db,
                FieldFilter("authorId", "==", user_id),
                FieldFilter("groupId", "==", None),
            )
        )

    @staticmethod
    def get_group_posts(
        db: Client, group_id: str, page: int, limit: int
    ) -> tuple[list[dict[str, Any]], int]:
        """One page of a group's live posts, pinned first, and the total."""
        query = _live_posts_query(db, FieldFilter("groupId", "==", group_id))
        total = count_query(query)
        posts, _ = _page_of(_feed_ordered(query), page, limit)
        return posts, total
