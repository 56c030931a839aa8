"""Data models for the post blueprint."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, TypedDict

from wefed.constants import (
    TRENDING_COMMENT_WEIGHT,
    TRENDING_LIKE_WEIGHT,
    TRENDING_SHARE_WEIGHT,
    VISIBILITY_GROUP,
    VISIBILITY_PUBLIC,
)
from wefed.core import IdSet
from wefed.core.types import FirestoreDocument
from wefed.user.models import user_summary
from wefed.utils import as_utc, utcnow

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class Media(TypedDict, total=False):
    """An attachment on a post."""

    type: str
    url: str
    thumbnail: str
    caption: str


class Comment(TypedDict, total=False):
    """A comment embedded in a post document."""

    id: str
    authorId: str
    content: str
    likes: list[str]
    createdAt: datetime


class Share(TypedDict):
    userId: str
    sharedAt: datetime


class Post(FirestoreDocument, total=False):
    """A post document in Firestore."""

    authorId: str
    content: str
    media: list[Media]
    postType: str
    groupId: str | None
    likes: list[str]
    comments: list[Comment]
    shares: list[Share]
    bookmarkedBy: list[str]
    visibility: str
    tags: list[str]
    isEdited: bool
    editedAt: datetime | None
    isPinned: bool
    isDeleted: bool


def new_post(
    author_id: str,
    content: str,
    media: list[Media] | None = None,
    post_type: str = "standard",
    visibility: str = VISIBILITY_PUBLIC,
    tags: list[str] | None = None,
    group_id: str | None = None,
) -> dict[str, Any]:
    """Build a post document with every default filled in."""
    now = utcnow()
    return {
        "authorId": author_id,
        "content": content,
        "media": media or [],
        "postType": post_type or "standard",
        "groupId": group_id,
        "likes": [],
        "comments": [],
        "shares": [],
        "bookmarkedBy": [],
        "visibility": VISIBILITY_GROUP if group_id else visibility,
        "tags": tags or [],
        "isEdited": False,
        "editedAt": None,
        "isPinned": False,
        "isDeleted": False,
        "createdAt": now,
        "updatedAt": now,
    }


def created_at(item: dict[str, Any]) -> datetime:
    """Sort key for newest-first ordering; undated items sort last."""
    return as_utc(item.get("createdAt")) or EPOCH


def trending_score(post: Post | dict[str, Any]) -> int:
    """Engagement score: likes + 2 x comments + 3 x shares."""
    return (
        TRENDING_LIKE_WEIGHT * len(post.get("likes") or [])
        + TRENDING_COMMENT_WEIGHT * len(post.get("comments") or [])
        + TRENDING_SHARE_WEIGHT * len(post.get("shares") or [])
    )


def feed_order(posts: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Pinned posts first, then newest first."""
    return sorted(
        posts, key=lambda p: (bool(p.get("isPinned")), created_at(p)), reverse=True
    )


def serialize_comment(
    comment: Comment | dict[str, Any], authors: dict[str, dict[str, Any]]
) -> dict[str, Any]:
    return {
        "id": comment.get("id"),
        "author": user_summary(authors.get(comment.get("authorId"))),
        "content": comment.get("content"),
        "likeCount": len(comment.get("likes") or []),
        "createdAt": comment.get("createdAt"),
    }


def serialize_post(
    post: Post | dict[str, Any],
    viewer_id: str | None,
    authors: dict[str, dict[str, Any]],
) -> dict[str, Any]:
    """Build the feed item sent to clients."""
    likes = IdSet(post.get("likes"))
    bookmarks = IdSet(post.get("bookmarkedBy"))
    comments = post.get("comments") or []
    return {
        "id": post["id"],
        "author": user_summary(authors.get(post.get("authorId"))),
        "content": post.get("content"),
        "media": post.get("media") or [],
        "postType": post.get("postType"),
        "groupId": post.get("groupId"),
        "visibility": post.get("visibility"),
        "tags": post.get("tags") or [],
        "isEdited": post.get("isEdited", False),
        "editedAt": post.get("editedAt"),
        "isPinned": post.get("isPinned", False),
        "comments": [serialize_comment(c, authors) for c in comments],
        "likeCount": len(likes),
        "commentCount": len(comments),
        "shareCount": len(post.get("shares") or []),
        "liked": viewer_id in likes,
        "bookmarked": viewer_id in bookmarks,
        "createdAt": post.get("createdAt"),
        "updatedAt": post.get("updatedAt"),
    }


def author_ids(posts: list[dict[str, Any]]) -> list[str]:
    """Every user id whose summary a list of posts needs."""
    ids = []
    for post in posts:
        ids.append(post.get("authorId"))
        ids.extend(c.get("authorId") for c in post.get("comments") or [])
    return ids
