"""Service layer for user profiles and the follow graph."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

from firebase_admin import firestore
from google.cloud.firestore import FieldFilter

from wefed.constants import USERS_COLLECTION
from wefed.core import IdSet
from wefed.errors import DuplicateResourceError, NotFoundError, ValidationError
from wefed.utils import paginate, utcnow

from .models import user_summary

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client

MIN_SEARCH_LENGTH = 2


def _snapshot_to_user(doc: DocumentSnapshot) -> dict[str, Any] | None:
    if not doc.exists:
        return None
    data = doc.to_dict()
    if data is None:
        return None
    data["id"] = doc.id
    return data


def get_user_by_id(db: Client, user_id: str) -> dict[str, Any] | None:
    """Fetch a user by their ID."""
    if not user_id:
        return None
    user_ref = db.collection(USERS_COLLECTION).document(user_id)
    user_doc = cast("DocumentSnapshot", user_ref.get())
    return _snapshot_to_user(user_doc)


def get_user_or_404(db: Client, user_id: str) -> dict[str, Any]:
    """Fetch a user or raise NotFoundError."""
    user = get_user_by_id(db, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def get_user_by_email(db: Client, email: str) -> dict[str, Any] | None:
    """Fetch a user by email address (stored lowercased)."""
    docs = (
        db.collection(USERS_COLLECTION)
        .where(filter=FieldFilter("email", "==", email.strip().lower()))
        .limit(1)
        .stream()
    )
    for doc in docs:
        return _snapshot_to_user(doc)
    return None


def get_users_by_ids(db: Client, user_ids: list[str]) -> dict[str, dict[str, Any]]:
    """Fetch several users at once, keyed by id. Missing users are skipped."""
    users = {}
    for user_id in dict.fromkeys(i for i in user_ids if i):
        user = get_user_by_id(db, user_id)
        if user is not None:
            users[user_id] = user
    return users


def update_user_profile(
    db: Client, user_id: str, update_data: dict[str, Any]
) -> dict[str, Any]:
    """Update a user's profile in Firestore and return the fresh document."""
    user_ref = db.collection(USERS_COLLECTION).document(user_id)
    if update_data:
        user_ref.update({**update_data, "updatedAt": utcnow()})
    return get_user_or_404(db, user_id)


def follow_user(db: Client, follower_id: str, target_id: str) -> dict[str, Any]:
    """Make ``follower_id`` follow ``target_id`` and return the target."""
    target = get_user_or_404(db, target_id)
    if follower_id == target_id:
        raise ValidationError("Cannot follow yourself")
    if follower_id in IdSet(target.get("followers")):
        raise DuplicateResourceError("Already following this user")

    users = db.collection(USERS_COLLECTION)
    now = utcnow()
    users.document(target_id).update(
        {"followers": firestore.ArrayUnion([follower_id]), "updatedAt": now}
    )
    users.document(follower_id).update(
        {"following": firestore.ArrayUnion([target_id]), "updatedAt": now}
    )
    return target


def unfollow_user(db: Client, follower_id: str, target_id: str) -> None:
    """Remove ``target_id`` from the follower's following set and vice versa."""
    get_user_or_404(db, target_id)
    users = db.collection(USERS_COLLECTION)
    now = utcnow()
    users.document(target_id).update(
        {"followers": firestore.ArrayRemove([follower_id]), "updatedAt": now}
    )
    users.document(follower_id).update(
        {"following": firestore.ArrayRemove([target_id]), "updatedAt": now}
    )


def _relation_page(
    db: Client, user_id: str, field: str, page: int, limit: int
) -> tuple[list[dict[str, Any]], int]:
    user = get_user_or_404(db, user_id)
    ids = IdSet(user.get(field)).to_list()
    users = get_users_by_ids(db, paginate(ids, page, limit))
    return [user_summary(users[i]) for i in users], len(ids)


def get_followers(db: Client, user_id: str, page: int, limit: int):
    """Return one page of follower summaries and the follower total."""
    return _relation_page(db, user_id, "followers", page, limit)


def get_following(db: Client, user_id: str, page: int, limit: int):
    """Return one page of followed-user summaries and the total."""
    return _relation_page(db, user_id, "following", page, limit)


def search_users(db: Client, query: str, page: int, limit: int):
    """Case-insensitive substring search over active users' name and bio."""
    needle = (query or "").strip().lower()
    if len(needle) < MIN_SEARCH_LENGTH:
        raise ValidationError("Search query must be at least 2 characters")

    matches = []
    docs = (
        db.collection(USERS_COLLECTION)
        .where(filter=FieldFilter("isActive", "==", True))
        .stream()
    )
    for doc in docs:
        user = _snapshot_to_user(doc)
        if user is None:
            continue
        haystack = f"{user.get('name') or ''}\n{user.get('bio') or ''}".lower()
        if needle in haystack:
            matches.append(user)
    matches.sort(key=lambda u: (u.get("name") or "").lower())
    return [user_summary(u) for u in paginate(matches, page, limit)], len(matches)


class UserService:
    """Service class for user-related operations and Firestore interaction."""

    get_user_by_id = staticmethod(get_user_by_id)
    get_user_or_404 = staticmethod(get_user_or_404)
    get_user_by_email = staticmethod(get_user_by_email)
    get_users_by_ids = staticmethod(get_users_by_ids)
    update_user_profile = staticmethod(update_user_profile)
    follow_user = staticmethod(follow_user)
    unfollow_user = staticmethod(unfollow_user)
    get_followers = staticmethod(get_followers)
    get_following = staticmethod(get_following)
    search_users = staticmethod(search_users)
