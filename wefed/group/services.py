"""Service layer for group operations and data orchestration."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from firebase_admin import firestore
from google.cloud.firestore import FieldFilter

from wefed.constants import (
    GROUP_RECENT_POSTS_LIMIT,
    GROUPS_COLLECTION,
    PRIVACY_PRIVATE,
    PRIVACY_PUBLIC,
    PRIVACY_SECRET,
    ROLE_ADMIN,
    ROLE_MEMBER,
    USERS_COLLECTION,
)
from wefed.core import MemberRoster
from wefed.errors import (
    DuplicateResourceError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from wefed.post.models import created_at
from wefed.post.services import PostService
from wefed.user.models import user_summary
from wefed.user.services import UserService
from wefed.utils import count_query, paginate, utcnow

from .models import (
    can_post,
    has_pending_request,
    has_role,
    is_member,
    new_group,
    role_of,
)

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

JOINED = "joined"
REQUESTED = "requested"
DISCOVERABLE_PRIVACY = [PRIVACY_PUBLIC, PRIVACY_PRIVATE]


def _stream_groups(query: Any) -> list[dict[str, Any]]:
    groups = []
    for doc in query.stream():
        data = doc.to_dict()
        if data is not None:
            data["id"] = doc.id
            groups.append(data)
    return groups


def _listing_order(groups: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return sorted(
        groups, key=lambda g: (bool(g.get("isFeatured")), created_at(g)), reverse=True
    )


class GroupService:
    """Service class for group-related operations."""

    @staticmethod
    def get_group(db: Client, group_id: str) -> dict[str, Any]:
        """Fetch an active group or raise NotFoundError."""
        doc = db.collection(GROUPS_COLLECTION).document(group_id).get()
        data = doc.to_dict() if doc.exists else None
        if not data or not data.get("isActive", True):
            raise NotFoundError("Group not found")
        data["id"] = doc.id
        return data

    @staticmethod
    def list_groups(
        db: Client,
        page: int,
        limit: int,
        category: str | None = None,
        featured: bool = False,
    ) -> tuple[list[dict[str, Any]], int]:
        """Discoverable groups: active and not secret. Returns groups and total."""
        query = (
            db.collection(GROUPS_COLLECTION)
            .where(filter=FieldFilter("isActive", "==", True))
            .where(filter=FieldFilter("privacy", "in", DISCOVERABLE_PRIVACY))
        )
        if category:
            query = query.where(filter=FieldFilter("category", "==", category))
        if featured:
            query = query.where(filter=FieldFilter("isFeatured", "==", True))
        total = count_query(query)
        if not featured:
            query = query.order_by("isFeatured", direction=firestore.Query.DESCENDING)
        query = query.order_by("createdAt", direction=firestore.Query.DESCENDING)
        groups = _stream_groups(query.offset((page - 1) * limit).limit(limit))
        return groups, total

    @staticmethod
    def get_my_groups(db: Client, user_id: str) -> list[dict[str, Any]]:
        """Every active group the user belongs to."""
        query = db.collection(GROUPS_COLLECTION).where(
            filter=FieldFilter("memberIds", "array_contains", user_id)
        )
        groups = [g for g in _stream_groups(query) if g.get("isActive", True)]
        return _listing_order(groups)

    @staticmethod
    def get_group_for_viewer(
        db: Client, group_id: str, viewer_id: str | None
    ) -> dict[str, Any]:
        """Fetch a group, hiding secret groups from non-members."""
        group = GroupService.get_group(db, group_id)
        if group.get("privacy") == PRIVACY_SECRET and not is_member(group, viewer_id):
            raise PermissionDeniedError("This group is private")
        return group

    @staticmethod
    def get_recent_posts(
        db: Client, group: dict[str, Any], viewer_id: str | None
    ) -> list[dict[str, Any]]:
        """Up to 20 recent posts, or none when the viewer may not read them."""
        if group.get("privacy") != PRIVACY_PUBLIC and not is_member(group, viewer_id):
            return []
        posts, _ = PostService.get_group_posts(
            db, group["id"], 1, GROUP_RECENT_POSTS_LIMIT
        )
        return posts

    @staticmethod
    def create_group(db: Client, user_id: str, data: dict[str, Any]) -> dict[str, Any]:
        """Create a group with the caller as creator, admin and only member."""
        group_data = new_group(user_id, data)
        _, group_ref = db.collection(GROUPS_COLLECTION).add(group_data)
        db.collection(USERS_COLLECTION).document(user_id).update(
            {"groups": firestore.ArrayUnion([group_ref.id])}
        )
        return {**group_data, "id": group_ref.id}

    @staticmethod
    def update_group(
        db: Client, group_id: str, user_id: str, updates: dict[str, Any]
    ) -> dict[str, Any]:
        """Apply admin edits. Settings are merged into the existing ones."""
        group = GroupService.get_group(db, group_id)
        if not has_role(group, user_id, ROLE_ADMIN):
            raise PermissionDeniedError("Only admins can update the group")
        if "settings" in updates:
            updates["settings"] = {
                **(group.get("settings") or {}),
                **(updates["settings"] or {}),
            }
        if updates:
            updates["updatedAt"] = utcnow()
            db.collection(GROUPS_COLLECTION).document(group_id).update(updates)
            group.update(updates)
        return group

    @staticmethod
    def join_group(
        db: Client, group_id: str, user_id: str, message: str | None = None
    ) -> str:
        """Join a public group or ask to join a private one.

        Returns ``JOINED`` or ``REQUESTED``.
        """
        group = GroupService.get_group(db, group_id)
        if is_member(group, user_id):
            raise DuplicateResourceError("Already a member of this group")

        privacy = group.get("privacy")
        if privacy == PRIVACY_SECRET:
            raise PermissionDeniedError("This group can only be joined by invitation")

        group_ref = db.collection(GROUPS_COLLECTION).document(group_id)
        if privacy == PRIVACY_PRIVATE:
            if has_pending_request(group, user_id):
                raise DuplicateResourceError("Join request already pending")
            join_request = {
                "userId": user_id,
                "requestedAt": utcnow(),
                "message": message or "",
            }
            group_ref.update({"pendingRequests": firestore.ArrayUnion([join_request])})
            return REQUESTED

        GroupService._add_member(db, group_id, user_id)
        return JOINED

    @staticmethod
    def _add_member(db: Client, group_id: str, user_id: str) -> None:
        roster = MemberRoster()
        roster.add(user_id, ROLE_MEMBER, utcnow())
        db.collection(GROUPS_COLLECTION).document(group_id).update(
            {
                "members": firestore.ArrayUnion(roster.to_list()),
                "memberIds": firestore.ArrayUnion([user_id]),
                "updatedAt": utcnow(),
            }
        )
        db.collection(USERS_COLLECTION).document(user_id).update(
            {"groups": firestore.ArrayUnion([group_id])}
        )

    @staticmethod
    def leave_group(db: Client, group_id: str, user_id: str) -> None:
        """Leave a group. The creator cannot leave."""
        group = GroupService.get_group(db, group_id)
        if group.get("creatorId") == user_id:
            raise ValidationError("Group creator cannot leave the group")

        update: dict[str, Any] = {
            "memberIds": firestore.ArrayRemove([user_id]),
            "admins": firestore.ArrayRemove([user_id]),
            "moderators": firestore.ArrayRemove([user_id]),
            "updatedAt": utcnow(),
        }
        entry = MemberRoster(group.get("members")).get(user_id)
        if entry is not None:
            update["members"] = firestore.ArrayRemove([entry])
        db.collection(GROUPS_COLLECTION).document(group_id).update(update)
        db.collection(USERS_COLLECTION).document(user_id).update(
            {"groups": firestore.ArrayRemove([group_id])}
        )

    @staticmethod
    def resolve_request(
        db: Client, group_id: str, admin_id: str, user_id: str, approve: bool
    ) -> None:
        """Approve or reject a pending join request."""
        group = GroupService.get_group(db, group_id)
        if not has_role(group, admin_id, ROLE_ADMIN):
            raise PermissionDeniedError("Only admins can manage join requests")
        join_request = next(
            (
                r
                for r in group.get("pendingRequests") or []
                if r.get("userId") == user_id
            ),
            None,
        )
        if join_request is None:
            raise NotFoundError("Join request not found")

        db.collection(GROUPS_COLLECTION).document(group_id).update(
            {"pendingRequests": firestore.ArrayRemove([join_request])}
        )
        if approve and not is_member(group, user_id):
            GroupService._add_member(db, group_id, user_id)

    @staticmethod
    def get_members(
        db: Client, group: dict[str, Any], page: int, limit: int
    ) -> tuple[list[dict[str, Any]], int]:
        """Member entries with user summaries and effective roles."""
        roster = MemberRoster(group.get("members"))
        entries = paginate(list(roster), page, limit)
        users = UserService.get_users_by_ids(db, [m["userId"] for m in entries])
        members = [
            {
                "user": user_summary(users.get(m["userId"])),
                "role": role_of(group, m["userId"]),
                "joinedAt": m.get("joinedAt"),
            }
            for m in entries
            if m["userId"] in users
        ]
        return members, len(roster)

    @staticmethod
    def get_posts(
        db: Client, group: dict[str, Any], viewer_id: str | None, page: int, limit: int
    ) -> tuple[list[dict[str, Any]], int]:
        """Posts of a group. Only members read private and secret groups."""
        if group.get("privacy") != PRIVACY_PUBLIC and not is_member(group, viewer_id):
            raise PermissionDeniedError("Must be a member to view posts")
        return PostService.get_group_posts(db, group["id"], page, limit)

    @staticmethod
    def create_group_post(
        db: Client, group: dict[str, Any], user_id: str, data: dict[str, Any]
    ) -> dict[str, Any]:
        """Publish a post inside a group and bump its post count."""
        if not is_member(group, user_id):
            raise PermissionDeniedError("Must be a member to post")
        if not can_post(group, user_id):
            raise PermissionDeniedError("Only moderators can post in this group")
        post = PostService.create_post(db, user_id, data, group_id=group["id"])
        db.collection(GROUPS_COLLECTION).document(group["id"]).update(
            {"postCount": firestore.Increment(1)}
        )
        return post

