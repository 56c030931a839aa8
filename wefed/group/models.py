"""Data models for the group blueprint."""

from __future__ import annotations

from datetime import datetime
from typing import Any, TypedDict

from wefed.constants import (
    DEFAULT_GROUP_SETTINGS,
    PRIVACY_PUBLIC,
    ROLE_ADMIN,
    ROLE_CREATOR,
    ROLE_MEMBER,
    ROLE_MODERATOR,
)
from wefed.core import IdSet, MemberRoster
from wefed.core.types import FirestoreDocument
from wefed.utils import utcnow

ROLE_RANK = {ROLE_MEMBER: 1, ROLE_MODERATOR: 2, ROLE_ADMIN: 3, ROLE_CREATOR: 4}


class Member(TypedDict):
    userId: str
    role: str
    joinedAt: datetime | None


class JoinRequest(TypedDict, total=False):
    userId: str
    requestedAt: datetime
    message: str


class Group(FirestoreDocument, total=False):
    """A group document in Firestore."""

    name: str
    description: str
    coverImage: str | None
    avatar: str | None
    category: str
    tags: list[str]
    privacy: str
    creatorId: str
    admins: list[str]
    moderators: list[str]
    members: list[Member]
    memberIds: list[str]
    pendingRequests: list[JoinRequest]
    settings: dict[str, bool]
    rules: list[Any]
    postCount: int
    isActive: bool
    isFeatured: bool


def new_group(creator_id: str, data: dict[str, Any]) -> dict[str, Any]:
    """Build a group whose creator is its only member and an admin."""
    now = utcnow()
    roster = MemberRoster()
    roster.add(creator_id, ROLE_ADMIN, now)
    return {
        "name": data["name"],
        "description": data["description"],
        "coverImage": data.get("coverImage"),
        "avatar": data.get("avatar"),
        "category": data.get("category") or "Other",
        "tags": data.get("tags") or [],
        "privacy": data.get("privacy") or PRIVACY_PUBLIC,
        "creatorId": creator_id,
        "admins": [creator_id],
        "moderators": [],
        "members": roster.to_list(),
        "memberIds": roster.ids(),
        "pendingRequests": [],
        "settings": {**DEFAULT_GROUP_SETTINGS, **(data.get("settings") or {})},
        "rules": data.get("rules") or [],
        "postCount": 0,
        "isActive": True,
        "isFeatured": False,
        "createdAt": now,
        "updatedAt": now,
    }


def role_of(group: Group | dict[str, Any], user_id: str | None) -> str | None:
    """The effective role of a user: creator > admin > moderator > member."""
    if not user_id:
        return None
    if group.get("creatorId") == user_id:
        return ROLE_CREATOR
    if user_id in IdSet(group.get("admins")):
        return ROLE_ADMIN
    if user_id in IdSet(group.get("moderators")):
        return ROLE_MODERATOR
    return MemberRoster(group.get("members")).role_of(user_id)


def has_role(group: Group | dict[str, Any], user_id: str | None, minimum: str) -> bool:
    role = role_of(group, user_id)
    return role is not None and ROLE_RANK.get(role, 0) >= ROLE_RANK[minimum]


def is_member(group: Group | dict[str, Any], user_id: str | None) -> bool:
    return user_id in MemberRoster(group.get("members"))


def can_post(group: Group | dict[str, Any], user_id: str | None) -> bool:
    """Members post unless the group restricts posting to moderators."""
    if not is_member(group, user_id):
        return False
    settings = {**DEFAULT_GROUP_SETTINGS, **(group.get("settings") or {})}
    if settings["allowMemberPosts"]:
        return True
    return has_role(group, user_id, ROLE_MODERATOR)


def has_pending_request(group: Group | dict[str, Any], user_id: str | None) -> bool:
    return any(r.get("userId") == user_id for r in group.get("pendingRequests") or [])


def serialize_group(
    group: Group | dict[str, Any], viewer_id: str | None
) -> dict[str, Any]:
    """Group card for listings. Pending requests are shown to admins only."""
    role = role_of(group, viewer_id)
    data = {
        "id": group["id"],
        "name": group.get("name"),
        "description": group.get("description"),
        "coverImage": group.get("coverImage"),
        "avatar": group.get("avatar"),
        "category": group.get("category"),
        "tags": group.get("tags") or [],
        "privacy": group.get("privacy"),
        "creatorId": group.get("creatorId"),
        "settings": {**DEFAULT_GROUP_SETTINGS, **(group.get("settings") or {})},
        "rules": group.get("rules") or [],
        "memberCount": len(MemberRoster(group.get("members"))),
        "postCount": group.get("postCount", 0),
        "isFeatured": group.get("isFeatured", False),
        "isMember": is_member(group, viewer_id),
        "role": role,
        "hasPendingRequest": has_pending_request(group, viewer_id),
        "createdAt": group.get("createdAt"),
        "updatedAt": group.get("updatedAt"),
    }
    if role is not None and ROLE_RANK.get(role, 0) >= ROLE_RANK[ROLE_ADMIN]:
        data["pendingRequests"] = group.get("pendingRequests") or []
    return data
