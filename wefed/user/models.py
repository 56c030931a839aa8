"""Data models for the user blueprint."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from wefed.constants import (
    DEFAULT_USER_ROLE,
    SUBSCRIPTION_ACTIVE,
    SUBSCRIPTION_NONE,
    TIER_FREE,
    TIER_PREMIUM,
)
from wefed.core.types import FirestoreDocument
from wefed.utils import as_utc, utcnow

PUBLIC_PROFILE_FIELDS = (
    "name",
    "email",
    "avatar",
    "bio",
    "role",
    "location",
    "website",
    "tier",
    "subscriptionStatus",
    "isVerified",
    "createdAt",
)


class User(FirestoreDocument, total=False):
    """A user document in Firestore."""

    name: str
    email: str
    passwordHash: str
    avatar: str | None
    bio: str
    role: str
    location: str
    website: str
    tier: str
    stripeCustomerId: str | None
    stripeSubscriptionId: str | None
    subscriptionStatus: str
    subscriptionEndDate: datetime | None
    followers: list[str]
    following: list[str]
    groups: list[str]
    isVerified: bool
    isActive: bool
    lastLogin: datetime | None
    passwordResetToken: str | None
    passwordResetExpires: datetime | None


def new_user(name: str, email: str, password_hash: str, tier: str | None = None):
    """Build a user document with every default filled in."""
    now = utcnow()
    return {
        "name": name,
        "email": email.lower(),
        "passwordHash": password_hash,
        "avatar": None,
        "bio": "",
        "role": DEFAULT_USER_ROLE,
        "location": "",
        "website": "",
        "tier": tier or TIER_FREE,
        "stripeCustomerId": None,
        "stripeSubscriptionId": None,
        "subscriptionStatus": SUBSCRIPTION_NONE,
        "subscriptionEndDate": None,
        "followers": [],
        "following": [],
        "groups": [],
        "isVerified": False,
        "isActive": True,
        "lastLogin": now,
        "passwordResetToken": None,
        "passwordResetExpires": None,
        "createdAt": now,
        "updatedAt": now,
    }


def is_premium(user: User | dict[str, Any], now: datetime | None = None) -> bool:
    """Premium means a premium tier with a live subscription."""
    if user.get("tier") != TIER_PREMIUM:
        return False
    if user.get("subscriptionStatus") != SUBSCRIPTION_ACTIVE:
        return False
    end_date = as_utc(user.get("subscriptionEndDate"))
    return end_date is None or end_date > (now or utcnow())


def public_profile(user: User | dict[str, Any]) -> dict[str, Any]:
    """Serialize a user without credentials or billing identifiers."""
    profile = {field: user.get(field) for field in PUBLIC_PROFILE_FIELDS}
    profile["id"] = user["id"]
    profile["isPremium"] = is_premium(user)
    profile["followerCount"] = len(user.get("followers") or [])
    profile["followingCount"] = len(user.get("following") or [])
    profile["groupCount"] = len(user.get("groups") or [])
    return profile


def user_summary(user: User | dict[str, Any] | None) -> dict[str, Any] | None:
    """The short author card embedded in posts, comments and member lists."""
    if not user:
        return None
    return {
        "id": user["id"],
        "name": user.get("name"),
        "avatar": user.get("avatar"),
        "role": user.get("role"),
        "isVerified": user.get("isVerified", False),
    }
