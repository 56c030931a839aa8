"""Data models and derived figures for crowdfunding campaigns."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any, TypedDict

from wefed.constants import (
    CAMPAIGN_ACTIVE,
    CAMPAIGN_COMPLETED,
    DEFAULT_COVER_IMAGE,
    DONATION_COMPLETED,
)
from wefed.core import IdSet
from wefed.core.types import FirestoreDocument
from wefed.post.models import created_at
from wefed.user.models import user_summary
from wefed.utils import as_utc, utcnow

SHORT_DESCRIPTION_LENGTH = 300
SECONDS_PER_DAY = 24 * 60 * 60


class Donation(TypedDict, total=False):
    """A donation embedded in a campaign document."""

    id: str
    donorId: str
    amount: float
    message: str
    isAnonymous: bool
    paymentIntentId: str
    status: str
    createdAt: datetime


class CampaignUpdate(TypedDict, total=False):
    id: str
    title: str
    content: str
    media: list[Any]
    createdAt: datetime


class Campaign(FirestoreDocument, total=False):
    """A campaign document in Firestore."""

    title: str
    description: str
    shortDescription: str
    organizerId: str
    organizerName: str
    organizationType: str
    coverImage: str
    images: list[str]
    video: str | None
    category: str
    tags: list[str]
    goal: float
    raised: float
    currency: str
    donations: list[Donation]
    donorCount: int
    startDate: datetime
    endDate: datetime
    updates: list[CampaignUpdate]
    location: dict[str, Any] | None
    beneficiary: dict[str, Any] | None
    status: str
    isVerified: bool
    isFeatured: bool
    shares: int
    followers: list[str]
    lastDonationAt: datetime | None


def new_campaign(
    organizer: dict[str, Any], data: dict[str, Any], currency: str
) -> dict[str, Any]:
    """Build an active campaign with every default filled in."""
    now = utcnow()
    description = data["description"]
    return {
        "title": data["title"],
        "description": description,
        "shortDescription": data.get("shortDescription")
        or description[:SHORT_DESCRIPTION_LENGTH],
        "organizerId": organizer["id"],
        "organizerName": organizer.get("name"),
        "organizationType": data.get("organizationType") or "individual",
        "coverImage": data.get("coverImage") or DEFAULT_COVER_IMAGE,
        "images": data.get("images") or [],
        "video": data.get("video"),
        "category": data["category"],
        "tags": data.get("tags") or [],
        "goal": float(data["goal"]),
        "raised": 0.0,
        "currency": currency.upper(),
        "donations": [],
        "donorCount": 0,
        "startDate": now,
        "endDate": data["endDate"],
        "updates": [],
        "location": data.get("location"),
        "beneficiary": data.get("beneficiary"),
        "status": CAMPAIGN_ACTIVE,
        "isVerified": False,
        "isFeatured": False,
        "shares": 0,
        "followers": [],
        "lastDonationAt": None,
        "createdAt": now,
        "updatedAt": now,
    }


def percent_funded(raised: float, goal: float) -> int:
    """Share of the goal raised, rounded and clamped to 0-100."""
    if not goal or goal <= 0:
        return 0
    # Halves round up.
    return max(0, min(math.floor(raised / goal * 100 + 0.5), 100))


def days_left(end_date: Any, now: datetime | None = None) -> int:
    """Whole days until the end date, rounded up, never negative."""
    end = as_utc(end_date)
    if end is None:
        return 0
    remaining = (end - (now or utcnow())).total_seconds()
    return max(0, math.ceil(remaining / SECONDS_PER_DAY))


def amount_remaining(raised: float, goal: float) -> float:
    return max(0.0, (goal or 0) - (raised or 0))


def is_active(campaign: Campaign | dict[str, Any], now: datetime | None = None) -> bool:
    """Open for donations: active status, time left and goal not reached."""
    return (
        campaign.get("status") == CAMPAIGN_ACTIVE
        and days_left(campaign.get("endDate"), now) > 0
        and (campaign.get("raised") or 0) < (campaign.get("goal") or 0)
    )


def completed_donations(campaign: Campaign | dict[str, Any]) -> list[Donation]:
    """Completed donations, newest first."""
    donations = [
        d
        for d in campaign.get("donations") or []
        if d.get("status") == DONATION_COMPLETED
    ]
    return sorted(donations, key=created_at, reverse=True)


def find_donation(
    campaign: Campaign | dict[str, Any], payment_intent_id: str
) -> Donation | None:
    return next(
        (
            d
            for d in campaign.get("donations") or []
            if d.get("paymentIntentId") == payment_intent_id
        ),
        None,
    )


def apply_donation(
    campaign: Campaign | dict[str, Any], donation: Donation
) -> dict[str, Any]:
    """Return the field updates that record ``donation`` on ``campaign``.

    ``raised`` is recomputed from completed donations and ``donorCount``
    counts distinct donors, so the totals never drift from the list.
    """
    donations = [*(campaign.get("donations") or []), donation]
    completed = [d for d in donations if d.get("status") == DONATION_COMPLETED]
    raised = float(sum(d.get("amount") or 0 for d in completed))
    updates = {
        "donations": donations,
        "raised": raised,
        "donorCount": len(IdSet(d.get("donorId") for d in completed)),
        "lastDonationAt": donation.get("createdAt"),
        "updatedAt": utcnow(),
    }
    goal_reached = raised >= (campaign.get("goal") or 0)
    if goal_reached and campaign.get("status") == CAMPAIGN_ACTIVE:
        updates["status"] = CAMPAIGN_COMPLETED
    return updates


def recent_total(campaign: Campaign | dict[str, Any], since: datetime) -> float:
    """Sum of completed donations made at or after ``since``."""
    return float(
        sum(
            d.get("amount") or 0
            for d in completed_donations(campaign)
            if created_at(d) >= since
        )
    )


def public_donation(
    donation: Donation | dict[str, Any], donors: dict[str, dict[str, Any]]
) -> dict[str, Any]:
    """Donation as shown publicly. Anonymous donors stay hidden."""
    anonymous = bool(donation.get("isAnonymous"))
    return {
        "donor": None
        if anonymous
        else user_summary(donors.get(donation.get("donorId"))),
        "amount": donation.get("amount"),
        "message": donation.get("message"),
        "isAnonymous": anonymous,
        "createdAt": donation.get("createdAt"),
    }


def public_campaign(
    campaign: Campaign | dict[str, Any],
    viewer_id: str | None = None,
    organizer: dict[str, Any] | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Serialize a campaign with its derived figures."""
    raised = campaign.get("raised") or 0
    goal = campaign.get("goal") or 0
    return {
        "id": campaign["id"],
        "title": campaign.get("title"),
        "description": campaign.get("description"),
        "shortDescription": campaign.get("shortDescription"),
        "organizer": user_summary(organizer)
        or {"id": campaign.get("organizerId"), "name": campaign.get("organizerName")},
        "organizerName": campaign.get("organizerName"),
        "organizationType": campaign.get("organizationType"),
        "coverImage": campaign.get("coverImage"),
        "images": campaign.get("images") or [],
        "video": campaign.get("video"),
        "category": campaign.get("category"),
        "tags": campaign.get("tags") or [],
        "goal": goal,
        "raised": raised,
        "currency": campaign.get("currency"),
        "percentFunded": percent_funded(raised, goal),
        "donorCount": campaign.get("donorCount", 0),
        "daysLeft": days_left(campaign.get("endDate"), now),
        "isActive": is_active(campaign, now),
        "amountRemaining": amount_remaining(raised, goal),
        "location": campaign.get("location"),
        "beneficiary": campaign.get("beneficiary"),
        "status": campaign.get("status"),
        "isVerified": campaign.get("isVerified", False),
        "isFeatured": campaign.get("isFeatured", False),
        "isFollowing": viewer_id in IdSet(campaign.get("followers")),
        "updatesCount": len(campaign.get("updates") or []),
        "startDate": campaign.get("startDate"),
        "endDate": campaign.get("endDate"),
        "createdAt": campaign.get("createdAt"),
    }
