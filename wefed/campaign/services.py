"""Service layer for campaigns, their updates and donations."""

from __future__ import annotations

import uuid
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from firebase_admin import firestore
from flask import current_app
from google.cloud.firestore import FieldFilter

from wefed.constants import (
    CAMPAIGN_ACTIVE,
    CAMPAIGN_TRENDING_WINDOW_DAYS,
    CAMPAIGNS_COLLECTION,
    DONATION_COMPLETED,
    RECENT_DONATIONS_LIMIT,
)
from wefed.core import IdSet
from wefed.errors import NotFoundError, PermissionDeniedError, ValidationError
from wefed.post.models import created_at
from wefed.user.services import UserService
from wefed.utils import count_query, paginate, utcnow

from .models import (
    apply_donation,
    completed_donations,
    find_donation,
    new_campaign,
    public_campaign,
    public_donation,
    recent_total,
)

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

MIN_SEARCH_LENGTH = 2
DESCENDING = firestore.Query.DESCENDING


def _stream_campaigns(query: Any) -> list[dict[str, Any]]:
    campaigns = []
    for doc in query.stream():
        data = doc.to_dict()
        if data is not None:
            data["id"] = doc.id
            campaigns.append(data)
    return campaigns


def _status_query(db: Client, status: str | None) -> Any:
    query: Any = db.collection(CAMPAIGNS_COLLECTION)
    if status:
        query = query.where(filter=FieldFilter("status", "==", status))
    return query


class CampaignService:
    """Service class for campaign-related operations."""

    @staticmethod
    def serialize(
        db: Client, campaigns: list[dict[str, Any]], viewer_id: str | None
    ) -> list[dict[str, Any]]:
        """Serialize campaigns with their organizer summaries."""
        organizers = UserService.get_users_by_ids(
            db, [c.get("organizerId") for c in campaigns]
        )
        return [
            public_campaign(c, viewer_id, organizers.get(c.get("organizerId")))
            for c in campaigns
        ]

    @staticmethod
    def get_campaign(db: Client, campaign_id: str) -> dict[str, Any]:
        """Fetch a campaign or raise NotFoundError."""
        doc = db.collection(CAMPAIGNS_COLLECTION).document(campaign_id).get()
        data = doc.to_dict() if doc.exists else None
        if not data:
            raise NotFoundError("Campaign not found")
        data["id"] = doc.id
        return data

    @staticmethod
    def get_detail(
        db: Client, campaign_id: str, viewer_id: str | None
    ) -> dict[str, Any]:
        """Campaign with its updates and the most recent completed donations."""
        campaign = CampaignService.get_campaign(db, campaign_id)
        recent = completed_donations(campaign)[:RECENT_DONATIONS_LIMIT]
        users = UserService.get_users_by_ids(
            db,
            [campaign.get("organizerId")] + [d.get("donorId") for d in recent],
        )
        detail = public_campaign(
            campaign, viewer_id, users.get(campaign.get("organizerId"))
        )
        detail["updates"] = sorted(
            campaign.get("updates") or [], key=created_at, reverse=True
        )
        detail["recentDonations"] = [public_donation(d, users) for d in recent]
        return detail

    @staticmethod
    def list_campaigns(
        db: Client,
        page: int,
        limit: int,
        status: str | None = CAMPAIGN_ACTIVE,
        category: str | None = None,
        featured: bool = False,
    ) -> tuple[list[dict[str, Any]], int]:
        """Campaigns sorted featured first, then by amount raised, then newest."""
        query = _status_query(db, status)
        if category:
            query = query.where(filter=FieldFilter("category", "==", category))
        if featured:
            query = query.where(filter=FieldFilter("isFeatured", "==", True))
        total = count_query(query)
        if not featured:
            query = query.order_by("isFeatured", direction=DESCENDING)
        query = query.order_by("raised", direction=DESCENDING).order_by(
            "createdAt", direction=DESCENDING
        )
        campaigns = _stream_campaigns(query.offset((page - 1) * limit).limit(limit))
        return campaigns, total

    @staticmethod
    def get_featured(db: Client, limit: int) -> list[dict[str, Any]]:
        """Active featured campaigns, most funded first."""
        query = (
            _status_query(db, CAMPAIGN_ACTIVE)
            .where(filter=FieldFilter("isFeatured", "==", True))
            .order_by("raised", direction=DESCENDING)
            .limit(limit)
        )
        return _stream_campaigns(query)

    @staticmethod
    def get_trending(db: Client, limit: int, now=None) -> list[dict[str, Any]]:
        """Active campaigns ranked by money donated in the last three days."""
        since = (now or utcnow()) - timedelta(days=CAMPAIGN_TRENDING_WINDOW_DAYS)
        query = _status_query(db, CAMPAIGN_ACTIVE).where(
            filter=FieldFilter("lastDonationAt", ">=", since)
        )
        # Recent totals come from embedded donations, so ranking stays in Python.
        ranked = [(recent_total(c, since), c) for c in _stream_campaigns(query)]
        ranked = [item for item in ranked if item[0] > 0]
        ranked.sort(key=lambda item: item[0], reverse=True)
        return [c for _, c in ranked[:limit]]

    @staticmethod
    def search(
        db: Client, query: str, page: int, limit: int, category: str | None = None
    ) -> tuple[list[dict[str, Any]], int]:
        """Case-insensitive search over active campaigns.

        Title matches rank ahead of matches in the other text fields;
        within a rank, the most funded come first.
        """
        needle = (query or "").strip().lower()
        if len(needle) < MIN_SEARCH_LENGTH:
            raise ValidationError("Search query must be at least 2 characters")

        matches = []
        # Firestore has no substring matching, so active campaigns are scanned.
        for campaign in _stream_campaigns(_status_query(db, CAMPAIGN_ACTIVE)):
            if category and campaign.get("category") != category:
                continue
            title_hit = needle in (campaign.get("title") or "").lower()
            body = " ".join(
                [
                    campaign.get("shortDescription") or "",
                    campaign.get("description") or "",
                    *(campaign.get("tags") or []),
                ]
            ).lower()
            if title_hit or needle in body:
                matches.append((title_hit, campaign.get("raised") or 0, campaign))
        matches.sort(key=lambda m: (m[0], m[1]), reverse=True)
        campaigns = [m[2] for m in matches]
        return paginate(campaigns, page, limit), len(campaigns)

    @staticmethod
    def get_my_campaigns(db: Client, user_id: str) -> list[dict[str, Any]]:
        query = (
            db.collection(CAMPAIGNS_COLLECTION)
            .where(filter=FieldFilter("organizerId", "==", user_id))
            .order_by("createdAt", direction=DESCENDING)
        )
        return _stream_campaigns(query)

    @staticmethod
    def create_campaign(
        db: Client, organizer: dict[str, Any], data: dict[str, Any]
    ) -> dict[str, Any]:
        """Create an active campaign organized by the caller."""
        campaign_data = new_campaign(
            organizer, data, current_app.config["DONATION_CURRENCY"]
        )
        _, campaign_ref = db.collection(CAMPAIGNS_COLLECTION).add(campaign_data)
        current_app.logger.info(
            f"Campaign {campaign_ref.id} created by {organizer['id']}"
        )
        return {**campaign_data, "id": campaign_ref.id}

    @staticmethod
    def _get_own_campaign(db: Client, campaign_id: str, user_id: str):
        campaign = CampaignService.get_campaign(db, campaign_id)
        if campaign.get("organizerId") != user_id:
            raise PermissionDeniedError("Not authorized")
        return campaign

    @staticmethod
    def update_campaign(
        db: Client, campaign_id: str, user_id: str, updates: dict[str, Any]
    ) -> dict[str, Any]:
        """Apply the organizer's edits."""
        campaign = CampaignService._get_own_campaign(db, campaign_id, user_id)
        if updates:
            updates = {**updates, "updatedAt": utcnow()}
            db.collection(CAMPAIGNS_COLLECTION).document(campaign_id).update(updates)
            campaign.update(updates)
        return campaign

    @staticmethod
    def post_update(
        db: Client, campaign_id: str, user_id: str, data: dict[str, Any]
    ) -> dict[str, Any]:
        """Append an organizer update and return it."""
        CampaignService._get_own_campaign(db, campaign_id, user_id)
        update = {
            "id": uuid.uuid4().hex,
            "title": data["title"],
            "content": data["content"],
            "media": data.get("media") or [],
            "createdAt": utcnow(),
        }
        db.collection(CAMPAIGNS_COLLECTION).document(campaign_id).update(
            {"updates": firestore.ArrayUnion([update]), "updatedAt": utcnow()}
        )
        return update

    @staticmethod
    def toggle_follow(db: Client, campaign_id: str, user_id: str) -> bool:
        """Follow or unfollow a campaign. Returns whether it is now followed."""
        campaign = CampaignService.get_campaign(db, campaign_id)
        following = IdSet(campaign.get("followers")).toggle(user_id)
        change = firestore.ArrayUnion if following else firestore.ArrayRemove
        db.collection(CAMPAIGNS_COLLECTION).document(campaign_id).update(
            {"followers": change([user_id])}
        )
        return following

    @staticmethod
    def list_donations(
        db: Client, campaign_id: str, page: int, limit: int
    ) -> tuple[list[dict[str, Any]], int]:
        """Completed donations, newest first. Returns one page and the total."""
        campaign = CampaignService.get_campaign(db, campaign_id)
        donations = completed_donations(campaign)
        page_items = paginate(donations, page, limit)
        donors = UserService.get_users_by_ids(
            db,
            [d.get("donorId") for d in page_items if not d.get("isAnonymous")],
        )
        return [public_donation(d, donors) for d in page_items], len(donations)

    @staticmethod
    def record_donation(
        db: Client,
        campaign_id: str,
        donor_id: str,
        amount: float,
        payment_intent_id: str,
        message: str = "",
        is_anonymous: bool = False,
    ) -> tuple[dict[str, Any], bool]:
        """Record a completed donation once per payment intent.

        Returns the donation and whether it was newly recorded. A payment
        intent that was already recorded leaves the campaign untouched.
        """
        campaign = CampaignService.get_campaign(db, campaign_id)
        existing = find_donation(campaign, payment_intent_id)
        if existing is not None:
            current_app.logger.info(
                f"Donation {payment_intent_id} already recorded on {campaign_id}"
            )
            return existing, False

        donation = {
            "id": uuid.uuid4().hex,
            "donorId": donor_id,
            "amount": float(amount),
            "message": message or "",
            "isAnonymous": bool(is_anonymous),
            "paymentIntentId": payment_intent_id,
            "status": DONATION_COMPLETED,
            "createdAt": utcnow(),
        }
        updates = apply_donation(campaign, donation)
        db.collection(CAMPAIGNS_COLLECTION).document(campaign_id).update(updates)
        current_app.logger.info(
            f"Recorded donation of {donation['amount']} to {campaign_id}"
        )
        return donation, True
