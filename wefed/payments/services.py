"""Billing provider calls for subscriptions and donations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import stripe
from flask import current_app

from wefed.campaign.models import percent_funded
from wefed.campaign.services import CampaignService
from wefed.constants import CAMPAIGN_ACTIVE, USERS_COLLECTION
from wefed.errors import PaymentProviderError, ValidationError
from wefed.user.models import is_premium
from wefed.utils import utcnow

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

PAYMENT_SUCCEEDED = "succeeded"


def _api_key() -> str:
    api_key = current_app.config.get("STRIPE_SECRET_KEY")
    if not api_key:
        raise PaymentProviderError("Payments are not configured.")
    return api_key


def _frontend_url(path: str) -> str:
    return f"{current_app.config['FRONTEND_URL'].rstrip('/')}{path}"


def to_cents(amount: float) -> int:
    return int(round(float(amount) * 100))


def from_cents(amount: int) -> float:
    return amount / 100


def donation_metadata(intent: dict[str, Any]) -> dict[str, Any]:
    """Read the donation details stored on a payment intent."""
    metadata = intent.get("metadata") or {}
    return {
        "campaign_id": metadata.get("campaignId"),
        "donor_id": metadata.get("userId"),
        "message": metadata.get("message") or "",
        "is_anonymous": metadata.get("isAnonymous") == "true",
    }


class PaymentService:
    """Subscription and donation flows backed by Stripe."""

    @staticmethod
    def ensure_customer(db: Client, user: dict[str, Any]) -> str:
        """Return the user's Stripe customer id, creating the customer if needed."""
        if user.get("stripeCustomerId"):
            return user["stripeCustomerId"]
        try:
            customer = stripe.Customer.create(
                api_key=_api_key(),
                email=user.get("email"),
                name=user.get("name"),
                metadata={"userId": user["id"]},
            )
        except stripe.StripeError as e:
            raise PaymentProviderError(
                "Failed to create checkout session.", detail=str(e)
            ) from e

        db.collection(USERS_COLLECTION).document(user["id"]).update(
            {"stripeCustomerId": customer.id, "updatedAt": utcnow()}
        )
        user["stripeCustomerId"] = customer.id
        return customer.id

    @staticmethod
    def create_checkout_session(db: Client, user: dict[str, Any]) -> dict[str, str]:
        """Start a premium subscription checkout."""
        customer_id = PaymentService.ensure_customer(db, user)
        try:
            session = stripe.checkout.Session.create(
                api_key=_api_key(),
                customer=customer_id,
                payment_method_types=["card"],
                line_items=[
                    {
                        "price": current_app.config["STRIPE_PREMIUM_PRICE_ID"],
                        "quantity": 1,
                    }
                ],
                mode="subscription",
                success_url=_frontend_url(
                    "/upgrade/success?session_id={CHECKOUT_SESSION_ID}"
                ),
                cancel_url=_frontend_url("/upgrade/cancel"),
                metadata={"userId": user["id"]},
            )
        except stripe.StripeError as e:
            raise PaymentProviderError(
                "Failed to create checkout session.", detail=str(e)
            ) from e
        return {"sessionId": session.id, "url": session.url}

    @staticmethod
    def create_portal_session(user: dict[str, Any]) -> str:
        """Open the billing portal for an existing customer."""
        if not user.get("stripeCustomerId"):
            raise ValidationError("No subscription found")
        try:
            session = stripe.billing_portal.Session.create(
                api_key=_api_key(),
                customer=user["stripeCustomerId"],
                return_url=_frontend_url("/settings"),
            )
        except stripe.StripeError as e:
            raise PaymentProviderError(
                "Failed to create portal session.", detail=str(e)
            ) from e
        return session.url

    @staticmethod
    def subscription_status(user: dict[str, Any]) -> dict[str, Any]:
        return {
            "tier": user.get("tier"),
            "subscriptionStatus": user.get("subscriptionStatus"),
            "subscriptionEndDate": user.get("subscriptionEndDate"),
            "isPremium": is_premium(user),
        }

    @staticmethod
    def create_donation_intent(
        db: Client,
        user: dict[str, Any],
        campaign_id: str,
        amount: float,
        message: str = "",
        is_anonymous: bool = False,
    ) -> dict[str, str]:
        """Create a payment intent for a donation to an active campaign."""
        campaign = CampaignService.get_campaign(db, campaign_id)
        if campaign.get("status") != CAMPAIGN_ACTIVE:
            raise ValidationError("Campaign is not accepting donations")

        params: dict[str, Any] = {
            "amount": to_cents(amount),
            "currency": current_app.config["DONATION_CURRENCY"],
            "metadata": {
                "campaignId": campaign["id"],
                "userId": user["id"],
                "donorName": "Anonymous" if is_anonymous else user.get("name"),
                "message": message or "",
                "isAnonymous": "true" if is_anonymous else "false",
            },
            "description": f"Donation to: {campaign.get('title')}",
        }
        if user.get("stripeCustomerId"):
            params["customer"] = user["stripeCustomerId"]
        try:
            intent = stripe.PaymentIntent.create(api_key=_api_key(), **params)
        except stripe.StripeError as e:
            raise PaymentProviderError(
                "Failed to process donation.", detail=str(e)
            ) from e
        return {"clientSecret": intent.client_secret, "paymentIntentId": intent.id}

    @staticmethod
    def record_intent_donation(db: Client, intent: dict[str, Any]):
        """Record the donation a succeeded payment intent paid for.

        Returns ``(campaign_id, donation, created)``.
        """
        details = donation_metadata(intent)
        donation, created = CampaignService.record_donation(
            db,
            details["campaign_id"],
            donor_id=details["donor_id"],
            amount=from_cents(intent.get("amount") or 0),
            payment_intent_id=intent["id"],
            message=details["message"],
            is_anonymous=details["is_anonymous"],
        )
        return details["campaign_id"], donation, created

    @staticmethod
    def confirm_donation(db: Client, payment_intent_id: str) -> dict[str, Any]:
        """Check a payment intent with Stripe and record its donation."""
        try:
            intent = stripe.PaymentIntent.retrieve(
                payment_intent_id, api_key=_api_key()
            ).to_dict()
        except stripe.StripeError as e:
            raise PaymentProviderError(
                "Failed to confirm donation.", detail=str(e)
            ) from e
        if intent.get("status") != PAYMENT_SUCCEEDED:
            raise ValidationError("Payment not completed")
        if not donation_metadata(intent)["campaign_id"]:
            raise ValidationError("Payment is not a donation")

        campaign_id, _, _ = PaymentService.record_intent_donation(db, intent)
        campaign = CampaignService.get_campaign(db, campaign_id)
        return {
            "raised": campaign.get("raised", 0),
            "percentFunded": percent_funded(
                campaign.get("raised") or 0, campaign.get("goal") or 0
            ),
        }
