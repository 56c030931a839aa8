"""Verification and handling of Stripe webhook events."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable

import stripe
from flask import current_app
from google.cloud.firestore import FieldFilter

from wefed.constants import (
    SUBSCRIPTION_ACTIVE,
    SUBSCRIPTION_CANCELED,
    SUBSCRIPTION_PAST_DUE,
    TIER_FREE,
    TIER_PREMIUM,
    USERS_COLLECTION,
)
from wefed.errors import NotFoundError, ValidationError
from wefed.user.services import UserService
from wefed.utils import utcnow

from .services import PaymentService

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

SIGNATURE_TOLERANCE = 300


def construct_event(payload: bytes, sig_header: str | None) -> dict[str, Any]:
    """Check the signature of a webhook delivery and parse its event.

    Raises:
        ValidationError: If the signature or payload is invalid.
    """
    secret = current_app.config.get("STRIPE_WEBHOOK_SECRET")
    if not sig_header or not secret:
        raise ValidationError("Webhook Error: missing signature")
    try:
        body = payload.decode("utf-8")
        stripe.WebhookSignature.verify_header(
            body, sig_header, secret, SIGNATURE_TOLERANCE
        )
        event = json.loads(body)
    except stripe.SignatureVerificationError as e:
        current_app.logger.warning(f"Webhook signature verification failed: {e}")
        raise ValidationError(f"Webhook Error: {e}") from e
    except ValueError as e:
        raise ValidationError("Webhook Error: invalid payload") from e
    if not isinstance(event, dict) or "type" not in event:
        raise ValidationError("Webhook Error: invalid payload")
    return event


def _user_for_customer(db: Client, customer_id: str | None) -> dict[str, Any] | None:
    if not customer_id:
        return None
    docs = (
        db.collection(USERS_COLLECTION)
        .where(filter=FieldFilter("stripeCustomerId", "==", customer_id))
        .limit(1)
        .stream()
    )
    for doc in docs:
        return {**(doc.to_dict() or {}), "id": doc.id}
    return None


def _period_end(subscription: dict[str, Any]) -> datetime | None:
    """Billing period end, read from the subscription or its first item."""
    timestamp = subscription.get("current_period_end")
    if timestamp is None:
        items = (subscription.get("items") or {}).get("data") or []
        timestamp = items[0].get("current_period_end") if items else None
    if timestamp is None:
        return None
    return datetime.fromtimestamp(int(timestamp), tz=timezone.utc)


def _update_user(db: Client, user_id: str, fields: dict[str, Any]) -> None:
    db.collection(USERS_COLLECTION).document(user_id).update(
        {**fields, "updatedAt": utcnow()}
    )


def handle_checkout_complete(db: Client, session: dict[str, Any]) -> None:
    user_id = (session.get("metadata") or {}).get("userId")
    if not UserService.get_user_by_id(db, user_id):
        current_app.logger.warning(f"Checkout completed for unknown user {user_id}")
        return
    _update_user(
        db,
        user_id,
        {
            "stripeSubscriptionId": session.get("subscription"),
            "tier": TIER_PREMIUM,
            "subscriptionStatus": SUBSCRIPTION_ACTIVE,
        },
    )
    current_app.logger.info(f"User {user_id} upgraded to premium")


def handle_subscription_update(db: Client, subscription: dict[str, Any]) -> None:
    """Mirror the provider's subscription status onto the user."""
    user = _user_for_customer(db, subscription.get("customer"))
    if user is None:
        return
    fields: dict[str, Any] = {
        "subscriptionStatus": subscription.get("status"),
        "stripeSubscriptionId": subscription.get("id"),
    }
    if subscription.get("status") == SUBSCRIPTION_ACTIVE:
        fields["tier"] = TIER_PREMIUM
        fields["subscriptionEndDate"] = _period_end(subscription)
    _update_user(db, user["id"], fields)


def handle_subscription_canceled(db: Client, subscription: dict[str, Any]) -> None:
    user = _user_for_customer(db, subscription.get("customer"))
    if user is None:
        return
    _update_user(
        db,
        user["id"],
        {
            "tier": TIER_FREE,
            "subscriptionStatus": SUBSCRIPTION_CANCELED,
            "stripeSubscriptionId": None,
        },
    )
    current_app.logger.info(f"User {user['id']} subscription canceled")


def handle_payment_failed(db: Client, invoice: dict[str, Any]) -> None:
    user = _user_for_customer(db, invoice.get("customer"))
    if user is None:
        return
    _update_user(db, user["id"], {"subscriptionStatus": SUBSCRIPTION_PAST_DUE})
    current_app.logger.warning(f"Payment failed for user {user['id']}")


def handle_payment_succeeded(db: Client, intent: dict[str, Any]) -> None:
    """Record a donation. Payments without a campaign are not donations."""
    campaign_id = (intent.get("metadata") or {}).get("campaignId")
    if not campaign_id:
        return
    try:
        PaymentService.record_intent_donation(db, intent)
    except NotFoundError:
        # Redelivery cannot bring a deleted campaign back.
        current_app.logger.error(
            f"Payment {intent.get('id')} succeeded for missing campaign {campaign_id}"
        )


EVENT_HANDLERS: dict[str, Callable[[Any, dict[str, Any]], None]] = {
    "checkout.session.completed": handle_checkout_complete,
    "customer.subscription.created": handle_subscription_update,
    "customer.subscription.updated": handle_subscription_update,
    "customer.subscription.deleted": handle_subscription_canceled,
    "invoice.payment_failed": handle_payment_failed,
    "payment_intent.succeeded": handle_payment_succeeded,
}


def handle_event(db: Client, event: dict[str, Any]) -> bool:
    """Dispatch an event to its handler. Returns False for unhandled types."""
    handler = EVENT_HANDLERS.get(event["type"])
    if handler is None:
        current_app.logger.info(f"Unhandled event type: {event['type']}")
        return False
    handler(db, (event.get("data") or {}).get("object") or {})
    return True
