"""Tests for the payments blueprint and billing webhooks."""

import hmac
import json
import time
from hashlib import sha256
from unittest.mock import MagicMock, patch

import stripe

from tests.helpers import WEBHOOK_SECRET, ApiTestCase
from wefed.constants import CAMPAIGNS_COLLECTION, USERS_COLLECTION
from wefed.payments.services import from_cents, to_cents


def sign(payload, secret=WEBHOOK_SECRET, timestamp=None):
    """Build a Stripe-Signature header for ``payload``."""
    timestamp = int(timestamp or time.time())
    signed = f"{timestamp}.{payload}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), signed, sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def intent_data(intent_id="pi_1", amount=2500, campaign_id="c1", **metadata):
    return {
        "id": intent_id,
        "object": "payment_intent",
        "amount": amount,
        "status": "succeeded",
        "metadata": {
            "campaignId": campaign_id,
            "userId": "bob",
            "donorName": "Bob",
            "message": "",
            "isAnonymous": "false",
            **metadata,
        },
    }


class AmountTestCase(ApiTestCase):
    def test_cents_conversion(self):
        self.assertEqual(to_cents(25), 2500)
        self.assertEqual(to_cents(19.99), 1999)
        self.assertEqual(from_cents(1999), 19.99)


class PaymentRoutesTestCase(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.create_user("bob", name="Bob")
        self.bob = self.auth_headers("bob")
        self.create_campaign("c1", "alice", goal=100.0)

    @patch("stripe.checkout.Session.create")
    @patch("stripe.Customer.create")
    def test_checkout_creates_customer_once(self, customer_create, session_create):
        customer_create.return_value = MagicMock(id="cus_1")
        session_create.return_value = MagicMock(id="cs_1", url="https://pay.test/cs_1")

        response = self.client.post(
            "/api/payments/create-checkout-session", headers=self.bob
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.get_json(), {"sessionId": "cs_1", "url": "https://pay.test/cs_1"}
        )
        user = self.get_doc(USERS_COLLECTION, "bob")
        self.assertEqual(user["stripeCustomerId"], "cus_1")

        kwargs = session_create.call_args.kwargs
        self.assertEqual(kwargs["customer"], "cus_1")
        self.assertEqual(kwargs["mode"], "subscription")
        self.assertEqual(
            kwargs["line_items"], [{"price": "price_premium", "quantity": 1}]
        )
        self.assertEqual(kwargs["cancel_url"], "http://frontend.test/upgrade/cancel")
        self.assertEqual(kwargs["api_key"], "sk_test_123")

        self.client.post("/api/payments/create-checkout-session", headers=self.bob)
        customer_create.assert_called_once()

    @patch("stripe.Customer.create")
    def test_checkout_reports_provider_failure(self, customer_create):
        customer_create.side_effect = stripe.StripeError("card network down")
        response = self.client.post(
            "/api/payments/create-checkout-session", headers=self.bob
        )
        self.assertEqual(response.status_code, 500)
        self.assertIn(
            "Failed to create checkout session.", response.get_json()["error"]
        )

    def test_portal_requires_customer(self):
        response = self.client.post(
            "/api/payments/create-portal-session", headers=self.bob
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["error"], "No subscription found")

    @patch("stripe.billing_portal.Session.create")
    def test_portal_session(self, portal_create):
        portal_create.return_value = MagicMock(url="https://billing.test/p")
        self.db.collection(USERS_COLLECTION).document("bob").update(
            {"stripeCustomerId": "cus_1"}
        )
        response = self.client.post(
            "/api/payments/create-portal-session", headers=self.bob
        )
        self.assertEqual(response.get_json(), {"url": "https://billing.test/p"})
        self.assertEqual(
            portal_create.call_args.kwargs["return_url"],
            "http://frontend.test/settings",
        )

    def test_subscription_status(self):
        response = self.client.get(
            "/api/payments/subscription-status", headers=self.bob
        )
        self.assertEqual(
            response.get_json(),
            {
                "tier": "free",
                "subscriptionStatus": "none",
                "subscriptionEndDate": None,
                "isPremium": False,
            },
        )

    @patch("stripe.PaymentIntent.create")
    def test_donate_creates_payment_intent(self, intent_create):
        intent_create.return_value = MagicMock(id="pi_1", client_secret="secret_1")
        response = self.client.post(
            "/api/payments/donate",
            json={"campaignId": "c1", "amount": 25, "isAnonymous": True},
            headers=self.bob,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.get_json(), {"clientSecret": "secret_1", "paymentIntentId": "pi_1"}
        )
        kwargs = intent_create.call_args.kwargs
        self.assertEqual(kwargs["amount"], 2500)
        self.assertEqual(kwargs["currency"], "usd")
        self.assertEqual(kwargs["metadata"]["campaignId"], "c1")
        self.assertEqual(kwargs["metadata"]["isAnonymous"], "true")
        self.assertEqual(kwargs["metadata"]["donorName"], "Anonymous")

    def test_donate_validation(self):
        response = self.client.post(
            "/api/payments/donate",
            json={"campaignId": "c1", "amount": 0.5},
            headers=self.bob,
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.get_json()["errors"],
            [{"field": "amount", "message": "Minimum donation is $1"}],
        )

    def test_donate_to_closed_campaign(self):
        self.create_campaign("done", "alice", status="completed")
        response = self.client.post(
            "/api/payments/donate",
            json={"campaignId": "done", "amount": 10},
            headers=self.bob,
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.get_json()["error"], "Campaign is not accepting donations"
        )

    @patch("stripe.PaymentIntent.retrieve")
    def test_confirm_donation_records_once(self, intent_retrieve):
        intent_retrieve.return_value.to_dict.return_value = intent_data()
        for _ in range(2):
            response = self.client.post(
                "/api/payments/confirm-donation",
                json={"paymentIntentId": "pi_1"},
                headers=self.bob,
            )
            self.assertEqual(response.status_code, 200)
            self.assertEqual(response.get_json()["raised"], 25.0)
            self.assertEqual(response.get_json()["percentFunded"], 25)

        campaign = self.get_doc(CAMPAIGNS_COLLECTION, "c1")
        self.assertEqual(len(campaign["donations"]), 1)
        self.assertEqual(campaign["donorCount"], 1)

    @patch("stripe.PaymentIntent.retrieve")
    def test_confirm_unfinished_payment(self, intent_retrieve):
        intent_retrieve.return_value.to_dict.return_value = {
            **intent_data(),
            "status": "requires_payment_method",
        }
        response = self.client.post(
            "/api/payments/confirm-donation",
            json={"paymentIntentId": "pi_1"},
            headers=self.bob,
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["error"], "Payment not completed")


class WebhookTestCase(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.create_user("bob", name="Bob", stripeCustomerId="cus_1")
        self.create_campaign("c1", "alice", goal=100.0)

    def deliver(self, event_type, obj, secret=WEBHOOK_SECRET):
        payload = json.dumps(
            {"id": "evt_1", "type": event_type, "data": {"object": obj}}
        )
        return self.client.post(
            "/api/payments/webhook",
            data=payload,
            content_type="application/json",
            headers={"Stripe-Signature": sign(payload, secret)},
        )

    def test_rejects_bad_signature(self):
        response = self.deliver("payment_intent.succeeded", intent_data(), "whsec_x")
        self.assertEqual(response.status_code, 400)
        self.assertTrue(response.get_json()["error"].startswith("Webhook Error"))
        self.assertEqual(self.get_doc(CAMPAIGNS_COLLECTION, "c1")["donations"], [])

    def test_rejects_missing_signature(self):
        response = self.client.post(
            "/api/payments/webhook", data="{}", content_type="application/json"
        )
        self.assertEqual(response.status_code, 400)

    def test_duplicate_delivery_records_one_donation(self):
        for _ in range(2):
            response = self.deliver(
                "payment_intent.succeeded", intent_data(amount=10000)
            )
            self.assertEqual(response.status_code, 200)
            self.assertEqual(response.get_json(), {"received": True})

        campaign = self.get_doc(CAMPAIGNS_COLLECTION, "c1")
        self.assertEqual(len(campaign["donations"]), 1)
        self.assertEqual(campaign["raised"], 100.0)
        self.assertEqual(campaign["status"], "completed")

    def test_payment_without_campaign_is_ignored(self):
        response = self.deliver("payment_intent.succeeded", intent_data(campaign_id=""))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.get_doc(CAMPAIGNS_COLLECTION, "c1")["donations"], [])

    def test_payment_for_deleted_campaign_is_acknowledged(self):
        response = self.deliver(
            "payment_intent.succeeded", intent_data(campaign_id="deleted")
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), {"received": True})
        self.assertEqual(self.get_doc(CAMPAIGNS_COLLECTION, "c1")["donations"], [])

    def test_unknown_event_is_acknowledged(self):
        response = self.deliver("charge.refunded", {"id": "ch_1"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), {"received": True})

    def test_checkout_completed_upgrades_user(self):
        response = self.deliver(
            "checkout.session.completed",
            {"id": "cs_1", "subscription": "sub_1", "metadata": {"userId": "bob"}},
        )
        self.assertEqual(response.status_code, 200)
        user = self.get_doc(USERS_COLLECTION, "bob")
        self.assertEqual(user["tier"], "premium")
        self.assertEqual(user["subscriptionStatus"], "active")
        self.assertEqual(user["stripeSubscriptionId"], "sub_1")

    def test_subscription_lifecycle(self):
        period_end = int(time.time()) + 30 * 24 * 3600
        self.deliver(
            "customer.subscription.updated",
            {
                "id": "sub_1",
                "customer": "cus_1",
                "status": "active",
                "items": {"data": [{"current_period_end": period_end}]},
            },
        )
        user = self.get_doc(USERS_COLLECTION, "bob")
        self.assertEqual(user["tier"], "premium")
        self.assertEqual(int(user["subscriptionEndDate"].timestamp()), period_end)

        status = self.client.get(
            "/api/payments/subscription-status", headers=self.auth_headers("bob")
        ).get_json()
        self.assertTrue(status["isPremium"])

        self.deliver("invoice.payment_failed", {"id": "in_1", "customer": "cus_1"})
        self.assertEqual(
            self.get_doc(USERS_COLLECTION, "bob")["subscriptionStatus"], "past_due"
        )

        self.deliver(
            "customer.subscription.deleted",
            {"id": "sub_1", "customer": "cus_1", "status": "canceled"},
        )
        user = self.get_doc(USERS_COLLECTION, "bob")
        self.assertEqual(user["tier"], "free")
        self.assertEqual(user["subscriptionStatus"], "canceled")
        self.assertIsNone(user["stripeSubscriptionId"])

