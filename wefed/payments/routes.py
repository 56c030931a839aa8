"""Routes for the payments blueprint."""

from flask import g, jsonify, request

from wefed.auth.decorators import login_required
from wefed.database import get_db

from . import bp
from .forms import ConfirmDonationForm, DonationForm
from .services import PaymentService
from .webhooks import construct_event, handle_event


@bp.route("/create-checkout-session", methods=["POST"])
@login_required
def create_checkout_session():
    """Start a premium subscription checkout."""
    return jsonify(PaymentService.create_checkout_session(get_db(), g.user))


@bp.route("/create-portal-session", methods=["POST"])
@login_required
def create_portal_session():
    return jsonify(url=PaymentService.create_portal_session(g.user))


@bp.route("/subscription-status")
@login_required
def subscription_status():
    return jsonify(PaymentService.subscription_status(g.user))


@bp.route("/donate", methods=["POST"])
@login_required
def donate():
    """Create a payment intent for a campaign donation."""
    form = DonationForm().validate_or_raise()
    intent = PaymentService.create_donation_intent(
        get_db(),
        g.user,
        form.campaignId.data,
        form.amount.data,
        message=form.message.data,
        is_anonymous=form.isAnonymous.data,
    )
    return jsonify(intent)


@bp.route("/confirm-donation", methods=["POST"])
@login_required
def confirm_donation():
    """Record a donation once the client reports a finished payment."""
    form = ConfirmDonationForm().validate_or_raise()
    totals = PaymentService.confirm_donation(get_db(), form.paymentIntentId.data)
    return jsonify(message="Donation confirmed", **totals)


@bp.route("/webhook", methods=["POST"])
def webhook():
    """Receive billing events. The raw body is needed for the signature check."""
    event = construct_event(
        request.get_data(), request.headers.get("Stripe-Signature")
    )
    handle_event(get_db(), event)
    return jsonify(received=True)
