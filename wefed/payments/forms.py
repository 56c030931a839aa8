"""Forms for the payments blueprint."""

from wtforms import BooleanField, FloatField, StringField, TextAreaField
from wtforms.validators import DataRequired, InputRequired, Length, NumberRange

from wefed.constants import MIN_DONATION
from wefed.core.forms import ApiForm, strip_filter


class DonationForm(ApiForm):
    """Form for starting a donation payment."""

    campaignId = StringField(
        "Campaign", validators=[DataRequired(message="Campaign ID is required")]
    )
    amount = FloatField(
        "Amount",
        validators=[
            InputRequired(message="Amount is required"),
            NumberRange(min=MIN_DONATION, message="Minimum donation is $1"),
        ],
    )
    message = TextAreaField(
        "Message",
        validators=[Length(max=500, message="Message cannot exceed 500 characters")],
        filters=[strip_filter],
    )
    isAnonymous = BooleanField("Anonymous")


class ConfirmDonationForm(ApiForm):
    """Form for confirming a donation after the client-side payment."""

    paymentIntentId = StringField(
        "Payment intent",
        validators=[DataRequired(message="Payment intent ID is required")],
        filters=[strip_filter],
    )
