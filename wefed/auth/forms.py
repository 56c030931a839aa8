"""Forms for the auth blueprint."""

from wtforms import PasswordField, StringField
from wtforms.validators import (
    AnyOf,
    DataRequired,
    Email,
    Length,
    Optional,
    Regexp,
)

from wefed.constants import TIERS
from wefed.core.forms import ApiForm, strip_filter

PASSWORD_RULES = [
    DataRequired(),
    Length(min=8, message="Password must be at least 8 characters"),
    Regexp(r".*\d", message="Password must contain a number"),
]


class RegisterForm(ApiForm):
    """Form for creating an account."""

    name = StringField(
        "Name",
        validators=[
            DataRequired(),
            Length(min=2, max=100, message="Name must be 2-100 characters"),
        ],
        filters=[strip_filter],
    )
    email = StringField(
        "Email",
        validators=[DataRequired(), Email(message="Please enter a valid email")],
        filters=[strip_filter, lambda v: v.lower() if isinstance(v, str) else v],
    )
    password = PasswordField("Password", validators=PASSWORD_RULES)
    tier = StringField(
        "Tier", validators=[Optional(), AnyOf(TIERS, message="Invalid tier")]
    )


class LoginForm(ApiForm):
    """Form for signing in."""

    email = StringField(
        "Email",
        validators=[DataRequired(), Email(message="Please enter a valid email")],
        filters=[strip_filter],
    )
    password = PasswordField(
        "Password", validators=[DataRequired(message="Password is required")]
    )


class ForgotPasswordForm(ApiForm):
    """Form for requesting a password reset."""

    email = StringField(
        "Email",
        validators=[DataRequired(), Email(message="Please enter a valid email")],
        filters=[strip_filter],
    )


class ResetPasswordForm(ApiForm):
    """Form for choosing a new password with a reset token."""

    token = StringField("Token", validators=[DataRequired()], filters=[strip_filter])
    password = PasswordField("Password", validators=PASSWORD_RULES)


class ChangePasswordForm(ApiForm):
    """Form for changing the password while signed in."""

    currentPassword = PasswordField("Current password", validators=[DataRequired()])
    newPassword = PasswordField("New password", validators=PASSWORD_RULES)
