"""Routes for the auth blueprint."""

from flask import current_app, g, jsonify

from wefed.database import get_db
from wefed.errors import ValidationError
from wefed.user.models import public_profile
from wefed.utils import get_json_body

from . import bp
from .decorators import login_required
from .forms import (
    ChangePasswordForm,
    ForgotPasswordForm,
    LoginForm,
    RegisterForm,
    ResetPasswordForm,
)
from .services import AuthService
from .tokens import generate_token, issue_token_pair

RESET_REQUESTED_MESSAGE = (
    "If an account exists with that email, a password reset link has been sent."
)


@bp.route("/register", methods=["POST"])
def register():
    """Create an account and sign it in."""
    form = RegisterForm().validate_or_raise()
    user = AuthService.register(
        get_db(),
        name=form.name.data,
        email=form.email.data,
        password=form.password.data,
        tier=form.tier.data or None,
    )
    return (
        jsonify(
            message="Registration successful",
            user=public_profile(user),
            **issue_token_pair(user["id"]),
        ),
        201,
    )


@bp.route("/login", methods=["POST"])
def login():
    """Exchange credentials for a token pair."""
    form = LoginForm().validate_or_raise()
    user = AuthService.authenticate(get_db(), form.email.data, form.password.data)
    return jsonify(
        message="Login successful",
        user=public_profile(user),
        **issue_token_pair(user["id"]),
    )


@bp.route("/me")
@login_required
def me():
    return jsonify(user=public_profile(g.user))


@bp.route("/refresh", methods=["POST"])
def refresh():
    """Issue a new access token from a refresh token."""
    refresh_token = get_json_body().get("refreshToken")
    if not refresh_token or not isinstance(refresh_token, str):
        raise ValidationError("Refresh token required")
    return jsonify(token=AuthService.refresh(get_db(), refresh_token))


@bp.route("/forgot-password", methods=["POST"])
def forgot_password():
    """Start a password reset. The answer never reveals whether the email exists."""
    form = ForgotPasswordForm().validate_or_raise()
    AuthService.request_password_reset(get_db(), form.email.data)
    return jsonify(message=RESET_REQUESTED_MESSAGE)


@bp.route("/reset-password", methods=["POST"])
def reset_password():
    """Set a new password with a reset token."""
    form = ResetPasswordForm().validate_or_raise()
    user = AuthService.reset_password(get_db(), form.token.data, form.password.data)
    current_app.logger.info(f"Password reset for user {user['id']}")
    return jsonify(
        message="Password reset successful", token=generate_token(user["id"])
    )


@bp.route("/change-password", methods=["POST"])
@login_required
def change_password():
    """Change the signed-in user's password."""
    form = ChangePasswordForm().validate_or_raise()
    AuthService.change_password(
        get_db(), g.user, form.currentPassword.data, form.newPassword.data
    )
    return jsonify(message="Password changed successfully")
