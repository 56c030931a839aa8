"""Service layer for accounts, credentials and password resets."""

from __future__ import annotations

import hashlib
import secrets
from datetime import timedelta
from typing import TYPE_CHECKING, Any

import jwt
from flask import current_app
from google.cloud.firestore import FieldFilter
from werkzeug.security import check_password_hash, generate_password_hash

from wefed.constants import USERS_COLLECTION
from wefed.errors import AuthenticationError, DuplicateResourceError, ValidationError
from wefed.user.models import new_user
from wefed.user.services import UserService
from wefed.utils import EmailError, as_utc, send_email, utcnow

from .tokens import REFRESH_TOKEN, decode_token, generate_token

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

INVALID_CREDENTIALS = "Invalid email or password"
PASSWORD_HASH_METHOD = "pbkdf2:sha256"


def hash_password(password: str) -> str:
    return generate_password_hash(password, method=PASSWORD_HASH_METHOD)


def _digest(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class AuthService:
    """Account creation, sign-in and credential maintenance."""

    @staticmethod
    def register(
        db: Client, name: str, email: str, password: str, tier: str | None = None
    ) -> dict[str, Any]:
        """Create an account, refusing an email that is already registered."""
        if UserService.get_user_by_email(db, email) is not None:
            raise DuplicateResourceError("An account with this email already exists")

        user_data = new_user(name, email, hash_password(password), tier)
        _, user_ref = db.collection(USERS_COLLECTION).add(user_data)
        current_app.logger.info(f"Registered user {user_ref.id}")
        return {**user_data, "id": user_ref.id}

    @staticmethod
    def authenticate(db: Client, email: str, password: str) -> dict[str, Any]:
        """Check credentials and record the login time.

        Unknown emails and wrong passwords fail with the same message.
        """
        user = UserService.get_user_by_email(db, email)
        if user is None or not check_password_hash(
            user.get("passwordHash") or "", password
        ):
            raise AuthenticationError(INVALID_CREDENTIALS)
        if not user.get("isActive", True):
            raise AuthenticationError(
                "Account is deactivated. Please contact support."
            )

        now = utcnow()
        db.collection(USERS_COLLECTION).document(user["id"]).update({"lastLogin": now})
        user["lastLogin"] = now
        return user

    @staticmethod
    def refresh(db: Client, refresh_token: str) -> str:
        """Exchange a refresh token for a new access token."""
        try:
            user_id = decode_token(refresh_token, expected_type=REFRESH_TOKEN)
        except jwt.InvalidTokenError as e:
            raise AuthenticationError("Invalid refresh token") from e

        user = UserService.get_user_by_id(db, user_id)
        if user is None or not user.get("isActive", True):
            raise AuthenticationError("Invalid refresh token")
        return generate_token(user_id)

    @staticmethod
    def request_password_reset(db: Client, email: str) -> str | None:
        """Store a reset token for the account and mail it.

        Returns the raw token, or None when no account uses ``email``.
        """
        user = UserService.get_user_by_email(db, email)
        if user is None:
            return None

        token = secrets.token_hex(32)
        expires = utcnow() + timedelta(
            seconds=current_app.config["PASSWORD_RESET_EXPIRES"]
        )
        db.collection(USERS_COLLECTION).document(user["id"]).update(
            {"passwordResetToken": _digest(token), "passwordResetExpires": expires}
        )

        reset_url = f"{current_app.config['FRONTEND_URL']}/reset-password/{token}"
        try:
            send_email(
                to=user["email"],
                subject="Password Reset Request",
                template="email/reset_password.html",
                user=user,
                reset_url=reset_url,
                minutes=current_app.config["PASSWORD_RESET_EXPIRES"] // 60,
            )
        except EmailError as e:
            current_app.logger.error(f"Password reset email failed: {e}")
        return token

    @staticmethod
    def reset_password(db: Client, token: str, password: str) -> dict[str, Any]:
        """Set a new password from a valid, unexpired reset token."""
        docs = (
            db.collection(USERS_COLLECTION)
            .where(filter=FieldFilter("passwordResetToken", "==", _digest(token)))
            .limit(1)
            .stream()
        )
        user = None
        for doc in docs:
            user = {**(doc.to_dict() or {}), "id": doc.id}
        if user is None:
            raise ValidationError("Invalid or expired reset token")
        expires = as_utc(user.get("passwordResetExpires"))
        if expires is None or expires <= utcnow():
            raise ValidationError("Invalid or expired reset token")

        db.collection(USERS_COLLECTION).document(user["id"]).update(
            {
                "passwordHash": hash_password(password),
                "passwordResetToken": None,
                "passwordResetExpires": None,
                "updatedAt": utcnow(),
            }
        )
        return user

    @staticmethod
    def change_password(
        db: Client, user: dict[str, Any], current_password: str, new_password: str
    ) -> None:
        """Replace the password after checking the current one."""
        if not check_password_hash(user.get("passwordHash") or "", current_password):
            raise AuthenticationError("Current password is incorrect")
        db.collection(USERS_COLLECTION).document(user["id"]).update(
            {"passwordHash": hash_password(new_password), "updatedAt": utcnow()}
        )
