"""Signed access and refresh tokens."""

from __future__ import annotations

from datetime import timedelta
from typing import Any

import jwt
from flask import current_app

from wefed.utils import utcnow

JWT_ALGORITHM = "HS256"
ACCESS_TOKEN = "access"  # nosec B105
REFRESH_TOKEN = "refresh"  # nosec B105


def _encode(user_id: str, token_type: str, expires_in: int) -> str:
    now = utcnow()
    payload = {
        "userId": user_id,
        "type": token_type,
        "iat": now,
        "exp": now + timedelta(seconds=expires_in),
    }
    secret = current_app.config["JWT_SECRET"]
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def generate_token(user_id: str) -> str:
    """Issue a short-lived access token."""
    return _encode(user_id, ACCESS_TOKEN, current_app.config["JWT_EXPIRES_IN"])


def generate_refresh_token(user_id: str) -> str:
    """Issue a longer-lived refresh token."""
    return _encode(
        user_id, REFRESH_TOKEN, current_app.config["JWT_REFRESH_EXPIRES_IN"]
    )


def issue_token_pair(user_id: str) -> dict[str, str]:
    """Return the ``token``/``refreshToken`` pair sent to clients."""
    return {
        "token": generate_token(user_id),
        "refreshToken": generate_refresh_token(user_id),
    }


def decode_token(token: str, expected_type: str = ACCESS_TOKEN) -> str:
    """Verify a token and return the user id it carries.

    Raises:
        jwt.ExpiredSignatureError: If the token has expired.
        jwt.InvalidTokenError: If the signature, claims or type are wrong.
    """
    payload: dict[str, Any] = jwt.decode(
        token,
        current_app.config["JWT_SECRET"],
        algorithms=[JWT_ALGORITHM],
        options={"require": ["exp", "iat"]},
    )
    if payload.get("type", ACCESS_TOKEN) != expected_type:
        raise jwt.InvalidTokenError(f"Expected a {expected_type} token")
    user_id = payload.get("userId")
    if not user_id:
        raise jwt.InvalidTokenError("Token carries no user")
    return str(user_id)
