"""Decorators for the auth blueprint."""

from functools import wraps

import jwt
from flask import current_app, g, request
from google.api_core.exceptions import GoogleAPICallError

from wefed.database import get_db
from wefed.errors import AppError, AuthenticationError, PremiumRequiredError

from .tokens import decode_token


def _bearer_token():
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def authenticate_request():
    """Resolve the request's bearer token to an active user.

    Raises:
        AuthenticationError: With a message naming the reason.
    """
    from wefed.user.services import UserService

    token = _bearer_token()
    if not token:
        raise AuthenticationError("Access denied. No token provided.")
    try:
        user_id = decode_token(token)
    except jwt.ExpiredSignatureError as e:
        raise AuthenticationError("Token expired.") from e
    except jwt.InvalidTokenError as e:
        raise AuthenticationError("Invalid token.") from e

    user = UserService.get_user_by_id(get_db(), user_id)
    if user is None:
        raise AuthenticationError("User not found.")
    if not user.get("isActive", True):
        raise AuthenticationError("Account is deactivated.")
    return user


def login_required(f=None, premium_required=False):
    """Reject the request with a 401 unless it carries a valid token.

    Usage:
    @login_required
    def protected_view():
        ...

    @login_required(premium_required=True)
    def premium_view():
        ...
    """

    def decorator(func):
        @wraps(func)
        def decorated_function(*args, **kwargs):
            from wefed.user.models import is_premium

            g.user = authenticate_request()
            g.user_id = g.user["id"]
            if premium_required and not is_premium(g.user):
                raise PremiumRequiredError()
            return func(*args, **kwargs)

        return decorated_function

    if f:
        return decorator(f)
    return decorator


def require_premium(f):
    """Shorthand for ``login_required(premium_required=True)``."""
    return login_required(f, premium_required=True)


def optional_login(f):
    """Attach the user when the token checks out, otherwise carry on anonymously."""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.user = None
        g.user_id = None
        if _bearer_token():
            try:
                g.user = authenticate_request()
                g.user_id = g.user["id"]
            except (AppError, GoogleAPICallError) as e:
                current_app.logger.debug(f"Ignoring credentials: {e}")
        return f(*args, **kwargs)

    return decorated_function
