import jwt
import stripe
from flask import Blueprint, current_app, jsonify
from google.api_core.exceptions import GoogleAPICallError
from werkzeug.exceptions import HTTPException

from .errors import (
    AppError,
    AuthenticationError,
    FormValidationError,
    NotFoundError,
    PaymentProviderError,
)

error_handlers_bp = Blueprint("error_handlers", __name__)


def _is_production():
    return current_app.config.get("ENVIRONMENT") == "production"


@error_handlers_bp.app_errorhandler(FormValidationError)
def handle_form_validation_error(error):
    """Report every failing field."""
    current_app.logger.warning(f"Validation Error: {error.errors}")
    return jsonify(error.to_dict()), error.status_code


@error_handlers_bp.app_errorhandler(AuthenticationError)
def handle_authentication_error(error):
    """Handles missing or rejected credentials."""
    current_app.logger.warning(f"Authentication Error: {error.message}")
    return jsonify(error.to_dict()), error.status_code


@error_handlers_bp.app_errorhandler(NotFoundError)
def handle_not_found_error(error):
    """Handles not found errors."""
    current_app.logger.warning(f"Not Found Error: {error.message}")
    return jsonify(error.to_dict()), error.status_code


@error_handlers_bp.app_errorhandler(PaymentProviderError)
def handle_payment_provider_error(error):
    """Handles billing failures, hiding provider detail in production."""
    current_app.logger.error(f"Payment Provider Error: {error.message} {error.detail}")
    message = error.message
    if error.detail and not _is_production():
        message = f"{error.message} {error.detail}"
    return jsonify({"error": message}), error.status_code


@error_handlers_bp.app_errorhandler(AppError)
def handle_app_error(error):
    """Handles generic application errors."""
    if error.status_code >= 500:
        current_app.logger.error(f"Application Error: {error.message}")
    else:
        current_app.logger.warning(f"Application Error: {error.message}")
    return jsonify(error.to_dict()), error.status_code


@error_handlers_bp.app_errorhandler(jwt.ExpiredSignatureError)
def handle_expired_token(e):
    """Handles expired tokens that escaped the auth decorators."""
    return jsonify({"error": "Token expired."}), 401


@error_handlers_bp.app_errorhandler(jwt.InvalidTokenError)
def handle_invalid_token(e):
    """Handles malformed tokens that escaped the auth decorators."""
    return jsonify({"error": "Invalid token."}), 401


@error_handlers_bp.app_errorhandler(stripe.StripeError)
def handle_stripe_error(e):
    """Handles billing SDK errors raised outside the payment service."""
    current_app.logger.error(f"Stripe Error: {e}")
    message = "Payment processing failed." if _is_production() else str(e)
    return jsonify({"error": message}), 500


@error_handlers_bp.app_errorhandler(GoogleAPICallError)
def handle_db_error(e):
    """Handles database errors."""
    current_app.logger.error(f"Database Error: {e}")
    # Avoid exposing raw database error details to the user
    return (
        jsonify({"error": "A database error occurred. Please try again later."}),
        500,
    )


@error_handlers_bp.app_errorhandler(404)
def handle_404(e):
    """Handles generic 404 errors for routes that don't exist."""
    return jsonify({"error": "Endpoint not found"}), 404


@error_handlers_bp.app_errorhandler(405)
def handle_405(e):
    """Handles known routes called with the wrong method."""
    return jsonify({"error": "Method not allowed"}), 405


@error_handlers_bp.app_errorhandler(413)
def handle_413(e):
    """Handles bodies over MAX_CONTENT_LENGTH."""
    return jsonify({"error": "Request body too large"}), 413


@error_handlers_bp.app_errorhandler(429)
def handle_429(e):
    """Handles clients over the rate limit."""
    current_app.logger.warning(f"Rate limit exceeded: {e.description}")
    return jsonify({"error": "Too many requests, please try again later."}), 429


@error_handlers_bp.app_errorhandler(HTTPException)
def handle_http_exception(e):
    """Handles the remaining werkzeug HTTP errors, e.g. a malformed JSON body."""
    return jsonify({"error": e.description}), e.code


@error_handlers_bp.app_errorhandler(Exception)
def handle_unexpected_error(e):
    """Handles unexpected server errors."""
    current_app.logger.exception(f"Internal Server Error: {e}")
    message = "Something went wrong" if _is_production() else str(e)
    return jsonify({"error": message}), 500
