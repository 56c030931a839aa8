"""Cross-origin access, rate limiting and security headers for the API."""

from flask import request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

WEBHOOK_PATH = "/api/payments/webhook"

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "X-DNS-Prefetch-Control": "off",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
}


def _set_security_headers(response):
    for header, value in SECURITY_HEADERS.items():
        response.headers.setdefault(header, value)
    return response


def init_security(app):
    """Wire CORS, the per-client rate limit and response headers into ``app``.

    Returns the app's ``Limiter`` so callers can tune individual routes.
    """
    CORS(
        app,
        resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}},
        supports_credentials=True,
        methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
        allow_headers=["Content-Type", "Authorization"],
    )

    limiter = Limiter(
        get_remote_address,
        app=app,
        default_limits=[app.config["RATE_LIMIT"]],
        storage_uri=app.config["RATE_LIMIT_STORAGE_URI"],
        headers_enabled=True,
    )

    @limiter.request_filter
    def _exempt_from_rate_limit():
        # Preflights carry no work and the billing provider retries on 429.
        return request.method == "OPTIONS" or request.path == WEBHOOK_PATH

    app.after_request(_set_security_headers)
    return limiter
