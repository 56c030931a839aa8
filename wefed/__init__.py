"""Initialize the Flask app and its extensions."""

import logging
import os
from datetime import date, datetime

from flask import Flask, jsonify
from flask.json.provider import DefaultJSONProvider
from werkzeug.middleware.proxy_fix import ProxyFix

from .database import DatabaseManager
from .extensions import mail
from .security import init_security

DAY_SECONDS = 24 * 60 * 60
MAX_BODY_BYTES = 10 * 1024 * 1024


class ApiJSONProvider(DefaultJSONProvider):
    """Serialize timestamps as ISO 8601 instead of HTTP dates."""

    @staticmethod
    def default(o):
        if isinstance(o, (datetime, date)):
            return o.isoformat()
        return DefaultJSONProvider.default(o)


def _env_flag(name, default):
    return (os.environ.get(name) or default).lower() in ["true", "1", "t"]


def create_app(test_config=None):
    """Create and configure an instance of the Flask application."""
    app = Flask(__name__, instance_relative_config=True)
    app.json = ApiJSONProvider(app)

    # Load configuration
    app.config.from_mapping(
        SECRET_KEY=os.environ.get("SECRET_KEY") or "dev",
        ENVIRONMENT=os.environ.get("ENVIRONMENT") or "development",
        LOG_LEVEL=os.environ.get("LOG_LEVEL") or "INFO",
        JWT_SECRET=os.environ.get("JWT_SECRET"),
        JWT_EXPIRES_IN=int(os.environ.get("JWT_EXPIRES_IN") or 7 * DAY_SECONDS),
        JWT_REFRESH_EXPIRES_IN=int(
            os.environ.get("JWT_REFRESH_EXPIRES_IN") or 30 * DAY_SECONDS
        ),
        PASSWORD_RESET_EXPIRES=int(os.environ.get("PASSWORD_RESET_EXPIRES") or 600),
        FRONTEND_URL=os.environ.get("FRONTEND_URL") or "http://localhost:5000",
        STRIPE_SECRET_KEY=os.environ.get("STRIPE_SECRET_KEY"),
        STRIPE_WEBHOOK_SECRET=os.environ.get("STRIPE_WEBHOOK_SECRET"),
        STRIPE_PREMIUM_PRICE_ID=os.environ.get("STRIPE_PREMIUM_PRICE_ID"),
        DONATION_CURRENCY=os.environ.get("DONATION_CURRENCY") or "usd",
        # Default mail settings, can be overridden by the environment
        MAIL_SERVER=os.environ.get("MAIL_SERVER") or "smtp.gmail.com",
        MAIL_PORT=int(os.environ.get("MAIL_PORT") or 587),
        MAIL_USE_TLS=_env_flag("MAIL_USE_TLS", "true"),
        MAIL_USE_SSL=_env_flag("MAIL_USE_SSL", "false"),
        MAIL_USERNAME=os.environ.get("MAIL_USERNAME"),
        MAIL_PASSWORD=os.environ.get("MAIL_PASSWORD"),
        MAIL_DEFAULT_SENDER=os.environ.get("MAIL_DEFAULT_SENDER")
        or "noreply@wef-platform.org",
        DB_CONNECT_MODE=os.environ.get("DB_CONNECT_MODE") or "retry",
        DB_RETRY_INTERVAL=float(os.environ.get("DB_RETRY_INTERVAL") or 5),
        RATE_LIMIT=os.environ.get("RATE_LIMIT") or "100 per 15 minutes",
        RATE_LIMIT_STORAGE_URI=os.environ.get("RATE_LIMIT_STORAGE_URI") or "memory://",
        MAX_CONTENT_LENGTH=MAX_BODY_BYTES,
        # The API authenticates with bearer tokens, not cookies.
        WTF_CSRF_ENABLED=False,
    )

    if test_config:
        app.config.update(test_config)

    if not app.config.get("JWT_SECRET"):
        app.config["JWT_SECRET"] = app.config["SECRET_KEY"]
    app.config.setdefault("CORS_ORIGINS", app.config["FRONTEND_URL"])

    app.logger.setLevel(getattr(logging, str(app.config["LOG_LEVEL"]).upper(), "INFO"))

    # Initialize extensions
    mail.init_app(app)
    database = DatabaseManager()
    database.init_app(app)
    init_security(app)

    # Register blueprints
    from . import auth as auth_bp

    app.register_blueprint(auth_bp.bp)

    from . import user as user_bp

    app.register_blueprint(user_bp.bp)

    from . import post as post_bp

    app.register_blueprint(post_bp.bp)

    from . import group as group_bp

    app.register_blueprint(group_bp.bp)

    from . import campaign as campaign_bp

    app.register_blueprint(campaign_bp.bp)

    from . import payments as payments_bp

    app.register_blueprint(payments_bp.bp)

    from . import error_handlers

    app.register_blueprint(error_handlers.error_handlers_bp)

    @app.route("/api/health")
    def health_check():
        """Report process and database connectivity status."""
        return jsonify(database.health())

    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    return app
