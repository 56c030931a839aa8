"""Utility functions for the application."""

import math
import smtplib
from datetime import datetime, timezone

from flask import current_app, render_template, request
from flask_mail import Message

from .constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, SMTP_AUTH_ERROR_CODE
from .extensions import mail


class EmailError(Exception):
    """Base class for email errors."""

    pass


def send_email(to, subject, template, **kwargs):
    """Send an email to a recipient.

    Raises:
        EmailError: If sending the email fails.
    """
    msg = Message(
        subject,
        recipients=[to],
        html=render_template(template, **kwargs),
        sender=current_app.config["MAIL_DEFAULT_SENDER"],
    )
    try:
        mail.send(msg)
    except smtplib.SMTPAuthenticationError as e:
        if e.smtp_code == SMTP_AUTH_ERROR_CODE:
            raise EmailError(
                "Authentication failed. The mail provider requires an App Password. "
                "Please verify your MAIL_USERNAME and MAIL_PASSWORD settings."
            ) from e
        raise EmailError(f"SMTP Authentication failed: {e}") from e
    except Exception as e:
        raise EmailError(f"Failed to send email: {e}") from e


def utcnow():
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value):
    """Coerce a stored timestamp to an aware UTC datetime, or None."""
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def get_pagination():
    """Read ``page`` and ``limit`` from the query string."""
    page = request.args.get("page", 1, type=int) or 1
    limit = request.args.get("limit", DEFAULT_PAGE_SIZE, type=int) or DEFAULT_PAGE_SIZE
    return max(page, 1), min(max(limit, 1), MAX_PAGE_SIZE)


def paginate(items, page, limit):
    """Slice an already ordered list into one page."""
    start = (page - 1) * limit
    return items[start : start + limit]


def page_count(total, limit):
    """Return the number of pages needed for ``total`` items."""
    return math.ceil(total / limit) if limit else 0


def get_json_body():
    """Return the request JSON object, or an empty dict."""
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def count_query(query):
    """Count the documents matching ``query`` with a server-side aggregation."""
    return query.count().get()[0][0].value


def page_query(query, page, limit):
    """Restrict an ordered query to one page plus a lookahead document."""
    return query.offset((page - 1) * limit).limit(limit + 1)
