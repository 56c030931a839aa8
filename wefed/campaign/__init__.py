"""The campaign blueprint."""

from flask import Blueprint

bp = Blueprint("campaign", __name__, url_prefix="/api/campaigns")

from . import routes  # noqa: E402

__all__ = ["routes"]
