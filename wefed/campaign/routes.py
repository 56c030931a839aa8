"""Routes for the campaign blueprint."""

from flask import g, jsonify, request

from wefed.auth.decorators import login_required, optional_login
from wefed.constants import CAMPAIGN_ACTIVE, CAMPAIGN_STATUSES, MAX_PAGE_SIZE
from wefed.database import get_db
from wefed.errors import ValidationError
from wefed.utils import get_pagination, page_count

from . import bp
from .forms import CampaignForm, CampaignUpdateForm, UpdateCampaignForm
from .models import public_campaign
from .services import CampaignService

DEFAULT_FEATURED_LIMIT = 6
DEFAULT_TRENDING_LIMIT = 10


def _limit_arg(default):
    limit = request.args.get("limit", default, type=int) or default
    return min(max(limit, 1), MAX_PAGE_SIZE)


@bp.route("")
@optional_login
def list_campaigns():
    """Campaigns filtered by status (active by default), category and featured."""
    status = request.args.get("status", CAMPAIGN_ACTIVE)
    if status not in CAMPAIGN_STATUSES:
        raise ValidationError("Invalid status")
    db = get_db()
    page, limit = get_pagination()
    campaigns, total = CampaignService.list_campaigns(
        db,
        page,
        limit,
        status=status,
        category=request.args.get("category"),
        featured=request.args.get("featured") == "true",
    )
    return jsonify(
        campaigns=CampaignService.serialize(db, campaigns, g.user_id),
        total=total,
        page=page,
        pages=page_count(total, limit),
    )


@bp.route("/featured")
@optional_login
def featured():
    db = get_db()
    campaigns = CampaignService.get_featured(db, _limit_arg(DEFAULT_FEATURED_LIMIT))
    return jsonify(campaigns=CampaignService.serialize(db, campaigns, g.user_id))


@bp.route("/trending")
@optional_login
def trending():
    db = get_db()
    campaigns = CampaignService.get_trending(db, _limit_arg(DEFAULT_TRENDING_LIMIT))
    return jsonify(campaigns=CampaignService.serialize(db, campaigns, g.user_id))


@bp.route("/search")
@optional_login
def search():
    db = get_db()
    page, limit = get_pagination()
    campaigns, total = CampaignService.search(
        db,
        request.args.get("q", ""),
        page,
        limit,
        category=request.args.get("category"),
    )
    return jsonify(
        campaigns=CampaignService.serialize(db, campaigns, g.user_id),
        total=total,
        page=page,
        pages=page_count(total, limit),
    )


@bp.route("/my-campaigns")
@login_required
def my_campaigns():
    campaigns = CampaignService.get_my_campaigns(get_db(), g.user_id)
    return jsonify(
        campaigns=[public_campaign(c, g.user_id, g.user) for c in campaigns]
    )


@bp.route("/<string:campaign_id>")
@optional_login
def view_campaign(campaign_id):
    detail = CampaignService.get_detail(get_db(), campaign_id, g.user_id)
    return jsonify(campaign=detail)


@bp.route("", methods=["POST"])
@login_required
def create_campaign():
    """Start a campaign organized by the caller."""
    form = CampaignForm().validate_or_raise()
    campaign = CampaignService.create_campaign(get_db(), g.user, form.campaign_data())
    return (
        jsonify(
            message="Campaign created successfully",
            campaign=public_campaign(campaign, g.user_id, g.user),
        ),
        201,
    )


@bp.route("/<string:campaign_id>", methods=["PUT"])
@login_required
def update_campaign(campaign_id):
    db = get_db()
    form = UpdateCampaignForm().validate_or_raise()
    campaign = CampaignService.update_campaign(
        db, campaign_id, g.user_id, form.updates()
    )
    return jsonify(
        message="Campaign updated",
        campaign=public_campaign(campaign, g.user_id, g.user),
    )


@bp.route("/<string:campaign_id>/updates", methods=["POST"])
@login_required
def post_update(campaign_id):
    """Post a progress update to followers and donors."""
    form = CampaignUpdateForm().validate_or_raise()
    update = CampaignService.post_update(
        get_db(),
        campaign_id,
        g.user_id,
        {
            "title": form.title.data,
            "content": form.content.data,
            "media": form.media.data,
        },
    )
    return jsonify(message="Update posted", update=update), 201


@bp.route("/<string:campaign_id>/follow", methods=["POST"])
@login_required
def follow(campaign_id):
    following = CampaignService.toggle_follow(get_db(), campaign_id, g.user_id)
    return jsonify(following=following)


@bp.route("/<string:campaign_id>/donations")
def donations(campaign_id):
    page, limit = get_pagination()
    donation_list, total = CampaignService.list_donations(
        get_db(), campaign_id, page, limit
    )
    return jsonify(
        donations=donation_list, total=total, page=page, pages=page_count(total, limit)
    )
