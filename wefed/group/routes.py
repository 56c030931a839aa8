"""Routes for the group blueprint."""

from flask import g, jsonify, request

from wefed.auth.decorators import login_required, optional_login
from wefed.database import get_db
from wefed.post.forms import PostForm
from wefed.post.services import PostService
from wefed.utils import get_pagination, page_count

from . import bp
from .forms import GroupForm, JoinRequestForm, UpdateGroupForm
from .models import serialize_group
from .services import JOINED, GroupService


@bp.route("")
@optional_login
def list_groups():
    """Discoverable groups, optionally filtered by category or featured flag."""
    page, limit = get_pagination()
    groups, total = GroupService.list_groups(
        get_db(),
        page,
        limit,
        category=request.args.get("category"),
        featured=request.args.get("featured") == "true",
    )
    return jsonify(
        groups=[serialize_group(group, g.user_id) for group in groups],
        total=total,
        page=page,
        pages=page_count(total, limit),
    )


@bp.route("/my-groups")
@login_required
def my_groups():
    groups = GroupService.get_my_groups(get_db(), g.user_id)
    return jsonify(groups=[serialize_group(group, g.user_id) for group in groups])


@bp.route("", methods=["POST"])
@login_required
def create_group():
    """Create a group owned by the caller."""
    form = GroupForm().validate_or_raise()
    group = GroupService.create_group(get_db(), g.user_id, form.group_data())
    return jsonify(group=serialize_group(group, g.user_id)), 201


@bp.route("/<string:group_id>")
@optional_login
def view_group(group_id):
    """Group details with its recent posts."""
    db = get_db()
    group = GroupService.get_group_for_viewer(db, group_id, g.user_id)
    recent_posts = GroupService.get_recent_posts(db, group, g.user_id)
    return jsonify(
        group=serialize_group(group, g.user_id),
        recentPosts=PostService.serialize(db, recent_posts, g.user_id),
    )


@bp.route("/<string:group_id>", methods=["PUT"])
@login_required
def update_group(group_id):
    form = UpdateGroupForm().validate_or_raise()
    group = GroupService.update_group(get_db(), group_id, g.user_id, form.updates())
    return jsonify(group=serialize_group(group, g.user_id))


@bp.route("/<string:group_id>/join", methods=["POST"])
@login_required
def join_group(group_id):
    form = JoinRequestForm().validate_or_raise()
    outcome = GroupService.join_group(get_db(), group_id, g.user_id, form.message.data)
    if outcome == JOINED:
        return jsonify(message="Joined group successfully", status=outcome)
    return jsonify(message="Join request sent", status=outcome)


@bp.route("/<string:group_id>/leave", methods=["POST"])
@login_required
def leave_group(group_id):
    GroupService.leave_group(get_db(), group_id, g.user_id)
    return jsonify(message="Left group successfully")


@bp.route("/<string:group_id>/members")
@optional_login
def members(group_id):
    db = get_db()
    page, limit = get_pagination()
    group = GroupService.get_group_for_viewer(db, group_id, g.user_id)
    member_list, total = GroupService.get_members(db, group, page, limit)
    return jsonify(
        members=member_list, total=total, page=page, pages=page_count(total, limit)
    )


@bp.route("/<string:group_id>/posts")
@optional_login
def group_posts(group_id):
    """Posts inside a group. Private and secret groups require membership."""
    db = get_db()
    page, limit = get_pagination()
    group = GroupService.get_group(db, group_id)
    posts, total = GroupService.get_posts(db, group, g.user_id, page, limit)
    return jsonify(
        posts=PostService.serialize(db, posts, g.user_id),
        total=total,
        page=page,
        pages=page_count(total, limit),
    )


@bp.route("/<string:group_id>/posts", methods=["POST"])
@login_required
def create_group_post(group_id):
    db = get_db()
    form = PostForm().validate_or_raise()
    group = GroupService.get_group(db, group_id)
    post = GroupService.create_group_post(db, group, g.user_id, form.post_data())
    return jsonify(post=PostService.serialize(db, [post], g.user_id)[0]), 201


@bp.route("/<string:group_id>/requests/<string:user_id>/approve", methods=["POST"])
@login_required
def approve_request(group_id, user_id):
    GroupService.resolve_request(get_db(), group_id, g.user_id, user_id, approve=True)
    return jsonify(message="Join request approved")


@bp.route("/<string:group_id>/requests/<string:user_id>/reject", methods=["POST"])
@login_required
def reject_request(group_id, user_id):
    GroupService.resolve_request(get_db(), group_id, g.user_id, user_id, approve=False)
    return jsonify(message="Join request rejected")
