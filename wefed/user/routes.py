"""Routes for the user blueprint."""

from flask import g, jsonify, request

from wefed.auth.decorators import login_required, optional_login
from wefed.core import IdSet
from wefed.database import get_db
from wefed.post.services import PostService
from wefed.utils import get_pagination, page_count

from . import bp
from .forms import UpdateProfileForm
from .models import public_profile
from .services import UserService


@bp.route("/search")
@optional_login
def search():
    """Find active users by name or bio."""
    page, limit = get_pagination()
    users, total = UserService.search_users(
        get_db(), request.args.get("q", ""), page, limit
    )
    return jsonify(users=users, total=total, page=page, pages=page_count(total, limit))


@bp.route("/profile", methods=["PUT"])
@login_required
def update_profile():
    """Update the caller's own profile."""
    form = UpdateProfileForm().validate_or_raise()
    user = UserService.update_user_profile(get_db(), g.user_id, form.profile_updates())
    return jsonify(message="Profile updated successfully", user=public_profile(user))


@bp.route("/<string:user_id>")
@optional_login
def view_user(user_id):
    """Public profile with post count and, for signed-in callers, follow state."""
    db = get_db()
    user = UserService.get_user_or_404(db, user_id)
    profile = public_profile(user)
    profile["postCount"] = PostService.count_user_posts(db, user_id)
    if g.user_id:
        profile["isFollowing"] = g.user_id in IdSet(user.get("followers"))
    return jsonify(user=profile)


@bp.route("/<string:user_id>/follow", methods=["POST"])
@login_required
def follow(user_id):
    target = UserService.follow_user(get_db(), g.user_id, user_id)
    return jsonify(message=f"You are now following {target.get('name')}")


@bp.route("/<string:user_id>/follow", methods=["DELETE"])
@login_required
def unfollow(user_id):
    UserService.unfollow_user(get_db(), g.user_id, user_id)
    return jsonify(message="Unfollowed successfully")


@bp.route("/<string:user_id>/followers")
@optional_login
def followers(user_id):
    page, limit = get_pagination()
    users, total = UserService.get_followers(get_db(), user_id, page, limit)
    return jsonify(
        followers=users, total=total, page=page, pages=page_count(total, limit)
    )


@bp.route("/<string:user_id>/following")
@optional_login
def following(user_id):
    page, limit = get_pagination()
    users, total = UserService.get_following(get_db(), user_id, page, limit)
    return jsonify(
        following=users, total=total, page=page, pages=page_count(total, limit)
    )


@bp.route("/<string:user_id>/posts")
@optional_login
def user_posts(user_id):
    """A user's posts filtered by what the caller may see."""
    db = get_db()
    page, limit = get_pagination()
    author = UserService.get_user_or_404(db, user_id)
    posts, total = PostService.get_user_posts(db, author, g.user, page, limit)
    return jsonify(
        posts=PostService.serialize(db, posts, g.user_id),
        total=total,
        page=page,
        pages=page_count(total, limit),
    )
