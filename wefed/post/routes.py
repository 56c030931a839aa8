"""Routes for the post blueprint."""

from flask import g, jsonify, request

from wefed.auth.decorators import login_required, optional_login
from wefed.constants import MAX_PAGE_SIZE
from wefed.database import get_db
from wefed.utils import get_pagination

from . import bp
from .forms import CommentForm, PostForm, UpdatePostForm
from .services import PostService

DEFAULT_TRENDING_LIMIT = 10


@bp.route("/feed")
@login_required
def feed():
    """The global feed, or the caller's network with ``?type=following``."""
    db = get_db()
    page, limit = get_pagination()
    if request.args.get("type") == "following":
        posts, has_more = PostService.get_personalized_feed(db, g.user, page, limit)
    else:
        posts, has_more = PostService.get_global_feed(db, page, limit)
    return jsonify(
        posts=PostService.serialize(db, posts, g.user_id), page=page, hasMore=has_more
    )


@bp.route("/trending")
@optional_login
def trending():
    db = get_db()
    limit = request.args.get("limit", DEFAULT_TRENDING_LIMIT, type=int)
    limit = min(max(limit or DEFAULT_TRENDING_LIMIT, 1), MAX_PAGE_SIZE)
    posts = PostService.get_trending(db, limit)
    return jsonify(posts=PostService.serialize(db, posts, g.user_id))


@bp.route("/bookmarks")
@login_required
def bookmarks():
    db = get_db()
    page, limit = get_pagination()
    posts, has_more = PostService.get_bookmarks(db, g.user_id, page, limit)
    return jsonify(
        posts=PostService.serialize(db, posts, g.user_id), page=page, hasMore=has_more
    )


@bp.route("/<string:post_id>")
@optional_login
def view_post(post_id):
    db = get_db()
    post = PostService.get_visible_post(db, post_id, g.user)
    return jsonify(post=PostService.serialize(db, [post], g.user_id)[0])


@bp.route("", methods=["POST"])
@login_required
def create_post():
    """Publish a post outside any group."""
    db = get_db()
    form = PostForm().validate_or_raise()
    post = PostService.create_post(db, g.user_id, form.post_data())
    return jsonify(post=PostService.serialize(db, [post], g.user_id)[0]), 201


@bp.route("/<string:post_id>", methods=["PUT"])
@login_required
def update_post(post_id):
    db = get_db()
    form = UpdatePostForm().validate_or_raise()
    post = PostService.update_post(db, post_id, g.user_id, form.updates())
    return jsonify(post=PostService.serialize(db, [post], g.user_id)[0])


@bp.route("/<string:post_id>", methods=["DELETE"])
@login_required
def delete_post(post_id):
    PostService.delete_post(get_db(), post_id, g.user_id)
    return jsonify(message="Post deleted successfully")


@bp.route("/<string:post_id>/like", methods=["POST"])
@login_required
def like_post(post_id):
    """Toggle the caller's like."""
    db = get_db()
    post = PostService.get_visible_post(db, post_id, g.user)
    liked, like_count = PostService.toggle_like(db, post, g.user_id)
    return jsonify(liked=liked, likeCount=like_count)


@bp.route("/<string:post_id>/comment", methods=["POST"])
@login_required
def add_comment(post_id):
    db = get_db()
    form = CommentForm().validate_or_raise()
    post = PostService.get_visible_post(db, post_id, g.user)
    comment = PostService.add_comment(db, post, g.user, form.content.data)
    return jsonify(comment=comment), 201


@bp.route("/<string:post_id>/comment/<string:comment_id>", methods=["DELETE"])
@login_required
def delete_comment(post_id, comment_id):
    db = get_db()
    post = PostService.get_post(db, post_id)
    PostService.delete_comment(db, post, comment_id, g.user_id)
    return jsonify(message="Comment deleted successfully")


@bp.route("/<string:post_id>/bookmark", methods=["POST"])
@login_required
def bookmark_post(post_id):
    """Toggle the caller's bookmark."""
    db = get_db()
    post = PostService.get_visible_post(db, post_id, g.user)
    return jsonify(bookmarked=PostService.toggle_bookmark(db, post, g.user_id))


@bp.route("/<string:post_id>/share", methods=["POST"])
@login_required
def share_post(post_id):
    db = get_db()
    post = PostService.get_visible_post(db, post_id, g.user)
    return jsonify(shareCount=PostService.share_post(db, post, g.user_id))
