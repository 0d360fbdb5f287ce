# socialsphere/api/feed/routes.py
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required

from socialsphere.api.feed.schemas import FeedResponseSchema, FeedPageResponseSchema
from socialsphere.core.security import current_identity

feed_bp = Blueprint('feed_bp', __name__)


@feed_bp.route('', methods=['GET'])
@jwt_required()
def get_feed():
    """
    Current live feed window and its statistics, with the caller's
    optimistic like state applied.
    """
    feed_service = current_app.services['feed']
    post_service = current_app.services['posts']
    viewer = current_identity()

    # Reopens the live query if it was released (e.g. after a reconnect).
    feed_service.ensure_subscribed()
    state = feed_service.current()

    return jsonify(FeedResponseSchema().dump({
        "posts": [post_service.view_for(post, viewer.uid) for post in state.posts],
        "stats": state.stats,
        "version": state.version,
        "received_at": state.received_at,
    })), 200


@feed_bp.route('/page', methods=['GET'])
@jwt_required()
def get_feed_page():
    """One-shot page of older posts, for scrolling past the live window."""
    feed_service = current_app.services['feed']
    post_service = current_app.services['posts']
    viewer = current_identity()

    limit = min(max(request.args.get('limit', 10, type=int), 1), 50)
    cursor = request.args.get('cursor', None, type=str)
    posts, next_cursor = feed_service.fetch_page(limit, cursor)

    return jsonify(FeedPageResponseSchema().dump({
        "posts": [post_service.view_for(post, viewer.uid) for post in posts],
        "next_cursor": next_cursor,
    })), 200
