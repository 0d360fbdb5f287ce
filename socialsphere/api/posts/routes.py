# socialsphere/api/posts/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required
from marshmallow import ValidationError

from socialsphere.api.posts.schemas import (
    PostCreateSchema, PostResponseSchema, LikeToggleSchema, LikeStateResponseSchema
)
from socialsphere.core.security import current_identity, optional_identity

posts_bp = Blueprint('posts_bp', __name__)


@posts_bp.route('', methods=['POST'])
@jwt_required()
def create_post():
    """
    Creates a post authored by the signed-in user.
    The new post reaches every feed through the live query.
    """
    post_service = current_app.services['posts']
    user_service = current_app.services['users']
    viewer = current_identity()
    try:
        data = PostCreateSchema().load(request.get_json() or {})
        author = user_service.get_profile_or_fallback(viewer)
        new_post = post_service.create_post(data['content'], author, data['tags'], data['mood'])
        return jsonify(PostResponseSchema().dump(post_service.view_for(new_post, viewer.uid))), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400


@posts_bp.route('/<string:post_id>', methods=['GET'])
@jwt_required(optional=True)
def get_post(post_id: str):
    """Full post, including the complete content behind the feed preview."""
    post_service = current_app.services['posts']
    viewer = optional_identity()

    post = post_service.get_post(post_id)
    if post is None:
        return jsonify({"error_code": "POST_NOT_FOUND", "message": "Post not found."}), 404
    return jsonify(PostResponseSchema().dump(post_service.view_for(post, viewer.uid if viewer else None))), 200


@posts_bp.route('/<string:post_id>/like', methods=['POST'])
@jwt_required()
def toggle_like(post_id: str):
    """
    Likes or unlikes a post.
    The response carries the caller's optimistic state; the feed catches up on its next snapshot.
    """
    post_service = current_app.services['posts']
    viewer = current_identity()
    try:
        data = LikeToggleSchema().load(request.get_json() or {})
        projection = post_service.toggle_like(post_id, viewer.uid, data['currently_liked'])
        return jsonify(LikeStateResponseSchema().dump(projection)), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e:
        logging.info(f"Like on missing post (post_id: {post_id})")
        return jsonify({"error_code": "POST_NOT_FOUND", "message": str(e)}), 404
