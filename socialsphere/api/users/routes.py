# socialsphere/api/users/routes.py
from flask import Blueprint, jsonify, current_app
from flask_jwt_extended import jwt_required

from socialsphere.api.users.schemas import ProfilePageResponseSchema
from socialsphere.core.security import optional_identity

users_bp = Blueprint('users_bp', __name__)


@users_bp.route('/<string:user_id>', methods=['GET'])
@jwt_required(optional=True)
def get_user_profile(user_id: str):
    """Profile of a user with their posts, newest first."""
    user_service = current_app.services['users']
    post_service = current_app.services['posts']
    viewer = optional_identity()

    page = user_service.get_profile_page(user_id, viewer)
    if not page:
        return jsonify({"error_code": "USER_NOT_FOUND", "message": "User not found."}), 404

    viewer_id = viewer.uid if viewer else None
    return jsonify(ProfilePageResponseSchema().dump({
        "profile": page['profile'],
        "posts": [post_service.view_for(post, viewer_id) for post in page['posts']],
        "post_count": page['post_count'],
    })), 200
