# socialsphere/api/comments/routes.py
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required
from marshmallow import ValidationError

from socialsphere.api.comments.schemas import CommentCreateSchema, CommentResponseSchema
from socialsphere.core.security import current_identity

comments_bp = Blueprint('comments_bp', __name__)


@comments_bp.route('/posts/<string:post_id>/comments', methods=['POST'])
@jwt_required()
def create_comment(post_id: str):
    """
    Adds a comment to a post.
    Returns the comment together with the locally held list it was prepended to.
    """
    comment_service = current_app.services['comments']
    user_service = current_app.services['users']
    try:
        data = CommentCreateSchema().load(request.get_json() or {})
        author = user_service.get_profile_or_fallback(current_identity())
        new_comment = comment_service.submit_comment(post_id, data['content'], author)
        return jsonify({
            "comment": CommentResponseSchema().dump(new_comment),
            "comments": CommentResponseSchema(many=True).dump(comment_service.local_comments(post_id))
        }), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e:
        return jsonify({"error_code": "RESOURCE_NOT_FOUND", "message": str(e)}), 404


@comments_bp.route('/posts/<string:post_id>/comments', methods=['GET'])
@jwt_required()
def get_comments(post_id: str):
    """All comments of a post, newest first. Called when the comment section is opened."""
    comment_service = current_app.services['comments']
    comments = comment_service.load_comments(post_id)
    return jsonify({"comments": CommentResponseSchema(many=True).dump(comments)}), 200
