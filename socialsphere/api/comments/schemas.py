# socialsphere/api/comments/schemas.py
from marshmallow import Schema, fields, validate

from socialsphere.api.posts.schemas import AuthorSchema
from socialsphere.utils.datetime_utils import DateTimeUtils


class CommentCreateSchema(Schema):
    """
    POST /api/posts/{post_id}/comments
    Whitespace-only content is rejected by the service after trimming.
    """
    content = fields.Str(required=True, validate=validate.Length(min=1, max=1000, error="Comments must be 1-1000 characters."))

class CommentResponseSchema(Schema):
    comment_id = fields.Str(required=True)
    post_id = fields.Str(required=True)
    content = fields.Str(required=True)
    author = fields.Method("get_author")
    created_at = fields.DateTime(required=True)
    time_ago = fields.Method("get_time_ago")

    def get_author(self, comment):
        return AuthorSchema().dump({'user_id': comment.author_id, 'name': comment.author_name, 'email': comment.author_email})

    def get_time_ago(self, comment):
        return DateTimeUtils.time_ago(comment.created_at)
