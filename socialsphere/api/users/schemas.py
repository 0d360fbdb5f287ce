# socialsphere/api/users/schemas.py
from marshmallow import Schema, fields

from socialsphere.api.posts.schemas import PostResponseSchema


class UserProfileResponseSchema(Schema):
    """
    Profile shown on the profile page. `is_transient` is true when the stored
    profile is missing and the response was built from session claims.
    """
    user_id = fields.Str(required=True, dump_only=True)
    email = fields.Str(required=True)
    name = fields.Str(required=True)
    bio = fields.Str(required=True)
    created_at = fields.DateTime(required=True)
    is_transient = fields.Bool(dump_default=False)

class ProfilePageResponseSchema(Schema):
    """GET /api/users/{user_id}"""
    profile = fields.Nested(UserProfileResponseSchema, required=True)
    posts = fields.List(fields.Nested(PostResponseSchema(exclude=('content',))), required=True)
    post_count = fields.Int(required=True)
