# socialsphere/api/posts/schemas.py
from marshmallow import Schema, fields, validate

from socialsphere.models.post import Mood

# --- nested schemas ---
class AuthorSchema(Schema):
    """Denormalized author fields embedded in posts and comments."""
    user_id = fields.Str(required=True)
    name = fields.Str(required=True)
    email = fields.Str(allow_none=True)

# --- request/response schemas ---

class PostCreateSchema(Schema):
    """Validates the body of POST /api/posts."""
    content = fields.Str(required=True, validate=validate.Length(min=1, max=2000))
    # Capped at 5 by PostService after trimming and de-duplication.
    tags = fields.List(fields.Str(), load_default=list)
    mood = fields.Str(allow_none=True, load_default=None, validate=validate.OneOf(Mood.values()))

class LikeToggleSchema(Schema):
    """POST /api/posts/{post_id}/like: the like state the client is currently showing."""
    currently_liked = fields.Bool(required=True)

class LikeStateResponseSchema(Schema):
    post_id = fields.Str(required=True)
    liked = fields.Bool(required=True)
    likes_count = fields.Int(required=True)

class PostResponseSchema(Schema):
    """Final JSON shape of a post as seen by one viewer."""
    post_id = fields.Str(dump_only=True)
    content = fields.Str(required=True)
    preview = fields.Str(required=True)
    is_truncated = fields.Bool(required=True)
    author = fields.Nested(AuthorSchema, required=True)
    created_at = fields.DateTime(required=True)
    time_ago = fields.Str(required=True)
    likes_count = fields.Int(required=True)
    comments_count = fields.Int(required=True)
    tags = fields.List(fields.Str(), required=True)
    mood = fields.Str(allow_none=True)
    read_time = fields.Int(required=True)
    is_liked = fields.Bool(dump_only=True, dump_default=False)
    is_popular = fields.Bool(dump_only=True, dump_default=False)
