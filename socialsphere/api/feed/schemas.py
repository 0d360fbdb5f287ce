# socialsphere/api/feed/schemas.py
from marshmallow import Schema, fields

from socialsphere.api.posts.schemas import PostResponseSchema


class FeedStatsSchema(Schema):
    total_posts = fields.Int(required=True)
    active_users = fields.Int(required=True)
    trending = fields.Int(required=True)

class FeedResponseSchema(Schema):
    """GET /api/feed. Posts carry the preview only; the full text comes from GET /api/posts/{id}."""
    posts = fields.List(fields.Nested(PostResponseSchema(exclude=('content',))), required=True)
    stats = fields.Nested(FeedStatsSchema, required=True)
    version = fields.Int(required=True)
    received_at = fields.DateTime(allow_none=True)

class FeedPageResponseSchema(Schema):
    posts = fields.List(fields.Nested(PostResponseSchema(exclude=('content',))), required=True)
    next_cursor = fields.Str(allow_none=True)
