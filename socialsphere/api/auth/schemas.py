# socialsphere/api/auth/schemas.py
from marshmallow import Schema, fields, validate

class SignUpSchema(Schema):
    """Validates a sign-up request."""
    email = fields.Email(required=True)
    password = fields.Str(
        required=True, load_only=True,
        validate=validate.Length(min=6, error="Password must be at least 6 characters.")
    )
    name = fields.Str(
        required=True,
        validate=validate.Length(min=2, error="Name must be at least 2 characters.")
    )
    bio = fields.Str(
        load_default="",
        validate=validate.Length(max=160, error="Bio must be less than 160 characters.")
    )

class SignInSchema(Schema):
    """Validates a sign-in request."""
    email = fields.Email(required=True)
    password = fields.Str(required=True, load_only=True)

class LogoutRequestSchema(Schema):
    """Validates a logout request."""
    access_token = fields.Str(required=True)
    refresh_token = fields.Str(required=True)
