# socialsphere/core/errors.py
"""
Error taxonomy shared by the services and the HTTP layer.

Local input rejections use marshmallow's ValidationError directly, so schemas
and service-level checks surface the same way.
"""
from marshmallow import ValidationError


class SocialSphereError(Exception):
    """Base class for errors raised by the SocialSphere services."""


class AuthError(SocialSphereError):
    """Credential or session failure, tagged with a user-facing category."""
    ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
    WRONG_PASSWORD = "WRONG_PASSWORD"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    ACCOUNT_EXISTS = "ACCOUNT_EXISTS"
    WEAK_PASSWORD = "WEAK_PASSWORD"
    ACCOUNT_DISABLED = "ACCOUNT_DISABLED"
    TOO_MANY_ATTEMPTS = "TOO_MANY_ATTEMPTS"
    NETWORK_ERROR = "NETWORK_ERROR"

    def __init__(self, category: str, message: str):
        super().__init__(message)
        self.category = category
        self.message = message


class QueryCapabilityError(SocialSphereError):
    """The store cannot run a filter+order query (e.g. no composite index)."""


class MutationError(SocialSphereError):
    """A remote write failed after the change may have been shown locally."""

    def __init__(self, message: str, collection: str = None, document_id: str = None):
        super().__init__(message)
        self.message = message
        self.collection = collection
        self.document_id = document_id


class TransientDateError(SocialSphereError, ValueError):
    """A stored timestamp is missing or cannot be parsed."""


__all__ = [
    'SocialSphereError', 'AuthError', 'QueryCapabilityError',
    'MutationError', 'TransientDateError', 'ValidationError',
]
