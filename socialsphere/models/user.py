# socialsphere/models/user.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Any, Optional

from socialsphere.utils.datetime_utils import DateTimeUtils


@dataclass
class Identity:
    """Signed-in user as reported by the identity provider."""
    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None


@dataclass
class UserProfile:
    """
    Document structure of the Firestore 'users' collection.

    `is_transient` marks a profile synthesized from identity claims because the
    stored document is missing; such profiles are never written.
    """
    user_id: str
    email: str
    name: str
    bio: str = ""
    created_at: datetime = field(default_factory=DateTimeUtils.now)
    is_transient: bool = False

    def to_document(self) -> Dict[str, Any]:
        return {
            'id': self.user_id,
            'email': self.email,
            'name': self.name,
            'bio': self.bio,
            'createdAt': self.created_at,
        }

    @classmethod
    def from_document(cls, user_id: str, data: Dict[str, Any]) -> 'UserProfile':
        return cls(
            user_id=data.get('id') or user_id,
            email=data.get('email') or "",
            name=data.get('name') or "",
            bio=data.get('bio') or "",
            created_at=DateTimeUtils.coerce_or_now(data.get('createdAt'), context=f"user {user_id}"),
        )

    @classmethod
    def fallback_for(cls, identity: Identity) -> 'UserProfile':
        """Transient profile built from identity claims alone."""
        return cls(
            user_id=identity.uid,
            email=identity.email or "",
            name=identity.display_name or "User",
            bio="",
            is_transient=True,
        )
