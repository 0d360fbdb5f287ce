# socialsphere/api/users/services.py
import logging
from typing import Optional, Dict, Any

from socialsphere.api.feed.services import FeedService
from socialsphere.models.user import Identity, UserProfile
from socialsphere.services.document_store import DocumentStore


class UserService:
    """Profile reads. Profiles are written once at sign-up and never edited here."""
    USERS_COLLECTION = 'users'

    def __init__(self, store: DocumentStore, feed_service: FeedService):
        self.store = store
        self.feed = feed_service

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        data = self.store.get_document(self.USERS_COLLECTION, user_id)
        if data is None:
            return None
        return UserProfile.from_document(user_id, data)

    def get_profile_or_fallback(self, identity: Identity) -> UserProfile:
        """Stored profile of the signed-in user, or a transient one built from the session claims."""
        profile = self.get_profile(identity.uid)
        if profile is None:
            logging.warning(f"Profile document missing, using session claims (uid: {identity.uid})")
            return UserProfile.fallback_for(identity)
        return profile

    def get_profile_page(self, user_id: str, viewer: Optional[Identity] = None) -> Optional[Dict[str, Any]]:
        """Profile plus the user's posts, newest first."""
        profile = self.get_profile(user_id)
        if profile is None:
            if viewer is None or viewer.uid != user_id:
                return None
            profile = UserProfile.fallback_for(viewer)

        posts = self.feed.fetch_author_posts(user_id)
        return {'profile': profile, 'posts': posts, 'post_count': len(posts)}
