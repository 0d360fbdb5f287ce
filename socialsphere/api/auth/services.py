# socialsphere/api/auth/services.py
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

import jwt
from flask import current_app
from flask_jwt_extended import create_access_token, create_refresh_token

from socialsphere.core.errors import MutationError
from socialsphere.models.user import Identity, UserProfile
from socialsphere.services.document_store import DocumentStore
from socialsphere.services.identity_service import IdentityProvider
from socialsphere.utils.datetime_utils import DateTimeUtils

SessionListener = Callable[[Optional[Identity]], None]


class AuthService:
    """
    Sign-up, sign-in and sign-out on top of the identity provider.

    Sessions handed to the web client are JWT pairs whose identity is the
    provider uid. Listeners registered with on_session_change receive the
    Identity when a session starts and None when one ends.
    """
    USERS_COLLECTION = 'users'
    REVOKED_TOKENS_COLLECTION = 'revoked_tokens'

    def __init__(self, store: DocumentStore, identity_provider: IdentityProvider):
        self.store = store
        self.identity_provider = identity_provider
        self._listeners: List[SessionListener] = []

    # --- session events ---
    def on_session_change(self, callback: SessionListener) -> Callable[[], None]:
        """Register a session listener. Returns a function that removes it."""
        self._listeners.append(callback)

        def _remove():
            if callback in self._listeners:
                self._listeners.remove(callback)
        return _remove

    def _emit(self, identity: Optional[Identity]) -> None:
        for listener in list(self._listeners):
            try:
                listener(identity)
            except Exception as e:
                logging.error(f"Session listener failed: {e}", exc_info=True)

    # --- tokens ---
    @staticmethod
    def issue_session(identity: Identity) -> Dict[str, str]:
        """Create the access/refresh token pair for `identity` (needs an app context)."""
        claims = {'email': identity.email, 'name': identity.display_name}
        return {
            'access_token': create_access_token(identity=identity.uid, additional_claims=claims),
            'refresh_token': create_refresh_token(identity=identity.uid, additional_claims=claims),
        }

    @staticmethod
    def identity_from_claims(uid: str, claims: Dict) -> Identity:
        return Identity(uid=uid, email=claims.get('email'), display_name=claims.get('name'))

    def is_token_revoked(self, jwt_payload: dict) -> bool:
        """Whether the token's jti is on the blocklist."""
        jti = jwt_payload['jti']
        return self.store.get_document(self.REVOKED_TOKENS_COLLECTION, jti) is not None

    def add_token_to_blocklist(self, jti: str, expires: datetime) -> None:
        token_data = {'revoked_at': DateTimeUtils.now(), 'expires_at': expires}
        self.store.set_document(self.REVOKED_TOKENS_COLLECTION, jti, token_data)

    # --- account flows ---
    def sign_up(self, email: str, password: str, name: str, bio: str = "") -> Tuple[UserProfile, Dict[str, str]]:
        """Create the account and its profile, then start a session."""
        identity = self.identity_provider.create_account(email, password, display_name=name)
        identity.display_name = identity.display_name or name

        profile = UserProfile(
            user_id=identity.uid,
            email=identity.email or email,
            name=name,
            bio=bio or "",
            created_at=DateTimeUtils.now()
        )
        try:
            self.store.set_document(self.USERS_COLLECTION, identity.uid, profile.to_document())
        except MutationError as e:
            # The account exists; readers fall back to a transient profile.
            logging.error(f"Profile write failed after sign-up (uid: {identity.uid}): {e}")

        tokens = self.issue_session(identity)
        self._emit(identity)
        return profile, tokens

    def sign_in(self, email: str, password: str) -> Tuple[Identity, Dict[str, str]]:
        identity = self.identity_provider.authenticate(email, password)
        tokens = self.issue_session(identity)
        logging.info(f"User signed in (uid: {identity.uid})")
        self._emit(identity)
        return identity, tokens

    def sign_out(self, access_token: str, refresh_token: str) -> str:
        """
        Revoke both tokens and end the provider session. Returns the uid.

        Tokens are decoded without checking expiry so an expired access token
        can still be revoked.
        """
        secret_key = current_app.config['JWT_SECRET_KEY']
        algorithm = current_app.config.get('JWT_ALGORITHM', 'HS256')

        decoded_access = jwt.decode(access_token, secret_key, algorithms=[algorithm], options={"verify_exp": False})
        decoded_refresh = jwt.decode(refresh_token, secret_key, algorithms=[algorithm], options={"verify_exp": False})

        for decoded in (decoded_access, decoded_refresh):
            expires = datetime.fromtimestamp(decoded['exp'], tz=timezone.utc)
            self.add_token_to_blocklist(decoded['jti'], expires)

        uid = decoded_access['sub']
        try:
            self.identity_provider.end_session(uid)
        except Exception as e:
            # Our tokens are already revoked; the provider session expires on its own.
            logging.warning(f"Provider session end failed (uid: {uid}): {e}")

        logging.info(f"User signed out. JTI: {decoded_access['jti'][:8]}..., {decoded_refresh['jti'][:8]}...")
        self._emit(None)
        return uid
