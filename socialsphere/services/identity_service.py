# socialsphere/services/identity_service.py

import logging
from typing import Optional

import requests
from firebase_admin import auth as firebase_auth
from firebase_admin import exceptions as firebase_exceptions

from socialsphere.core.errors import AuthError
from socialsphere.models.user import Identity

# Identity Toolkit error message -> (category, user-facing message)
_SIGN_IN_ERRORS = {
    "EMAIL_NOT_FOUND": (AuthError.ACCOUNT_NOT_FOUND, "No account exists for this email address."),
    "INVALID_PASSWORD": (AuthError.WRONG_PASSWORD, "The password is incorrect."),
    # Projects with email enumeration protection report both cases this way.
    "INVALID_LOGIN_CREDENTIALS": (AuthError.INVALID_CREDENTIALS, "Invalid email or password."),
    "INVALID_EMAIL": (AuthError.INVALID_CREDENTIALS, "Invalid email or password."),
    "USER_DISABLED": (AuthError.ACCOUNT_DISABLED, "This account has been disabled."),
    "TOO_MANY_ATTEMPTS_TRY_LATER": (AuthError.TOO_MANY_ATTEMPTS, "Too many attempts. Try again later."),
    "EMAIL_EXISTS": (AuthError.ACCOUNT_EXISTS, "An account already exists for this email address."),
    "WEAK_PASSWORD": (AuthError.WEAK_PASSWORD, "Password must be at least 6 characters."),
}

MIN_PASSWORD_LENGTH = 6


class IdentityProvider:
    """Session/identity capabilities the auth service relies on."""

    def create_account(self, email: str, password: str, display_name: Optional[str] = None) -> Identity:
        raise NotImplementedError

    def authenticate(self, email: str, password: str) -> Identity:
        raise NotImplementedError

    def end_session(self, uid: str) -> None:
        raise NotImplementedError


class FirebaseIdentityProvider(IdentityProvider):
    """
    Firebase Auth adapter.

    Accounts are created with the Admin SDK. The Admin SDK cannot check a
    password, so sign-in goes through the Identity Toolkit REST endpoint with
    the project's web API key.
    """

    def __init__(self, api_key: Optional[str], base_url: str = "https://identitytoolkit.googleapis.com/v1",
                 timeout: int = 10):
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

    def create_account(self, email: str, password: str, display_name: Optional[str] = None) -> Identity:
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise AuthError(*_SIGN_IN_ERRORS["WEAK_PASSWORD"])
        try:
            record = firebase_auth.create_user(email=email, password=password, display_name=display_name)
        except firebase_auth.EmailAlreadyExistsError:
            raise AuthError(*_SIGN_IN_ERRORS["EMAIL_EXISTS"])
        except ValueError as e:
            # Raised by the Admin SDK's own argument checks.
            logging.warning(f"Account creation rejected by SDK validation: {e}")
            if 'password' in str(e).lower():
                raise AuthError(*_SIGN_IN_ERRORS["WEAK_PASSWORD"])
            raise AuthError(AuthError.INVALID_CREDENTIALS, "Invalid email or password.")
        except (firebase_exceptions.UnavailableError, firebase_exceptions.DeadlineExceededError) as e:
            logging.error(f"Identity provider unreachable during sign-up: {e}", exc_info=True)
            raise AuthError(AuthError.NETWORK_ERROR, "Could not reach the authentication service.")

        logging.info(f"Account created (uid: {record.uid})")
        return Identity(uid=record.uid, email=record.email, display_name=record.display_name)

    def authenticate(self, email: str, password: str) -> Identity:
        if not self.api_key:
            raise ValueError("FIREBASE_WEB_API_KEY is not configured.")

        try:
            response = requests.post(
                f"{self.base_url}/accounts:signInWithPassword",
                params={"key": self.api_key},
                json={"email": email, "password": password, "returnSecureToken": True},
                timeout=self.timeout
            )
        except requests.RequestException as e:
            logging.error(f"Identity provider unreachable during sign-in: {e}", exc_info=True)
            raise AuthError(AuthError.NETWORK_ERROR, "Could not reach the authentication service.")

        if response.status_code != 200:
            raise self._sign_in_error(response)

        data = response.json()
        return Identity(uid=data['localId'], email=data.get('email') or email,
                        display_name=data.get('displayName') or None)

    def end_session(self, uid: str) -> None:
        """Revoke the provider-side refresh tokens of the user."""
        try:
            firebase_auth.revoke_refresh_tokens(uid)
        except firebase_auth.UserNotFoundError:
            logging.warning(f"Session end for unknown user (uid: {uid})")

    @staticmethod
    def _sign_in_error(response) -> AuthError:
        try:
            # e.g. "TOO_MANY_ATTEMPTS_TRY_LATER : Access to this account has been temporarily disabled..."
            raw = response.json()['error']['message']
            code = raw.split(':')[0].strip()
        except (ValueError, KeyError, TypeError):
            code = None
        if code not in _SIGN_IN_ERRORS:
            logging.warning(f"Unmapped sign-in failure (status: {response.status_code}, code: {code})")
            return AuthError(AuthError.INVALID_CREDENTIALS, "Invalid email or password.")
        return AuthError(*_SIGN_IN_ERRORS[code])
