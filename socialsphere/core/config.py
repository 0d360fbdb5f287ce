# socialsphere/core/config.py

import os


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    return int(value) if value else default


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """Settings shared by every environment."""
    # Signs the session tokens handed to the web client.
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY')
    # Firebase web API key, needed for password sign-in through Identity Toolkit.
    FIREBASE_WEB_API_KEY = os.getenv('FIREBASE_WEB_API_KEY')
    FIREBASE_PROJECT_ID = os.getenv('FIREBASE_PROJECT_ID')
    IDENTITY_TOOLKIT_URL = os.getenv('IDENTITY_TOOLKIT_URL', 'https://identitytoolkit.googleapis.com/v1')
    IDENTITY_TIMEOUT_SECONDS = _env_int('IDENTITY_TIMEOUT_SECONDS', 10)

    # Feed window and derived statistics
    FEED_LIMIT = _env_int('FEED_LIMIT', 10)
    TRENDING_THRESHOLD = _env_int('TRENDING_THRESHOLD', 5)

    # Authoring limits
    POST_MAX_LENGTH = _env_int('POST_MAX_LENGTH', 2000)
    COMMENT_MAX_LENGTH = _env_int('COMMENT_MAX_LENGTH', 1000)
    BIO_MAX_LENGTH = _env_int('BIO_MAX_LENGTH', 160)
    MAX_TAGS = _env_int('MAX_TAGS', 5)
    PREVIEW_LENGTH = _env_int('PREVIEW_LENGTH', 300)

    # Revert the viewer's like projection when the remote write fails.
    LIKE_ROLLBACK_ON_FAILURE = _env_bool('LIKE_ROLLBACK_ON_FAILURE', True)


class DevelopmentConfig(Config):
    """Local development against the development Firebase project."""
    DEBUG = True
    FIREBASE_CREDENTIALS_PATH = os.getenv('DEV_FIREBASE_CREDENTIALS_PATH')


class TestingConfig(Config):
    """Test runs. Tests inject in-memory collaborators, so credentials are optional."""
    TESTING = True
    DEBUG = False
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', 'socialsphere-test-secret')
    FIREBASE_CREDENTIALS_PATH = os.getenv('TEST_FIREBASE_CREDENTIALS_PATH')


class ProductionConfig(Config):
    DEBUG = False
    FIREBASE_CREDENTIALS_PATH = os.getenv('FIREBASE_CREDENTIALS_PATH')


# Maps FLASK_ENV values to their settings class (used by create_app).
config_by_name = dict(
    development=DevelopmentConfig,
    testing=TestingConfig,
    production=ProductionConfig
)
