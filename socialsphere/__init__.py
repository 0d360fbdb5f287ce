# socialsphere/__init__.py

# =====================================================================================
# 1. Environment variables (loaded first)
# =====================================================================================
from dotenv import load_dotenv
load_dotenv()

# =====================================================================================
# 2. Module imports
# =====================================================================================
import os
import logging
from typing import Optional

import click
from flask import Flask, jsonify
from marshmallow import ValidationError

# - settings
from socialsphere.core.config import config_by_name
from socialsphere.core.errors import AuthError, MutationError
from socialsphere.core.security import init_jwt

# - API blueprints
from socialsphere.api.auth.routes import auth_bp, auth_error_response
from socialsphere.api.feed.routes import feed_bp
from socialsphere.api.posts.routes import posts_bp
from socialsphere.api.comments.routes import comments_bp
from socialsphere.api.users.routes import users_bp

# - services
from socialsphere.api.auth.services import AuthService
from socialsphere.api.feed.services import FeedService
from socialsphere.api.posts.services import PostService
from socialsphere.api.comments.services import CommentService
from socialsphere.api.users.services import UserService
from socialsphere.services.document_store import DocumentStore
from socialsphere.services.identity_service import IdentityProvider


def create_app(config_name: Optional[str] = None,
               document_store: Optional[DocumentStore] = None,
               identity_provider: Optional[IdentityProvider] = None):
    """
    Flask application factory.

    `document_store` and `identity_provider` replace the Firebase-backed
    implementations (tests pass in-memory ones).
    """
    # =====================================================================================
    # 3. App and base settings
    # =====================================================================================
    config_name = config_name or os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    app.json.ensure_ascii = False

    if not app.debug:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]')

    # =====================================================================================
    # 4. Extensions and external services
    # =====================================================================================
    init_jwt(app)

    if document_store is None or identity_provider is None:
        # Imported lazily so tests with injected collaborators never touch the SDK.
        from socialsphere.services.firestore_service import FirestoreDocumentStore, init_firebase
        from socialsphere.services.identity_service import FirebaseIdentityProvider

        init_firebase(app.config['FIREBASE_CREDENTIALS_PATH'], app.config.get('FIREBASE_PROJECT_ID'))
        document_store = document_store or FirestoreDocumentStore()
        identity_provider = identity_provider or FirebaseIdentityProvider(
            api_key=app.config['FIREBASE_WEB_API_KEY'],
            base_url=app.config['IDENTITY_TOOLKIT_URL'],
            timeout=app.config['IDENTITY_TIMEOUT_SECONDS']
        )

    # =====================================================================================
    # 5. Service instances, stored on app.services (dependency injection)
    # =====================================================================================
    app.services = {}

    # 5-1. feed core first; the others observe or read it
    feed_service = FeedService(
        document_store,
        limit=app.config['FEED_LIMIT'],
        trending_threshold=app.config['TRENDING_THRESHOLD']
    )
    app.services['feed'] = feed_service

    # 5-2. domain services
    app.services['posts'] = PostService(
        document_store, feed_service,
        max_length=app.config['POST_MAX_LENGTH'],
        max_tags=app.config['MAX_TAGS'],
        preview_length=app.config['PREVIEW_LENGTH'],
        rollback_on_failure=app.config['LIKE_ROLLBACK_ON_FAILURE']
    )
    app.services['comments'] = CommentService(document_store, max_length=app.config['COMMENT_MAX_LENGTH'])
    app.services['users'] = UserService(document_store, feed_service)
    app.services['auth'] = AuthService(document_store, identity_provider)

    # 5-3. a session starting opens the live feed query (no-op when already open)
    def _open_feed_on_sign_in(identity):
        if identity is not None:
            feed_service.ensure_subscribed()

    app.services['auth'].on_session_change(_open_feed_on_sign_in)
    logging.info("Services initialized")

    # =====================================================================================
    # 6. Blueprints
    # =====================================================================================
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(feed_bp, url_prefix='/api/feed')
    app.register_blueprint(posts_bp, url_prefix='/api/posts')
    app.register_blueprint(comments_bp, url_prefix='/api')
    app.register_blueprint(users_bp, url_prefix='/api/users')

    # =====================================================================================
    # 7. Global error handlers
    # =====================================================================================
    @app.errorhandler(ValidationError)
    def handle_marshmallow_validation(err):
        response = {"error_code": "VALIDATION_ERROR", "details": err.messages}
        return jsonify(response), 400

    @app.errorhandler(AuthError)
    def handle_auth_error(err):
        return auth_error_response(err)

    @app.errorhandler(MutationError)
    def handle_mutation_error(err):
        # Non-fatal: the client keeps its view and the feed converges on the next snapshot.
        logging.warning(f"Mutation failed: {err}")
        response = {"error_code": "MUTATION_FAILED", "message": "The change could not be saved. Please try again."}
        return jsonify(response), 502

    @app.errorhandler(Exception)
    def handle_generic_exception(err):
        # Anything not handled elsewhere
        if hasattr(err, 'code') and hasattr(err, 'get_response'):
            return err
        logging.error(f"An unhandled exception occurred: {err}", exc_info=True)
        response = {"error_code": "INTERNAL_SERVER_ERROR", "message": "An unexpected server error occurred."}
        return jsonify(response), 500

    # =====================================================================================
    # 8. CLI commands
    # =====================================================================================
    @app.cli.command('reconcile-comments')
    @click.argument('post_id', required=False)
    def reconcile_comments(post_id):
        """Recompute commentsCount from the stored comments (one post, or all)."""
        comment_service = app.services['comments']
        if post_id:
            count = comment_service.reconcile_comment_count(post_id)
            click.echo(f"{post_id}: {count} comments")
        else:
            corrected = comment_service.reconcile_all()
            click.echo(f"{corrected} post(s) corrected")

    logging.info(f"Flask app created for '{config_name}' environment.")

    return app
