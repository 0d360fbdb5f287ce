# socialsphere/core/security.py
from flask import Flask, current_app, jsonify
from flask_jwt_extended import JWTManager, get_jwt, get_jwt_identity

from socialsphere.models.user import Identity


def init_jwt(app: Flask) -> JWTManager:
    """Attach flask-jwt-extended with the blocklist check and JSON error bodies."""
    jwt_manager = JWTManager(app)

    @jwt_manager.token_in_blocklist_loader
    def check_if_token_revoked(jwt_header, jwt_payload: dict) -> bool:
        return current_app.services['auth'].is_token_revoked(jwt_payload)

    @jwt_manager.revoked_token_loader
    def revoked_token_callback(jwt_header, jwt_payload):
        return jsonify({"error_code": "TOKEN_REVOKED", "message": "This session has ended. Please sign in again."}), 401

    @jwt_manager.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return jsonify({"error_code": "TOKEN_EXPIRED", "message": "Session expired."}), 401

    @jwt_manager.unauthorized_loader
    def missing_token_callback(reason):
        return jsonify({"error_code": "UNAUTHORIZED", "message": reason}), 401

    @jwt_manager.invalid_token_loader
    def invalid_token_callback(reason):
        return jsonify({"error_code": "INVALID_TOKEN", "message": reason}), 422

    return jwt_manager


def current_identity() -> Identity:
    """Identity of the request's verified access token."""
    claims = get_jwt()
    return Identity(uid=get_jwt_identity(), email=claims.get('email'), display_name=claims.get('name'))


def optional_identity():
    """Like current_identity, for routes declared with jwt_required(optional=True)."""
    uid = get_jwt_identity()
    if not uid:
        return None
    return current_identity()
