# socialsphere/api/auth/routes.py

import logging
import jwt
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import create_access_token, jwt_required, get_jwt_identity, get_jwt
from marshmallow import ValidationError

from socialsphere.api.auth.schemas import SignUpSchema, SignInSchema, LogoutRequestSchema
from socialsphere.api.users.schemas import UserProfileResponseSchema
from socialsphere.core.errors import AuthError
from socialsphere.core.security import current_identity

auth_bp = Blueprint('auth_bp', __name__)

# AuthError category -> HTTP status
_AUTH_STATUS = {
    AuthError.ACCOUNT_EXISTS: 409,
    AuthError.WEAK_PASSWORD: 400,
    AuthError.TOO_MANY_ATTEMPTS: 429,
    AuthError.NETWORK_ERROR: 503,
}


def auth_error_response(err: AuthError):
    status = _AUTH_STATUS.get(err.category, 401)
    return jsonify({"error_code": err.category, "message": err.message}), status


@auth_bp.route('/signup', methods=['POST'])
def sign_up():
    """Creates an account and its profile, and returns a session."""
    auth_service = current_app.services['auth']
    try:
        data = SignUpSchema().load(request.get_json() or {})
        profile, tokens = auth_service.sign_up(data['email'], data['password'], data['name'], data['bio'])
        return jsonify({
            **tokens,
            "user_id": profile.user_id,
            "profile": UserProfileResponseSchema().dump(profile)
        }), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except AuthError as err:
        return auth_error_response(err)


@auth_bp.route('/signin', methods=['POST'])
def sign_in():
    auth_service = current_app.services['auth']
    user_service = current_app.services['users']
    try:
        data = SignInSchema().load(request.get_json() or {})
        identity, tokens = auth_service.sign_in(data['email'], data['password'])
        profile = user_service.get_profile_or_fallback(identity)
        return jsonify({
            **tokens,
            "user_id": identity.uid,
            "profile": UserProfileResponseSchema().dump(profile)
        }), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except AuthError as err:
        return auth_error_response(err)


@auth_bp.route('/token/refresh', methods=['POST'])
@jwt_required(refresh=True)
def refresh_token():
    """Issues a new access token from a valid refresh token."""
    claims = get_jwt()
    new_access_token = create_access_token(
        identity=get_jwt_identity(),
        additional_claims={'email': claims.get('email'), 'name': claims.get('name')}
    )
    return jsonify(access_token=new_access_token), 200


@auth_bp.route('/logout', methods=['POST'])
def logout():
    """Revokes the given access and refresh tokens."""
    auth_service = current_app.services['auth']
    try:
        data = LogoutRequestSchema().load(request.get_json() or {})
        auth_service.sign_out(data['access_token'], data['refresh_token'])
        return jsonify({"message": "Signed out."}), 200
    except ValidationError as e:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": e.messages}), 400
    except jwt.PyJWTError as e:
        logging.error(f"JWT decode error on logout: {e}", exc_info=True)
        return jsonify({"error_code": "INVALID_TOKEN", "message": "Invalid token."}), 422


@auth_bp.route('/me', methods=['GET'])
@jwt_required()
def me():
    """Profile of the signed-in user, synthesized from the session if the stored one is missing."""
    user_service = current_app.services['users']
    profile = user_service.get_profile_or_fallback(current_identity())
    return jsonify(UserProfileResponseSchema().dump(profile)), 200
