# melbox/api/auth/routes.py

import logging
import jwt
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import (
    create_access_token,
    create_refresh_token,
    jwt_required,
    get_jwt_identity,
    get_jwt
)
from firebase_admin import auth as firebase_auth
from marshmallow import ValidationError

from melbox.api.auth.schemas import SessionRequestSchema, LogoutRequestSchema, UserInfoSchema
from melbox.core.security import identity_claims

auth_bp = Blueprint('auth_bp', __name__)

@auth_bp.route('/session', methods=['POST'])
def create_session():
    """Exchange a Firebase ID token for our access/refresh JWTs. Registers the user on first sign-in."""
    auth_service = current_app.services['auth']
    try:
        validated_data = SessionRequestSchema().load(request.get_json() or {})
        user, is_new_user = auth_service.sign_in_with_id_token(validated_data['id_token'])

        claims = identity_claims(user)
        access_token = create_access_token(identity=user.user_id, additional_claims=claims)
        refresh_token = create_refresh_token(identity=user.user_id, additional_claims=claims)

        return jsonify({
            "access_token": access_token,
            "refresh_token": refresh_token,
            "is_new_user": is_new_user,
            "user_info": UserInfoSchema().dump(user)
        }), 200
    except ValidationError as e:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": e.messages}), 400
    except (ValueError, firebase_auth.InvalidIdTokenError) as e:
        logging.warning(f"Rejected Firebase ID token: {e}")
        return jsonify({"error_code": "INVALID_ID_TOKEN", "message": "The sign-in token is invalid or expired."}), 401
    except Exception as e:
        logging.error(f"Sign-in failed: {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "Sign-in failed."}), 500


@auth_bp.route('/token/refresh', methods=['POST'])
@jwt_required(refresh=True)
def refresh_token():
    """Issue a new access token from a valid, non-revoked refresh token."""
    claims = get_jwt()
    new_access_token = create_access_token(
        identity=get_jwt_identity(),
        additional_claims={k: claims.get(k) for k in ("email", "name", "is_admin")}
    )
    return jsonify(access_token=new_access_token), 200


@auth_bp.route('/logout', methods=['POST'])
def logout():
    """Revoke both tokens. Expired tokens are accepted so a stale client can still log out."""
    auth_service = current_app.services['auth']
    try:
        data = LogoutRequestSchema().load(request.get_json() or {})

        secret_key = current_app.config['JWT_SECRET_KEY']
        algorithm = current_app.config.get('JWT_ALGORITHM', 'HS256')

        decoded_access = jwt.decode(data['access_token'], secret_key, algorithms=[algorithm], options={"verify_exp": False})
        decoded_refresh = jwt.decode(data['refresh_token'], secret_key, algorithms=[algorithm], options={"verify_exp": False})

        auth_service.logout_user(decoded_access['jti'], decoded_access['exp'], decoded_refresh['jti'], decoded_refresh['exp'])

        return jsonify({"message": "Logged out."}), 200

    except ValidationError as e:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": e.messages}), 400
    except jwt.PyJWTError as e:
        logging.error(f"Could not decode JWT: {e}", exc_info=True)
        return jsonify({"error_code": "INVALID_TOKEN", "message": "Invalid token."}), 422
    except Exception as e:
        logging.error(f"Logout failed: {e}", exc_info=True)
        return jsonify({"error_code": "LOGOUT_FAILED", "message": "Logout failed."}), 500
