# melbox/core/security.py
from functools import wraps
from typing import Optional, Dict, Any
from flask import jsonify
from flask_jwt_extended import verify_jwt_in_request, get_jwt, get_jwt_identity

from melbox.models.user import User


def identity_claims(user: User) -> Dict[str, Any]:
    """Extra claims embedded in every access/refresh token we issue."""
    return {
        "email": user.email,
        "name": user.display_name,
        "is_admin": user.is_admin,
    }


def current_actor(optional: bool = False) -> Optional[Dict[str, Any]]:
    """
    The authenticated caller as a plain dict:
    {'user_id', 'email', 'name', 'is_admin'}.
    Must be called inside a request already checked by @jwt_required.
    Returns None for anonymous callers when optional=True.
    """
    user_id = get_jwt_identity()
    if user_id is None:
        if optional:
            return None
        raise PermissionError("Authentication is required.")
    claims = get_jwt()
    return {
        "user_id": user_id,
        "email": claims.get("email"),
        "name": claims.get("name"),
        "is_admin": bool(claims.get("is_admin", False)),
    }


def admin_required(f):
    """Like @jwt_required(), but also requires the is_admin claim."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        verify_jwt_in_request()
        if not get_jwt().get("is_admin", False):
            return jsonify({"error_code": "ADMIN_ONLY", "message": "Admin access is required."}), 403
        return f(*args, **kwargs)

    return decorated_function
