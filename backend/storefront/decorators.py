# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import session_service


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a valid session token.

    Sets g.current_user to the authenticated User. Returns 401 for a missing,
    invalid, expired or revoked token, or a deactivated account.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authentication required", "code": "AUTH_ERROR", "details": {}}), 401

        user = session_service.validate_session(token)
        if not user:
            return jsonify({"error": "Invalid or expired token", "code": "AUTH_ERROR", "details": {}}), 401

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function


def require_developer(f):
    """Require the authenticated user to be the developer."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not hasattr(g, 'current_user'):
            return jsonify({"error": "Authentication required", "code": "AUTH_ERROR", "details": {}}), 401
        if not g.current_user.is_developer:
            return jsonify({"error": "Developer access required", "code": "FORBIDDEN", "details": {}}), 403
        return f(*args, **kwargs)
    return decorated_function
