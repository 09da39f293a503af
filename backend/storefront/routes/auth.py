# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/storefront/routes/auth.py
"""
Authentication API routes

- First-run signup creates the single developer account
- The developer creates salesman accounts
- Session management with bearer tokens
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..engine.errors import LedgerError
from ..services import auth_service
from ..services import session_service
from ..decorators import bearer_token, require_auth, require_developer
from ..validation import json_body


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _session_payload(user, status: int):
    session, token = session_service.create_session(
        user_id=user.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    return jsonify({
        "user": user.to_dict(),
        "token": token,
        "session": session.to_dict(),
    }), status


@auth_bp.get("/check-developer")
def check_developer_route():
    """Public: lets the signup screen know whether first-run signup is still open."""
    return jsonify({"exists": auth_service.developer_exists()})


@auth_bp.post("/signup")
def signup_route():
    """
    Create the developer account (first run only) and log it in.

    Returns 403 once a developer exists.
    """
    try:
        data = json_body()
        user = auth_service.signup_developer(data.get("name"), data.get("email"), data.get("password"))
        return _session_payload(user, 201)
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to sign up developer")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/login")
def login_route():
    """Authenticate by email and password and create a session token."""
    try:
        data = json_body()
        email = data.get("email") or data.get("username")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"error": "email and password required", "code": "VALIDATION_ERROR", "details": {}}), 400

        user = auth_service.authenticate(email, password)
        if not user:
            current_app.logger.info("Failed login for %s", email)
            return jsonify({"error": "Invalid credentials", "code": "AUTH_ERROR", "details": {}}), 401

        return _session_payload(user, 200)

    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """Revoke the bearer token."""
    try:
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authorization header required", "code": "AUTH_ERROR", "details": {}}), 401

        if not session_service.revoke_session(token, reason="User logout"):
            return jsonify({"error": "Invalid or expired token", "code": "AUTH_ERROR", "details": {}}), 401

        return jsonify({"message": "Logout successful"}), 200

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict()})


@auth_bp.post("/create-salesman")
@require_auth
@require_developer
def create_salesman_route():
    try:
        data = json_body()
        salesman = auth_service.create_salesman(
            data.get("name"), data.get("email"), data.get("password"), created_by=g.current_user,
        )
        return jsonify({"salesman": salesman.to_dict()}), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to create salesman")
        return jsonify({"error": "Internal server error"}), 500
