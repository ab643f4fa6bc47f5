# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes.

Sign-in, refresh and sign-out publish on the auth event stream, which is what
loads and clears the cached collections (see services/app_store.py).
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services.auth_service import AuthError, PasswordValidationError
from ..decorators import require_auth, bearer_token


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _session_payload(context, token: str, message: str) -> dict:
    return {
        "user": context.user.to_dict(),
        "token": token,
        "session": context.session.to_dict(),
        "message": message,
    }


@auth_bp.post("/signup")
def signup_route():
    """Create an account. Does not sign in."""
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")
    if not all([email, password]):
        return jsonify({"error": "email and password required"}), 400

    try:
        user = auth_service.sign_up(email, password)
    except PasswordValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"user": user.to_dict(), "message": "Registration successful"}), 201


@auth_bp.post("/login")
def login_route():
    """
    Authenticate and create a session token.

    Token must be included as "Authorization: Bearer <token>" on protected routes.
    """
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")
    if not all([email, password]):
        return jsonify({"error": "email and password required"}), 400

    try:
        context, token = auth_service.sign_in(
            email,
            password,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
    except AuthError as e:
        return jsonify({"error": str(e)}), 401
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(_session_payload(context, token, "Login successful")), 200


@auth_bp.post("/refresh")
def refresh_route():
    """Exchange the presented token for a fresh one; the old token stops working."""
    token = bearer_token()
    if not token:
        return jsonify({"error": "Authorization header required"}), 401

    try:
        context, new_token = auth_service.refresh_session(
            token,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
    except AuthError as e:
        return jsonify({"error": str(e)}), 401
    except Exception:
        current_app.logger.exception("Failed to refresh session")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(_session_payload(context, new_token, "Token refreshed")), 200


@auth_bp.post("/logout")
def logout_route():
    token = bearer_token()
    if not token:
        return jsonify({"error": "Authorization header required"}), 401

    try:
        revoked = auth_service.sign_out(token)
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500

    if not revoked:
        return jsonify({"error": "Invalid or expired token"}), 401
    return jsonify({"message": "Logout successful"}), 200


@auth_bp.get("/session")
@require_auth
def session_route():
    """Current user and session for a live token."""
    return jsonify({
        "user": g.current_user.to_dict(),
        "session": g.session_context.session.to_dict(),
    }), 200
