# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import auth_service
from .services.app_store import get_app_store


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1]


def require_auth(f):
    """
    Require a live session.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.session_context: The full SessionContext object
    - g.token: The bearer token presented

    Also makes sure the AppStore has been loaded at least once, so a request
    arriving after a restart with a still-valid token sees data.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        context = auth_service.get_session(token)
        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.session_context = context
        g.token = token

        get_app_store().ensure_loaded()

        return f(*args, **kwargs)

    return decorated_function


def current_user_id() -> int | None:
    user = getattr(g, "current_user", None)
    return user.id if user is not None else None
