# Overview: Service-layer operations for auth; sign-up/in/out, token refresh, and the auth change stream.

"""
Authentication collaborator.

Accounts are email + password (bcrypt, cost factor 12). Signing in issues a
session token (see session_service.py). Every session change is published on
the app's AuthEventBus:

- SIGNED_IN        after a successful sign-in
- TOKEN_REFRESHED  after a token is exchanged for a fresh one
- SIGNED_OUT       after sign-out

The AppStore subscribes to this stream: it reloads on SIGNED_IN and
TOKEN_REFRESHED and clears itself on SIGNED_OUT.
"""

from __future__ import annotations

import logging
import re
from typing import Callable

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User
from ..time_utils import utcnow
from . import session_service
from .session_service import SessionContext


logger = logging.getLogger(__name__)

SIGNED_IN = "SIGNED_IN"
TOKEN_REFRESHED = "TOKEN_REFRESHED"
SIGNED_OUT = "SIGNED_OUT"

EXTENSION_KEY = "simdesk.auth_events"

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class AuthError(Exception):
    """Raised when credentials or a session token are rejected."""
    pass


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class AuthEventBus:
    """Synchronous publish/subscribe channel for session changes."""

    def __init__(self):
        self._listeners: list[Callable] = []

    def subscribe(self, listener: Callable) -> Callable[[], None]:
        """Register listener(event, session_context). Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event: str, context: SessionContext | None = None) -> None:
        for listener in list(self._listeners):
            listener(event, context)


def get_auth_events() -> AuthEventBus:
    return current_app.extensions[EXTENSION_KEY]


def _emit(event: str, context: SessionContext | None) -> None:
    bus = current_app.extensions.get(EXTENSION_KEY)
    if bus is not None:
        bus.emit(event, context)


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Validate strength, then hash with bcrypt (cost factor 12)."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt check. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def sign_up(email: str, password: str) -> User:
    """
    Create an account.

    Raises ValueError for a malformed or already registered email and
    PasswordValidationError for a weak password.
    """
    email = (email or "").strip().lower()
    if not _EMAIL_RE.match(email):
        raise ValueError("A valid email is required")

    existing = db.session.query(User).filter_by(email=email).first()
    if existing:
        raise ValueError("Email already registered")

    user = User(email=email, password_hash=hash_password(password or ""))
    db.session.add(user)
    db.session.commit()
    logger.info("Registered user %s", user.id)
    return user


def authenticate(email: str, password: str) -> User | None:
    """Return the active user for these credentials, or None."""
    user = db.session.query(User).filter(
        User.email == (email or "").strip().lower(),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password or "", user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None


def sign_in(
    email: str,
    password: str,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionContext, str]:
    """
    Sign in with email and password.

    Returns (session_context, plaintext_token) and publishes SIGNED_IN.
    Raises AuthError on bad credentials.
    """
    user = authenticate(email, password)
    if not user:
        raise AuthError("Invalid login credentials")

    session, token = session_service.create_session(user.id, user_agent=user_agent, ip_address=ip_address)
    context = SessionContext(user=user, session=session)
    _emit(SIGNED_IN, context)
    return context, token


def get_session(token: str | None) -> SessionContext | None:
    """Current-session lookup."""
    if not token:
        return None
    return session_service.validate_session(token)


def refresh_session(
    token: str,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionContext, str]:
    """
    Exchange a live token for a fresh one (the old token is revoked).

    Publishes TOKEN_REFRESHED. Raises AuthError if the token is not live.
    """
    context = session_service.validate_session(token)
    if not context:
        raise AuthError("Invalid or expired token")

    session_service.revoke_session(token, reason="Token refreshed")
    session, new_token = session_service.create_session(
        context.user.id, user_agent=user_agent, ip_address=ip_address
    )
    refreshed = SessionContext(user=context.user, session=session)
    _emit(TOKEN_REFRESHED, refreshed)
    return refreshed, new_token


def sign_out(token: str) -> bool:
    """
    Revoke the session and publish SIGNED_OUT.

    Returns False if the token matched no live session (nothing is published).
    """
    if not session_service.revoke_session(token):
        return False
    _emit(SIGNED_OUT, None)
    return True
