# Overview: Service-layer operations for session tokens; encapsulates token storage and validation.

"""
Session token management.

Tokens are 32 random bytes (hex) handed to the client once; only their
SHA-256 hash is stored. A session is valid until it expires or is revoked.
"""

import secrets
import hashlib
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from ..time_utils import utcnow


@dataclass
class SessionContext:
    """Session lookup result: the signed-in user and their session row."""
    user: User
    session: SessionToken


def _absolute_timeout() -> timedelta:
    return timedelta(hours=current_app.config.get("SESSION_ABSOLUTE_TIMEOUT_HOURS", 24))


def generate_token() -> str:
    """64-character hex token (32 bytes of entropy), from the OS CSPRNG."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    SHA-256 hash for storage.

    Tokens are already high-entropy, so a fast hash is enough here (bcrypt is
    reserved for passwords).
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None
) -> tuple[SessionToken, str]:
    """
    Create a new session for a user.

    Returns (session_record, plaintext_token). Raises ValueError for an
    unknown or inactive user.
    """
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user or not user.is_active:
        raise ValueError("User not found")

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + _absolute_timeout(),
        user_agent=user_agent,
        ip_address=ip_address,
        is_revoked=False
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def validate_session(token: str) -> SessionContext | None:
    """
    Return the SessionContext for a token, or None if the token is unknown,
    revoked, expired, or belongs to a deactivated user.

    Updates last_used_at on success.
    """
    now = utcnow()

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return None

    if session.expires_at < now:
        return None

    user = session.user
    if not user or not user.is_active:
        session.is_revoked = True
        session.revoked_at = now
        session.revoked_reason = "User account deactivated"
        db.session.commit()
        return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext(user=user, session=session)


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """Revoke a session token. Returns False if no live session matched."""
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return False

    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason

    db.session.commit()
    return True
