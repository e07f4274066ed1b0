# Overview: Service-layer operations for session; encapsulates business logic and database work.

"""
Session Token Management Service

Tokens are cryptographically secure, hashed in the database, and
time-limited.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Absolute lifetime from SESSION_LIFETIME (24 hours by default)
- Deleted on logout; expired rows are treated as absent and removed
"""

from __future__ import annotations

import secrets
import hashlib
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from ..errors import Unauthenticated, NotFound
from stockroom.time_utils import utcnow


DEFAULT_SESSION_LIFETIME = timedelta(hours=24)


def _session_lifetime() -> timedelta:
    return current_app.config.get("SESSION_LIFETIME", DEFAULT_SESSION_LIFETIME)


def generate_token() -> str:
    """
    Generate cryptographically secure random token.

    Returns 64-character hex string (32 bytes of entropy).
    This is the plaintext token sent to client (never stored).
    """
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    Tokens are already high-entropy (unlike passwords), so a fast hash is
    sufficient.
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None,
    commit: bool = True,
) -> tuple[SessionToken, str]:
    """
    Create new session for user.

    Returns (session_record, plaintext_token).
    Client receives plaintext_token, database stores only the hash.
    """
    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        expires_at=now + _session_lifetime(),
        user_agent=user_agent[:512] if user_agent else None,
        ip_address=ip_address,
    )

    db.session.add(session)
    if commit:
        db.session.commit()
    else:
        db.session.flush()

    return session, plaintext_token


def find_session(token: str | None) -> SessionToken | None:
    """
    Return the live session for token, or None.

    Expired sessions are deleted on sight.
    """
    if not token:
        return None

    session = db.session.query(SessionToken).filter_by(token_hash=hash_token(token)).first()
    if not session:
        return None

    if session.expires_at <= utcnow():
        db.session.delete(session)
        db.session.commit()
        return None

    return session


def current_user(token: str | None) -> User:
    """
    Resolve the user behind a session token.

    Raises Unauthenticated for a missing, unknown or expired token and
    NotFound when the session outlived its user.
    """
    session = find_session(token)
    if not session:
        raise Unauthenticated("Not authenticated")

    user = db.session.get(User, session.user_id)
    if not user:
        raise NotFound("User not found")

    if not user.is_active:
        db.session.delete(session)
        db.session.commit()
        raise Unauthenticated("Account is deactivated")

    return user


def delete_session(token: str | None) -> bool:
    """
    Delete session by token (logout).

    Returns True if a session was deleted, False if none matched. Callers
    treat both as success.
    """
    if not token:
        return False

    deleted = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token)
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted > 0


def delete_all_user_sessions(user_id: int, commit: bool = True) -> int:
    """
    Delete every session of a user. Returns count of sessions deleted.

    Used after a password reset to force re-authentication on all devices.
    """
    deleted = db.session.query(SessionToken).filter_by(
        user_id=user_id
    ).delete(synchronize_session=False)
    if commit:
        db.session.commit()
    return deleted


def cleanup_expired_sessions() -> int:
    """Delete expired sessions. Returns count of sessions deleted."""
    deleted = db.session.query(SessionToken).filter(
        SessionToken.expires_at <= utcnow()
    ).delete(synchronize_session=False)

    db.session.commit()
    return deleted
