# Overview: Bearer session tokens for logged-in staff.

"""
Session Token Management Service

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage
- Absolute timeout from SESSION_TTL_HOURS (24h by default)
- Revocable on logout or account removal
"""

import hashlib
import secrets
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from ..time_utils import utcnow


def generate_token() -> str:
    """64-character hex token sent to the client; never stored."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    WHY SHA-256 not bcrypt: Tokens are already high-entropy (unlike passwords).
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _session_ttl() -> timedelta:
    return timedelta(hours=int(current_app.config.get("SESSION_TTL_HOURS", 24)))


def create_session(user_id: str) -> tuple[SessionToken, str]:
    """
    Create a new session for a staff account.

    Returns (session_record, plaintext_token).
    """
    user = db.session.get(User, user_id)
    if user is None:
        raise ValueError("User not found")
    if not user.is_active:
        raise ValueError("User account is not active")

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        expires_at=now + _session_ttl(),
        is_revoked=False,
    )
    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def validate_session(token: str) -> User | None:
    """
    Resolve a bearer token to its user.

    Returns None if the token is unknown, expired or revoked, or the account
    has been deactivated.
    """
    if not token:
        return None

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if session is None:
        return None

    now = utcnow()
    if session.expires_at < now:
        return None

    user = session.user
    if user is None or not user.is_active:
        session.is_revoked = True
        session.revoked_at = now
        db.session.commit()
        return None

    return user


def revoke_session(token: str) -> bool:
    """Revoke a session on logout. Returns False if no live session matched."""
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if session is None:
        return False

    session.is_revoked = True
    session.revoked_at = utcnow()
    db.session.commit()
    return True


def revoke_all_user_sessions(user_id: str) -> int:
    """Revoke every live session of a user; returns how many were revoked."""
    now = utcnow()
    count = db.session.query(SessionToken).filter(
        SessionToken.user_id == user_id,
        SessionToken.is_revoked.is_(False),
    ).update({SessionToken.is_revoked: True, SessionToken.revoked_at: now}, synchronize_session=False)
    db.session.commit()
    return count
