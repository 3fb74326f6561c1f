# Overview: Staff password hashing and credential checks.

"""
Authentication Service

WHY: Every stock movement and every closed day is attributed to a named
staff member, so counter access goes through a username/password login.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters, at least one letter and one digit
- Session tokens managed separately (see session_service.py)
"""

import re

import bcrypt

from ..extensions import db
from ..models import User


class AuthError(Exception):
    """Raised when credentials are rejected."""
    pass


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r"[A-Za-z]", password):
        raise PasswordValidationError("Password must contain at least one letter")

    if not re.search(r"\d", password):
        raise PasswordValidationError("Password must contain at least one digit")


def hash_password(password: str, *, rounds: int = 12) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """True if the password matches the stored bcrypt hash."""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash (e.g. imported from a bad snapshot)
        return False


def authenticate(username: str, password: str) -> User:
    """
    Check a username (or email) and password.

    Raises AuthError with the same message for unknown users, inactive
    accounts and wrong passwords.
    """
    if not username or not password:
        raise AuthError("Invalid credentials")

    user = db.session.query(User).filter(
        db.or_(User.username == username, User.email == username),
        User.is_active.is_(True),
    ).first()

    if user is None or not verify_password(password, user.password_hash):
        raise AuthError("Invalid credentials")

    return user
