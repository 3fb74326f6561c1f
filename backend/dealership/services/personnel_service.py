# Overview: Staff accounts and workshop technicians.

from __future__ import annotations

import logging
from datetime import date

from flask import current_app

from ..extensions import db
from ..models import User, Technician, USER_ROLES, TECHNICIAN_STATUSES
from ..time_utils import utcnow, business_today
from ..validation import ValidationError, ConflictError, check_min_length
from .auth_service import hash_password, PasswordValidationError
from .concurrency import generate_id
from . import session_service

logger = logging.getLogger(__name__)


class PersonnelError(Exception):
    """Raised for staff/technician operation errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class PersonnelNotFoundError(PersonnelError):
    """Raised when a staff account or technician does not exist."""


# =============================================================================
# STAFF ACCOUNTS
# =============================================================================

def create_user(
    *,
    name: str,
    email: str,
    username: str,
    password: str,
    role: str = "USER",
) -> User:
    """
    Create a staff account.

    Raises ValidationError for bad fields, ConflictError when the username
    or email is taken.
    """
    errors: list[str] = []
    check_min_length(errors, name, 2, "Name must be at least 2 characters")
    check_min_length(errors, username, 3, "Username must be at least 3 characters")
    if not isinstance(email, str) or "@" not in email:
        errors.append("A valid email is required")
    if role not in USER_ROLES:
        errors.append(f"role must be one of {', '.join(USER_ROLES)}")
    if errors:
        raise ValidationError(errors)

    username = username.strip()
    email = email.strip().lower()

    existing = db.session.query(User).filter(
        db.or_(User.username == username, User.email == email)
    ).first()
    if existing:
        raise ConflictError("Username or email already exists")

    try:
        password_hash = hash_password(password, rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    except PasswordValidationError as e:
        raise ValidationError(str(e))

    user = User(
        id=generate_id("U"),
        name=name.strip(),
        email=email,
        username=username,
        role=role,
        password_hash=password_hash,
        is_active=True,
        created_at=utcnow(),
    )
    db.session.add(user)
    db.session.commit()

    logger.info("Staff account %s (%s) created", user.username, user.role)
    return user


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.created_at.asc(), User.id.asc()).all()


def get_user(user_id: str) -> User | None:
    return db.session.get(User, user_id)


def delete_user(user_id: str, *, acting_user_id: str | None = None) -> None:
    """
    Remove a staff account and its sessions.

    The last SUPER_ADMIN cannot be removed, and nobody can remove themselves.
    """
    user = db.session.get(User, user_id)
    if user is None:
        raise PersonnelNotFoundError("User not found", details={"user_id": user_id})

    if acting_user_id is not None and acting_user_id == user_id:
        raise PersonnelError("You cannot remove your own account", details={"user_id": user_id})

    if user.is_admin:
        admins = db.session.query(User).filter(User.role == "SUPER_ADMIN").count()
        if admins <= 1:
            raise PersonnelError("Cannot remove the last SUPER_ADMIN", details={"user_id": user_id})

    session_service.revoke_all_user_sessions(user_id)
    db.session.delete(user)
    db.session.commit()
    logger.info("Staff account %s removed", user.username)


# =============================================================================
# TECHNICIANS
# =============================================================================

def create_technician(
    *,
    name: str,
    specialization: str,
    status: str = "ACTIVE",
    joined_date: date | None = None,
    technician_id: str | None = None,
) -> Technician:
    errors: list[str] = []
    check_min_length(errors, name, 2, "Name must be at least 2 characters")
    check_min_length(errors, specialization, 2, "Specialization is required")
    if status not in TECHNICIAN_STATUSES:
        errors.append(f"status must be one of {', '.join(TECHNICIAN_STATUSES)}")
    if errors:
        raise ValidationError(errors)

    if db.session.query(Technician).filter_by(name=name.strip()).first():
        raise ConflictError(f"Technician {name.strip()} already exists")

    tech = Technician(
        id=technician_id or generate_id("T"),
        name=name.strip(),
        specialization=specialization.strip(),
        status=status,
        joined_date=joined_date or business_today(),
    )
    db.session.add(tech)
    db.session.commit()

    logger.info("Technician %s registered", tech.name)
    return tech


def list_technicians() -> list[Technician]:
    return db.session.query(Technician).order_by(Technician.name.asc()).all()


def set_technician_status(technician_id: str, status: str) -> Technician:
    if status not in TECHNICIAN_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(TECHNICIAN_STATUSES)}")

    tech = db.session.get(Technician, technician_id)
    if tech is None:
        raise PersonnelNotFoundError("Technician not found", details={"technician_id": technician_id})

    tech.status = status
    db.session.commit()
    return tech


def delete_technician(technician_id: str) -> None:
    """Existing jobs keep the mechanic's name; only new assignments are blocked."""
    tech = db.session.get(Technician, technician_id)
    if tech is None:
        raise PersonnelNotFoundError("Technician not found", details={"technician_id": technician_id})
    db.session.delete(tech)
    db.session.commit()
    logger.info("Technician %s removed", tech.name)
