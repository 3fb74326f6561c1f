from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, to_iso_date, parse_iso_datetime, parse_iso_date

USER_ROLES = ("SUPER_ADMIN", "USER")
TECHNICIAN_STATUSES = ("ACTIVE", "ON_BREAK", "OFF_DUTY")


class User(db.Model):
    """
    Staff account.

    SUPER_ADMIN may edit the catalog, adjust stock by hand, manage personnel
    and close the day. USER runs the sales counter and the workshop floor.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("username", name="uq_users_username"),
    )

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    username = db.Column(db.String(64), nullable=False)
    role = db.Column(db.String(16), nullable=False, default="USER")

    # bcrypt hash, never the plaintext password
    password_hash = db.Column(db.String(255), nullable=False)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False)

    @property
    def is_admin(self) -> bool:
        return self.role == "SUPER_ADMIN"

    def __repr__(self) -> str:
        return f"<User id={self.id!r} username={self.username!r} role={self.role}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "username": self.username,
            "role": self.role,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }

    def to_snapshot(self) -> dict:
        data = self.to_dict()
        data["password_hash"] = self.password_hash
        return data

    @classmethod
    def from_snapshot(cls, data: dict) -> "User":
        return cls(
            id=data["id"],
            name=data["name"],
            email=data["email"],
            username=data["username"],
            role=data["role"],
            password_hash=data["password_hash"],
            is_active=data.get("is_active", True),
            created_at=parse_iso_datetime(data["created_at"]),
        )


class Technician(db.Model):
    """Workshop mechanic that jobs can be assigned to."""
    __tablename__ = "technicians"

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(255), nullable=False, unique=True)
    specialization = db.Column(db.String(255), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="ACTIVE")
    joined_date = db.Column(db.Date, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "specialization": self.specialization,
            "status": self.status,
            "joined_date": to_iso_date(self.joined_date),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Technician":
        return cls(
            id=data["id"],
            name=data["name"],
            specialization=data["specialization"],
            status=data["status"],
            joined_date=parse_iso_date(data["joined_date"]),
        )


class SessionToken(db.Model):
    """
    Bearer session for a staff account.

    SECURITY NOTES:
    - Tokens stored hashed in database (SHA-256)
    - Absolute timeout from SESSION_TTL_HOURS
    - Revocable on logout or account removal
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_user_active", "user_id", "is_revoked"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Token hash (never store plaintext tokens!)
    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False, index=True)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False)
    revoked_at = db.Column(db.DateTime, nullable=True)

    user = db.relationship("User", backref=db.backref("sessions", lazy=True, cascade="all, delete-orphan"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
        }
