from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, parse_iso_datetime

NOTIFICATION_TYPES = ("LOW_STOCK", "REVENUE", "WORKSHOP", "SYSTEM")
NOTIFICATION_PRIORITIES = ("HIGH", "MEDIUM", "LOW")


class Notification(db.Model):
    """Operator-facing message (low stock alerts, automatic closes...)."""
    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_read_created", "is_read", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(16), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    priority = db.Column(db.String(16), nullable=False, default="LOW")
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "priority": self.priority,
            "is_read": self.is_read,
            "timestamp": to_utc_z(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Notification":
        return cls(
            id=data["id"],
            type=data["type"],
            title=data["title"],
            message=data["message"],
            priority=data["priority"],
            is_read=data["is_read"],
            created_at=parse_iso_datetime(data["timestamp"]),
        )
