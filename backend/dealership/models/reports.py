from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, to_iso_date, parse_iso_datetime, parse_iso_date


class DailyReport(db.Model):
    """
    Immutable archive of one closed business day.

    Written only by closing_service.close_day(). business_date is the day
    that was closed, not the day the close ran on.
    """
    __tablename__ = "daily_reports"
    __table_args__ = (
        db.Index("ix_daily_reports_closed_at", "closed_at"),
    )

    id = db.Column(db.String(64), primary_key=True)
    business_date = db.Column(db.Date, nullable=False, index=True)
    closed_at = db.Column(db.DateTime, nullable=False)

    total_sales = db.Column(db.Integer, nullable=False, default=0)
    total_workshop = db.Column(db.Integer, nullable=False, default=0)
    gross_revenue = db.Column(db.Integer, nullable=False, default=0)
    sales_count = db.Column(db.Integer, nullable=False, default=0)
    jobs_count = db.Column(db.Integer, nullable=False, default=0)
    parts_sold_volume = db.Column(db.Integer, nullable=False, default=0)

    # "manual" or "automatic"
    trigger = db.Column(db.String(16), nullable=False, default="manual")
    closed_by = db.Column(db.String(255), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": to_iso_date(self.business_date),
            "closed_at": to_utc_z(self.closed_at),
            "total_sales": self.total_sales,
            "total_workshop": self.total_workshop,
            "gross_revenue": self.gross_revenue,
            "sales_count": self.sales_count,
            "jobs_count": self.jobs_count,
            "parts_sold_volume": self.parts_sold_volume,
            "trigger": self.trigger,
            "closed_by": self.closed_by,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DailyReport":
        return cls(
            id=data["id"],
            business_date=parse_iso_date(data["date"]),
            closed_at=parse_iso_datetime(data["closed_at"]),
            total_sales=data["total_sales"],
            total_workshop=data["total_workshop"],
            gross_revenue=data["gross_revenue"],
            sales_count=data["sales_count"],
            jobs_count=data["jobs_count"],
            parts_sold_volume=data["parts_sold_volume"],
            trigger=data.get("trigger", "manual"),
            closed_by=data.get("closed_by"),
        )


class ShiftMarker(db.Model):
    """
    Single-row table holding the last-closed-date marker.

    The marker names the business day currently open: close_day() archives
    under this date and then moves it to today.
    """
    __tablename__ = "shift_markers"

    MARKER_ID = 1

    id = db.Column(db.Integer, primary_key=True)
    last_closed_date = db.Column(db.Date, nullable=False)
    updated_at = db.Column(db.DateTime, nullable=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}
