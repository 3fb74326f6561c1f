"""
Shift Closing Service - end-of-day archival

WHY: The sales and workshop tables only hold the open business day. Closing
the day freezes its totals into an immutable DailyReport and empties the
working tables so the next day's counters start at zero.

DESIGN PRINCIPLES:
- Report insert, sales delete, jobs delete and marker advance happen in one
  DB transaction: readers see either the day before the close or the day
  after it, never a mix.
- The report is dated with the business day being closed (the marker),
  not with the day the close runs on.
- Automatic closes run at most once per calendar date: they only fire when
  the marker differs from today, and firing moves the marker to today.
- Reports are never updated or deleted.
"""

from __future__ import annotations

import logging
from datetime import date

from ..extensions import db
from ..models import DailyReport, Sale, ServiceJob, ShiftMarker
from ..time_utils import utcnow, business_today
from .concurrency import lock_for_update, run_with_retry, generate_id
from . import notification_service

logger = logging.getLogger(__name__)

TRIGGERS = ("manual", "automatic")


class ClosingError(Exception):
    """Raised for day closing errors."""
    pass


def _get_or_create_marker(*, lock: bool = False) -> ShiftMarker:
    query = db.session.query(ShiftMarker).filter_by(id=ShiftMarker.MARKER_ID)
    if lock:
        query = lock_for_update(query)
    marker = query.first()
    if marker is None:
        # First run: the day being traded is today
        marker = ShiftMarker(
            id=ShiftMarker.MARKER_ID,
            last_closed_date=business_today(),
            updated_at=utcnow(),
        )
        db.session.add(marker)
        db.session.flush()
    return marker


def get_last_closed_date() -> date:
    marker = _get_or_create_marker()
    db.session.commit()
    return marker.last_closed_date


def set_last_closed_date(value: date) -> None:
    marker = _get_or_create_marker(lock=True)
    marker.last_closed_date = value
    marker.updated_at = utcnow()
    db.session.commit()


def compute_open_totals() -> dict:
    """
    Aggregates of the open business day.

    workshop_total only counts COMPLETED jobs; queued and in-progress jobs
    have no bill yet.
    """
    sales = db.session.query(Sale).all()
    completed = db.session.query(ServiceJob).filter(ServiceJob.status == "COMPLETED").all()

    sales_total = sum(s.total for s in sales)
    workshop_total = sum(j.total for j in completed)

    return {
        "total_sales": sales_total,
        "total_workshop": workshop_total,
        "gross_revenue": sales_total + workshop_total,
        "sales_count": len(sales),
        "jobs_count": len(completed),
        "parts_sold_volume": sum(s.units for s in sales),
    }


def close_day(trigger: str = "manual", *, closed_by: str | None = None, today: date | None = None) -> DailyReport:
    """
    Archive the open business day and reset the working counters.

    trigger="automatic" additionally emits a HIGH priority SYSTEM
    notification, since no operator is watching.
    """
    if trigger not in TRIGGERS:
        raise ClosingError(f"trigger must be one of {', '.join(TRIGGERS)}")
    return _close(trigger, closed_by=closed_by, today=today or business_today(), only_if_due=False)


def _close(trigger: str, *, closed_by: str | None, today: date, only_if_due: bool) -> DailyReport | None:
    def _op():
        marker = _get_or_create_marker(lock=True)

        # Checked under the marker lock so two racing start-ups close once
        if only_if_due and marker.last_closed_date == today:
            db.session.commit()
            return None

        totals = compute_open_totals()

        report = DailyReport(
            id=generate_id("DR"),
            business_date=marker.last_closed_date,
            closed_at=utcnow(),
            trigger=trigger,
            closed_by=closed_by,
            **totals,
        )
        db.session.add(report)

        # ORM deletes so sale items / job lines cascade
        for sale in db.session.query(Sale).all():
            db.session.delete(sale)
        for job in db.session.query(ServiceJob).all():
            db.session.delete(job)

        marker.last_closed_date = today
        marker.updated_at = report.closed_at

        if trigger == "automatic":
            notification_service.emit(
                "SYSTEM",
                "Auto-Shift Closure",
                f"Previous shift ({report.business_date.isoformat()}) archived automatically. "
                "Today's counter reset to 0.",
                "HIGH",
                commit=False,
            )

        db.session.commit()
        return report

    report = run_with_retry(_op)
    if report is None:
        return None

    logger.info(
        "Day %s closed (%s): gross=%s sales=%s jobs=%s",
        report.business_date, trigger, report.gross_revenue, report.sales_count, report.jobs_count,
    )
    return report


def auto_close_if_due(today: date | None = None) -> DailyReport | None:
    """
    Close the previous business day if the date has rolled over.

    Safe to call on every start-up or request: when the marker already equals
    today nothing is written and None is returned.
    """
    today = today or business_today()
    report = _close("automatic", closed_by=None, today=today, only_if_due=True)
    if report is not None:
        logger.info("System detected date change. Auto-archived %s before trading on %s.", report.business_date, today)
    return report


def list_reports(limit: int | None = None) -> list[DailyReport]:
    """Archived reports, newest first."""
    q = db.session.query(DailyReport).order_by(DailyReport.closed_at.desc(), DailyReport.id.desc())
    if limit:
        q = q.limit(limit)
    return q.all()


def get_report(report_id: str) -> DailyReport | None:
    return db.session.get(DailyReport, report_id)
