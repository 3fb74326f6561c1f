# Overview: Dashboard figures for the open business day and the report archive.

from __future__ import annotations

from ..extensions import db
from ..models import DailyReport, ServiceJob, Technician
from ..time_utils import utcnow, to_utc_z
from .closing_service import compute_open_totals
from .inventory_service import list_low_stock


def technician_workload() -> list[dict]:
    """
    Per technician: open jobs and efficiency.

    efficiency is the share of the technician's jobs in the open day that are
    COMPLETED, as a whole percentage; 100 when nothing is assigned.
    """
    jobs = db.session.query(ServiceJob).all()
    rows = []
    for tech in db.session.query(Technician).order_by(Technician.name.asc()).all():
        assigned = [j for j in jobs if j.mechanic == tech.name]
        completed = sum(1 for j in assigned if j.status == "COMPLETED")
        rows.append({
            "name": tech.name,
            "status": tech.status,
            "jobs": len(assigned) - completed,
            "assigned": len(assigned),
            "completed": completed,
            "efficiency": (completed * 100) // len(assigned) if assigned else 100,
        })
    return rows


def archived_revenue() -> int:
    return int(db.session.query(db.func.coalesce(db.func.sum(DailyReport.gross_revenue), 0)).scalar())


def dashboard() -> dict:
    """
    Snapshot of the counters shown on the dashboard.

    monthly_total is the gross revenue of every archived day plus the open
    day; the archive is never pruned so it is a running ledger total.
    """
    totals = compute_open_totals()
    open_revenue = totals["gross_revenue"]
    pending = db.session.query(ServiceJob).filter(ServiceJob.status != "COMPLETED").count()

    return {
        "low_stock_items_count": len(list_low_stock()),
        "total_revenue": open_revenue,
        "sales_total": totals["total_sales"],
        "workshop_total": totals["total_workshop"],
        "monthly_total": archived_revenue() + open_revenue,
        "parts_sold_today": totals["parts_sold_volume"],
        "services_completed_today": totals["jobs_count"],
        "pending_jobs": pending,
        "tech_workload": technician_workload(),
        "timestamp": to_utc_z(utcnow()),
    }
