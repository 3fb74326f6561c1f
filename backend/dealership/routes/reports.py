# Overview: Flask API routes for shift closing and the daily report archive.

# backend/dealership/routes/reports.py

from flask import Blueprint, request, jsonify, current_app, g

from ..services import closing_service, reporting_service
from ..time_utils import to_iso_date
from ..decorators import require_auth, require_role


reports_bp = Blueprint("reports", __name__, url_prefix="/api")


@reports_bp.get("/shift")
@require_auth
def shift_status_route():
    """The open business day and its running totals."""
    return jsonify({
        "business_date": to_iso_date(closing_service.get_last_closed_date()),
        "totals": closing_service.compute_open_totals(),
    }), 200


@reports_bp.post("/shift/close")
@require_auth
@require_role("SUPER_ADMIN")
def close_shift_route():
    """
    Archive the open day into a DailyReport and reset the counters.

    Requires: SUPER_ADMIN
    """
    try:
        report = closing_service.close_day("manual", closed_by=g.current_user.name)
        return jsonify({"report": report.to_dict()}), 201
    except Exception:
        current_app.logger.exception("Failed to close day")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/reports")
@require_auth
def list_reports_route():
    try:
        limit = int(request.args["limit"]) if "limit" in request.args else None
    except ValueError:
        return jsonify({"error": "limit must be an integer"}), 400

    reports = closing_service.list_reports(limit)
    return jsonify({"reports": [r.to_dict() for r in reports]}), 200


@reports_bp.get("/reports/<report_id>")
@require_auth
def get_report_route(report_id: str):
    report = closing_service.get_report(report_id)
    if report is None:
        return jsonify({"error": "Report not found"}), 404
    return jsonify({"report": report.to_dict()}), 200


@reports_bp.get("/dashboard")
@require_auth
def dashboard_route():
    return jsonify(reporting_service.dashboard()), 200
