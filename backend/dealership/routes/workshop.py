# Overview: Flask API routes for workshop service jobs.

# backend/dealership/routes/workshop.py

from flask import Blueprint, request, jsonify, current_app

from ..services import workshop_service, receipt_service
from ..services.workshop_service import JobStateError, ReconciliationError
from ..services.receipt_service import ReceiptError
from ..validation import ValidationError
from ..decorators import require_auth, actor_name


workshop_bp = Blueprint("workshop", __name__, url_prefix="/api/workshop")


@workshop_bp.post("/jobs")
@require_auth
def create_job_route():
    """
    Open a job: {"customer_name", "bike_model", "service_type", "mechanic",
    "service_price"?}. service_price defaults to the standard labor rate.
    """
    try:
        data = request.get_json(silent=True) or {}

        job = workshop_service.create_job(
            data.get("customer_name"),
            data.get("bike_model"),
            data.get("service_type"),
            data.get("service_price", workshop_service.DEFAULT_SERVICE_PRICE),
            mechanic=data.get("mechanic"),
        )
        return jsonify({"job": job.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": "Validation failed", "messages": e.messages}), 400
    except Exception:
        current_app.logger.exception("Failed to create workshop job")
        return jsonify({"error": "Internal server error"}), 500


@workshop_bp.get("/jobs")
@require_auth
def list_jobs_route():
    jobs = workshop_service.list_jobs(status=request.args.get("status"))
    return jsonify({"jobs": [j.to_dict() for j in jobs]}), 200


@workshop_bp.get("/jobs/<job_id>")
@require_auth
def get_job_route(job_id: str):
    job = workshop_service.get_job(job_id)
    if job is None:
        return jsonify({"error": "Job not found"}), 404
    return jsonify({"job": job.to_dict()}), 200


@workshop_bp.post("/jobs/<job_id>/status")
@require_auth
def update_job_status_route(job_id: str):
    """Move a job forward: {"status": "IN_PROGRESS"}."""
    try:
        data = request.get_json(silent=True) or {}
        status = data.get("status")
        if not status:
            return jsonify({"error": "status required"}), 400

        job = workshop_service.advance_job_status(job_id, status)
        if job is None:
            return jsonify({"error": "Job not found"}), 404
        return jsonify({"job": job.to_dict()}), 200

    except JobStateError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to update job status")
        return jsonify({"error": "Internal server error"}), 500


@workshop_bp.post("/jobs/<job_id>/complete")
@require_auth
def complete_job_route(job_id: str):
    """
    Bill and close a job.

    Body: {"parts_used": [{"part_id", "quantity"}],
           "additional_services": [{"name", "price"}]}

    A 422 response lists the parts that could not be deducted; nothing was
    written and the job can be retried.
    """
    try:
        data = request.get_json(silent=True) or {}

        job = workshop_service.complete_job(
            job_id,
            data.get("parts_used") or [],
            data.get("additional_services") or [],
            actor=actor_name(),
        )
        if job is None:
            return jsonify({"error": "Job not found"}), 404
        return jsonify({"job": job.to_dict()}), 200

    except JobStateError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except ReconciliationError as e:
        return jsonify({"error": str(e), "details": e.details}), 422
    except Exception:
        current_app.logger.exception("Failed to complete workshop job")
        return jsonify({"error": "Internal server error"}), 500


@workshop_bp.get("/jobs/<job_id>/receipt")
@require_auth
def job_receipt_route(job_id: str):
    job = workshop_service.get_job(job_id)
    if job is None:
        return jsonify({"error": "Job not found"}), 404
    try:
        receipt = receipt_service.build_receipt("SERVICE_JOB", job)
    except ReceiptError as e:
        return jsonify({"error": str(e)}), 409
    return jsonify({"receipt": receipt}), 200


@workshop_bp.get("/analytics")
@require_auth
def workshop_analytics_route():
    return jsonify(workshop_service.workshop_analytics()), 200
