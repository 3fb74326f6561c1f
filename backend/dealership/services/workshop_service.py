"""
Workshop Service - service job lifecycle and billing

DESIGN PRINCIPLES:
- QUEUED -> IN_PROGRESS -> COMPLETED, one direction, no cancel/reopen
- QUEUED -> IN_PROGRESS is a plain status flip
- Completion deducts consumed parts through the stock ledger and freezes the
  bill lines on the job, all in one DB transaction. Any failed deduction
  rolls back every deduction of that completion and leaves the job in its
  previous status, so the operator can fix the parts list and retry.
"""

from __future__ import annotations

import logging
from collections import Counter

from ..extensions import db
from ..models import ServiceJob, JobPart, JobAdditionalService, Technician
from ..time_utils import utcnow, business_today
from ..validation import ValidationError, check_min_length, is_positive_int, is_non_negative_int, as_part_id
from .concurrency import lock_for_update, run_with_retry, generate_id
from .inventory_service import adjust_stock, InsufficientStockError, PartNotFoundError

logger = logging.getLogger(__name__)

# Allowed forward moves; COMPLETED is reached only through complete_job()
_NEXT_STATUS = {
    "QUEUED": "IN_PROGRESS",
    "IN_PROGRESS": "COMPLETED",
}

DEFAULT_SERVICE_PRICE = 400


class JobStateError(Exception):
    """Raised for a status change the job lifecycle does not allow."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ReconciliationError(Exception):
    """
    Job completion could not apply its stock deductions.

    details["problems"] lists each offending part so the operator can
    reconcile by hand; the job keeps its pre-completion status.
    """

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def job_total(job: ServiceJob) -> int:
    """Billable amount: labor + extra services + parts at frozen prices."""
    return job.total


def create_job(
    customer_name: str,
    bike_model: str,
    service_type: str,
    service_price: int = DEFAULT_SERVICE_PRICE,
    mechanic: str | None = None,
) -> ServiceJob:
    """
    Open a new job in QUEUED.

    When technicians are registered the mechanic must be one of them.
    """
    errors: list[str] = []
    check_min_length(errors, customer_name, 2, "Customer name is required")
    check_min_length(errors, bike_model, 2, "Bike model is required")
    check_min_length(errors, service_type, 2, "Service type is required")
    if not isinstance(mechanic, str) or not mechanic.strip():
        errors.append("Authorized technician selection required")
    elif db.session.query(Technician).count() and not db.session.query(Technician).filter_by(
        name=mechanic.strip()
    ).first():
        errors.append(f"Unknown technician {mechanic}")
    if not is_non_negative_int(service_price):
        errors.append("Service price must be a whole number >= 0")
    if errors:
        raise ValidationError(errors)

    now = utcnow()
    job = ServiceJob(
        id=generate_id("W"),
        customer_name=customer_name.strip(),
        bike_model=bike_model.strip(),
        service_type=service_type.strip(),
        service_price=service_price,
        mechanic=mechanic.strip(),
        status="QUEUED",
        start_time=now,
        business_date=business_today(),
    )
    db.session.add(job)
    db.session.commit()

    logger.info("Workshop job %s queued for %s", job.id, job.mechanic)
    return job


def get_job(job_id: str) -> ServiceJob | None:
    return db.session.get(ServiceJob, job_id)


def list_jobs(*, status: str | None = None) -> list[ServiceJob]:
    q = db.session.query(ServiceJob)
    if status:
        q = q.filter(ServiceJob.status == status)
    return q.order_by(ServiceJob.start_time.desc(), ServiceJob.id.desc()).all()


def advance_job_status(job_id: str, target_status: str) -> ServiceJob | None:
    """
    Move a job forward without billing (QUEUED -> IN_PROGRESS).

    Returns None when the job does not exist. Asking for the status the job
    already has is a no-op. COMPLETED must go through complete_job().
    """
    if target_status == "COMPLETED":
        raise JobStateError(
            "Completion requires the parts and services used; call complete_job",
            details={"job_id": job_id},
        )

    def _op():
        job = lock_for_update(db.session.query(ServiceJob).filter_by(id=job_id)).first()
        if job is None:
            return None

        if job.status == target_status:
            return job

        if _NEXT_STATUS.get(job.status) != target_status:
            raise JobStateError(
                f"Cannot move job from {job.status} to {target_status}",
                details={"job_id": job_id, "status": job.status, "target_status": target_status},
            )

        job.status = target_status
        db.session.commit()
        logger.info("Workshop job %s -> %s", job.id, target_status)
        return job

    return run_with_retry(_op)


def _validate_services(additional_services) -> list[JobAdditionalService]:
    problems = []
    services = []
    for i, svc in enumerate(additional_services or []):
        name = svc.get("name") if isinstance(svc, dict) else None
        price = svc.get("price") if isinstance(svc, dict) else None
        if not isinstance(name, str) or not name.strip():
            problems.append({"service": i + 1, "error": "name is required"})
            continue
        if not is_positive_int(price):
            problems.append({"service": i + 1, "error": "price must be a positive whole number"})
            continue
        services.append(JobAdditionalService(position=i, name=name.strip(), price=price))
    if problems:
        raise ReconciliationError("Invalid additional services", details={"problems": problems})
    return services


def _merge_part_lines(parts_used) -> tuple[list[tuple[str, int]], list[dict]]:
    """Sum quantities per part, preserving first-seen order."""
    problems = []
    totals: Counter = Counter()
    order: list[str] = []
    for i, line in enumerate(parts_used or []):
        part_id = as_part_id(line.get("part_id")) if isinstance(line, dict) else None
        quantity = line.get("quantity") if isinstance(line, dict) else None
        if part_id is None:
            problems.append({"line": i + 1, "error": "part_id is required"})
            continue
        if not is_positive_int(quantity):
            problems.append({"line": i + 1, "part_id": part_id, "error": "quantity must be a positive whole number"})
            continue
        if part_id not in totals:
            order.append(part_id)
        totals[part_id] += quantity
    return [(pid, totals[pid]) for pid in order], problems


def complete_job(
    job_id: str,
    parts_used: list[dict] | None = None,
    additional_services: list[dict] | None = None,
    *,
    actor: str | None = None,
) -> ServiceJob | None:
    """
    Finish a job: deduct consumed parts, freeze the bill lines, mark COMPLETED.

    parts_used: [{"part_id": ..., "quantity": ...}] - name and unit price are
        read from the part at completion time.
    additional_services: [{"name": ..., "price": ...}]

    Returns None when the job does not exist.

    Raises:
        JobStateError: job already COMPLETED
        ReconciliationError: a part is unknown, short, or a line is invalid.
            Nothing is written and the job keeps its status.
    """
    def _op():
        job = lock_for_update(db.session.query(ServiceJob).filter_by(id=job_id)).first()
        if job is None:
            return None

        if job.status == "COMPLETED":
            raise JobStateError("Job already completed", details={"job_id": job_id})

        services = _validate_services(additional_services)
        merged, problems = _merge_part_lines(parts_used)
        if problems:
            raise ReconciliationError("Invalid parts list", details={"job_id": job_id, "problems": problems})

        frozen_parts = []
        for position, (part_id, quantity) in enumerate(merged):
            try:
                result = adjust_stock(
                    part_id,
                    -quantity,
                    "WORKSHOP",
                    job.id,
                    actor=actor,
                    commit=False,
                    strict=True,
                )
            except PartNotFoundError:
                problems.append({"part_id": part_id, "error": "part not found", "requested": quantity})
                continue
            except InsufficientStockError as e:
                problems.append({**e.details, "error": "insufficient stock"})
                continue

            part, _entry = result
            frozen_parts.append(JobPart(
                position=position,
                part_id=part.id,
                part_name=part.name,
                quantity=quantity,
                price=part.price,
            ))

        if problems:
            # Undo deductions already applied for this completion
            db.session.rollback()
            raise ReconciliationError(
                f"Reconciliation failed for job {job_id}",
                details={"job_id": job_id, "problems": problems},
            )

        job.parts_used = frozen_parts
        job.additional_services = services
        job.status = "COMPLETED"
        job.completed_at = utcnow()

        db.session.commit()
        return job

    job = run_with_retry(_op)
    if job is not None:
        logger.info("Workshop job %s completed and billed: total=%s", job.id, job.total)
    return job


def workshop_analytics(today=None) -> dict:
    """Revenue of completed jobs (today / open shift) and service-type mix."""
    today = today or business_today()
    jobs = list_jobs()
    completed = [j for j in jobs if j.status == "COMPLETED"]

    service_counts = Counter(j.service_type for j in jobs)

    return {
        "daily_revenue": sum(j.total for j in completed if j.business_date == today),
        "open_revenue": sum(j.total for j in completed),
        "completed_jobs": len(completed),
        "pending_jobs": len(jobs) - len(completed),
        "service_mix": [{"name": name, "value": count} for name, count in sorted(service_counts.items())],
    }
