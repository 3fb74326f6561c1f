# Overview: Printable receipt payloads for sales and workshop jobs.

from __future__ import annotations

from ..models import Sale, ServiceJob
from ..time_utils import to_iso_date

RECEIPT_KINDS = ("SALE", "SERVICE_JOB")


class ReceiptError(Exception):
    """Raised when a receipt cannot be built."""
    pass


def _sale_receipt(sale: Sale) -> dict:
    lines = [
        {
            "kind": "PART",
            "description": item.part_name,
            "quantity": item.quantity,
            "unit_price": item.price,
            "amount": item.line_total,
        }
        for item in sale.items
    ]
    return {
        "kind": "SALE",
        "reference": sale.id,
        "customer_name": sale.customer_name,
        "bike_model": sale.bike_model,
        "date": to_iso_date(sale.business_date),
        "lines": lines,
        "subtotal": sale.subtotal,
        "tax": sale.tax,
        "total": sale.total,
        "status": sale.status,
    }


def _job_receipt(job: ServiceJob) -> dict:
    lines = [{
        "kind": "LABOR",
        "description": job.service_type,
        "quantity": 1,
        "unit_price": job.service_price,
        "amount": job.service_price,
    }]
    lines.extend(
        {
            "kind": "SERVICE",
            "description": svc.name,
            "quantity": 1,
            "unit_price": svc.price,
            "amount": svc.price,
        }
        for svc in job.additional_services
    )
    lines.extend(
        {
            "kind": "PART",
            "description": part.part_name,
            "quantity": part.quantity,
            "unit_price": part.price,
            "amount": part.price * part.quantity,
        }
        for part in job.parts_used
    )
    return {
        "kind": "SERVICE_JOB",
        "reference": job.id,
        "customer_name": job.customer_name,
        "bike_model": job.bike_model,
        "date": to_iso_date(job.business_date),
        "mechanic": job.mechanic,
        "lines": lines,
        "subtotal": job.total,
        "tax": 0,
        "total": job.total,
        "status": job.status,
    }


def build_receipt(kind: str, record) -> dict:
    """
    Receipt payload for a sale or a service job.

    kind is the discriminant ("SALE" or "SERVICE_JOB") and must match the
    record type; the record is never inspected to guess what it is.
    """
    if kind == "SALE":
        if not isinstance(record, Sale):
            raise ReceiptError("SALE receipt requires a Sale")
        return _sale_receipt(record)
    if kind == "SERVICE_JOB":
        if not isinstance(record, ServiceJob):
            raise ReceiptError("SERVICE_JOB receipt requires a ServiceJob")
        if record.status != "COMPLETED":
            raise ReceiptError("Receipts are only issued for completed jobs")
        return _job_receipt(record)
    raise ReceiptError(f"kind must be one of {', '.join(RECEIPT_KINDS)}")
