# Overview: Whole-store JSON snapshots (backup / restore / move between machines).

"""
Snapshot Service

Each collection is serialized on its own with the models' to_dict()
shapes, so a snapshot restores to the same typed records: integer money
stays integer, dates stay ISO dates, timestamps stay ISO-8601 "Z" strings.

Import replaces the whole store in one transaction; a snapshot that fails
to load leaves the existing data untouched.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import (
    Part,
    InventoryLogEntry,
    Sale,
    ServiceJob,
    DailyReport,
    User,
    Technician,
    SessionToken,
    Notification,
    ShiftMarker,
)
from ..time_utils import utcnow, business_today, to_utc_z, to_iso_date, parse_iso_date
from . import closing_service

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1

# Collection key -> (model, serializer, loader)
COLLECTIONS = {
    "parts": (Part, Part.to_dict, Part.from_dict),
    "sales": (Sale, Sale.to_dict, Sale.from_dict),
    "workshop_jobs": (ServiceJob, ServiceJob.to_dict, ServiceJob.from_dict),
    "inventory_logs": (InventoryLogEntry, InventoryLogEntry.to_dict, InventoryLogEntry.from_dict),
    "daily_reports": (DailyReport, DailyReport.to_dict, DailyReport.from_dict),
    "staff": (User, User.to_snapshot, User.from_snapshot),
    "technicians": (Technician, Technician.to_dict, Technician.from_dict),
    "notifications": (Notification, Notification.to_dict, Notification.from_dict),
}


class SnapshotError(Exception):
    """Raised when a snapshot cannot be read or restored."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def _ordered(model):
    q = db.session.query(model)
    # Log entries and notifications keep insertion order via their integer ids
    return q.order_by(model.id.asc()).all()


def export_collection(key: str) -> list[dict]:
    if key not in COLLECTIONS:
        raise SnapshotError(f"Unknown collection {key!r}")
    model, serialize, _load = COLLECTIONS[key]
    return [serialize(row) for row in _ordered(model)]


def export_snapshot() -> dict:
    """Every collection plus the last-closed-date marker."""
    data = {
        "version": SNAPSHOT_VERSION,
        "exported_at": to_utc_z(utcnow()),
        "last_closed_date": to_iso_date(closing_service.get_last_closed_date()),
    }
    for key in COLLECTIONS:
        data[key] = export_collection(key)
    return data


def _load_rows(key: str, rows) -> list:
    _model, _serialize, load = COLLECTIONS[key]
    if not isinstance(rows, list):
        raise SnapshotError(f"{key} must be a list", details={"collection": key})

    loaded = []
    for i, row in enumerate(rows):
        if not isinstance(row, dict):
            raise SnapshotError(f"{key}[{i}] must be an object", details={"collection": key, "index": i})
        try:
            loaded.append(load(row))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise SnapshotError(
                f"{key}[{i}] is malformed: {e}",
                details={"collection": key, "index": i},
            ) from e
    return loaded


def import_snapshot(data: dict) -> dict:
    """
    Replace the store's contents with a snapshot.

    Collections missing from the snapshot are restored as empty. Sessions
    are dropped, so everyone logs in again against the restored staff list.

    Returns the number of records restored per collection.
    """
    if not isinstance(data, dict):
        raise SnapshotError("Snapshot must be a JSON object")
    version = data.get("version", SNAPSHOT_VERSION)
    if version != SNAPSHOT_VERSION:
        raise SnapshotError(f"Unsupported snapshot version {version!r}")

    try:
        marker_date = parse_iso_date(data["last_closed_date"]) if data.get("last_closed_date") else None
    except ValueError as e:
        raise SnapshotError(f"last_closed_date is malformed: {e}") from e

    # Parse everything before touching the database
    loaded = {key: _load_rows(key, data.get(key, [])) for key in COLLECTIONS}

    if not any(u.role == "SUPER_ADMIN" and u.is_active for u in loaded["staff"]):
        raise SnapshotError("Snapshot has no active SUPER_ADMIN account")

    try:
        db.session.query(SessionToken).delete(synchronize_session=False)
        # ORM deletes so sale items and job lines cascade
        for key in ("sales", "workshop_jobs"):
            model = COLLECTIONS[key][0]
            for row in db.session.query(model).all():
                db.session.delete(row)
        for key in ("parts", "inventory_logs", "daily_reports", "staff", "technicians", "notifications"):
            db.session.query(COLLECTIONS[key][0]).delete(synchronize_session=False)
        db.session.flush()
        # Bulk deletes leave stale instances in the identity map; the restored
        # rows reuse their primary keys
        db.session.expunge_all()

        for key in COLLECTIONS:
            db.session.add_all(loaded[key])

        marker = db.session.get(ShiftMarker, ShiftMarker.MARKER_ID)
        if marker is None:
            marker = ShiftMarker(id=ShiftMarker.MARKER_ID)
            db.session.add(marker)
        marker.last_closed_date = marker_date or business_today()
        marker.updated_at = utcnow()

        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        raise SnapshotError("Snapshot violates a uniqueness or stock constraint") from e

    counts = {key: len(rows) for key, rows in loaded.items()}
    logger.info("Snapshot restored: %s", counts)
    return counts
