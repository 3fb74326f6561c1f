# Overview: Stock ledger; the only code path that changes Part.stock.

# backend/dealership/services/inventory_service.py

from __future__ import annotations

import io
import logging

from flask import current_app
from openpyxl import Workbook
from sqlalchemy import or_

from ..extensions import db
from ..models import Part, InventoryLogEntry, STOCK_REASONS
from ..time_utils import utcnow, business_today, to_utc_z
from ..validation import ValidationError, ConflictError, enforce_rules_part
from .concurrency import lock_for_update, run_with_retry, generate_id
from . import notification_service
"""
Stock Ledger Invariants (authoritative)

Ownership:
- Part.stock is mutated only by adjust_stock(). Catalog edits never write it.
- adjust_stock() is the only writer of InventoryLogEntry rows.

Business invariants:
- stock >= 0 for every part after every committed operation (also enforced
  by a CHECK constraint).
- Every committed adjust_stock() writes exactly one log entry whose change
  equals the applied delta, in the same DB transaction as the stock update.
- Log entries are append-only; newest first for display.

Check-and-set:
- The part row is read with SELECT ... FOR UPDATE and written back with the
  Part.version_id optimistic check, so no other stock write can land between
  the read of the current stock and the write of the new value.

Unknown part ids:
- Ignored (adjust_stock returns None) unless STRICT_PART_LOOKUP is enabled,
  in which case PartNotFoundError is raised.
"""

logger = logging.getLogger(__name__)


class InsufficientStockError(Exception):
    """A stock change would drive the part below zero."""

    def __init__(self, part_id: str, part_name: str, requested: int, available: int):
        super().__init__(f"Insufficient stock for {part_name}")
        self.part_id = part_id
        self.part_name = part_name
        self.requested = requested
        self.available = available

    @property
    def details(self) -> dict:
        return {
            "part_id": self.part_id,
            "part_name": self.part_name,
            "requested": self.requested,
            "available": self.available,
        }


class PartNotFoundError(LookupError):
    """Raised when a part id does not exist (strict lookups only for the ledger)."""

    def __init__(self, part_id: str):
        super().__init__(f"Part {part_id} not found")
        self.part_id = part_id


def _strict_lookup(strict: bool | None) -> bool:
    if strict is not None:
        return strict
    return bool(current_app.config.get("STRICT_PART_LOOKUP", False))


def _actor_name(actor: str | None) -> str:
    return actor or current_app.config.get("SYSTEM_ACTOR_NAME", "System")


def _validate_adjustment(delta, reason: str) -> None:
    errors = []
    if not isinstance(delta, int) or isinstance(delta, bool) or delta == 0:
        errors.append("delta must be a non-zero integer")
    if reason not in STOCK_REASONS:
        errors.append(f"reason must be one of {', '.join(STOCK_REASONS)}")
    if errors:
        raise ValidationError(errors)


def adjust_stock(
    part_id: str,
    delta: int,
    reason: str,
    reference_id: str | None = None,
    *,
    actor: str | None = None,
    commit: bool = True,
    strict: bool | None = None,
) -> tuple[Part, InventoryLogEntry] | None:
    """
    Apply a signed stock change and append its audit entry.

    commit=True: runs in its own transaction with concurrency retry.
    commit=False: joins the caller's transaction (sale / job completion); the
    caller owns commit, rollback and retry.

    Returns (part, entry), or None when the part does not exist and strict
    lookup is off.

    Raises:
        ValidationError: delta is zero/non-integer or reason is unknown
        InsufficientStockError: stock + delta < 0 (nothing is written)
        PartNotFoundError: unknown part with strict lookup on
    """
    _validate_adjustment(delta, reason)
    strict = _strict_lookup(strict)
    actor = _actor_name(actor)

    def _op():
        part = lock_for_update(db.session.query(Part).filter_by(id=part_id)).first()
        if part is None:
            if strict:
                raise PartNotFoundError(part_id)
            logger.warning("Ignoring stock change for unknown part %s (%+d %s)", part_id, delta, reason)
            return None

        new_stock = part.stock + delta
        if new_stock < 0:
            logger.info(
                "Rejected stock change for %s: %s on hand, %+d requested", part.id, part.stock, delta
            )
            raise InsufficientStockError(part.id, part.name, requested=-delta, available=part.stock)

        was_low = part.is_low_stock
        part.stock = new_stock
        part.last_updated = business_today()

        entry = InventoryLogEntry(
            part_id=part.id,
            part_name=part.name,
            change=delta,
            reason=reason,
            reference_id=reference_id,
            occurred_at=utcnow(),
            actor=actor,
        )
        db.session.add(entry)
        db.session.flush()

        if part.is_low_stock and not was_low:
            notification_service.notify_low_stock(part, commit=False)

        if commit:
            db.session.commit()

        logger.info("Stock %s %+d (%s, ref=%s) -> %s", part.id, delta, reason, reference_id, part.stock)
        return part, entry

    if commit:
        return run_with_retry(_op)
    return _op()


def record_manual_adjustment(part_id: str, delta: int, *, actor: str | None = None):
    """
    Operator stock correction from the inventory screen.

    Positive deltas are booked as RESTOCK, negative as ADJUSTMENT. Unlike
    adjust_stock(), an unknown part is always an error here: the operator
    picked it from a list.
    """
    reason = "RESTOCK" if isinstance(delta, int) and delta > 0 else "ADJUSTMENT"
    return adjust_stock(part_id, delta, reason, actor=actor, strict=True)


# =============================================================================
# CATALOG
# =============================================================================

def get_part(part_id: str) -> Part | None:
    return db.session.get(Part, part_id)


def require_part(part_id: str) -> Part:
    part = get_part(part_id)
    if part is None:
        raise PartNotFoundError(part_id)
    return part


def list_parts(*, search: str | None = None, category: str | None = None) -> list[Part]:
    q = db.session.query(Part)
    if search:
        term = f"%{search.strip()}%"
        q = q.filter(or_(Part.name.ilike(term), Part.part_number.ilike(term)))
    if category:
        q = q.filter(Part.category == category)
    return q.order_by(Part.name.asc()).all()


def list_low_stock() -> list[Part]:
    return db.session.query(Part).filter(
        Part.stock <= Part.min_stock
    ).order_by((Part.min_stock - Part.stock).desc(), Part.name.asc()).all()


def create_part(
    *,
    name: str,
    part_number: str,
    category: str,
    price: int,
    min_stock: int = 0,
    stock: int = 0,
    cost_price: int | None = None,
    part_id: str | None = None,
    actor: str | None = None,
) -> Part:
    """
    Register a new part.

    The part row always starts at zero; a non-zero opening stock is booked
    through the ledger as RESTOCK so it shows up in the audit trail.
    """
    enforce_rules_part(
        {
            "name": name,
            "part_number": part_number,
            "category": category,
            "price": price,
            "min_stock": min_stock,
            "stock": stock,
            "cost_price": cost_price,
        },
        partial=False,
    )

    def _op():
        if db.session.query(Part).filter_by(part_number=part_number.strip()).first():
            raise ConflictError(f"Part number {part_number} already exists")
        if part_id and db.session.get(Part, part_id):
            raise ConflictError(f"Part {part_id} already exists")

        part = Part(
            id=part_id or generate_id("P"),
            name=name.strip(),
            part_number=part_number.strip(),
            category=category,
            stock=0,
            price=price,
            cost_price=cost_price,
            min_stock=min_stock,
            last_updated=business_today(),
        )
        db.session.add(part)
        db.session.flush()

        if stock:
            adjust_stock(part.id, stock, "RESTOCK", actor=actor, commit=False, strict=True)

        db.session.commit()
        return part

    return run_with_retry(_op)


def update_part(part_id: str, patch: dict) -> Part:
    """Apply a catalog patch (already validated by the route). Never touches stock."""
    if "stock" in patch:
        raise ValidationError("stock can only be changed through a stock adjustment")
    enforce_rules_part(patch, partial=True)

    def _op():
        part = lock_for_update(db.session.query(Part).filter_by(id=part_id)).first()
        if part is None:
            raise PartNotFoundError(part_id)

        new_number = patch.get("part_number")
        if new_number and new_number != part.part_number:
            clash = db.session.query(Part).filter(
                Part.part_number == new_number, Part.id != part_id
            ).first()
            if clash:
                raise ConflictError(f"Part number {new_number} already exists")

        for key, value in patch.items():
            setattr(part, key, value)
        part.last_updated = business_today()

        db.session.commit()
        return part

    return run_with_retry(_op)


def delete_part(part_id: str) -> None:
    """Remove a part from the catalog. Its log entries are kept."""
    part = require_part(part_id)
    db.session.delete(part)
    db.session.commit()
    logger.info("Part %s deleted", part_id)


# =============================================================================
# AUDIT TRAIL
# =============================================================================

def list_inventory_logs(*, part_id: str | None = None, limit: int = 200) -> list[InventoryLogEntry]:
    """Log entries, newest first (insertion order reversed)."""
    q = db.session.query(InventoryLogEntry)
    if part_id is not None:
        q = q.filter(InventoryLogEntry.part_id == part_id)
    return q.order_by(InventoryLogEntry.id.desc()).limit(limit).all()


def export_inventory_audit() -> bytes:
    """
    Inventory audit workbook: current stock sheet plus the full ledger.
    Returns the .xlsx file content.
    """
    wb = Workbook()

    stock_ws = wb.active
    stock_ws.title = "Stock"
    stock_ws.append(["Part ID", "Part Number", "Name", "Category", "Stock", "Min Stock", "Price", "Low Stock", "Last Updated"])
    for part in list_parts():
        stock_ws.append([
            part.id,
            part.part_number,
            part.name,
            part.category,
            part.stock,
            part.min_stock,
            part.price,
            "YES" if part.is_low_stock else "",
            part.last_updated.isoformat(),
        ])

    ledger_ws = wb.create_sheet("Ledger")
    ledger_ws.append(["Entry", "Timestamp", "Part ID", "Part", "Change", "Reason", "Reference", "User"])
    entries = db.session.query(InventoryLogEntry).order_by(InventoryLogEntry.id.desc()).all()
    for entry in entries:
        ledger_ws.append([
            entry.id,
            to_utc_z(entry.occurred_at),
            entry.part_id,
            entry.part_name,
            entry.change,
            entry.reason,
            entry.reference_id or "",
            entry.actor,
        ])

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
