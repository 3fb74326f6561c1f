from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, to_iso_date, parse_iso_datetime, parse_iso_date

PART_CATEGORIES = ("Engine", "Braking", "Electrical", "Chassis", "Accessories")

# Reason codes for a stock change
STOCK_REASONS = ("SALE", "WORKSHOP", "ADJUSTMENT", "RESTOCK")


class Part(db.Model):
    """
    Stocked part.

    STOCK OWNERSHIP:
    Part.stock is written only by inventory_service.adjust_stock(). Catalog
    edits (name, price, min_stock...) never touch it. Every committed change
    to stock has exactly one InventoryLogEntry written in the same transaction.

    version_id is the optimistic lock for the read-then-write on stock: a
    concurrent writer that read an older version fails with StaleDataError
    and is retried by run_with_retry.
    """
    __tablename__ = "parts"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="ck_parts_stock_non_negative"),
        db.UniqueConstraint("part_number", name="uq_parts_part_number"),
        db.Index("ix_parts_category_name", "category", "name"),
    )

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    # Manufacturer part number
    part_number = db.Column(db.String(64), nullable=False)
    category = db.Column(db.String(32), nullable=False)

    stock = db.Column(db.Integer, nullable=False, default=0)

    # Whole currency units, same as every other amount in the system
    price = db.Column(db.Integer, nullable=False)
    cost_price = db.Column(db.Integer, nullable=True)

    # Reorder threshold
    min_stock = db.Column(db.Integer, nullable=False, default=0)

    last_updated = db.Column(db.Date, nullable=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_low_stock(self) -> bool:
        return self.stock <= self.min_stock

    def __repr__(self) -> str:
        return f"<Part id={self.id!r} part_number={self.part_number!r} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "part_number": self.part_number,
            "category": self.category,
            "stock": self.stock,
            "price": self.price,
            "cost_price": self.cost_price,
            "min_stock": self.min_stock,
            "last_updated": to_iso_date(self.last_updated),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Part":
        return cls(
            id=data["id"],
            name=data["name"],
            part_number=data["part_number"],
            category=data["category"],
            stock=data["stock"],
            price=data["price"],
            cost_price=data.get("cost_price"),
            min_stock=data["min_stock"],
            last_updated=parse_iso_date(data["last_updated"]),
        )


class InventoryLogEntry(db.Model):
    """
    Append-only audit record of a stock change.

    part_id is deliberately not a foreign key: entries outlive deleted parts,
    and part_name is denormalized at write time for the same reason.
    Rows are never updated or deleted.
    """
    __tablename__ = "inventory_logs"
    __table_args__ = (
        db.Index("ix_inventory_logs_part_occurred", "part_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    part_id = db.Column(db.String(64), nullable=False, index=True)
    part_name = db.Column(db.String(255), nullable=False)

    # Signed: positive = increase, negative = decrease
    change = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(16), nullable=False, index=True)

    # Sale id or workshop job id that caused the change
    reference_id = db.Column(db.String(64), nullable=True, index=True)

    occurred_at = db.Column(db.DateTime, nullable=False)
    actor = db.Column(db.String(255), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "part_id": self.part_id,
            "part_name": self.part_name,
            "change": self.change,
            "reason": self.reason,
            "reference_id": self.reference_id,
            "occurred_at": to_utc_z(self.occurred_at),
            "actor": self.actor,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "InventoryLogEntry":
        return cls(
            id=data["id"],
            part_id=data["part_id"],
            part_name=data["part_name"],
            change=data["change"],
            reason=data["reason"],
            reference_id=data.get("reference_id"),
            occurred_at=parse_iso_datetime(data["occurred_at"]),
            actor=data["actor"],
        )
