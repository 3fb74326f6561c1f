from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, to_iso_date, parse_iso_datetime, parse_iso_date

SALE_STATUSES = ("PAID", "PENDING")


class Sale(db.Model):
    """
    Completed point-of-sale transaction.

    Created in the same DB transaction as its ledger deductions, so a Sale row
    exists only if every line was deducted. Sales stay in this table until the
    day is closed; closing_service deletes them after archiving the totals.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_business_date", "business_date"),
    )

    id = db.Column(db.String(64), primary_key=True)
    customer_name = db.Column(db.String(255), nullable=False)
    bike_model = db.Column(db.String(255), nullable=False)

    subtotal = db.Column(db.Integer, nullable=False)
    # Always zero: no tax is charged on parts sales
    tax = db.Column(db.Integer, nullable=False, default=0)
    total = db.Column(db.Integer, nullable=False)

    business_date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(16), nullable=False, default="PAID")
    created_by = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False)

    items = db.relationship(
        "SaleItem",
        backref="sale",
        cascade="all, delete-orphan",
        order_by="SaleItem.position",
        lazy="selectin",
    )

    @property
    def units(self) -> int:
        return sum(item.quantity for item in self.items)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_name": self.customer_name,
            "bike_model": self.bike_model,
            "items": [item.to_dict() for item in self.items],
            "subtotal": self.subtotal,
            "tax": self.tax,
            "total": self.total,
            "date": to_iso_date(self.business_date),
            "status": self.status,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Sale":
        sale = cls(
            id=data["id"],
            customer_name=data["customer_name"],
            bike_model=data["bike_model"],
            subtotal=data["subtotal"],
            tax=data["tax"],
            total=data["total"],
            business_date=parse_iso_date(data["date"]),
            status=data["status"],
            created_by=data["created_by"],
            created_at=parse_iso_datetime(data["created_at"]),
        )
        sale.items = [
            SaleItem.from_dict(item, position=i) for i, item in enumerate(data.get("items") or [])
        ]
        return sale


class SaleItem(db.Model):
    """Line item; name and unit price are frozen at time of sale."""
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.String(64), db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    part_id = db.Column(db.String(64), nullable=False)
    part_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Integer, nullable=False)

    @property
    def line_total(self) -> int:
        return self.price * self.quantity

    def to_dict(self) -> dict:
        return {
            "part_id": self.part_id,
            "part_name": self.part_name,
            "quantity": self.quantity,
            "price": self.price,
        }

    @classmethod
    def from_dict(cls, data: dict, position: int = 0) -> "SaleItem":
        return cls(
            position=position,
            part_id=data["part_id"],
            part_name=data["part_name"],
            quantity=data["quantity"],
            price=data["price"],
        )
