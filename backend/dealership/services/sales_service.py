"""
Sales Service - point-of-sale checkout

WHY: A sale and its stock deductions are one unit. The cart is validated as a
whole first (every line, cumulative quantity per part against stock), then
all deductions and the Sale row are written in a single DB transaction. If
any deduction is refused the whole transaction is rolled back, so earlier
lines of the same sale never stay deducted.
"""

from __future__ import annotations

import logging

from ..extensions import db
from ..models import Sale, SaleItem, Part
from ..time_utils import utcnow, business_today
from ..validation import ValidationError, check_min_length, is_positive_int, as_part_id
from .concurrency import run_with_retry, generate_id
from .inventory_service import adjust_stock, InsufficientStockError

logger = logging.getLogger(__name__)


def _validate_cart(customer_name, bike_model, items) -> list[tuple[Part, int]]:
    """
    Collect every problem with the checkout request.

    Quantities are checked cumulatively: two lines for the same part must fit
    in that part's stock together.

    Returns (part, quantity) per cart line, in cart order.
    """
    errors: list[str] = []
    check_min_length(errors, customer_name, 2, "Customer name is required")
    check_min_length(errors, bike_model, 2, "Bike model is required")

    if not isinstance(items, list) or not items:
        errors.append("At least one item required")
        raise ValidationError(errors)

    parts: dict[str, Part] = {}
    reserved: dict[str, int] = {}
    lines: list[tuple[Part, int]] = []

    for i, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            errors.append(f"Item {i}: invalid line item")
            continue

        part_id = as_part_id(item.get("part_id"))
        quantity = item.get("quantity")

        if not is_positive_int(quantity):
            errors.append(f"Item {i}: quantity must be a positive whole number")
            continue

        part = None
        if part_id is not None:
            part = parts.get(part_id) or db.session.get(Part, part_id)
        if part is None:
            errors.append(f"Item {i}: part {item.get('part_id')} not found")
            continue
        parts[part.id] = part

        already = reserved.get(part.id, 0)
        if already + quantity > part.stock:
            errors.append(
                f"Insufficient stock for {part.name}: {part.stock - already} available, {quantity} requested"
            )
            continue
        reserved[part.id] = already + quantity
        lines.append((part, quantity))

    if errors:
        raise ValidationError(errors)

    return lines


def complete_sale(
    customer_name: str,
    bike_model: str,
    items: list[dict],
    *,
    created_by: str | None = None,
) -> Sale:
    """
    Check out a cart.

    items: [{"part_id": ..., "quantity": ...}, ...]. Name and unit price
    are taken from the part at checkout time.

    Raises:
        ValidationError: bad customer/bike/cart, nothing written
        InsufficientStockError: stock changed between validation and
            deduction; the whole sale is rolled back
    """
    def _op():
        lines = _validate_cart(customer_name, bike_model, items)

        sale_id = generate_id("S")
        logger.info("Commencing sales transaction %s", sale_id)

        sale_items = []
        for position, (part, quantity) in enumerate(lines):
            sale_items.append(SaleItem(
                position=position,
                part_id=part.id,
                part_name=part.name,
                quantity=quantity,
                price=part.price,
            ))

        for line in sale_items:
            adjust_stock(
                line.part_id,
                -line.quantity,
                "SALE",
                sale_id,
                actor=created_by,
                commit=False,
                strict=True,
            )

        subtotal = sum(line.line_total for line in sale_items)
        sale = Sale(
            id=sale_id,
            customer_name=customer_name.strip(),
            bike_model=bike_model.strip(),
            subtotal=subtotal,
            tax=0,
            total=subtotal,
            business_date=business_today(),
            status="PAID",
            created_by=created_by or "System",
            created_at=utcnow(),
        )
        sale.items = sale_items
        db.session.add(sale)

        db.session.commit()
        return sale

    try:
        sale = run_with_retry(_op)
    except InsufficientStockError as e:
        logger.error("Sales transaction aborted: %s", e)
        raise

    logger.info("Sales transaction %s finalized: total=%s", sale.id, sale.total)
    return sale


def get_sale(sale_id: str) -> Sale | None:
    return db.session.get(Sale, sale_id)


def list_sales() -> list[Sale]:
    """Sales of the open business day, newest first."""
    return db.session.query(Sale).order_by(Sale.created_at.desc(), Sale.id.desc()).all()
