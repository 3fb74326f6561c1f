"""
Point of sale tests.

Verifies:
- A cart over available stock is refused with every problem listed
- A valid sale deducts each line through the ledger and freezes prices
- A deduction refused mid-sale rolls back the whole sale
"""

import pytest

from dealership.models import InventoryLogEntry, Part, Sale
from dealership.services import sales_service
from dealership.services.inventory_service import InsufficientStockError
from dealership.validation import ValidationError


pytestmark = pytest.mark.sales


class TestCartValidation:

    def test_quantity_over_stock_refused_without_writes(self, db_session, make_part):
        part = make_part(stock=5, price=100)
        logs_before = db_session.query(InventoryLogEntry).count()

        with pytest.raises(ValidationError) as exc:
            sales_service.complete_sale("Ahmad Khan", "CB150F", [{"part_id": part.id, "quantity": 6}])

        assert any(part.name in m for m in exc.value.messages)
        assert db_session.get(Part, part.id).stock == 5
        assert db_session.query(InventoryLogEntry).count() == logs_before
        assert db_session.query(Sale).count() == 0

    def test_repeated_lines_counted_together(self, db_session, make_part):
        part = make_part(stock=5)
        with pytest.raises(ValidationError) as exc:
            sales_service.complete_sale(
                "Ahmad Khan",
                "CB150F",
                [{"part_id": part.id, "quantity": 3}, {"part_id": part.id, "quantity": 3}],
            )
        assert exc.value.messages == [f"Insufficient stock for {part.name}: 2 available, 3 requested"]

    def test_all_problems_reported_at_once(self, db_session, make_part):
        part = make_part(stock=1)
        with pytest.raises(ValidationError) as exc:
            sales_service.complete_sale(
                "A",
                "",
                [{"part_id": part.id, "quantity": 0}, {"part_id": "nope", "quantity": 1}],
            )
        assert len(exc.value.messages) == 4

    @pytest.mark.parametrize("items", [[], None, "1x oil"])
    def test_empty_cart_refused(self, db_session, items):
        with pytest.raises(ValidationError) as exc:
            sales_service.complete_sale("Ahmad Khan", "CB150F", items)
        assert "At least one item required" in exc.value.messages


class TestCompleteSale:

    def test_sale_deducts_stock_and_logs(self, db_session, make_part):
        part = make_part(stock=5, price=100)

        sale = sales_service.complete_sale("Ahmad Khan", "CB150F", [{"part_id": part.id, "quantity": 2}])

        assert sale.total == 200
        assert sale.subtotal == 200
        assert sale.tax == 0
        assert sale.status == "PAID"
        assert db_session.get(Part, part.id).stock == 3

        entry = db_session.query(InventoryLogEntry).filter_by(reason="SALE").one()
        assert entry.change == -2
        assert entry.part_id == part.id
        assert entry.reference_id == sale.id

    def test_line_items_freeze_name_and_price(self, db_session, make_part):
        part = make_part(name="Front Brake Pad Set", stock=5, price=4200)
        sale = sales_service.complete_sale("Zubair Ali", "CG125", [{"part_id": part.id, "quantity": 1}])

        from dealership.services import inventory_service
        inventory_service.update_part(part.id, {"price": 5000, "name": "Brake Pads (new)"})

        stored = db_session.get(Sale, sale.id)
        assert stored.items[0].price == 4200
        assert stored.items[0].part_name == "Front Brake Pad Set"
        assert stored.total == 4200

    def test_multi_line_sale_totals(self, db_session, make_part):
        oil = make_part(stock=45, price=1850)
        plug = make_part(stock=80, price=850)

        sale = sales_service.complete_sale(
            "Ahmad Khan",
            "CB150F",
            [{"part_id": oil.id, "quantity": 2}, {"part_id": plug.id, "quantity": 3}],
            created_by="Counter Staff",
        )

        assert sale.total == 2 * 1850 + 3 * 850
        assert sale.units == 5
        assert sale.created_by == "Counter Staff"
        assert [i.part_id for i in sale.items] == [oil.id, plug.id]

    def test_numeric_part_id_resolves_to_text_id(self, db_session, make_part):
        part = make_part(part_id="1", stock=5, price=1850)

        sale = sales_service.complete_sale("Ali Khan", "CD70", [{"part_id": 1, "quantity": 2}])

        assert [(i.part_id, i.quantity) for i in sale.items] == [("1", 2)]
        assert sale.total == 3700
        assert db_session.get(Part, "1").stock == 3

    @pytest.mark.parametrize("bad_id", [[1], {"id": "1"}, True, "  "])
    def test_malformed_part_id_refused(self, db_session, make_part, bad_id):
        make_part(part_id="1", stock=5)
        with pytest.raises(ValidationError) as exc:
            sales_service.complete_sale("Ali Khan", "CD70", [{"part_id": bad_id, "quantity": 1}])
        assert exc.value.messages == [f"Item 1: part {bad_id} not found"]
        assert db_session.get(Part, "1").stock == 5

    def test_refused_deduction_rolls_back_earlier_lines(self, db_session, make_part, monkeypatch):
        first = make_part(stock=10, price=100)
        second = make_part(stock=10, price=100)
        logs_before = db_session.query(InventoryLogEntry).count()

        from dealership.services import sales_service as module
        real_adjust = module.adjust_stock

        def adjust_then_fail(part_id, delta, *args, **kwargs):
            if part_id == second.id:
                raise InsufficientStockError(second.id, second.name, requested=-delta, available=0)
            return real_adjust(part_id, delta, *args, **kwargs)

        monkeypatch.setattr(module, "adjust_stock", adjust_then_fail)

        with pytest.raises(InsufficientStockError):
            sales_service.complete_sale(
                "Ahmad Khan",
                "CB150F",
                [{"part_id": first.id, "quantity": 4}, {"part_id": second.id, "quantity": 1}],
            )

        assert db_session.get(Part, first.id).stock == 10
        assert db_session.query(InventoryLogEntry).count() == logs_before
        assert db_session.query(Sale).count() == 0

    def test_list_sales_newest_first(self, db_session, make_part):
        part = make_part(stock=10)
        s1 = sales_service.complete_sale("First Buyer", "CD70", [{"part_id": part.id, "quantity": 1}])
        s2 = sales_service.complete_sale("Second Buyer", "CD70", [{"part_id": part.id, "quantity": 1}])
        ids = [s.id for s in sales_service.list_sales()]
        assert set(ids) == {s1.id, s2.id}
        assert len(ids) == 2
