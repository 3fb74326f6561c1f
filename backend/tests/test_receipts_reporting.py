"""
Receipts, dashboard figures and notifications.
"""

import pytest

from dealership.services import (
    closing_service,
    notification_service,
    receipt_service,
    reporting_service,
    sales_service,
    workshop_service,
)
from dealership.services.notification_service import NotificationError
from dealership.services.receipt_service import ReceiptError


class TestReceipts:

    def test_sale_receipt(self, db_session, make_part):
        part = make_part(name="Spark Plug CPR7EA-9", stock=80, price=850)
        sale = sales_service.complete_sale("Ahmad Khan", "CB150F", [{"part_id": part.id, "quantity": 2}])

        receipt = receipt_service.build_receipt("SALE", sale)

        assert receipt["kind"] == "SALE"
        assert receipt["reference"] == sale.id
        assert receipt["lines"] == [{
            "kind": "PART",
            "description": "Spark Plug CPR7EA-9",
            "quantity": 2,
            "unit_price": 850,
            "amount": 1700,
        }]
        assert receipt["total"] == 1700

    def test_job_receipt_lists_labor_services_and_parts(self, db_session, make_part, technicians):
        part = make_part(name="Front Brake Pad Set", stock=5, price=4200)
        job = workshop_service.create_job("Bilal Ahmed", "CB125F", "Brake Service", 800, mechanic="Carlos Sainz")
        job = workshop_service.complete_job(
            job.id,
            parts_used=[{"part_id": part.id, "quantity": 1}],
            additional_services=[{"name": "Brake bleed", "price": 300}],
        )

        receipt = receipt_service.build_receipt("SERVICE_JOB", job)

        assert receipt["kind"] == "SERVICE_JOB"
        assert [line["kind"] for line in receipt["lines"]] == ["LABOR", "SERVICE", "PART"]
        assert sum(line["amount"] for line in receipt["lines"]) == receipt["total"] == 5300
        assert receipt["mechanic"] == "Carlos Sainz"

    def test_open_job_has_no_receipt(self, db_session, technicians):
        job = workshop_service.create_job("Saad Sultan", "CD70 Dream", "Oil Change", mechanic="Dave Miller")
        with pytest.raises(ReceiptError):
            receipt_service.build_receipt("SERVICE_JOB", job)

    def test_kind_must_match_record(self, db_session, make_part):
        part = make_part(stock=5)
        sale = sales_service.complete_sale("Ahmad Khan", "CB150F", [{"part_id": part.id, "quantity": 1}])
        with pytest.raises(ReceiptError):
            receipt_service.build_receipt("SERVICE_JOB", sale)
        with pytest.raises(ReceiptError):
            receipt_service.build_receipt("INVOICE", sale)


class TestDashboard:

    def test_figures(self, db_session, make_part, technicians):
        oil = make_part(stock=45, price=1850, min_stock=20)
        make_part(stock=8, price=9500, min_stock=10)
        sales_service.complete_sale("Ahmad Khan", "CB150F", [{"part_id": oil.id, "quantity": 1}])

        done = workshop_service.create_job("Bilal Ahmed", "CB125F", "Brake Service", 800, mechanic="Carlos Sainz")
        workshop_service.complete_job(done.id)
        workshop_service.create_job("Haris Mansoor", "CB150F", "Tuning", 1500, mechanic="Carlos Sainz")

        stats = reporting_service.dashboard()

        assert stats["low_stock_items_count"] == 1
        assert stats["total_revenue"] == 1850 + 800
        assert stats["monthly_total"] == 1850 + 800
        assert stats["parts_sold_today"] == 1
        assert stats["services_completed_today"] == 1
        assert stats["pending_jobs"] == 1

    def test_monthly_total_includes_archive(self, db_session, make_part):
        oil = make_part(stock=45, price=1850)
        sales_service.complete_sale("Ahmad Khan", "CB150F", [{"part_id": oil.id, "quantity": 1}])
        closing_service.close_day()
        sales_service.complete_sale("Zubair Ali", "CG125", [{"part_id": oil.id, "quantity": 2}])

        stats = reporting_service.dashboard()

        assert stats["total_revenue"] == 3700
        assert stats["monthly_total"] == 1850 + 3700

    def test_workload_efficiency_is_deterministic(self, db_session, technicians):
        a = workshop_service.create_job("Bilal Ahmed", "CB125F", "Brake Service", mechanic="Carlos Sainz")
        workshop_service.create_job("Haris Mansoor", "CB150F", "Tuning", mechanic="Carlos Sainz")
        workshop_service.complete_job(a.id)

        rows = {row["name"]: row for row in reporting_service.technician_workload()}

        assert rows["Carlos Sainz"]["jobs"] == 1
        assert rows["Carlos Sainz"]["efficiency"] == 50
        assert rows["Dave Miller"]["efficiency"] == 100
        assert rows["Dave Miller"]["assigned"] == 0


class TestNotifications:

    def test_emit_and_mark_read(self, db_session):
        notification_service.emit("REVENUE", "Target reached", "Daily target reached", "LOW")
        notification_service.emit("WORKSHOP", "Job done", "Job W-1 completed", "MEDIUM")

        assert notification_service.unread_count() == 2
        assert notification_service.mark_all_read() == 2
        assert notification_service.unread_count() == 0
        assert len(notification_service.list_notifications(unread_only=True)) == 0

    def test_newest_first(self, db_session):
        notification_service.emit("SYSTEM", "First", "one")
        notification_service.emit("SYSTEM", "Second", "two")
        assert [n.title for n in notification_service.list_notifications()] == ["Second", "First"]

    def test_delete(self, db_session):
        n = notification_service.emit("SYSTEM", "Temp", "temporary")
        assert notification_service.delete_notification(n.id)
        assert not notification_service.delete_notification(n.id)

    @pytest.mark.parametrize("type_,priority", [("SPAM", "LOW"), ("SYSTEM", "URGENT")])
    def test_unknown_type_or_priority(self, db_session, type_, priority):
        with pytest.raises(NotificationError):
            notification_service.emit(type_, "x", "y", priority)
