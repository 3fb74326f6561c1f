"""
Shift closing tests.

Verifies:
- The report is dated with the day being closed and conserves revenue
- Sales and jobs are cleared together with the report write
- Automatic closing fires once per date rollover and notifies
"""

from datetime import timedelta

import pytest

from dealership.models import DailyReport, Notification, Sale, ServiceJob
from dealership.services import closing_service, sales_service, workshop_service
from dealership.services.closing_service import ClosingError


pytestmark = pytest.mark.closing


@pytest.fixture
def trading_day(db_session, make_part, technicians):
    """One sale of 1850 and one completed job billed 1200, plus a queued job."""
    oil = make_part(name="Engine Oil 10W-30 (1L)", stock=45, price=1850)
    sales_service.complete_sale("Ahmad Khan", "CB150F", [{"part_id": oil.id, "quantity": 1}])

    job = workshop_service.create_job("Bilal Ahmed", "CB125F", "Brake Service", 800, mechanic="Carlos Sainz")
    workshop_service.complete_job(job.id, additional_services=[{"name": "Brake bleed", "price": 400}])

    workshop_service.create_job("Saad Sultan", "CD70 Dream", "Oil Change", mechanic="Dave Miller")
    return oil


class TestManualClose:

    def test_report_conserves_revenue_and_clears_day(self, db_session, trading_day):
        expected = closing_service.compute_open_totals()

        report = closing_service.close_day("manual", closed_by="Shop Admin")

        assert report.total_sales == 1850
        assert report.total_workshop == 1200
        assert report.gross_revenue == 3050 == expected["gross_revenue"]
        assert report.sales_count == 1
        assert report.jobs_count == 1
        assert report.parts_sold_volume == 1
        assert report.trigger == "manual"
        assert report.closed_by == "Shop Admin"

        assert db_session.query(Sale).count() == 0
        assert db_session.query(ServiceJob).count() == 0
        assert db_session.query(DailyReport).count() == 1

    def test_report_dated_with_the_closed_day(self, db_session, today):
        yesterday = today - timedelta(days=1)
        closing_service.set_last_closed_date(yesterday)

        report = closing_service.close_day("manual", today=today)

        assert report.business_date == yesterday
        assert closing_service.get_last_closed_date() == today

    def test_manual_close_does_not_notify(self, db_session, trading_day):
        closing_service.close_day("manual")
        assert db_session.query(Notification).filter_by(type="SYSTEM").count() == 0

    def test_empty_day_still_archives(self, db_session):
        report = closing_service.close_day()
        assert report.gross_revenue == 0
        assert report.sales_count == 0

    def test_stock_is_not_restored_by_closing(self, db_session, trading_day):
        closing_service.close_day()
        assert db_session.get(type(trading_day), trading_day.id).stock == 44

    def test_unknown_trigger(self, db_session):
        with pytest.raises(ClosingError):
            closing_service.close_day("nightly")

    def test_reports_newest_first(self, db_session, today):
        closing_service.set_last_closed_date(today - timedelta(days=2))
        first = closing_service.close_day(today=today - timedelta(days=1))
        second = closing_service.close_day(today=today)

        reports = closing_service.list_reports()
        assert [r.id for r in reports] == [second.id, first.id]
        assert first.business_date == today - timedelta(days=2)
        assert second.business_date == today - timedelta(days=1)


class TestAutomaticClose:

    def test_same_day_is_a_no_op(self, db_session, trading_day, today):
        closing_service.set_last_closed_date(today)

        assert closing_service.auto_close_if_due(today) is None

        assert db_session.query(DailyReport).count() == 0
        assert db_session.query(Sale).count() == 1
        assert db_session.query(Notification).filter_by(type="SYSTEM").count() == 0
        assert closing_service.get_last_closed_date() == today

    def test_rollover_archives_previous_day_and_notifies(self, db_session, trading_day, today):
        yesterday = today - timedelta(days=1)
        closing_service.set_last_closed_date(yesterday)

        report = closing_service.auto_close_if_due(today)

        assert report.business_date == yesterday
        assert report.trigger == "automatic"
        assert report.gross_revenue == 3050
        assert closing_service.get_last_closed_date() == today

        notice = db_session.query(Notification).filter_by(type="SYSTEM").one()
        assert notice.priority == "HIGH"
        assert notice.title == "Auto-Shift Closure"
        assert yesterday.isoformat() in notice.message
        assert "reset to 0" in notice.message

    def test_second_call_is_idempotent(self, db_session, trading_day, today):
        closing_service.set_last_closed_date(today - timedelta(days=1))

        assert closing_service.auto_close_if_due(today) is not None
        assert closing_service.auto_close_if_due(today) is None

        assert db_session.query(DailyReport).count() == 1
        assert db_session.query(Notification).filter_by(type="SYSTEM").count() == 1

    def test_first_run_initialises_marker_without_closing(self, db_session, today):
        assert closing_service.auto_close_if_due(today) is None
        assert closing_service.get_last_closed_date() == today


class TestOpenTotals:

    def test_only_completed_jobs_count(self, db_session, trading_day):
        totals = closing_service.compute_open_totals()
        assert totals["total_workshop"] == 1200
        assert totals["jobs_count"] == 1
        assert totals["parts_sold_volume"] == 1
