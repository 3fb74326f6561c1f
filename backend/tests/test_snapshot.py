"""
Snapshot export/import tests.
"""

import json
from datetime import timedelta

import pytest

from dealership.models import Part, Sale
from dealership.services import (
    closing_service,
    notification_service,
    sales_service,
    snapshot_service,
    workshop_service,
)
from dealership.services.snapshot_service import SnapshotError


@pytest.fixture
def populated(db_session, make_part, technicians, admin_user, today):
    closing_service.set_last_closed_date(today - timedelta(days=1))
    oil = make_part(name="Engine Oil 10W-30 (1L)", stock=45, price=1850, min_stock=20, cost_price=1500)
    pads = make_part(name="Front Brake Pad Set", stock=12, price=4200, min_stock=15, category="Braking")

    sales_service.complete_sale("Ahmad Khan", "CB150F", [{"part_id": oil.id, "quantity": 2}])
    closing_service.close_day(today=today)

    sales_service.complete_sale("Zubair Ali", "CG125 Self", [{"part_id": pads.id, "quantity": 1}])
    job = workshop_service.create_job("Bilal Ahmed", "CB125F", "Brake Service", 800, mechanic="Carlos Sainz")
    workshop_service.complete_job(
        job.id,
        parts_used=[{"part_id": pads.id, "quantity": 1}],
        additional_services=[{"name": "Brake bleed", "price": 300}],
    )
    workshop_service.create_job("Saad Sultan", "CD70 Dream", "Oil Change", mechanic="Dave Miller")
    notification_service.emit("REVENUE", "Target reached", "Daily sales target reached")
    return {"oil": oil, "pads": pads}


class TestRoundTrip:

    def test_every_collection_survives_json(self, db_session, populated):
        exported = snapshot_service.export_snapshot()
        restored_from = json.loads(json.dumps(exported))

        snapshot_service.import_snapshot(restored_from)
        db_session.expire_all()

        again = snapshot_service.export_snapshot()
        for key in snapshot_service.COLLECTIONS:
            assert again[key] == exported[key], key
        assert again["last_closed_date"] == exported["last_closed_date"]

    def test_numbers_stay_numbers(self, db_session, populated):
        exported = json.loads(json.dumps(snapshot_service.export_snapshot()))
        part = exported["parts"][0]
        assert isinstance(part["stock"], int)
        assert isinstance(part["price"], int)
        assert isinstance(exported["daily_reports"][0]["gross_revenue"], int)

    def test_import_replaces_existing_data(self, db_session, populated, make_part):
        exported = snapshot_service.export_snapshot()
        extra = make_part(name="Added after export", stock=3)
        sales_service.complete_sale("Late Buyer", "CD70", [{"part_id": extra.id, "quantity": 1}])

        counts = snapshot_service.import_snapshot(exported)

        assert counts["parts"] == 2
        assert db_session.get(Part, extra.id) is None
        assert db_session.query(Sale).count() == len(exported["sales"])

    def test_staff_passwords_survive(self, client, db_session, populated):
        exported = snapshot_service.export_snapshot()
        snapshot_service.import_snapshot(exported)

        resp = client.post("/api/auth/login", json={"username": "admin", "password": "AdminPass123"})
        assert resp.status_code == 200


class TestRejectedSnapshots:

    def test_malformed_row_leaves_data_untouched(self, db_session, populated):
        exported = snapshot_service.export_snapshot()
        exported["parts"][0].pop("price")

        with pytest.raises(SnapshotError) as exc:
            snapshot_service.import_snapshot(exported)

        assert exc.value.details["collection"] == "parts"
        assert db_session.query(Part).count() == 2

    def test_snapshot_without_admin_rejected(self, db_session, populated):
        exported = snapshot_service.export_snapshot()
        exported["staff"] = []
        with pytest.raises(SnapshotError):
            snapshot_service.import_snapshot(exported)

    def test_negative_stock_rejected(self, db_session, populated):
        exported = snapshot_service.export_snapshot()
        exported["parts"][0]["stock"] = -1

        with pytest.raises(SnapshotError):
            snapshot_service.import_snapshot(exported)
        assert db_session.query(Part).count() == 2

    def test_unknown_version_rejected(self, db_session):
        with pytest.raises(SnapshotError):
            snapshot_service.import_snapshot({"version": 99})
