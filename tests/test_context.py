from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from trucktrack.models.entities import Trip
from trucktrack.services import invoicing
from trucktrack.services.context import FleetContext, dedupe_by_id, normalize_record


class TestNormalize:
    def test_decimals_and_dates_become_json(self):
        rec = normalize_record({"id": "1", "montant": Decimal("12.5"), "date": date(2024, 1, 2)})
        assert rec == {"id": "1", "montant": 12.5, "date": "2024-01-02"}

    def test_missing_list_fields_default_to_empty(self):
        assert normalize_record({"id": "d", "transactions": None}, ("transactions",))["transactions"] == []

    def test_dedupe_keeps_first_position_last_version(self):
        records = [{"id": "a", "v": 1}, {"id": "b", "v": 1}, {"id": "a", "v": 2}]
        assert dedupe_by_id(records) == [{"id": "a", "v": 2}, {"id": "b", "v": 1}]


class TestFleetContext:
    def test_lazy_load_and_find(self, db, trip, driver):
        ctx = FleetContext(db)
        assert ctx.find("trips", trip.id)["client"] == "Brasseries du Cameroun"
        assert ctx.drivers[0]["transactions"] == []

    def test_mutate_refreshes_after_success(self, db, trip):
        ctx = FleetContext(db)
        ctx.refresh()
        invoice = ctx.mutate(
            lambda s: invoicing.create_trip_invoice(s, trip.id, today=date(2024, 6, 1)), "invoices"
        )
        assert ctx.find("invoices", invoice.id)["numero"] == "FAC-2024-001"

    def test_mutate_refreshes_and_reraises_on_error(self, db, trip):
        ctx = FleetContext(db)
        ctx.refresh("trips")

        def _boom(session):
            session.get(Trip, trip.id).client = "Modifié"
            raise ValueError("refusé")

        with pytest.raises(ValueError, match="refusé"):
            ctx.mutate(_boom, "trips")
        assert ctx.find("trips", trip.id)["client"] == "Brasseries du Cameroun"


class TestDashboard:
    def test_dashboard_figures(self, db, trip, expense):
        inv = invoicing.create_trip_invoice(db, trip.id, tva=0, today=date(2024, 5, 20))
        invoicing.record_payment(db, inv.id, 60000)
        ctx = FleetContext(db)
        ctx.refresh()
        stats = ctx.dashboard(today=date(2024, 6, 15))

        assert stats["total_recettes"] == 60000.0
        assert stats["total_depenses"] == 25000.0
        assert stats["profit"] == 35000.0
        assert stats["profit_margin"] == 58.3
        assert stats["invoices"]["en_attente"] == 1
        assert stats["invoices"]["montant_en_attente"] == 100000.0
        assert stats["trips"]["en_cours"] == 1
        assert stats["top_trucks"][0]["revenue"] == 60000.0
        assert stats["expenses_by_category"] == [{"name": "Carburant", "value": 25000.0, "percentage": 100.0}]
        assert [m["month"] for m in stats["monthly"]] == ["avr.", "mai", "juin"]
        assert stats["monthly"][1]["recettes"] == 60000.0
