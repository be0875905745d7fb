from __future__ import annotations

from datetime import date
from io import BytesIO

from openpyxl import load_workbook

from trucktrack.services import exports, invoicing
from trucktrack.services.exports import Column, TableExport
from trucktrack.services.reports import build_report


def _export(rows):
    return TableExport(
        title="Essai",
        columns=[Column("Nom", lambda r: r["nom"]), Column("Montant", lambda r: r["montant"])],
        rows=rows,
        totals=[("Total", "1 500 FCFA")],
        filters_description="Statut: Payée",
    )


class TestTableExport:
    def test_header_and_rows(self):
        export = _export([{"nom": "A", "montant": 1000}, {"nom": "B", "montant": 500}])
        assert export.header_row() == ["Nom", "Montant"]
        assert export.data_rows() == [["A", 1000], ["B", 500]]

    def test_xlsx(self):
        content = exports.to_xlsx(_export([{"nom": "A", "montant": 1000}]))
        assert content[:2] == b"PK"
        ws = load_workbook(BytesIO(content)).active
        values = [c for row in ws.iter_rows(values_only=True) for c in row if c is not None]
        assert "Nom" in values
        assert 1000 in values

    def test_pdf(self):
        assert exports.to_pdf(_export([{"nom": "A", "montant": 1000}])).startswith(b"%PDF")

    def test_pdf_without_rows(self):
        assert exports.to_pdf(_export([])).startswith(b"%PDF")


class TestReports:
    def test_all_reports_render(self, db, trip, expense):
        invoicing.create_trip_invoice(db, trip.id, today=date(2024, 6, 1))
        for name in ("trips", "expenses", "invoices", "caisse"):
            export = build_report(db, name)
            assert exports.to_pdf(export).startswith(b"%PDF")
            assert exports.to_xlsx(export)[:2] == b"PK"

    def test_invoice_filters_applied(self, db, trip):
        invoicing.create_trip_invoice(db, trip.id, today=date(2024, 6, 1))
        export = build_report(db, "invoices", invoicing.InvoiceFilters(status="payee"))
        assert export.rows == []
        assert export.filters_description == "Statut: Payée"

    def test_invoice_pdf(self, db, trip):
        inv = invoicing.create_trip_invoice(db, trip.id, remise=10, tva=19.25, today=date(2024, 6, 1))
        company = {"name": "Trans <Cam>", "niu": "", "address": "", "city": "Douala", "phone": ""}
        pdf = exports.invoice_pdf(inv, company, trip=trip, client_name=trip.client)
        assert pdf.startswith(b"%PDF")
