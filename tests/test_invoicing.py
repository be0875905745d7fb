from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from trucktrack.models.entities import Expense, Invoice, Trip
from trucktrack.services import invoicing
from trucktrack.services.errors import ConflictError, NotFoundError


class TestComputeInvoiceAmounts:
    def test_remise_then_tva(self):
        amounts = invoicing.compute_invoice_amounts(100000, remise=10, tva=19.25)
        assert amounts.montant_remise == Decimal("10000.00")
        assert amounts.montant_ht_apres_remise == Decimal("90000.00")
        assert amounts.tva == Decimal("17325.00")
        assert amounts.montant_ttc == Decimal("107325.00")

    def test_tps_applies_on_discounted_base(self):
        amounts = invoicing.compute_invoice_amounts(200000, remise=50, tva=0, tps=2)
        assert amounts.montant_ht_apres_remise == Decimal("100000.00")
        assert amounts.tps == Decimal("2000.00")
        assert amounts.montant_ttc == Decimal("102000.00")

    def test_optional_fields_only_when_rate_positive(self):
        fields = invoicing.compute_invoice_amounts(50000).invoice_fields()
        assert fields["remise"] is None
        assert fields["montant_ht_apres_remise"] is None
        assert fields["tva"] is None
        assert fields["tps"] is None
        assert fields["montant_ttc"] == Decimal("50000.00")

    def test_negative_rate_rejected(self):
        with pytest.raises(ValueError):
            invoicing.compute_invoice_amounts(1000, tva=-1)

    def test_remise_above_hundred_rejected(self):
        with pytest.raises(ValueError, match="100"):
            invoicing.compute_invoice_amounts(1000, remise=120)


class TestInvoiceNumbers:
    def test_first_number_of_year(self):
        assert invoicing.next_invoice_number([], 2024) == "FAC-2024-001"

    def test_max_plus_one_ignores_gaps(self):
        numbers = ["FAC-2024-001", "FAC-2024-007", "FAC-2024-003"]
        assert invoicing.next_invoice_number(numbers, 2024) == "FAC-2024-008"

    def test_other_years_ignored(self):
        assert invoicing.next_invoice_number(["FAC-2023-041"], 2024) == "FAC-2024-001"

    def test_expense_sequence_is_separate(self):
        numbers = ["FAC-2024-005", "FAC-EXP-2024-002"]
        assert invoicing.next_invoice_number(numbers, 2024, invoicing.KIND_EXPENSE) == "FAC-EXP-2024-003"
        assert invoicing.next_invoice_number(numbers, 2024, invoicing.KIND_TRIP) == "FAC-2024-006"


class TestCreateInvoices:
    def test_trip_invoice(self, db, trip):
        inv = invoicing.create_trip_invoice(db, trip.id, remise=10, tva=19.25, today=date(2024, 6, 1))
        assert inv.numero == "FAC-2024-001"
        assert inv.statut == "en_attente"
        assert inv.montant_ttc == Decimal("107325.00")
        assert inv.montant_paye == Decimal("0")
        assert inv.trajet_id == trip.id

    def test_trip_cannot_be_invoiced_twice(self, db, trip):
        invoicing.create_trip_invoice(db, trip.id, today=date(2024, 6, 1))
        with pytest.raises(ConflictError, match="déjà facturé"):
            invoicing.create_trip_invoice(db, trip.id, today=date(2024, 6, 2))

    def test_trip_without_recette_rejected(self, db, trip):
        trip.recette = Decimal("0")
        db.commit()
        with pytest.raises(ValueError, match="pas de recette"):
            invoicing.create_trip_invoice(db, trip.id)

    def test_unknown_trip(self, db):
        with pytest.raises(NotFoundError):
            invoicing.create_trip_invoice(db, "nope")

    def test_expense_invoice_numbering(self, db, expense):
        inv = invoicing.create_expense_invoice(db, expense.id, tva=0, today=date(2024, 6, 1))
        assert inv.numero == "FAC-EXP-2024-001"
        assert inv.montant_ttc == Decimal("25000.00")
        with pytest.raises(ConflictError, match="déjà facturée"):
            invoicing.create_expense_invoice(db, expense.id)


class TestPayments:
    @pytest.fixture
    def invoice(self, db, trip):
        return invoicing.create_trip_invoice(db, trip.id, remise=10, tva=19.25, today=date(2024, 6, 1))

    def test_full_payment_marks_paid(self, db, invoice, trip):
        inv, message = invoicing.record_payment(db, invoice.id, 107325, today=date(2024, 6, 10))
        assert inv.statut == "payee"
        assert inv.date_paiement == date(2024, 6, 10)
        assert message == "Facture marquée comme payée complètement"
        db.refresh(trip)
        assert trip.recette == Decimal("107325.00")

    def test_partial_payment_keeps_pending_and_syncs_trip(self, db, invoice, trip):
        inv, message = invoicing.record_payment(db, invoice.id, 50000)
        assert inv.statut == "en_attente"
        assert message == "Paiement partiel enregistré: 50 000 FCFA sur 107 325 FCFA"
        db.refresh(trip)
        assert trip.recette == Decimal("50000.00")

    def test_overpayment_rejected(self, db, invoice):
        with pytest.raises(ValueError, match="dépasser le montant TTC"):
            invoicing.record_payment(db, invoice.id, 200000)

    def test_negative_payment_rejected(self, db, invoice):
        with pytest.raises(ValueError, match="négatif"):
            invoicing.record_payment(db, invoice.id, -1)

    def test_reset_to_zero(self, db, invoice):
        invoicing.record_payment(db, invoice.id, 1000)
        inv, message = invoicing.record_payment(db, invoice.id, 0)
        assert message == "Paiement remis à zéro"
        assert inv.date_paiement is None
        assert inv.statut == "en_attente"


def _inv(numero, statut="en_attente", trajet_id=None, expense_id=None, ttc=1000, paye=0, created=date(2024, 1, 1)):
    return Invoice(
        id=numero, numero=numero, statut=statut, trajet_id=trajet_id, expense_id=expense_id,
        montant_ht=Decimal(ttc), montant_ttc=Decimal(ttc), montant_paye=Decimal(paye),
        date_creation=created,
    )


class TestFiltersAndStats:
    @pytest.fixture
    def data(self):
        trips = {
            "t1": Trip(id="t1", chauffeur_id="d1", client="Sabc", origine="A", destination="B"),
            "t2": Trip(id="t2", chauffeur_id="d2", client="Cimencam", origine="A", destination="C"),
        }
        expenses = {
            "e1": Expense(id="e1", chauffeur_id="d2", categorie="Péage", description="Pont du Wouri"),
        }
        invoices = [
            _inv("FAC-2024-001", "payee", trajet_id="t1", paye=1000, created=date(2024, 1, 10)),
            _inv("FAC-2024-002", trajet_id="t2", ttc=2000, paye=500, created=date(2024, 2, 10)),
            _inv("FAC-EXP-2024-001", expense_id="e1", ttc=300, created=date(2024, 3, 10)),
        ]
        return invoices, trips, expenses

    def _numbers(self, data, **kw):
        invoices, trips, expenses = data
        result = invoicing.filter_invoices(invoices, invoicing.InvoiceFilters(**kw), trips, expenses)
        return [inv.numero for inv in result]

    def test_search_matches_client_and_expense_fields(self, data):
        assert self._numbers(data, search_term="cimen") == ["FAC-2024-002"]
        assert self._numbers(data, search_term="wouri") == ["FAC-EXP-2024-001"]

    def test_type_filter(self, data):
        assert self._numbers(data, type="expense") == ["FAC-EXP-2024-001"]
        assert len(self._numbers(data, type="trip")) == 2

    def test_driver_filter_covers_trips_and_expenses(self, data):
        assert self._numbers(data, driver_id="d2") == ["FAC-2024-002", "FAC-EXP-2024-001"]

    def test_status_and_dates(self, data):
        assert self._numbers(data, status="payee") == ["FAC-2024-001"]
        assert self._numbers(data, date_from=date(2024, 2, 1), date_to=date(2024, 2, 28)) == ["FAC-2024-002"]

    def test_filters_description(self):
        f = invoicing.InvoiceFilters(search_term="abc", status="payee")
        assert f.is_active()
        assert f.describe() == ['Recherche: "abc"', "Statut: Payée"]
        assert not invoicing.InvoiceFilters().is_active()

    def test_stats(self, data):
        invoices, _, _ = data
        stats = invoicing.invoice_stats(invoices)
        assert stats["total"] == 3
        assert stats["payees"] == 1
        assert stats["en_attente"] == 2
        assert stats["montant_en_attente"] == 1800.0
        assert invoicing.pending_invoices_amount(invoices) == Decimal("2300")

    def test_available_trips_excludes_invoiced_and_empty(self):
        trips = [
            Trip(id="a", recette=Decimal("10")),
            Trip(id="b", recette=Decimal("0")),
            Trip(id="c", recette=Decimal("5")),
        ]
        available = invoicing.available_trips_for_invoicing(trips, [_inv("X", trajet_id="c")])
        assert [t.id for t in available] == ["a"]
