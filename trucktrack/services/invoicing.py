# trucktrack/services/invoicing.py
"""
Facturation: calcul HT -> remise -> TVA/TPS -> TTC, numérotation,
création de factures (trajet ou dépense), paiements partiels et filtres.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Optional, Sequence

from sqlalchemy.orm import Session

from trucktrack.models.entities import Expense, Invoice, Trip
from trucktrack.services.crud import get_or_404
from trucktrack.services.errors import ConflictError
from trucktrack.services.money import D, ZERO, fmt_fcfa, round2, to_float
from trucktrack.services.sync import sync_invoice_payment_with_trip

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")

KIND_TRIP = "trip"
KIND_EXPENSE = "expense"

_NUMBER_PREFIX = {KIND_TRIP: "FAC", KIND_EXPENSE: "FAC-EXP"}
_NUMBER_RE = {
    KIND_TRIP: re.compile(r"^FAC-(\d{4})-(\d+)$"),
    KIND_EXPENSE: re.compile(r"^FAC-EXP-(\d{4})-(\d+)$"),
}


@dataclass
class InvoiceAmounts:
    montant_ht: Decimal
    remise_pct: Decimal
    montant_remise: Decimal
    montant_ht_apres_remise: Decimal
    tva_pct: Decimal
    tva: Decimal
    tps_pct: Decimal
    tps: Decimal
    montant_ttc: Decimal

    def invoice_fields(self) -> dict:
        """Champs de la facture; les montants optionnels ne sont posés que si leur taux > 0."""
        has_remise = self.remise_pct > 0
        return {
            "montant_ht": self.montant_ht,
            "remise": self.remise_pct if has_remise else None,
            "montant_ht_apres_remise": self.montant_ht_apres_remise if has_remise else None,
            "tva": self.tva if self.tva_pct > 0 else None,
            "tps": self.tps if self.tps_pct > 0 else None,
            "montant_ttc": self.montant_ttc,
        }

    def as_dict(self) -> dict:
        return {k: float(v) for k, v in self.__dict__.items()}


def _pct(value: Any, label: str) -> Decimal:
    pct = D(value)
    if pct < 0:
        raise ValueError(f"{label} ne peut pas être négatif(ve)")
    return pct


def compute_invoice_amounts(montant_ht: Any, remise: Any = 0, tva: Any = 0, tps: Any = 0) -> InvoiceAmounts:
    """
    remise/tva/tps sont des pourcentages.
    HT après remise = HT - HT x remise%; TVA et TPS portent sur le HT après remise.
    """
    ht = D(montant_ht)
    if ht < 0:
        raise ValueError("Le montant HT ne peut pas être négatif")
    remise_pct = _pct(remise, "La remise")
    if remise_pct > HUNDRED:
        raise ValueError("La remise ne peut pas dépasser 100 %")
    tva_pct = _pct(tva, "La TVA")
    tps_pct = _pct(tps, "La TPS")

    montant_remise = round2(ht * remise_pct / HUNDRED)
    ht_apres = round2(ht - montant_remise)
    montant_tva = round2(ht_apres * tva_pct / HUNDRED)
    montant_tps = round2(ht_apres * tps_pct / HUNDRED)
    ttc = round2(ht_apres + montant_tva + montant_tps)

    return InvoiceAmounts(
        montant_ht=round2(ht),
        remise_pct=remise_pct,
        montant_remise=montant_remise,
        montant_ht_apres_remise=ht_apres,
        tva_pct=tva_pct,
        tva=montant_tva,
        tps_pct=tps_pct,
        tps=montant_tps,
        montant_ttc=ttc,
    )


def next_invoice_number(numbers: Iterable[str], year: int, kind: str = KIND_TRIP) -> str:
    """FAC-YYYY-NNN / FAC-EXP-YYYY-NNN, un de plus que la plus haute séquence de l'année."""
    pattern = _NUMBER_RE[kind]
    highest = 0
    for num in numbers:
        m = pattern.match(num or "")
        if m and int(m.group(1)) == year:
            highest = max(highest, int(m.group(2)))
    return f"{_NUMBER_PREFIX[kind]}-{year}-{highest + 1:03d}"


def _all_numbers(db: Session) -> list[str]:
    return [n for (n,) in db.query(Invoice.numero).all()]


# ---------- Disponibilité ----------

def available_trips_for_invoicing(trips: Sequence[Trip], invoices: Sequence[Invoice]) -> list[Trip]:
    invoiced = {inv.trajet_id for inv in invoices if inv.trajet_id}
    return [t for t in trips if D(t.recette) > 0 and t.id not in invoiced]


def available_expenses_for_invoicing(expenses: Sequence[Expense], invoices: Sequence[Invoice]) -> list[Expense]:
    invoiced = {inv.expense_id for inv in invoices if inv.expense_id}
    return [e for e in expenses if e.id not in invoiced]


# ---------- Création ----------

def _new_invoice(
    db: Session,
    amounts: InvoiceAmounts,
    kind: str,
    today: date,
    mode_paiement: Optional[str],
    notes: Optional[str],
    **link: Any,
) -> Invoice:
    invoice = Invoice(
        numero=next_invoice_number(_all_numbers(db), today.year, kind),
        statut="en_attente",
        montant_paye=ZERO,
        date_creation=today,
        mode_paiement=mode_paiement or None,
        notes=notes or None,
        **amounts.invoice_fields(),
        **link,
    )
    db.add(invoice)
    db.commit()
    db.refresh(invoice)
    logger.info("Facture %s créée (TTC %s)", invoice.numero, invoice.montant_ttc)
    return invoice


def create_trip_invoice(
    db: Session,
    trip_id: str,
    remise: Any = 0,
    tva: Any = 0,
    tps: Any = 0,
    mode_paiement: Optional[str] = None,
    notes: Optional[str] = None,
    today: Optional[date] = None,
) -> Invoice:
    trip = get_or_404(db, Trip, trip_id, "Trajet")
    if db.query(Invoice).filter(Invoice.trajet_id == trip.id).first() is not None:
        raise ConflictError("Ce trajet est déjà facturé")
    if D(trip.recette) <= 0:
        raise ValueError("Le trajet n'a pas de recette à facturer")
    amounts = compute_invoice_amounts(trip.recette, remise, tva, tps)
    return _new_invoice(db, amounts, KIND_TRIP, today or date.today(), mode_paiement, notes,
                        trajet_id=trip.id)


def create_expense_invoice(
    db: Session,
    expense_id: str,
    remise: Any = 0,
    tva: Any = 0,
    tps: Any = 0,
    mode_paiement: Optional[str] = None,
    notes: Optional[str] = None,
    today: Optional[date] = None,
) -> Invoice:
    expense = get_or_404(db, Expense, expense_id, "Dépense")
    if db.query(Invoice).filter(Invoice.expense_id == expense.id).first() is not None:
        raise ConflictError("Cette dépense est déjà facturée")
    amounts = compute_invoice_amounts(expense.montant, remise, tva, tps)
    return _new_invoice(db, amounts, KIND_EXPENSE, today or date.today(), mode_paiement, notes,
                        expense_id=expense.id)


# ---------- Paiements ----------

def apply_payment(invoice: Invoice, montant_paye: Any, today: Optional[date] = None) -> str:
    """
    Pose le montant cumulé payé sur la facture et renvoie le message à afficher.
    Lève ValueError si le montant est négatif ou dépasse le TTC.
    """
    paid = D(montant_paye)
    ttc = D(invoice.montant_ttc)
    if paid < 0:
        raise ValueError("Le montant payé ne peut pas être négatif")
    if paid > ttc:
        raise ValueError("Le montant payé ne peut pas dépasser le montant TTC")

    invoice.montant_paye = round2(paid)
    invoice.statut = "payee" if paid >= ttc else "en_attente"
    if paid > 0:
        invoice.date_paiement = invoice.date_paiement or today or date.today()
    else:
        invoice.date_paiement = None

    if paid >= ttc:
        return "Facture marquée comme payée complètement"
    if paid > 0:
        return f"Paiement partiel enregistré: {fmt_fcfa(paid)} sur {fmt_fcfa(ttc)}"
    return "Paiement remis à zéro"


def record_payment(db: Session, invoice_id: str, montant_paye: Any, today: Optional[date] = None) -> tuple[Invoice, str]:
    invoice = get_or_404(db, Invoice, invoice_id, "Facture")
    try:
        message = apply_payment(invoice, montant_paye, today)
    except ValueError:
        logger.warning("Paiement refusé pour la facture %s (%s)", invoice.numero, montant_paye)
        raise
    db.flush()
    sync_invoice_payment_with_trip(db, invoice)
    db.commit()
    db.refresh(invoice)
    logger.info("Paiement facture %s: %s / %s", invoice.numero, invoice.montant_paye, invoice.montant_ttc)
    return invoice, message


# ---------- Filtres / statistiques ----------

@dataclass
class InvoiceFilters:
    search_term: str = ""
    type: str = ""          # "trip" | "expense"
    trip_id: str = ""
    driver_id: str = ""
    status: str = ""
    date_from: Optional[date] = None
    date_to: Optional[date] = None

    def is_active(self) -> bool:
        return any(v not in ("", None) for v in self.__dict__.values())

    def describe(self) -> list[str]:
        parts = []
        if self.search_term:
            parts.append(f'Recherche: "{self.search_term}"')
        if self.type:
            parts.append(f"Type: {'Dépense' if self.type == KIND_EXPENSE else 'Trajet'}")
        if self.trip_id:
            parts.append("Trajet filtré")
        if self.driver_id:
            parts.append("Chauffeur filtré")
        if self.status:
            parts.append(f"Statut: {'En attente' if self.status == 'en_attente' else 'Payée'}")
        if self.date_from:
            parts.append(f"Du: {self.date_from:%d/%m/%Y}")
        if self.date_to:
            parts.append(f"Au: {self.date_to:%d/%m/%Y}")
        return parts


def _contains(haystack: Optional[str], needle: str) -> bool:
    return bool(haystack) and needle in haystack.lower()


def filter_invoices(
    invoices: Sequence[Invoice],
    filters: InvoiceFilters,
    trips_by_id: dict[str, Trip],
    expenses_by_id: dict[str, Expense],
) -> list[Invoice]:
    out = []
    for inv in invoices:
        trip = trips_by_id.get(inv.trajet_id) if inv.trajet_id else None
        expense = expenses_by_id.get(inv.expense_id) if inv.expense_id else None

        if filters.type == KIND_EXPENSE and not inv.expense_id:
            continue
        if filters.type == KIND_TRIP and not inv.trajet_id:
            continue

        if filters.search_term:
            needle = filters.search_term.lower()
            if not (
                _contains(trip.client if trip else None, needle)
                or _contains(inv.numero, needle)
                or _contains(expense.description if expense else None, needle)
                or _contains(expense.categorie if expense else None, needle)
            ):
                continue

        if filters.trip_id and inv.trajet_id != filters.trip_id:
            continue

        if filters.driver_id:
            trip_driver = trip.chauffeur_id if trip else None
            expense_driver = expense.chauffeur_id if expense else None
            if filters.driver_id not in (trip_driver, expense_driver):
                continue

        if filters.status and inv.statut != filters.status:
            continue
        if filters.date_from and inv.date_creation < filters.date_from:
            continue
        if filters.date_to and inv.date_creation > filters.date_to:
            continue
        out.append(inv)
    return out


def outstanding_amount(invoice: Invoice) -> Decimal:
    return max(ZERO, D(invoice.montant_ttc) - D(invoice.montant_paye))


def invoice_stats(invoices: Sequence[Invoice]) -> dict:
    return {
        "total": len(invoices),
        "payees": sum(1 for inv in invoices if inv.statut == "payee"),
        "en_attente": sum(1 for inv in invoices if inv.statut == "en_attente"),
        "montant_total_ht": to_float(sum((D(inv.montant_ht) for inv in invoices), start=ZERO)),
        "montant_en_attente": to_float(sum((outstanding_amount(inv) for inv in invoices), start=ZERO)),
    }


def pending_invoices_amount(invoices: Sequence[Invoice]) -> Decimal:
    return sum((D(inv.montant_ttc) for inv in invoices if inv.statut == "en_attente"), start=ZERO)
