# trucktrack/services/reports.py
"""Définition des exports tabulaires (trajets, dépenses, factures, caisse)."""
from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from trucktrack.models.cashbook import CashEntry
from trucktrack.models.entities import Driver, Expense, Invoice, Trip, Truck
from trucktrack.services import cashbook, invoicing
from trucktrack.services.exports import Column, TableExport
from trucktrack.services.money import D, ZERO, fmt_fcfa

REPORTS = ("trips", "expenses", "invoices", "caisse")

_TRIP_STATUS = {"planifie": "Planifié", "en_cours": "En cours", "termine": "Terminé", "annule": "Annulé"}
_INVOICE_STATUS = {"en_attente": "En attente", "payee": "Payée"}


def _fmt_date(d) -> str:
    return f"{d:%d/%m/%Y}" if d else ""


def trips_report(db: Session) -> TableExport:
    drivers = {d.id: d.full_name for d in db.query(Driver).all()}
    trips = db.query(Trip).order_by(Trip.date_depart.desc()).all()
    total = sum((D(t.recette) for t in trips), start=ZERO)
    return TableExport(
        title="Liste des trajets",
        sheet_name="Trajets",
        columns=[
            Column("Itinéraire", lambda t: t.label),
            Column("Client", lambda t: t.client or "-"),
            Column("Chauffeur", lambda t: drivers.get(t.chauffeur_id, "-")),
            Column("Statut", lambda t: _TRIP_STATUS.get(t.statut, t.statut)),
            Column("Départ", lambda t: _fmt_date(t.date_depart)),
            Column("Arrivée", lambda t: _fmt_date(t.date_arrivee)),
            Column("Recette (FCFA)", lambda t: float(D(t.recette))),
        ],
        rows=trips,
        totals=[("Nombre de trajets", len(trips)), ("Total recettes", fmt_fcfa(total))],
    )


def expenses_report(db: Session) -> TableExport:
    trucks = {t.id: t.immatriculation for t in db.query(Truck).all()}
    expenses = db.query(Expense).order_by(Expense.date.desc()).all()
    total = sum((D(e.montant) for e in expenses), start=ZERO)
    return TableExport(
        title="Liste des dépenses",
        sheet_name="Dépenses",
        columns=[
            Column("Date", lambda e: _fmt_date(e.date)),
            Column("Camion", lambda e: trucks.get(e.camion_id, "-")),
            Column("Catégorie", lambda e: e.categorie),
            Column("Sous-catégorie", lambda e: e.sous_categorie or "-"),
            Column("Description", lambda e: e.description),
            Column("Montant (FCFA)", lambda e: float(D(e.montant))),
        ],
        rows=expenses,
        totals=[("Nombre de dépenses", len(expenses)), ("Total dépenses", fmt_fcfa(total))],
    )


def invoices_report(db: Session, filters: Optional[invoicing.InvoiceFilters] = None) -> TableExport:
    trips = {t.id: t for t in db.query(Trip).all()}
    expenses = {e.id: e for e in db.query(Expense).all()}
    invoices = db.query(Invoice).order_by(Invoice.date_creation.desc(), Invoice.numero.desc()).all()
    filters = filters or invoicing.InvoiceFilters()
    if filters.is_active():
        invoices = invoicing.filter_invoices(invoices, filters, trips, expenses)

    def details(inv):
        if inv.trajet_id and inv.trajet_id in trips:
            return trips[inv.trajet_id].label
        if inv.expense_id and inv.expense_id in expenses:
            return expenses[inv.expense_id].description
        return "-"

    def client(inv):
        if inv.trajet_id and inv.trajet_id in trips:
            return trips[inv.trajet_id].client or "-"
        return "-"

    stats = invoicing.invoice_stats(invoices)
    return TableExport(
        title="Liste des factures",
        sheet_name="Factures",
        filters_description=" | ".join(filters.describe()),
        columns=[
            Column("Numéro", lambda inv: inv.numero),
            Column("Type", lambda inv: "Dépense" if inv.expense_id else "Trajet"),
            Column("Détails", details),
            Column("Client", client),
            Column("Date création", lambda inv: _fmt_date(inv.date_creation)),
            Column("Montant TTC", lambda inv: float(D(inv.montant_ttc))),
            Column("Montant payé", lambda inv: float(D(inv.montant_paye))),
            Column("Statut", lambda inv: _INVOICE_STATUS.get(inv.statut, inv.statut)),
        ],
        rows=invoices,
        totals=[
            ("Nombre de factures", stats["total"]),
            ("Total HT", fmt_fcfa(stats["montant_total_ht"])),
            ("Reste à encaisser", fmt_fcfa(stats["montant_en_attente"])),
        ],
    )


def caisse_report(db: Session) -> TableExport:
    entries = db.query(CashEntry).all()
    solde_initial = cashbook.get_solde_initial(db)
    summary = cashbook.cash_summary(entries, solde_initial)
    return TableExport(
        title="Journal de caisse",
        sheet_name="Caisse",
        columns=[
            Column("Date", lambda r: r["date"]),
            Column("Description", lambda r: r["description"]),
            Column("Référence", lambda r: r["reference"] or "-"),
            Column("Recette", lambda r: r["recette"] or ""),
            Column("Dépense", lambda r: r["depense"] or ""),
            Column("Solde", lambda r: r["solde"]),
        ],
        rows=cashbook.running_balance(entries, solde_initial),
        totals=[
            ("Solde initial", fmt_fcfa(summary["solde_initial"])),
            ("Total recettes", fmt_fcfa(summary["total_recettes"])),
            ("Total dépenses", fmt_fcfa(summary["total_depenses"])),
            ("Solde actuel", fmt_fcfa(summary["solde_actuel"])),
        ],
    )


def build_report(db: Session, name: str, filters: Optional[invoicing.InvoiceFilters] = None) -> TableExport:
    if name == "trips":
        return trips_report(db)
    if name == "expenses":
        return expenses_report(db)
    if name == "invoices":
        return invoices_report(db, filters)
    if name == "caisse":
        return caisse_report(db)
    raise ValueError(f"Rapport inconnu: {name}")
