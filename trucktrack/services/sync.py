# trucktrack/services/sync.py
"""
Synchronisation entre modules: factures -> trajets, dépenses -> chauffeurs,
et statistiques croisées (chauffeur, camion, trajet).

Les fonctions de mutation ne font pas de commit; l'appelant s'en charge.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from sqlalchemy.orm import Session

from trucktrack.models.entities import (
    ACTIVE_TRIP_STATUSES, Driver, DriverTransaction, Expense, Invoice, Trip, Truck,
)
from trucktrack.services.errors import ConflictError
from trucktrack.services.money import D, ZERO, round2, to_float

logger = logging.getLogger(__name__)

EXPENSE_TX_PREFIX = "expense_"


def expense_transaction_id(expense_id: str) -> str:
    return f"{EXPENSE_TX_PREFIX}{expense_id}"


# ---------- Factures -> trajets ----------

def paid_amount_for_trip(trip_id: str, invoices: Iterable[Invoice]) -> Decimal:
    """Somme des montants payés de toutes les factures du trajet."""
    return sum(
        (D(inv.montant_paye) for inv in invoices if inv.trajet_id == trip_id),
        start=ZERO,
    )


def sync_invoice_payment_with_trip(db: Session, invoice: Invoice) -> Optional[Trip]:
    """
    La recette du trajet représente le montant total payé par le client:
    elle est recalculée à partir de toutes les factures du trajet.
    """
    if not invoice.trajet_id:
        return None
    trip = db.get(Trip, invoice.trajet_id)
    if trip is None:
        return None
    invoices = db.query(Invoice).filter(Invoice.trajet_id == trip.id).all()
    trip.recette = round2(paid_amount_for_trip(trip.id, invoices))
    db.add(trip)
    logger.info("Recette du trajet %s synchronisée: %s", trip.id, trip.recette)
    return trip


# ---------- Dépenses -> chauffeurs ----------

def _expense_description(expense: Expense) -> str:
    return f"Dépense: {expense.description} ({expense.categorie})"


def sync_expense_with_driver(db: Session, expense: Expense) -> Optional[DriverTransaction]:
    """Crée (ou met à jour) la sortie du chauffeur liée à la dépense."""
    if not expense.chauffeur_id:
        return None
    driver = db.get(Driver, expense.chauffeur_id)
    if driver is None:
        return None

    tx_id = expense_transaction_id(expense.id)
    tx = db.get(DriverTransaction, tx_id)
    if tx is None:
        tx = DriverTransaction(id=tx_id, driver_id=driver.id, type="sortie")
    tx.driver_id = driver.id
    tx.montant = expense.montant
    tx.date = expense.date
    tx.description = _expense_description(expense)
    db.add(tx)
    return tx


def remove_expense_from_driver(db: Session, expense_id: str) -> bool:
    tx = db.get(DriverTransaction, expense_transaction_id(expense_id))
    if tx is None:
        return False
    db.delete(tx)
    return True


def delete_expenses_for_truck(db: Session, truck_id: str) -> int:
    """Supprime les dépenses d'un camion et les sorties chauffeur associées."""
    expenses = db.query(Expense).filter(Expense.camion_id == truck_id).all()
    ids = [e.id for e in expenses]
    if ids and db.query(Invoice).filter(Invoice.expense_id.in_(ids)).first() is not None:
        raise ConflictError(
            "Impossible de supprimer ce camion : une de ses dépenses est facturée. Supprimez d'abord la facture."
        )
    for expense in expenses:
        remove_expense_from_driver(db, expense.id)
        db.delete(expense)
    return len(expenses)


# ---------- Règles de suppression / statut ----------

def is_truck_in_use(truck_id: str, trips: Iterable[Trip]) -> bool:
    return any(
        truck_id in (t.tracteur_id, t.remorqueuse_id) and t.statut in ACTIVE_TRIP_STATUSES
        for t in trips
    )


def is_driver_on_mission(driver_id: str, trips: Iterable[Trip]) -> bool:
    return any(t.chauffeur_id == driver_id and t.statut in ACTIVE_TRIP_STATUSES for t in trips)


def can_delete_trip(trip_id: str, invoices: Iterable[Invoice]) -> bool:
    return not any(inv.trajet_id == trip_id for inv in invoices)


def can_delete_driver(driver_id: str, trips: Iterable[Trip]) -> bool:
    return not is_driver_on_mission(driver_id, trips)


def update_truck_status(truck: Truck, trips: Iterable[Trip]) -> bool:
    """Un camion utilisé par un trajet actif mais marqué inactif repasse actif."""
    if truck.statut == "inactif" and is_truck_in_use(truck.id, trips):
        truck.statut = "actif"
        return True
    return False


def refresh_truck_statuses(db: Session, trip: Trip) -> None:
    trips = db.query(Trip).all()
    for truck_id in (trip.tracteur_id, trip.remorqueuse_id):
        truck = db.get(Truck, truck_id) if truck_id else None
        if truck is not None and update_truck_status(truck, trips):
            logger.info("Camion %s réactivé (trajet %s)", truck.immatriculation, trip.id)


# ---------- Statistiques ----------

def driver_stats(driver: Driver, trips: Sequence[Trip], expenses: Sequence[Expense]) -> dict:
    """
    Apports = recettes des trajets terminés + apports manuels.
    Sorties = dépenses imputées au chauffeur (directement ou via un de ses
    trajets) + sorties manuelles. Les sorties "expense_<id>" sont déjà
    comptées via les dépenses.
    """
    driver_trips = [t for t in trips if t.chauffeur_id == driver.id and t.statut == "termine"]
    own_trip_ids = {t.id for t in trips if t.chauffeur_id == driver.id}
    driver_expenses = [
        e for e in expenses
        if e.chauffeur_id == driver.id or (e.trip_id and e.trip_id in own_trip_ids)
    ]
    manual = [tx for tx in driver.transactions if not tx.id.startswith(EXPENSE_TX_PREFIX)]

    apports_trips = sum((D(t.recette) for t in driver_trips), start=ZERO)
    apports_manual = sum((D(tx.montant) for tx in manual if tx.type == "apport"), start=ZERO)
    sorties_expenses = sum((D(e.montant) for e in driver_expenses), start=ZERO)
    sorties_manual = sum((D(tx.montant) for tx in manual if tx.type == "sortie"), start=ZERO)

    rows = [
        {"id": f"trip_{t.id}", "type": "apport", "montant": to_float(t.recette),
         "date": t.date_arrivee or t.date_depart, "description": f"Trajet: {t.label}",
         "source": "trajet"}
        for t in driver_trips
    ]
    rows += [
        {"id": expense_transaction_id(e.id), "type": "sortie", "montant": to_float(e.montant),
         "date": e.date, "description": _expense_description(e), "source": "depense"}
        for e in driver_expenses
    ]
    rows += [
        {"id": tx.id, "type": tx.type, "montant": to_float(tx.montant), "date": tx.date,
         "description": tx.description, "source": "manuel"}
        for tx in manual
    ]
    rows.sort(key=lambda r: r["date"], reverse=True)
    for r in rows:
        r["date"] = r["date"].isoformat()

    apports = apports_trips + apports_manual
    sorties = sorties_expenses + sorties_manual
    return {
        "apports": to_float(apports),
        "sorties": to_float(sorties),
        "balance": to_float(apports - sorties),
        "apports_from_trips": to_float(apports_trips),
        "apports_from_manual": to_float(apports_manual),
        "sorties_from_expenses": to_float(sorties_expenses),
        "sorties_from_manual": to_float(sorties_manual),
        "transactions": rows,
    }


def truck_stats(
    truck_id: str,
    trips: Sequence[Trip],
    expenses: Sequence[Expense],
    invoices: Optional[Sequence[Invoice]] = None,
) -> dict:
    """Revenus des trajets terminés (montants payés si les factures sont fournies)."""
    truck_trips = [
        t for t in trips
        if truck_id in (t.tracteur_id, t.remorqueuse_id) and t.statut == "termine"
    ]
    if invoices is not None:
        revenue = sum((paid_amount_for_trip(t.id, invoices) for t in truck_trips), start=ZERO)
    else:
        revenue = sum((D(t.recette) for t in truck_trips), start=ZERO)
    spent = sum((D(e.montant) for e in expenses if e.camion_id == truck_id), start=ZERO)
    return {
        "revenue": to_float(revenue),
        "expenses": to_float(spent),
        "profit": to_float(revenue - spent),
        "trips_count": len(truck_trips),
    }


def trip_stats(
    trip: Trip,
    expenses: Sequence[Expense],
    invoices: Optional[Sequence[Invoice]] = None,
) -> dict:
    """Solde = recette - préfinancement - dépenses du trajet."""
    trip_expenses = [e for e in expenses if e.trip_id == trip.id]
    spent = sum((D(e.montant) for e in trip_expenses), start=ZERO)
    prefinancement = D(trip.prefinancement)
    recette = paid_amount_for_trip(trip.id, invoices) if invoices is not None else D(trip.recette)
    return {
        "recette": to_float(recette),
        "prefinancement": to_float(prefinancement),
        "expenses": to_float(spent),
        "solde": to_float(recette - prefinancement - spent),
        "expenses_count": len(trip_expenses),
    }
