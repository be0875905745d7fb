# trucktrack/routers/invoices.py
from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from trucktrack.models.base import get_db
from trucktrack.models.entities import Expense, Invoice, Trip
from trucktrack.schemas.finance import (
    ExpenseInvoiceIn, InvoiceIn, InvoicePatch, PaymentIn, TripInvoiceIn,
)
from trucktrack.services import config_store, crud, invoicing
from trucktrack.services.auth import require
from trucktrack.services.context import FleetContext
from trucktrack.services.money import to_float
from trucktrack.services.serialize import to_dict, to_dicts

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/invoices", tags=["Factures"])


def _rates(payload) -> dict:
    """Taux absents = taux par défaut des paramètres."""
    defaults = config_store.default_tax_rates()
    return {
        "remise": payload.remise,
        "tva": payload.tva if payload.tva is not None else defaults["tva"],
        "tps": payload.tps if payload.tps is not None else defaults["tps"],
        "mode_paiement": payload.mode_paiement,
        "notes": payload.notes,
    }


@router.get("")
def list_invoices(
    search: str = "",
    type: str = "",
    trip_id: str = "",
    driver_id: str = "",
    status: str = "",
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: Session = Depends(get_db),
):
    filters = invoicing.InvoiceFilters(
        search_term=search, type=type, trip_id=trip_id, driver_id=driver_id,
        status=status, date_from=date_from, date_to=date_to,
    )
    invoices = db.query(Invoice).order_by(Invoice.date_creation.desc(), Invoice.numero.desc()).all()
    if filters.is_active():
        invoices = invoicing.filter_invoices(
            invoices, filters,
            {t.id: t for t in db.query(Trip).all()},
            {e.id: e for e in db.query(Expense).all()},
        )
    return to_dicts(invoices)


@router.get("/stats")
def get_invoice_stats(db: Session = Depends(get_db)):
    invoices = db.query(Invoice).all()
    stats = invoicing.invoice_stats(invoices)
    stats["montant_ttc_en_attente"] = to_float(invoicing.pending_invoices_amount(invoices))
    return stats


@router.get("/available-trips")
def get_available_trips(db: Session = Depends(get_db)):
    return to_dicts(invoicing.available_trips_for_invoicing(db.query(Trip).all(), db.query(Invoice).all()))


@router.get("/available-expenses")
def get_available_expenses(db: Session = Depends(get_db)):
    return to_dicts(invoicing.available_expenses_for_invoicing(db.query(Expense).all(), db.query(Invoice).all()))


@router.get("/{invoice_id}")
def get_invoice(invoice_id: str, db: Session = Depends(get_db)):
    return to_dict(crud.get_or_404(db, Invoice, invoice_id, "Facture"))


@router.post("", status_code=201, dependencies=[Depends(require("can_create"))])
def create_invoice(payload: InvoiceIn, db: Session = Depends(get_db)):
    if bool(payload.trajet_id) == bool(payload.expense_id):
        raise ValueError("Une facture porte soit sur un trajet, soit sur une dépense")
    if payload.trajet_id:
        invoice = invoicing.create_trip_invoice(db, payload.trajet_id, **_rates(payload))
    else:
        invoice = invoicing.create_expense_invoice(db, payload.expense_id, **_rates(payload))
    return to_dict(invoice)


@router.post("/trip", status_code=201, dependencies=[Depends(require("can_create"))])
def create_trip_invoice(payload: TripInvoiceIn, db: Session = Depends(get_db)):
    return to_dict(invoicing.create_trip_invoice(db, payload.trajet_id, **_rates(payload)))


@router.post("/expense", status_code=201, dependencies=[Depends(require("can_create"))])
def create_expense_invoice(payload: ExpenseInvoiceIn, db: Session = Depends(get_db)):
    return to_dict(invoicing.create_expense_invoice(db, payload.expense_id, **_rates(payload)))


@router.post("/{invoice_id}/payment", dependencies=[Depends(require("can_settle_invoice"))])
def record_payment(invoice_id: str, payload: PaymentIn, db: Session = Depends(get_db)):
    """Enregistre le paiement puis renvoie la facture et le trajet rechargés."""
    def _pay(session: Session):
        if payload.mode_paiement:
            crud.get_or_404(session, Invoice, invoice_id, "Facture").mode_paiement = payload.mode_paiement
        return invoicing.record_payment(session, invoice_id, payload.montant_paye)

    ctx = FleetContext(db)
    invoice, message = ctx.mutate(_pay, "invoices", "trips")
    trip = ctx.find("trips", invoice.trajet_id) if invoice.trajet_id else None
    return {"ok": True, "message": message, "invoice": ctx.find("invoices", invoice.id), "trip": trip}


@router.patch("/{invoice_id}", dependencies=[Depends(require("can_modify_financial"))])
def update_invoice(invoice_id: str, payload: InvoicePatch, db: Session = Depends(get_db)):
    invoice = crud.get_or_404(db, Invoice, invoice_id, "Facture")
    return to_dict(crud.update(db, invoice, payload.model_dump(exclude_unset=True)))


@router.delete("/{invoice_id}", dependencies=[Depends(require("can_delete_financial"))])
def delete_invoice(invoice_id: str, db: Session = Depends(get_db)):
    invoice = crud.get_or_404(db, Invoice, invoice_id, "Facture")
    numero = invoice.numero
    crud.delete(db, invoice)
    logger.info("Facture %s supprimée", numero)
    return {"ok": True}
