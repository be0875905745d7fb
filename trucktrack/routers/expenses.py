# trucktrack/routers/expenses.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from trucktrack.models.base import get_db
from trucktrack.models.entities import Driver, Expense, Invoice, ThirdParty, Trip, Truck
from trucktrack.schemas.fleet import ExpenseIn, ExpensePatch
from trucktrack.services import crud
from trucktrack.services.auth import require
from trucktrack.services.errors import ConflictError
from trucktrack.services.serialize import to_dict, to_dicts
from trucktrack.services.sync import remove_expense_from_driver, sync_expense_with_driver

router = APIRouter(prefix="/expenses", tags=["Dépenses"])


def _check_refs(db: Session, data: dict) -> None:
    if data.get("camion_id"):
        crud.get_or_404(db, Truck, data["camion_id"], "Camion")
    if data.get("trip_id"):
        crud.get_or_404(db, Trip, data["trip_id"], "Trajet")
    if data.get("chauffeur_id"):
        crud.get_or_404(db, Driver, data["chauffeur_id"], "Chauffeur")
    if data.get("fournisseur_id"):
        crud.get_or_404(db, ThirdParty, data["fournisseur_id"], "Fournisseur")


@router.get("")
def list_expenses(
    camion_id: Optional[str] = None,
    trip_id: Optional[str] = None,
    categorie: Optional[str] = None,
    db: Session = Depends(get_db),
):
    q = db.query(Expense)
    if camion_id:
        q = q.filter(Expense.camion_id == camion_id)
    if trip_id:
        q = q.filter(Expense.trip_id == trip_id)
    if categorie:
        q = q.filter(Expense.categorie == categorie)
    return to_dicts(q.order_by(Expense.date.desc()).all())


@router.get("/{expense_id}")
def get_expense(expense_id: str, db: Session = Depends(get_db)):
    return to_dict(crud.get_or_404(db, Expense, expense_id, "Dépense"))


@router.post("", status_code=201, dependencies=[Depends(require("can_create"))])
def create_expense(payload: ExpenseIn, db: Session = Depends(get_db)):
    data = payload.model_dump()
    _check_refs(db, data)
    expense = Expense(**data)
    db.add(expense)
    db.flush()
    sync_expense_with_driver(db, expense)
    db.commit()
    db.refresh(expense)
    return to_dict(expense)


@router.patch("/{expense_id}", dependencies=[Depends(require("can_modify_financial"))])
def update_expense(expense_id: str, payload: ExpensePatch, db: Session = Depends(get_db)):
    expense = crud.get_or_404(db, Expense, expense_id, "Dépense")
    data = payload.model_dump(exclude_unset=True)
    _check_refs(db, data)
    crud.apply_updates(expense, data)
    if expense.chauffeur_id:
        sync_expense_with_driver(db, expense)
    else:
        remove_expense_from_driver(db, expense.id)
    db.commit()
    db.refresh(expense)
    return to_dict(expense)


@router.delete("/{expense_id}", dependencies=[Depends(require("can_delete_financial"))])
def delete_expense(expense_id: str, db: Session = Depends(get_db)):
    expense = crud.get_or_404(db, Expense, expense_id, "Dépense")
    if db.query(Invoice).filter(Invoice.expense_id == expense.id).first() is not None:
        raise ConflictError(
            "Impossible de supprimer cette dépense : une facture y est associée. Supprimez d'abord la facture."
        )
    remove_expense_from_driver(db, expense.id)
    crud.delete(db, expense)
    return {"ok": True}
