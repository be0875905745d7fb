# trucktrack/routers/credits.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from trucktrack.models.base import get_db
from trucktrack.models.entities import Credit
from trucktrack.schemas.finance import CreditIn, CreditPatch, RemboursementIn
from trucktrack.services import credits as credit_service
from trucktrack.services import crud
from trucktrack.services.auth import require
from trucktrack.services.serialize import to_dict, to_dicts

router = APIRouter(prefix="/credits", tags=["Crédits"])


def _with_fresh_status(db: Session) -> list[Credit]:
    """Recalcule les statuts (retards) avant lecture."""
    items = db.query(Credit).order_by(Credit.date_debut.desc()).all()
    changed = False
    for c in items:
        before = c.statut
        if credit_service.refresh_status(c) != before:
            changed = True
    if changed:
        db.commit()
    return items


@router.get("")
def list_credits(type: str = "all", statut: str = "all", search: str = "", db: Session = Depends(get_db)):
    return to_dicts(credit_service.filter_credits(_with_fresh_status(db), type, statut, search))


@router.get("/summary")
def get_summary(db: Session = Depends(get_db)):
    return credit_service.credits_summary(_with_fresh_status(db))


@router.get("/{credit_id}")
def get_credit(credit_id: str, db: Session = Depends(get_db)):
    return to_dict(crud.get_or_404(db, Credit, credit_id, "Crédit"))


@router.post("", status_code=201, dependencies=[Depends(require("can_create"))])
def create_credit(payload: CreditIn, db: Session = Depends(get_db)):
    return to_dict(credit_service.create_credit(db, payload.model_dump()))


@router.patch("/{credit_id}", dependencies=[Depends(require("can_modify_financial"))])
def update_credit(credit_id: str, payload: CreditPatch, db: Session = Depends(get_db)):
    credit = crud.get_or_404(db, Credit, credit_id, "Crédit")
    return to_dict(credit_service.update_credit(db, credit, payload.model_dump(exclude_unset=True)))


@router.delete("/{credit_id}", dependencies=[Depends(require("can_delete_financial"))])
def delete_credit(credit_id: str, db: Session = Depends(get_db)):
    crud.delete(db, crud.get_or_404(db, Credit, credit_id, "Crédit"))
    return {"ok": True}


@router.post("/{credit_id}/remboursements", status_code=201, dependencies=[Depends(require("can_create"))])
def add_remboursement(credit_id: str, payload: RemboursementIn, db: Session = Depends(get_db)):
    credit = credit_service.add_remboursement(db, credit_id, payload.montant, payload.date, payload.note)
    return to_dict(credit)
