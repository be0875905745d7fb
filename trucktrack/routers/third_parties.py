# trucktrack/routers/third_parties.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from trucktrack.models.base import get_db
from trucktrack.models.entities import Expense, ThirdParty, Truck
from trucktrack.schemas.fleet import ThirdPartyIn, ThirdPartyPatch
from trucktrack.services import crud
from trucktrack.services.auth import require
from trucktrack.services.serialize import to_dict, to_dicts

router = APIRouter(prefix="/third-parties", tags=["Tiers"])


@router.get("")
def list_third_parties(type: Optional[str] = None, db: Session = Depends(get_db)):
    q = db.query(ThirdParty)
    if type:
        q = q.filter(ThirdParty.type == type)
    return to_dicts(q.order_by(ThirdParty.nom.asc()).all())


@router.get("/{tp_id}")
def get_third_party(tp_id: str, db: Session = Depends(get_db)):
    return to_dict(crud.get_or_404(db, ThirdParty, tp_id, "Tiers"))


@router.post("", status_code=201, dependencies=[Depends(require("can_create"))])
def create_third_party(payload: ThirdPartyIn, db: Session = Depends(get_db)):
    return to_dict(crud.create(db, ThirdParty, payload.model_dump()))


@router.patch("/{tp_id}", dependencies=[Depends(require("can_modify_non_financial"))])
def update_third_party(tp_id: str, payload: ThirdPartyPatch, db: Session = Depends(get_db)):
    tp = crud.get_or_404(db, ThirdParty, tp_id, "Tiers")
    return to_dict(crud.update(db, tp, payload.model_dump(exclude_unset=True)))


@router.delete("/{tp_id}", dependencies=[Depends(require("can_delete_non_financial"))])
def delete_third_party(tp_id: str, db: Session = Depends(get_db)):
    tp = crud.get_or_404(db, ThirdParty, tp_id, "Tiers")
    # Les références optionnelles sont remises à vide
    db.query(Truck).filter(Truck.proprietaire_id == tp.id).update({"proprietaire_id": None})
    db.query(Expense).filter(Expense.fournisseur_id == tp.id).update({"fournisseur_id": None})
    crud.delete(db, tp)
    return {"ok": True}
