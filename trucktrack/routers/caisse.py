# trucktrack/routers/caisse.py
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from trucktrack.models.base import get_db
from trucktrack.models.cashbook import CashEntry
from trucktrack.schemas.finance import CashEntryIn, CashEntryPatch, SoldeInitialIn
from trucktrack.services import cashbook, crud
from trucktrack.services.auth import require
from trucktrack.services.money import to_float
from trucktrack.services.serialize import to_dict

router = APIRouter(prefix="/caisse", tags=["Caisse"])


def _entry_out(entry: CashEntry) -> dict:
    out = to_dict(entry)
    out["type"] = entry.type
    out["montant"] = to_float(entry.montant)
    return out


@router.get("/entries")
def list_entries(
    type: str = "all",
    search: str = "",
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: Session = Depends(get_db),
):
    entries = cashbook.filter_entries(db.query(CashEntry).all(), type, search, date_from, date_to)
    entries.sort(key=lambda e: (e.date, e.created_at), reverse=True)
    return [_entry_out(e) for e in entries]


@router.get("/entries/{entry_id}")
def get_entry(entry_id: str, db: Session = Depends(get_db)):
    return _entry_out(crud.get_or_404(db, CashEntry, entry_id, "Mouvement de caisse"))


@router.post("/entries", status_code=201, dependencies=[Depends(require("can_create"))])
def create_entry(payload: CashEntryIn, db: Session = Depends(get_db)):
    return _entry_out(cashbook.add_entry(db, payload.model_dump()))


@router.patch("/entries/{entry_id}", dependencies=[Depends(require("can_modify_financial"))])
def update_entry(entry_id: str, payload: CashEntryPatch, db: Session = Depends(get_db)):
    entry = crud.get_or_404(db, CashEntry, entry_id, "Mouvement de caisse")
    return _entry_out(cashbook.update_entry(db, entry, payload.model_dump(exclude_unset=True)))


@router.delete("/entries/{entry_id}", dependencies=[Depends(require("can_delete_financial"))])
def delete_entry(entry_id: str, db: Session = Depends(get_db)):
    crud.delete(db, crud.get_or_404(db, CashEntry, entry_id, "Mouvement de caisse"))
    return {"ok": True}


@router.get("/journal")
def get_journal(
    type: str = "all",
    search: str = "",
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: Session = Depends(get_db),
):
    """Solde cumulé calculé sur tout le journal, puis filtré pour l'affichage."""
    entries = db.query(CashEntry).all()
    solde_initial = cashbook.get_solde_initial(db)
    rows = cashbook.running_balance(entries, solde_initial)
    keep = {e.id for e in cashbook.filter_entries(entries, type, search, date_from, date_to)}
    return {
        "summary": cashbook.cash_summary(entries, solde_initial),
        "rows": [r for r in rows if r["id"] in keep],
    }


@router.get("/solde-initial")
def get_solde_initial(db: Session = Depends(get_db)):
    return {"solde_initial": to_float(cashbook.get_solde_initial(db))}


@router.put("/solde-initial", dependencies=[Depends(require("can_modify_financial"))])
def put_solde_initial(payload: SoldeInitialIn, db: Session = Depends(get_db)):
    return {"solde_initial": to_float(cashbook.set_solde_initial(db, payload.solde_initial))}


@router.get("/backup")
def backup_caisse(db: Session = Depends(get_db)):
    return cashbook.backup_cashbook(db)


@router.post("/restore", dependencies=[Depends(require("can_modify_financial"))])
def restore_caisse(payload: dict = Body(...), db: Session = Depends(get_db)):
    count = cashbook.restore_cashbook(db, payload)
    return {"ok": True, "message": f"{count} mouvement(s) restauré(s)", "count": count}
