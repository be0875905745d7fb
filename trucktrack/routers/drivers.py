# trucktrack/routers/drivers.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from trucktrack.models.base import get_db
from trucktrack.models.entities import Driver, DriverTransaction, Expense, Trip
from trucktrack.schemas.fleet import DriverIn, DriverPatch, DriverTransactionIn
from trucktrack.services import crud
from trucktrack.services.auth import require
from trucktrack.services.errors import ConflictError, NotFoundError
from trucktrack.services.serialize import to_dict, to_dicts
from trucktrack.services.sync import EXPENSE_TX_PREFIX, driver_stats, is_driver_on_mission

router = APIRouter(prefix="/drivers", tags=["Chauffeurs"])


@router.get("")
def list_drivers(db: Session = Depends(get_db)):
    return to_dicts(db.query(Driver).order_by(Driver.nom.asc(), Driver.prenom.asc()).all())


@router.get("/{driver_id}")
def get_driver(driver_id: str, db: Session = Depends(get_db)):
    return to_dict(crud.get_or_404(db, Driver, driver_id, "Chauffeur"))


@router.get("/{driver_id}/stats")
def get_driver_stats(driver_id: str, db: Session = Depends(get_db)):
    driver = crud.get_or_404(db, Driver, driver_id, "Chauffeur")
    return driver_stats(driver, db.query(Trip).all(), db.query(Expense).all())


@router.post("", status_code=201, dependencies=[Depends(require("can_create"))])
def create_driver(payload: DriverIn, db: Session = Depends(get_db)):
    data = payload.model_dump(exclude={"transactions"})
    driver = Driver(**data)
    driver.transactions = [DriverTransaction(**tx.model_dump()) for tx in payload.transactions]
    db.add(driver)
    db.commit()
    db.refresh(driver)
    return to_dict(driver)


@router.patch("/{driver_id}", dependencies=[Depends(require("can_modify_non_financial"))])
def update_driver(driver_id: str, payload: DriverPatch, db: Session = Depends(get_db)):
    driver = crud.get_or_404(db, Driver, driver_id, "Chauffeur")
    return to_dict(crud.update(db, driver, payload.model_dump(exclude_unset=True)))


@router.delete("/{driver_id}", dependencies=[Depends(require("can_delete_non_financial"))])
def delete_driver(driver_id: str, db: Session = Depends(get_db)):
    driver = crud.get_or_404(db, Driver, driver_id, "Chauffeur")
    if is_driver_on_mission(driver.id, db.query(Trip).all()):
        raise ConflictError(
            "Impossible de supprimer ce chauffeur : il est assigné à un trajet en cours ou planifié"
        )
    crud.delete(db, driver)
    return {"ok": True}


# ---------- Transactions manuelles ----------

@router.post("/{driver_id}/transactions", status_code=201, dependencies=[Depends(require("can_create"))])
def add_driver_transaction(driver_id: str, payload: DriverTransactionIn, db: Session = Depends(get_db)):
    driver = crud.get_or_404(db, Driver, driver_id, "Chauffeur")
    driver.transactions.append(DriverTransaction(**payload.model_dump()))
    db.commit()
    db.refresh(driver)
    return to_dict(driver)


@router.delete("/{driver_id}/transactions/{tx_id}", dependencies=[Depends(require("can_delete_financial"))])
def delete_driver_transaction(driver_id: str, tx_id: str, db: Session = Depends(get_db)):
    driver = crud.get_or_404(db, Driver, driver_id, "Chauffeur")
    tx = db.get(DriverTransaction, tx_id)
    if tx is None or tx.driver_id != driver.id:
        raise NotFoundError(f"Transaction {tx_id} introuvable")
    if tx.id.startswith(EXPENSE_TX_PREFIX):
        raise ConflictError("Cette sortie provient d'une dépense : supprimez la dépense")
    crud.delete(db, tx)
    db.refresh(driver)
    return to_dict(driver)
