# trucktrack/routers/trucks.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from trucktrack.models.base import get_db
from trucktrack.models.entities import Driver, Expense, Invoice, ThirdParty, Trip, Truck
from trucktrack.schemas.fleet import TruckIn, TruckPatch
from trucktrack.services import crud
from trucktrack.services.auth import require
from trucktrack.services.errors import ConflictError
from trucktrack.services.serialize import to_dict, to_dicts
from trucktrack.services.sync import delete_expenses_for_truck, is_truck_in_use, truck_stats

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trucks", tags=["Camions"])


def _check_refs(db: Session, data: dict) -> None:
    if data.get("proprietaire_id"):
        crud.get_or_404(db, ThirdParty, data["proprietaire_id"], "Propriétaire")
    if data.get("chauffeur_id"):
        crud.get_or_404(db, Driver, data["chauffeur_id"], "Chauffeur")


@router.get("")
def list_trucks(db: Session = Depends(get_db)):
    return to_dicts(db.query(Truck).order_by(Truck.immatriculation.asc()).all())


@router.get("/{truck_id}")
def get_truck(truck_id: str, db: Session = Depends(get_db)):
    return to_dict(crud.get_or_404(db, Truck, truck_id, "Camion"))


@router.get("/{truck_id}/stats")
def get_truck_stats(truck_id: str, db: Session = Depends(get_db)):
    truck = crud.get_or_404(db, Truck, truck_id, "Camion")
    return truck_stats(truck.id, db.query(Trip).all(), db.query(Expense).all(), db.query(Invoice).all())


@router.post("", status_code=201, dependencies=[Depends(require("can_create"))])
def create_truck(payload: TruckIn, db: Session = Depends(get_db)):
    data = payload.model_dump()
    _check_refs(db, data)
    return to_dict(crud.create(db, Truck, data))


@router.patch("/{truck_id}", dependencies=[Depends(require("can_modify_non_financial"))])
def update_truck(truck_id: str, payload: TruckPatch, db: Session = Depends(get_db)):
    truck = crud.get_or_404(db, Truck, truck_id, "Camion")
    data = payload.model_dump(exclude_unset=True)
    _check_refs(db, data)
    return to_dict(crud.update(db, truck, data))


@router.delete("/{truck_id}", dependencies=[Depends(require("can_delete_non_financial"))])
def delete_truck(truck_id: str, db: Session = Depends(get_db)):
    truck = crud.get_or_404(db, Truck, truck_id, "Camion")
    if is_truck_in_use(truck.id, db.query(Trip).all()):
        raise ConflictError(
            "Impossible de supprimer ce camion : il est utilisé dans un trajet en cours ou planifié"
        )
    removed = delete_expenses_for_truck(db, truck.id)
    db.query(Trip).filter(Trip.tracteur_id == truck.id).update({"tracteur_id": None})
    db.query(Trip).filter(Trip.remorqueuse_id == truck.id).update({"remorqueuse_id": None})
    plate = truck.immatriculation
    crud.delete(db, truck)
    logger.info("Camion %s supprimé avec %d dépense(s)", plate, removed)
    return {"ok": True, "expenses_deleted": removed}
