# trucktrack/routers/trips.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from trucktrack.models.base import get_db
from trucktrack.models.entities import Driver, Expense, Invoice, Trip, Truck
from trucktrack.schemas.fleet import TripIn, TripPatch
from trucktrack.services import crud
from trucktrack.services.auth import require
from trucktrack.services.errors import ConflictError
from trucktrack.services.serialize import to_dict, to_dicts
from trucktrack.services.sync import can_delete_trip, refresh_truck_statuses, trip_stats
from trucktrack.services.trips import apply_status, validate_trucks

router = APIRouter(prefix="/trips", tags=["Trajets"])


def _check_refs(db: Session, data: dict) -> None:
    for key, label in (("tracteur_id", "Tracteur"), ("remorqueuse_id", "Remorqueuse")):
        if data.get(key):
            crud.get_or_404(db, Truck, data[key], label)
    if data.get("chauffeur_id"):
        crud.get_or_404(db, Driver, data["chauffeur_id"], "Chauffeur")


@router.get("")
def list_trips(statut: Optional[str] = None, chauffeur_id: Optional[str] = None, db: Session = Depends(get_db)):
    q = db.query(Trip)
    if statut:
        q = q.filter(Trip.statut == statut)
    if chauffeur_id:
        q = q.filter(Trip.chauffeur_id == chauffeur_id)
    return to_dicts(q.order_by(Trip.date_depart.desc()).all())


@router.get("/{trip_id}")
def get_trip(trip_id: str, db: Session = Depends(get_db)):
    return to_dict(crud.get_or_404(db, Trip, trip_id, "Trajet"))


@router.get("/{trip_id}/stats")
def get_trip_stats(trip_id: str, db: Session = Depends(get_db)):
    trip = crud.get_or_404(db, Trip, trip_id, "Trajet")
    invoices = db.query(Invoice).filter(Invoice.trajet_id == trip.id).all()
    return trip_stats(trip, db.query(Expense).all(), invoices)


@router.post("", status_code=201, dependencies=[Depends(require("can_create"))])
def create_trip(payload: TripIn, db: Session = Depends(get_db)):
    data = payload.model_dump()
    validate_trucks(data.get("tracteur_id"), data.get("remorqueuse_id"))
    _check_refs(db, data)
    trip = Trip(**data)
    db.add(trip)
    db.flush()
    refresh_truck_statuses(db, trip)
    db.commit()
    db.refresh(trip)
    return to_dict(trip)


@router.patch("/{trip_id}", dependencies=[Depends(require("can_modify_non_financial"))])
def update_trip(trip_id: str, payload: TripPatch, db: Session = Depends(get_db)):
    trip = crud.get_or_404(db, Trip, trip_id, "Trajet")
    data = payload.model_dump(exclude_unset=True)
    new_status = data.pop("statut", None)
    _check_refs(db, data)
    crud.apply_updates(trip, data)
    validate_trucks(trip.tracteur_id, trip.remorqueuse_id)
    if new_status:
        apply_status(trip, new_status)
    db.flush()
    refresh_truck_statuses(db, trip)
    db.commit()
    db.refresh(trip)
    return to_dict(trip)


@router.delete("/{trip_id}", dependencies=[Depends(require("can_delete_financial"))])
def delete_trip(trip_id: str, db: Session = Depends(get_db)):
    trip = crud.get_or_404(db, Trip, trip_id, "Trajet")
    if not can_delete_trip(trip.id, db.query(Invoice).all()):
        raise ConflictError(
            "Impossible de supprimer ce trajet : une facture y est associée. Supprimez d'abord la facture."
        )
    db.query(Expense).filter(Expense.trip_id == trip.id).update({"trip_id": None})
    crud.delete(db, trip)
    return {"ok": True}
