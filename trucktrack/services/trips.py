# trucktrack/services/trips.py
from __future__ import annotations

from datetime import date
from typing import Optional

from trucktrack.models.entities import TRIP_STATUSES, Trip

_ORDER = {s: i for i, s in enumerate(TRIP_STATUSES)}


def validate_trucks(tracteur_id: Optional[str], remorqueuse_id: Optional[str]) -> None:
    if not tracteur_id and not remorqueuse_id:
        raise ValueError("Veuillez sélectionner au moins un tracteur ou une remorqueuse")


def check_status_transition(current: str, new: str) -> None:
    """planifie -> en_cours -> termine; annule possible tant que le trajet n'est pas terminé."""
    if new == current:
        return
    if current == "termine":
        raise ValueError("Un trajet terminé ne peut pas être modifié")
    if current == "annule":
        raise ValueError("Un trajet annulé ne peut pas être modifié")
    if _ORDER[new] < _ORDER[current]:
        raise ValueError("Vous ne pouvez pas revenir à un statut antérieur")
    if current == "planifie" and new == "termine":
        raise ValueError('Vous devez d\'abord passer par "En cours"')


def apply_status(trip: Trip, new: str, today: Optional[date] = None) -> None:
    check_status_transition(trip.statut, new)
    if new == "termine" and trip.statut != "termine":
        trip.date_arrivee = today or date.today()
    trip.statut = new
