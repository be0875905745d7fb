# trucktrack/services/context.py
"""
Contexte applicatif côté serveur.

FleetContext charge une fois toutes les listes (camions, chauffeurs, trajets,
dépenses, factures, tiers), normalise les enregistrements et les garde en
mémoire jusqu'au prochain refresh(). Les mutations passent par mutate():
la liste est rechargée après la mutation, et aussi après un échec avant de
relancer l'erreur.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Iterable, Optional, TypeVar

from sqlalchemy.orm import Session

from trucktrack.models.entities import Driver, Expense, Invoice, ThirdParty, Trip, Truck
from trucktrack.services.serialize import plain, to_dict

logger = logging.getLogger(__name__)

T = TypeVar("T")

COLLECTIONS = {
    "trucks": Truck,
    "drivers": Driver,
    "trips": Trip,
    "expenses": Expense,
    "invoices": Invoice,
    "third_parties": ThirdParty,
}

# Champs liste qui doivent toujours exister
_LIST_FIELDS = {"drivers": ("transactions",)}

_MONTHS_FR = ("janv.", "févr.", "mars", "avr.", "mai", "juin",
              "juil.", "août", "sept.", "oct.", "nov.", "déc.")


def normalize_record(record: dict, list_fields: Iterable[str] = ()) -> dict:
    out = {}
    for key, value in record.items():
        if isinstance(value, list):
            out[key] = [normalize_record(v) if isinstance(v, dict) else plain(v) for v in value]
        else:
            out[key] = plain(value)
    for key in list_fields:
        if out.get(key) is None:
            out[key] = []
    return out


def dedupe_by_id(records: Iterable[dict]) -> list[dict]:
    """Garde la première position d'un id, avec la dernière version reçue."""
    index: dict[Any, int] = {}
    out: list[dict] = []
    for rec in records:
        key = rec.get("id")
        if key in index:
            out[index[key]] = rec
        else:
            index[key] = len(out)
            out.append(rec)
    return out


class FleetContext:
    def __init__(self, db: Session):
        self.db = db
        self._data: dict[str, list[dict]] = {}
        self.loaded = False

    # ---------- Chargement ----------

    def _fetch(self, name: str) -> list[dict]:
        model = COLLECTIONS[name]
        rows = self.db.query(model).all()
        list_fields = _LIST_FIELDS.get(name, ())
        return dedupe_by_id(normalize_record(to_dict(r), list_fields) for r in rows)

    def refresh(self, *names: str) -> None:
        for name in names or tuple(COLLECTIONS):
            self._data[name] = self._fetch(name)
        self.loaded = True

    def _get(self, name: str) -> list[dict]:
        if name not in self._data:
            self._data[name] = self._fetch(name)
        return self._data[name]

    @property
    def trucks(self) -> list[dict]:
        return self._get("trucks")

    @property
    def drivers(self) -> list[dict]:
        return self._get("drivers")

    @property
    def trips(self) -> list[dict]:
        return self._get("trips")

    @property
    def expenses(self) -> list[dict]:
        return self._get("expenses")

    @property
    def invoices(self) -> list[dict]:
        return self._get("invoices")

    @property
    def third_parties(self) -> list[dict]:
        return self._get("third_parties")

    def find(self, name: str, obj_id: str) -> Optional[dict]:
        return next((r for r in self._get(name) if r["id"] == obj_id), None)

    # ---------- Mutations ----------

    def mutate(self, fn: Callable[[Session], T], *names: str) -> T:
        """Exécute fn(db) puis recharge; en cas d'erreur: rollback, recharge, relance."""
        try:
            result = fn(self.db)
        except Exception:
            self.db.rollback()
            logger.warning("Mutation échouée, rechargement de %s", ", ".join(names) or "tout")
            self.refresh(*names)
            raise
        self.refresh(*names)
        return result

    # ---------- Tableau de bord ----------

    def dashboard(self, today: Optional[date] = None) -> dict:
        today = today or date.today()
        trucks, trips, expenses, invoices = self.trucks, self.trips, self.expenses, self.invoices

        paid_by_trip: dict[str, Decimal] = defaultdict(Decimal)
        for inv in invoices:
            if inv.get("trajet_id"):
                paid_by_trip[inv["trajet_id"]] += Decimal(str(inv.get("montant_paye") or 0))

        total_recettes = sum(paid_by_trip.values(), Decimal("0"))
        total_depenses = sum((Decimal(str(e["montant"])) for e in expenses), Decimal("0"))
        profit = total_recettes - total_depenses
        margin = round(float(profit / total_recettes * 100), 1) if total_recettes > 0 else 0.0

        truck_revenue = []
        for truck in trucks:
            truck_trips = [t for t in trips if truck["id"] in (t.get("tracteur_id"), t.get("remorqueuse_id"))]
            truck_revenue.append({
                "name": truck["immatriculation"],
                "model": truck["modele"],
                "revenue": float(sum((paid_by_trip[t["id"]] for t in truck_trips), Decimal("0"))),
                "trips_count": len(truck_trips),
            })
        truck_revenue.sort(key=lambda r: r["revenue"], reverse=True)

        by_category: dict[str, Decimal] = defaultdict(Decimal)
        for e in expenses:
            by_category[e["categorie"]] += Decimal(str(e["montant"]))
        expenses_by_category = [
            {
                "name": name,
                "value": float(value),
                "percentage": round(float(value / total_depenses * 100), 1) if total_depenses > 0 else 0.0,
            }
            for name, value in by_category.items()
        ]

        pending = [inv for inv in invoices if inv["statut"] == "en_attente"]
        return {
            "total_recettes": float(total_recettes),
            "total_depenses": float(total_depenses),
            "profit": float(profit),
            "profit_margin": margin,
            "active_trucks": sum(1 for t in trucks if t["statut"] == "actif"),
            "total_trucks": len(trucks),
            "total_drivers": len(self.drivers),
            "invoices": {
                "total": len(invoices),
                "payees": sum(1 for inv in invoices if inv["statut"] == "payee"),
                "en_attente": len(pending),
                "montant_en_attente": float(sum(
                    (Decimal(str(inv["montant_ttc"])) for inv in pending), Decimal("0")
                )),
            },
            "trips": {
                "termine": sum(1 for t in trips if t["statut"] == "termine"),
                "en_cours": sum(1 for t in trips if t["statut"] == "en_cours"),
                "planifie": sum(1 for t in trips if t["statut"] == "planifie"),
            },
            "top_trucks": truck_revenue[:5],
            "expenses_by_category": expenses_by_category,
            "monthly": self._monthly(today, paid_by_trip),
        }

    def _monthly(self, today: date, paid_by_trip: dict[str, Decimal], months: int = 3) -> list[dict]:
        out = []
        for back in range(months - 1, -1, -1):
            year, month = today.year, today.month - back
            while month < 1:
                month += 12
                year -= 1
            prefix = f"{year:04d}-{month:02d}"
            recettes = sum(
                (paid_by_trip[t["id"]] for t in self.trips if str(t["date_depart"]).startswith(prefix)),
                Decimal("0"),
            )
            depenses = sum(
                (Decimal(str(e["montant"])) for e in self.expenses if str(e["date"]).startswith(prefix)),
                Decimal("0"),
            )
            out.append({
                "month": _MONTHS_FR[month - 1],
                "year": year,
                "recettes": float(recettes),
                "depenses": float(depenses),
            })
        return out
