# trucktrack/services/backup.py
"""
Sauvegarde / restauration / purge de toute la base métier.

Format: {"version": "1.0", "exportedAt": "...", "data": {"thirdParties": [...], ...}}
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import Date, DateTime, Numeric, Table, delete, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from trucktrack.models.base import Base
import trucktrack.models.entities  # noqa: F401
from trucktrack.services.serialize import plain

logger = logging.getLogger(__name__)

BACKUP_VERSION = "1.0"

# (clé JSON, table) dans l'ordre des dépendances (parents d'abord)
TABLE_ORDER = (
    ("thirdParties", "third_parties"),
    ("drivers", "drivers"),
    ("driverTransactions", "driver_transactions"),
    ("trucks", "trucks"),
    ("trips", "trips"),
    ("expenses", "expenses"),
    ("invoices", "invoices"),
    ("bankAccounts", "bank_accounts"),
    ("bankTransactions", "bank_transactions"),
    ("credits", "credits"),
    ("remboursements", "remboursements"),
)

_ORDERED_BY_DATE = {"driver_transactions", "expenses", "bank_transactions", "remboursements"}


def _table(name: str) -> Table:
    return Base.metadata.tables[name]


def _coerce(column, value: Any) -> Any:
    if value is None:
        return None
    if isinstance(column.type, DateTime):
        return datetime.fromisoformat(str(value).replace("Z", ""))
    if isinstance(column.type, Date):
        return date.fromisoformat(str(value)[:10])
    if isinstance(column.type, Numeric):
        return Decimal(str(value))
    return value


def backup(db: Session) -> dict:
    data = {}
    for key, name in TABLE_ORDER:
        table = _table(name)
        stmt = select(table)
        if name in _ORDERED_BY_DATE:
            stmt = stmt.order_by(table.c.date)
        data[key] = [
            {col: plain(val) for col, val in row.items()}
            for row in db.execute(stmt).mappings()
        ]
    return {
        "version": BACKUP_VERSION,
        "exportedAt": datetime.utcnow().isoformat() + "Z",
        "data": data,
    }


def _truncate(db: Session) -> None:
    for _, name in reversed(TABLE_ORDER):
        db.execute(delete(_table(name)))


def purge(db: Session) -> None:
    try:
        _truncate(db)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.warning("Base de données purgée")


def restore(db: Session, data: Any) -> dict[str, int]:
    """
    Vide les tables puis réinsère les lignes du backup dans une seule
    transaction. Les doublons d'id sont ignorés; les colonnes inconnues aussi.
    """
    if not isinstance(data, dict):
        raise ValueError('Corps invalide : propriété "data" manquante')

    counts: dict[str, int] = {}
    try:
        _truncate(db)
        for key, name in TABLE_ORDER:
            table = _table(name)
            rows = data.get(key) or []
            if not isinstance(rows, list) or not all(isinstance(raw, dict) for raw in rows):
                raise ValueError(f"Fichier de backup invalide: {key} doit être une liste d'objets")
            seen: set = set()
            values = []
            for raw in rows:
                row = {
                    col.name: _coerce(col, raw[col.name])
                    for col in table.columns if col.name in raw
                }
                pk = row.get("id")
                if pk is not None and pk in seen:
                    continue
                seen.add(pk)
                values.append(row)
            for row in values:
                db.execute(insert(table).values(**row))
            counts[key] = len(rows)
        db.commit()
    except (KeyError, TypeError) as exc:
        db.rollback()
        raise ValueError(f"Fichier de backup invalide: {exc}")
    except IntegrityError as exc:
        db.rollback()
        raise ValueError(f"Fichier de backup invalide: {exc.orig}")
    except Exception:
        db.rollback()
        raise
    logger.info("Restauration réussie: %d enregistrement(s)", sum(counts.values()))
    return counts
