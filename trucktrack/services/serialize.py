# trucktrack/services/serialize.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import inspect

from trucktrack.models.entities import Credit, Driver


def plain(value: Any) -> Any:
    """Decimal -> float, date/datetime -> ISO; le reste inchangé."""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return value


def to_dict(obj: Any) -> dict:
    """Colonnes d'un objet ORM en dict JSON-compatible (+ listes imbriquées connues)."""
    mapper = inspect(obj).mapper
    out = {col.key: plain(getattr(obj, col.key)) for col in mapper.column_attrs}
    if isinstance(obj, Driver):
        out["transactions"] = [to_dict(tx) for tx in obj.transactions]
    elif isinstance(obj, Credit):
        out["remboursements"] = [to_dict(r) for r in obj.remboursements]
    return out


def to_dicts(rows) -> list[dict]:
    return [to_dict(r) for r in rows]
