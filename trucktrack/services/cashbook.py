# trucktrack/services/cashbook.py
"""
Journal de caisse: chaque mouvement est soit une recette soit une dépense,
le solde courant est cumulé après tri par date.
"""
from __future__ import annotations

import json
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from trucktrack.models.cashbook import CashEntry
from trucktrack.models.entities import Konfig
from trucktrack.services.crud import apply_updates
from trucktrack.services.money import D, ZERO, round2, to_float

logger = logging.getLogger(__name__)

SOLDE_INITIAL_KEY = "caisse_solde_initial"
BACKUP_VERSION = "1.0"


def validate_entry(recette: Any, depense: Any) -> tuple[Decimal, Decimal]:
    """Un mouvement de caisse porte soit une recette, soit une dépense, jamais les deux."""
    r = D(recette)
    d = D(depense)
    if r < 0 or d < 0:
        raise ValueError("Les montants de caisse ne peuvent pas être négatifs")
    if r > 0 and d > 0:
        raise ValueError("Un mouvement de caisse a soit une recette, soit une dépense, pas les deux")
    if r == 0 and d == 0:
        raise ValueError("Le montant du mouvement de caisse doit être supérieur à zéro")
    return round2(r), round2(d)


def _sort_key(entry: CashEntry):
    return (entry.date, entry.created_at or datetime.min, entry.id or "")


def running_balance(entries: Iterable[CashEntry], solde_initial: Any = 0) -> list[dict]:
    """
    Trie les mouvements par date (puis ordre de saisie) et renvoie chaque
    ligne avec le solde après le mouvement.
    """
    solde = D(solde_initial)
    rows = []
    for e in sorted(entries, key=_sort_key):
        solde += D(e.recette) - D(e.depense)
        rows.append({
            "id": e.id,
            "date": e.date.isoformat(),
            "type": e.type,
            "recette": to_float(e.recette),
            "depense": to_float(e.depense),
            "description": e.description,
            "categorie": e.categorie,
            "reference": e.reference,
            "solde": to_float(solde),
        })
    return rows


def cash_summary(entries: Sequence[CashEntry], solde_initial: Any = 0) -> dict:
    total_recettes = sum((D(e.recette) for e in entries), start=ZERO)
    total_depenses = sum((D(e.depense) for e in entries), start=ZERO)
    initial = D(solde_initial)
    return {
        "solde_initial": to_float(initial),
        "total_recettes": to_float(total_recettes),
        "total_depenses": to_float(total_depenses),
        "solde_actuel": to_float(initial + total_recettes - total_depenses),
        "nombre": len(entries),
    }


def filter_entries(
    entries: Iterable[CashEntry],
    kind: str = "all",
    search: str = "",
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> list[CashEntry]:
    needle = (search or "").lower()
    out = []
    for e in entries:
        if kind not in ("", "all") and e.type != kind:
            continue
        if needle and needle not in (e.description or "").lower() \
                and needle not in (e.reference or "").lower():
            continue
        if date_from and e.date < date_from:
            continue
        if date_to and e.date > date_to:
            continue
        out.append(e)
    return out


# ---------- Solde initial (Konfig) ----------

def get_solde_initial(db: Session) -> Decimal:
    row = db.get(Konfig, SOLDE_INITIAL_KEY)
    if not row:
        return ZERO
    try:
        return D(json.loads(row.value_json))
    except (ValueError, TypeError):
        logger.warning("Solde initial de caisse illisible: %r", row.value_json)
        return ZERO


def set_solde_initial(db: Session, value: Any) -> Decimal:
    amount = round2(D(value))
    row = db.get(Konfig, SOLDE_INITIAL_KEY)
    if not row:
        row = Konfig(key=SOLDE_INITIAL_KEY, value_json="0")
        db.add(row)
    row.value_json = json.dumps(str(amount))
    db.commit()
    return amount


# ---------- Mouvements ----------

def add_entry(db: Session, data: dict) -> CashEntry:
    recette, depense = validate_entry(data.get("recette"), data.get("depense"))
    entry = CashEntry(
        date=data["date"],
        recette=recette,
        depense=depense,
        description=(data.get("description") or "").strip(),
        categorie=data.get("categorie") or None,
        reference=data.get("reference") or None,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


def update_entry(db: Session, entry: CashEntry, data: dict) -> CashEntry:
    recette, depense = validate_entry(
        data.get("recette", entry.recette), data.get("depense", entry.depense)
    )
    apply_updates(entry, {
        field: data[field]
        for field in ("date", "description", "categorie", "reference") if field in data
    })
    entry.recette = recette
    entry.depense = depense
    db.commit()
    db.refresh(entry)
    return entry


# ---------- Sauvegarde / restauration ----------

def backup_cashbook(db: Session) -> dict:
    entries = sorted(db.query(CashEntry).all(), key=_sort_key)
    return {
        "version": BACKUP_VERSION,
        "exportedAt": datetime.utcnow().isoformat() + "Z",
        "caisse": {
            "soldeInitial": to_float(get_solde_initial(db)),
            "transactions": [
                {
                    "id": e.id,
                    "date": e.date.isoformat(),
                    "recette": to_float(e.recette),
                    "depense": to_float(e.depense),
                    "description": e.description,
                    "categorie": e.categorie,
                    "reference": e.reference,
                }
                for e in entries
            ],
        },
    }


def _entry_from_backup(raw: dict) -> CashEntry:
    # Ancien format: {"type": "entree"|"sortie", "montant": ...}
    if "type" in raw and "montant" in raw:
        amount = D(raw["montant"])
        recette, depense = (amount, ZERO) if raw["type"] == "entree" else (ZERO, amount)
    else:
        recette, depense = D(raw.get("recette")), D(raw.get("depense"))
    recette, depense = validate_entry(recette, depense)
    kwargs = {}
    if raw.get("id"):
        kwargs["id"] = str(raw["id"])
    return CashEntry(
        date=date.fromisoformat(str(raw["date"])[:10]),
        recette=recette,
        depense=depense,
        description=raw.get("description") or "",
        categorie=raw.get("categorie") or None,
        reference=raw.get("reference") or None,
        **kwargs,
    )


def restore_cashbook(db: Session, payload: dict) -> int:
    """Remplace tous les mouvements de caisse par ceux du backup."""
    caisse = payload.get("caisse") if isinstance(payload, dict) else None
    if not isinstance(caisse, dict) or caisse.get("transactions") is None:
        raise ValueError("Fichier de backup invalide ou incompatible")

    rows = caisse.get("transactions")
    if not isinstance(rows, list) or not all(isinstance(raw, dict) for raw in rows):
        raise ValueError("Fichier de backup invalide: transactions doit être une liste d'objets")

    entries: list[CashEntry] = []
    seen: set = set()
    try:
        for raw in rows:
            entry = _entry_from_backup(raw)
            # doublons d'id ignorés
            if entry.id is not None and entry.id in seen:
                continue
            seen.add(entry.id)
            entries.append(entry)
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Fichier de backup invalide: {exc}")

    try:
        db.query(CashEntry).delete()
        db.add_all(entries)
        set_solde_initial(db, caisse.get("soldeInitial") or 0)  # commit
    except IntegrityError as exc:
        db.rollback()
        raise ValueError(f"Fichier de backup invalide: {exc.orig}")
    except Exception:
        db.rollback()
        raise
    logger.info("Caisse restaurée: %d mouvement(s)", len(entries))
    return len(entries)
