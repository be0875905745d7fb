# trucktrack/services/credits.py
"""
Crédits: emprunts (la société doit) et prêts accordés (on doit à la société).
Le montant remboursé est la somme des remboursements enregistrés.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Iterable, Optional

from sqlalchemy.orm import Session

from trucktrack.models.entities import Credit, Remboursement
from trucktrack.services.crud import apply_updates, get_or_404
from trucktrack.services.money import D, ZERO, round2, to_float

logger = logging.getLogger(__name__)


def remaining(credit: Credit):
    return max(ZERO, D(credit.montant_total) - D(credit.montant_rembourse))


def is_overdue(credit: Credit, today: Optional[date] = None) -> bool:
    today = today or date.today()
    return bool(credit.date_echeance) and credit.statut != "solde" and credit.date_echeance < today


def refresh_status(credit: Credit, today: Optional[date] = None) -> str:
    """solde si tout est remboursé, en_retard si l'échéance est dépassée, sinon en_cours."""
    total = sum((D(r.montant) for r in credit.remboursements), start=ZERO)
    credit.montant_rembourse = round2(total)
    if total >= D(credit.montant_total):
        credit.statut = "solde"
    elif credit.date_echeance and credit.date_echeance < (today or date.today()):
        credit.statut = "en_retard"
    else:
        credit.statut = "en_cours"
    return credit.statut


def create_credit(db: Session, data: dict) -> Credit:
    if D(data.get("montant_total")) <= 0:
        raise ValueError("Le montant total du crédit doit être supérieur à zéro")
    credit = Credit(**data)
    credit.montant_rembourse = ZERO
    db.add(credit)
    refresh_status(credit)
    db.commit()
    db.refresh(credit)
    logger.info("Crédit %s (%s) créé: %s", credit.intitule, credit.type, credit.montant_total)
    return credit


def update_credit(db: Session, credit: Credit, data: dict) -> Credit:
    apply_updates(credit, data, skip=("id", "montant_rembourse", "statut"))
    refresh_status(credit)
    db.commit()
    db.refresh(credit)
    return credit


def add_remboursement(
    db: Session,
    credit_id: str,
    montant: Any,
    when: Optional[date] = None,
    note: Optional[str] = None,
) -> Credit:
    credit = get_or_404(db, Credit, credit_id, "Crédit")
    amount = D(montant)
    if amount <= 0:
        raise ValueError("Le montant du remboursement doit être supérieur à zéro")
    if credit.statut == "solde":
        raise ValueError("Ce crédit est déjà soldé")
    credit.remboursements.append(
        Remboursement(date=when or date.today(), montant=round2(amount), note=note or None)
    )
    refresh_status(credit)
    db.commit()
    db.refresh(credit)
    logger.info("Remboursement de %s sur le crédit %s (statut %s)", amount, credit.intitule, credit.statut)
    return credit


def credits_summary(credits: Iterable[Credit], today: Optional[date] = None) -> dict:
    credits = list(credits)
    open_credits = [c for c in credits if c.statut != "solde"]
    return {
        "total": len(credits),
        "emprunts_en_cours": sum(1 for c in open_credits if c.type == "emprunt"),
        "prets_en_cours": sum(1 for c in open_credits if c.type == "pret_accorde"),
        "en_retard": sum(1 for c in credits if is_overdue(c, today)),
        "soldes": len(credits) - len(open_credits),
        "total_du": to_float(sum((remaining(c) for c in open_credits if c.type == "emprunt"), start=ZERO)),
        "total_a_recevoir": to_float(
            sum((remaining(c) for c in open_credits if c.type == "pret_accorde"), start=ZERO)
        ),
    }


def filter_credits(credits: Iterable[Credit], type: str = "all", statut: str = "all", search: str = "") -> list[Credit]:
    needle = (search or "").lower()
    out = []
    for c in credits:
        if type not in ("", "all") and c.type != type:
            continue
        if statut not in ("", "all") and c.statut != statut:
            continue
        if needle and needle not in c.intitule.lower() and needle not in c.preteur.lower():
            continue
        out.append(c)
    return out
