# trucktrack/services/bank.py
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable

from sqlalchemy.orm import Session

from trucktrack.models.entities import BankAccount, BankTransaction
from trucktrack.services.crud import apply_updates, get_or_404
from trucktrack.services.money import D, ZERO, round2, to_float

logger = logging.getLogger(__name__)

CREDIT_TYPES = ("depot",)


def signed_amount(tx: BankTransaction) -> Decimal:
    """Dépôt = +montant; retrait, virement, prélèvement, frais = -montant."""
    amount = D(tx.montant)
    return amount if tx.type in CREDIT_TYPES else -amount


def compute_balance(solde_initial, transactions: Iterable[BankTransaction]) -> Decimal:
    return round2(D(solde_initial) + sum((signed_amount(tx) for tx in transactions), start=ZERO))


def recompute_balance(db: Session, account: BankAccount) -> Decimal:
    txs = db.query(BankTransaction).filter(BankTransaction.compte_id == account.id).all()
    account.solde_actuel = compute_balance(account.solde_initial, txs)
    return account.solde_actuel


def _check_amount(montant) -> Decimal:
    amount = D(montant)
    if amount <= 0:
        raise ValueError("Le montant de la transaction doit être supérieur à zéro")
    return round2(amount)


# ---------- Comptes ----------

def create_account(db: Session, data: dict) -> BankAccount:
    account = BankAccount(**data)
    account.solde_initial = round2(D(account.solde_initial))
    account.solde_actuel = account.solde_initial
    db.add(account)
    db.commit()
    db.refresh(account)
    logger.info("Compte bancaire %s créé (%s)", account.nom, account.banque)
    return account


def update_account(db: Session, account: BankAccount, data: dict) -> BankAccount:
    apply_updates(account, data, skip=("id", "solde_actuel"))
    db.flush()
    recompute_balance(db, account)
    db.commit()
    db.refresh(account)
    return account


# ---------- Transactions ----------

def create_transaction(db: Session, data: dict) -> BankTransaction:
    account = get_or_404(db, BankAccount, data.get("compte_id"), "Compte")
    tx = BankTransaction(**{**data, "montant": _check_amount(data.get("montant"))})
    db.add(tx)
    db.flush()
    recompute_balance(db, account)
    db.commit()
    db.refresh(tx)
    logger.info("Transaction %s de %s sur le compte %s", tx.type, tx.montant, account.nom)
    return tx


def update_transaction(db: Session, tx: BankTransaction, data: dict) -> BankTransaction:
    old_account_id = tx.compte_id
    if "montant" in data:
        data = {**data, "montant": _check_amount(data["montant"])}
    if data.get("compte_id") and data["compte_id"] != old_account_id:
        get_or_404(db, BankAccount, data["compte_id"], "Compte")
    apply_updates(tx, data)
    db.flush()
    for account_id in {old_account_id, tx.compte_id}:
        account = db.get(BankAccount, account_id)
        if account is not None:
            recompute_balance(db, account)
    db.commit()
    db.refresh(tx)
    return tx


def delete_transaction(db: Session, tx: BankTransaction) -> None:
    account_id = tx.compte_id
    db.delete(tx)
    db.flush()
    account = db.get(BankAccount, account_id)
    if account is not None:
        recompute_balance(db, account)
    db.commit()


def bank_summary(accounts: Iterable[BankAccount]) -> dict:
    accounts = list(accounts)
    return {
        "comptes": len(accounts),
        "solde_total": to_float(sum((D(a.solde_actuel) for a in accounts), start=ZERO)),
    }
