# trucktrack/routers/bank.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from trucktrack.models.base import get_db
from trucktrack.models.entities import BankAccount, BankTransaction
from trucktrack.schemas.finance import (
    BankAccountIn, BankAccountPatch, BankTransactionIn, BankTransactionPatch,
)
from trucktrack.services import bank, crud
from trucktrack.services.auth import require
from trucktrack.services.serialize import to_dict, to_dicts

router = APIRouter(prefix="/bank", tags=["Banque"])


# ---------- Comptes ----------

@router.get("/accounts")
def list_accounts(db: Session = Depends(get_db)):
    return to_dicts(db.query(BankAccount).order_by(BankAccount.nom.asc()).all())


@router.get("/summary")
def get_summary(db: Session = Depends(get_db)):
    return bank.bank_summary(db.query(BankAccount).all())


@router.get("/accounts/{account_id}")
def get_account(account_id: str, db: Session = Depends(get_db)):
    return to_dict(crud.get_or_404(db, BankAccount, account_id, "Compte"))


@router.post("/accounts", status_code=201, dependencies=[Depends(require("can_create"))])
def create_account(payload: BankAccountIn, db: Session = Depends(get_db)):
    return to_dict(bank.create_account(db, payload.model_dump()))


@router.patch("/accounts/{account_id}", dependencies=[Depends(require("can_modify_financial"))])
def update_account(account_id: str, payload: BankAccountPatch, db: Session = Depends(get_db)):
    account = crud.get_or_404(db, BankAccount, account_id, "Compte")
    return to_dict(bank.update_account(db, account, payload.model_dump(exclude_unset=True)))


@router.delete("/accounts/{account_id}", dependencies=[Depends(require("can_delete_financial"))])
def delete_account(account_id: str, db: Session = Depends(get_db)):
    crud.delete(db, crud.get_or_404(db, BankAccount, account_id, "Compte"))
    return {"ok": True}


# ---------- Transactions ----------

@router.get("/transactions")
def list_transactions(compte_id: Optional[str] = None, db: Session = Depends(get_db)):
    q = db.query(BankTransaction)
    if compte_id:
        q = q.filter(BankTransaction.compte_id == compte_id)
    return to_dicts(q.order_by(BankTransaction.date.desc()).all())


@router.get("/transactions/{tx_id}")
def get_transaction(tx_id: str, db: Session = Depends(get_db)):
    return to_dict(crud.get_or_404(db, BankTransaction, tx_id, "Transaction"))


@router.post("/transactions", status_code=201, dependencies=[Depends(require("can_create"))])
def create_transaction(payload: BankTransactionIn, db: Session = Depends(get_db)):
    return to_dict(bank.create_transaction(db, payload.model_dump()))


@router.patch("/transactions/{tx_id}", dependencies=[Depends(require("can_modify_financial"))])
def update_transaction(tx_id: str, payload: BankTransactionPatch, db: Session = Depends(get_db)):
    tx = crud.get_or_404(db, BankTransaction, tx_id, "Transaction")
    return to_dict(bank.update_transaction(db, tx, payload.model_dump(exclude_unset=True)))


@router.delete("/transactions/{tx_id}", dependencies=[Depends(require("can_delete_financial"))])
def delete_transaction(tx_id: str, db: Session = Depends(get_db)):
    bank.delete_transaction(db, crud.get_or_404(db, BankTransaction, tx_id, "Transaction"))
    return {"ok": True}
