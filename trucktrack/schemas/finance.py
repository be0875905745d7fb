"""Schémas pydantic: factures, caisse, banque, crédits."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

BankAccountType = Literal["courant", "epargne", "professionnel"]
BankTxType = Literal["depot", "retrait", "virement", "prelevement", "frais"]
CreditType = Literal["emprunt", "pret_accorde"]


class _In(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")


# ── Factures ────────────────────────────────────────────────────────────────


class _InvoiceRates(_In):
    # Pourcentages; None = taux par défaut des paramètres (TVA/TPS), 0 pour la remise
    remise: Decimal = Decimal("0")
    tva: Optional[Decimal] = None
    tps: Optional[Decimal] = None
    mode_paiement: Optional[str] = None
    notes: Optional[str] = None


class TripInvoiceIn(_InvoiceRates):
    trajet_id: str


class ExpenseInvoiceIn(_InvoiceRates):
    expense_id: str


class InvoiceIn(_InvoiceRates):
    trajet_id: Optional[str] = None
    expense_id: Optional[str] = None


class InvoicePatch(_In):
    mode_paiement: Optional[str] = None
    notes: Optional[str] = None
    date_creation: Optional[dt.date] = None


class PaymentIn(_In):
    montant_paye: Decimal
    mode_paiement: Optional[str] = None


# ── Caisse ──────────────────────────────────────────────────────────────────


class CashEntryIn(_In):
    date: dt.date
    recette: Decimal = Decimal("0")
    depense: Decimal = Decimal("0")
    description: str = ""
    categorie: Optional[str] = None
    reference: Optional[str] = None


class CashEntryPatch(_In):
    date: Optional[dt.date] = None
    recette: Optional[Decimal] = None
    depense: Optional[Decimal] = None
    description: Optional[str] = None
    categorie: Optional[str] = None
    reference: Optional[str] = None


class SoldeInitialIn(_In):
    solde_initial: Decimal


# ── Banque ──────────────────────────────────────────────────────────────────


class BankAccountIn(_In):
    nom: str = Field(min_length=1)
    numero_compte: str = Field(min_length=1)
    banque: str = Field(min_length=1)
    type: BankAccountType = "courant"
    solde_initial: Decimal = Decimal("0")
    devise: str = "FCFA"
    iban: Optional[str] = None
    swift: Optional[str] = None
    notes: Optional[str] = None


class BankAccountPatch(_In):
    nom: Optional[str] = Field(default=None, min_length=1)
    numero_compte: Optional[str] = Field(default=None, min_length=1)
    banque: Optional[str] = Field(default=None, min_length=1)
    type: Optional[BankAccountType] = None
    solde_initial: Optional[Decimal] = None
    devise: Optional[str] = None
    iban: Optional[str] = None
    swift: Optional[str] = None
    notes: Optional[str] = None


class BankTransactionIn(_In):
    compte_id: str
    type: BankTxType
    montant: Decimal
    date: dt.date
    description: str = ""
    reference: Optional[str] = None
    beneficiaire: Optional[str] = None
    categorie: Optional[str] = None


class BankTransactionPatch(_In):
    compte_id: Optional[str] = None
    type: Optional[BankTxType] = None
    montant: Optional[Decimal] = None
    date: Optional[dt.date] = None
    description: Optional[str] = None
    reference: Optional[str] = None
    beneficiaire: Optional[str] = None
    categorie: Optional[str] = None


# ── Crédits ─────────────────────────────────────────────────────────────────


class CreditIn(_In):
    type: CreditType
    intitule: str = Field(min_length=1)
    preteur: str = Field(min_length=1)
    montant_total: Decimal
    taux_interet: Optional[Decimal] = Field(default=None, ge=0)
    date_debut: dt.date
    date_echeance: Optional[dt.date] = None
    notes: Optional[str] = None


class CreditPatch(_In):
    type: Optional[CreditType] = None
    intitule: Optional[str] = Field(default=None, min_length=1)
    preteur: Optional[str] = Field(default=None, min_length=1)
    montant_total: Optional[Decimal] = Field(default=None, gt=0)
    taux_interet: Optional[Decimal] = Field(default=None, ge=0)
    date_debut: Optional[dt.date] = None
    date_echeance: Optional[dt.date] = None
    notes: Optional[str] = None


class RemboursementIn(_In):
    montant: Decimal
    date: Optional[dt.date] = None
    note: Optional[str] = None
