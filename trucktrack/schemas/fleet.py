"""Schémas pydantic: tiers, chauffeurs, camions, trajets, dépenses."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ThirdPartyType = Literal["proprietaire", "client", "fournisseur"]
TruckType = Literal["tracteur", "remorqueuse"]
TruckStatus = Literal["actif", "inactif"]
TripStatus = Literal["planifie", "en_cours", "termine", "annule"]
DriverTxType = Literal["apport", "sortie"]


class _In(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")


# ── Tiers ───────────────────────────────────────────────────────────────────


class ThirdPartyIn(_In):
    nom: str = Field(min_length=1)
    telephone: Optional[str] = None
    email: Optional[str] = None
    adresse: Optional[str] = None
    type: ThirdPartyType
    notes: Optional[str] = None


class ThirdPartyPatch(_In):
    nom: Optional[str] = Field(default=None, min_length=1)
    telephone: Optional[str] = None
    email: Optional[str] = None
    adresse: Optional[str] = None
    type: Optional[ThirdPartyType] = None
    notes: Optional[str] = None


# ── Chauffeurs ──────────────────────────────────────────────────────────────


class DriverTransactionIn(_In):
    type: DriverTxType
    montant: Decimal = Field(gt=0)
    date: dt.date
    description: str = ""


class DriverIn(_In):
    nom: str = Field(min_length=1)
    prenom: str = Field(min_length=1)
    telephone: str = Field(min_length=1)
    cni: Optional[str] = None
    photo: Optional[str] = None
    transactions: list[DriverTransactionIn] = Field(default_factory=list)


class DriverPatch(_In):
    nom: Optional[str] = Field(default=None, min_length=1)
    prenom: Optional[str] = Field(default=None, min_length=1)
    telephone: Optional[str] = Field(default=None, min_length=1)
    cni: Optional[str] = None
    photo: Optional[str] = None


# ── Camions ─────────────────────────────────────────────────────────────────


class TruckIn(_In):
    immatriculation: str = Field(min_length=1)
    modele: str = Field(min_length=1)
    type: TruckType
    statut: TruckStatus = "actif"
    date_mise_en_circulation: dt.date
    photo: Optional[str] = None
    proprietaire_id: Optional[str] = None
    chauffeur_id: Optional[str] = None


class TruckPatch(_In):
    immatriculation: Optional[str] = Field(default=None, min_length=1)
    modele: Optional[str] = Field(default=None, min_length=1)
    type: Optional[TruckType] = None
    statut: Optional[TruckStatus] = None
    date_mise_en_circulation: Optional[dt.date] = None
    photo: Optional[str] = None
    proprietaire_id: Optional[str] = None
    chauffeur_id: Optional[str] = None


# ── Trajets ─────────────────────────────────────────────────────────────────


class TripIn(_In):
    tracteur_id: Optional[str] = None
    remorqueuse_id: Optional[str] = None
    origine: str = Field(min_length=1)
    destination: str = Field(min_length=1)
    origine_lat: Optional[Decimal] = None
    origine_lng: Optional[Decimal] = None
    destination_lat: Optional[Decimal] = None
    destination_lng: Optional[Decimal] = None
    chauffeur_id: str
    date_depart: dt.date
    date_arrivee: Optional[dt.date] = None
    recette: Decimal = Field(default=Decimal("0"), ge=0)
    prefinancement: Optional[Decimal] = Field(default=None, ge=0)
    client: Optional[str] = None
    marchandise: Optional[str] = None
    description: Optional[str] = None
    statut: TripStatus = "planifie"


class TripPatch(_In):
    tracteur_id: Optional[str] = None
    remorqueuse_id: Optional[str] = None
    origine: Optional[str] = Field(default=None, min_length=1)
    destination: Optional[str] = Field(default=None, min_length=1)
    origine_lat: Optional[Decimal] = None
    origine_lng: Optional[Decimal] = None
    destination_lat: Optional[Decimal] = None
    destination_lng: Optional[Decimal] = None
    chauffeur_id: Optional[str] = None
    date_depart: Optional[dt.date] = None
    date_arrivee: Optional[dt.date] = None
    recette: Optional[Decimal] = Field(default=None, ge=0)
    prefinancement: Optional[Decimal] = Field(default=None, ge=0)
    client: Optional[str] = None
    marchandise: Optional[str] = None
    description: Optional[str] = None
    statut: Optional[TripStatus] = None


# ── Dépenses ────────────────────────────────────────────────────────────────


class ExpenseIn(_In):
    camion_id: str
    trip_id: Optional[str] = None
    chauffeur_id: Optional[str] = None
    categorie: str = Field(min_length=1)
    sous_categorie: Optional[str] = None
    fournisseur_id: Optional[str] = None
    montant: Decimal = Field(ge=0)
    quantite: Optional[Decimal] = Field(default=None, ge=0)
    prix_unitaire: Optional[Decimal] = Field(default=None, ge=0)
    date: dt.date
    description: str = ""


class ExpensePatch(_In):
    camion_id: Optional[str] = None
    trip_id: Optional[str] = None
    chauffeur_id: Optional[str] = None
    categorie: Optional[str] = Field(default=None, min_length=1)
    sous_categorie: Optional[str] = None
    fournisseur_id: Optional[str] = None
    montant: Optional[Decimal] = Field(default=None, ge=0)
    quantite: Optional[Decimal] = Field(default=None, ge=0)
    prix_unitaire: Optional[Decimal] = Field(default=None, ge=0)
    date: Optional[dt.date] = None
    description: Optional[str] = None
