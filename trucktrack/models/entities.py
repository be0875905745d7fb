from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Column, String, Text, DateTime, Date, Numeric, ForeignKey
)
from sqlalchemy.orm import relationship

from .base import Base, new_id

# Valeurs admises (chaînes, cohérentes avec les schémas pydantic)
THIRD_PARTY_TYPES = ("proprietaire", "client", "fournisseur")
TRUCK_TYPES = ("tracteur", "remorqueuse")
TRUCK_STATUSES = ("actif", "inactif")
TRIP_STATUSES = ("planifie", "en_cours", "termine", "annule")
ACTIVE_TRIP_STATUSES = ("planifie", "en_cours")
INVOICE_STATUSES = ("en_attente", "payee")
DRIVER_TX_TYPES = ("apport", "sortie")
BANK_ACCOUNT_TYPES = ("courant", "epargne", "professionnel")
BANK_TX_TYPES = ("depot", "retrait", "virement", "prelevement", "frais")
CREDIT_TYPES = ("emprunt", "pret_accorde")
CREDIT_STATUSES = ("en_cours", "solde", "en_retard")


# ---------- Tiers / Chauffeurs ----------

class ThirdParty(Base):
    __tablename__ = "third_parties"
    id = Column(String(64), primary_key=True, default=new_id)
    nom = Column(String(200), nullable=False)
    telephone = Column(String(100))
    email = Column(String(200))
    adresse = Column(Text)
    type = Column(String(20), nullable=False)  # proprietaire|client|fournisseur
    notes = Column(Text)


class Driver(Base):
    __tablename__ = "drivers"
    id = Column(String(64), primary_key=True, default=new_id)
    nom = Column(String(200), nullable=False)
    prenom = Column(String(200), nullable=False)
    telephone = Column(String(100), nullable=False)
    cni = Column(String(100))
    photo = Column(Text)

    transactions = relationship(
        "DriverTransaction", back_populates="driver",
        cascade="all, delete-orphan", order_by="DriverTransaction.date",
    )

    @property
    def full_name(self) -> str:
        return f"{self.prenom} {self.nom}"


class DriverTransaction(Base):
    __tablename__ = "driver_transactions"
    # "expense_<id>" pour les sorties créées depuis une dépense
    id = Column(String(80), primary_key=True, default=new_id)
    driver_id = Column(String(64), ForeignKey("drivers.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(20), nullable=False)  # apport|sortie
    montant = Column(Numeric(15, 2), nullable=False)
    date = Column(Date, nullable=False)
    description = Column(Text, nullable=False, default="")

    driver = relationship("Driver", back_populates="transactions")


# ---------- Flotte / Trajets / Dépenses ----------

class Truck(Base):
    __tablename__ = "trucks"
    id = Column(String(64), primary_key=True, default=new_id)
    immatriculation = Column(String(50), nullable=False)
    modele = Column(String(200), nullable=False)
    type = Column(String(20), nullable=False)    # tracteur|remorqueuse
    statut = Column(String(20), nullable=False)  # actif|inactif
    date_mise_en_circulation = Column(Date, nullable=False)
    photo = Column(Text)
    proprietaire_id = Column(String(64), ForeignKey("third_parties.id", ondelete="SET NULL"))
    chauffeur_id = Column(String(64), ForeignKey("drivers.id", ondelete="SET NULL"))

    proprietaire = relationship("ThirdParty")
    chauffeur = relationship("Driver")

    @property
    def label(self) -> str:
        return f"{self.immatriculation} ({self.modele})"


class Trip(Base):
    __tablename__ = "trips"
    id = Column(String(64), primary_key=True, default=new_id)
    tracteur_id = Column(String(64), ForeignKey("trucks.id", ondelete="SET NULL"))
    remorqueuse_id = Column(String(64), ForeignKey("trucks.id", ondelete="SET NULL"))
    origine = Column(String(200), nullable=False)
    destination = Column(String(200), nullable=False)
    origine_lat = Column(Numeric(10, 7))
    origine_lng = Column(Numeric(10, 7))
    destination_lat = Column(Numeric(10, 7))
    destination_lng = Column(Numeric(10, 7))
    chauffeur_id = Column(String(64), ForeignKey("drivers.id"), nullable=False)
    date_depart = Column(Date, nullable=False)
    date_arrivee = Column(Date)
    recette = Column(Numeric(15, 2), nullable=False, default=0)
    prefinancement = Column(Numeric(15, 2))
    client = Column(String(200))
    marchandise = Column(String(200))
    description = Column(Text)
    statut = Column(String(20), nullable=False)  # planifie|en_cours|termine|annule

    tracteur = relationship("Truck", foreign_keys=[tracteur_id])
    remorqueuse = relationship("Truck", foreign_keys=[remorqueuse_id])
    chauffeur = relationship("Driver")

    @property
    def label(self) -> str:
        return f"{self.origine} → {self.destination}"


class Expense(Base):
    __tablename__ = "expenses"
    id = Column(String(64), primary_key=True, default=new_id)
    camion_id = Column(String(64), ForeignKey("trucks.id", ondelete="CASCADE"), nullable=False)
    trip_id = Column(String(64), ForeignKey("trips.id", ondelete="SET NULL"))
    chauffeur_id = Column(String(64), ForeignKey("drivers.id", ondelete="SET NULL"))
    categorie = Column(String(100), nullable=False)
    sous_categorie = Column(String(100))
    fournisseur_id = Column(String(64), ForeignKey("third_parties.id", ondelete="SET NULL"))
    montant = Column(Numeric(15, 2), nullable=False)
    quantite = Column(Numeric(12, 2))
    prix_unitaire = Column(Numeric(12, 2))
    date = Column(Date, nullable=False)
    description = Column(Text, nullable=False, default="")

    camion = relationship("Truck")
    fournisseur = relationship("ThirdParty")


# ---------- Factures ----------

class Invoice(Base):
    __tablename__ = "invoices"
    id = Column(String(64), primary_key=True, default=new_id)
    numero = Column(String(50), nullable=False, unique=True)
    trajet_id = Column(String(64), ForeignKey("trips.id", ondelete="SET NULL"))
    expense_id = Column(String(64), ForeignKey("expenses.id", ondelete="SET NULL"))
    statut = Column(String(20), nullable=False, default="en_attente")  # en_attente|payee
    montant_ht = Column(Numeric(15, 2), nullable=False)
    remise = Column(Numeric(5, 2))                    # pourcentage
    montant_ht_apres_remise = Column(Numeric(15, 2))
    tva = Column(Numeric(15, 2))                      # montant, pas le taux
    tps = Column(Numeric(15, 2))                      # montant, pas le taux
    montant_ttc = Column(Numeric(15, 2), nullable=False)
    montant_paye = Column(Numeric(15, 2), default=0)
    date_creation = Column(Date, nullable=False)
    date_paiement = Column(Date)
    mode_paiement = Column(String(100))
    notes = Column(Text)

    trajet = relationship("Trip")
    expense = relationship("Expense")


# ---------- Banque ----------

class BankAccount(Base):
    __tablename__ = "bank_accounts"
    id = Column(String(64), primary_key=True, default=new_id)
    nom = Column(String(200), nullable=False)
    numero_compte = Column(String(100), nullable=False)
    banque = Column(String(200), nullable=False)
    type = Column(String(20), nullable=False)  # courant|epargne|professionnel
    solde_initial = Column(Numeric(15, 2), nullable=False, default=0)
    solde_actuel = Column(Numeric(15, 2), nullable=False, default=0)
    devise = Column(String(10), nullable=False, default="FCFA")
    iban = Column(String(64))
    swift = Column(String(32))
    notes = Column(Text)

    transactions = relationship(
        "BankTransaction", back_populates="compte", cascade="all, delete-orphan",
    )


class BankTransaction(Base):
    __tablename__ = "bank_transactions"
    id = Column(String(64), primary_key=True, default=new_id)
    compte_id = Column(String(64), ForeignKey("bank_accounts.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(20), nullable=False)  # depot|retrait|virement|prelevement|frais
    montant = Column(Numeric(15, 2), nullable=False)
    date = Column(Date, nullable=False)
    description = Column(Text, nullable=False, default="")
    reference = Column(String(100))
    beneficiaire = Column(String(200))
    categorie = Column(String(100))

    compte = relationship("BankAccount", back_populates="transactions")


# ---------- Crédits ----------

class Credit(Base):
    __tablename__ = "credits"
    id = Column(String(64), primary_key=True, default=new_id)
    type = Column(String(20), nullable=False)  # emprunt|pret_accorde
    intitule = Column(String(200), nullable=False)
    preteur = Column(String(200), nullable=False)
    montant_total = Column(Numeric(15, 2), nullable=False)
    montant_rembourse = Column(Numeric(15, 2), nullable=False, default=0)
    taux_interet = Column(Numeric(5, 2))
    date_debut = Column(Date, nullable=False)
    date_echeance = Column(Date)
    statut = Column(String(20), nullable=False, default="en_cours")
    notes = Column(Text)

    remboursements = relationship(
        "Remboursement", back_populates="credit",
        cascade="all, delete-orphan", order_by="Remboursement.date",
    )


class Remboursement(Base):
    __tablename__ = "remboursements"
    id = Column(String(64), primary_key=True, default=new_id)
    credit_id = Column(String(64), ForeignKey("credits.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    montant = Column(Numeric(15, 2), nullable=False)
    note = Column(Text)

    credit = relationship("Credit", back_populates="remboursements")


# ---------- Konfig ----------

class Konfig(Base):
    __tablename__ = "konfig"
    key = Column(String(100), primary_key=True)
    value_json = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
