# trucktrack/models/cashbook.py
from __future__ import annotations
from datetime import datetime
from sqlalchemy import Column, String, Date, DateTime, Numeric, Text, Index
from trucktrack.models.base import Base, new_id

class CashEntry(Base):
    __tablename__ = "caisse"

    id = Column(String(64), primary_key=True, default=new_id)
    date = Column(Date, nullable=False, index=True)
    recette = Column(Numeric(15, 2), nullable=False, default=0)  # entrée
    depense = Column(Numeric(15, 2), nullable=False, default=0)  # sortie
    description = Column(Text, nullable=False, default="")
    categorie = Column(String(100), nullable=True)
    reference = Column(String(100), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    @property
    def type(self) -> str:
        return "entree" if (self.recette or 0) > 0 else "sortie"

    @property
    def montant(self):
        return self.recette if (self.recette or 0) > 0 else self.depense

Index("ix_caisse_date_created", CashEntry.date, CashEntry.created_at)
