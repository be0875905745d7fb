"""Fixtures partagées: base SQLite en mémoire, client HTTP et données de départ.

Les variables d'environnement doivent être posées avant le premier import
de ``trucktrack`` (le moteur est créé à l'import de models.base).
"""

from __future__ import annotations

import os
import tempfile
from datetime import date
from decimal import Decimal

os.environ["TRUCKTRACK_DATABASE_URL"] = "sqlite://"
os.environ["TRUCKTRACK_SETTINGS_PATH"] = os.path.join(tempfile.gettempdir(), "trucktrack-tests-settings.json")
os.environ["TRUCKTRACK_SEED_USERS"] = "0"

import pytest
from fastapi.testclient import TestClient

from trucktrack.config import settings as app_settings
from trucktrack.models.base import Base, SessionLocal, engine
from trucktrack.models.entities import Driver, Expense, Trip, Truck
import trucktrack.models.cashbook  # noqa: F401
import trucktrack.models.user  # noqa: F401

from main import app


# ── Base de données ──────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def settings_file(tmp_path, monkeypatch):
    """Chaque test a son propre fichier de paramètres (absent au départ)."""
    path = tmp_path / "settings.json"
    monkeypatch.setattr(app_settings, "SETTINGS_PATH", str(path))
    monkeypatch.setattr(app_settings, "AUTH_REQUIRED", False)
    return path


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


# ── Données métier ───────────────────────────────────────────────────────────


@pytest.fixture
def driver(db) -> Driver:
    d = Driver(nom="Mbarga", prenom="Paul", telephone="+237 690 00 00 00")
    db.add(d)
    db.commit()
    db.refresh(d)
    return d


@pytest.fixture
def truck(db) -> Truck:
    t = Truck(
        immatriculation="LT-123-AB",
        modele="Volvo FH16",
        type="tracteur",
        statut="actif",
        date_mise_en_circulation=date(2019, 3, 1),
    )
    db.add(t)
    db.commit()
    db.refresh(t)
    return t


@pytest.fixture
def trip(db, driver, truck) -> Trip:
    t = Trip(
        tracteur_id=truck.id,
        origine="Douala",
        destination="Yaoundé",
        chauffeur_id=driver.id,
        date_depart=date(2024, 5, 2),
        recette=Decimal("100000"),
        client="Brasseries du Cameroun",
        statut="en_cours",
    )
    db.add(t)
    db.commit()
    db.refresh(t)
    return t


@pytest.fixture
def expense(db, truck, trip) -> Expense:
    e = Expense(
        camion_id=truck.id,
        trip_id=trip.id,
        categorie="Carburant",
        sous_categorie="Diesel",
        montant=Decimal("25000"),
        date=date(2024, 5, 3),
        description="Plein à Edéa",
    )
    db.add(e)
    db.commit()
    db.refresh(e)
    return e
