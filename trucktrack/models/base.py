# trucktrack/models/base.py
from __future__ import annotations

import uuid
from pathlib import Path
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from trucktrack.config import settings as app_settings

Base = declarative_base()


def new_id() -> str:
    return str(uuid.uuid4())


def _build_engine():
    url = app_settings.DATABASE_URL

    # SQLite en mémoire: une seule connexion partagée (tests, démo)
    if url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            future=True,
        )

    # SQLite: rendre le chemin absolu et créer le dossier
    if url.startswith("sqlite:///"):
        rel = url[len("sqlite:///"):]  # p. ex. ./db/trucktrack.db
        db_file = Path(rel)
        if not db_file.is_absolute():
            db_file = Path.cwd() / db_file
        db_file.parent.mkdir(parents=True, exist_ok=True)
        abs_url = f"sqlite:///{db_file.as_posix()}"
        return create_engine(
            abs_url,
            connect_args={"check_same_thread": False},  # uniquement pour SQLite
            future=True,
            pool_pre_ping=True,
        )

    # Autres bases (Postgres/MySQL)
    return create_engine(url, future=True, pool_pre_ping=True)


engine = _build_engine()
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


def get_db() -> Iterator:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
