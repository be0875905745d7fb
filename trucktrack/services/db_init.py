# trucktrack/services/db_init.py
from __future__ import annotations

import logging

from trucktrack.config import settings as app_settings
from trucktrack.models.base import Base, engine, SessionLocal
# Enregistre tous les modèles (import à effet de bord)
import trucktrack.models.entities  # noqa: F401
import trucktrack.models.cashbook  # noqa: F401
import trucktrack.models.user  # noqa: F401
from trucktrack.services.auth import seed_users_if_empty

logger = logging.getLogger(__name__)


def init_db(seed: bool | None = None) -> None:
    """
    Crée les tables et (optionnellement) les comptes de démonstration.
    Appelé au démarrage de l'application par main.py.
    """
    Base.metadata.create_all(bind=engine)
    logger.info("Base de données prête (%s)", engine.url.render_as_string(hide_password=True))

    if app_settings.SEED_USERS if seed is None else seed:
        with SessionLocal() as db:
            seed_users_if_empty(db)
