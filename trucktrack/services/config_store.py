# trucktrack/services/config_store.py
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List

from trucktrack.config import settings as app_settings

logger = logging.getLogger(__name__)


def _settings_path() -> Path:
    return Path(app_settings.SETTINGS_PATH)


def _rate(value: Any, default: float) -> float:
    try:
        rate = float(value)
    except (TypeError, ValueError):
        return default
    return rate if 0 <= rate <= 100 else default


def sanitize_settings(cfg: dict) -> dict:
    """
    Ne garde que les clés connues; les clés manquantes ou invalides
    reprennent la valeur par défaut.
    """
    base = app_settings.get_default_settings()
    company = cfg.get("company") or {}
    taxes = cfg.get("taxes") or {}
    subs = cfg.get("sub_categories")

    clean_company = {
        k: str(company.get(k, v) or "").strip() for k, v in base["company"].items()
    }
    clean_taxes = {k: _rate(taxes.get(k, v), v) for k, v in base["taxes"].items()}

    clean_subs: Dict[str, List[str]] = {}
    if isinstance(subs, dict):
        for cat, items in subs.items():
            if isinstance(items, list):
                clean_subs[str(cat)] = [str(i).strip() for i in items if str(i).strip()]
    else:
        clean_subs = base["sub_categories"]

    return {
        "company": clean_company,
        "taxes": clean_taxes,
        "currency": str(cfg.get("currency") or base["currency"]),
        "sub_categories": clean_subs,
    }


def load_settings() -> dict:
    path = _settings_path()
    if not path.exists():
        return app_settings.get_default_settings()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        # Fichier illisible: on repart des valeurs par défaut
        logger.warning("Paramètres illisibles (%s), valeurs par défaut utilisées", path)
        return app_settings.get_default_settings()
    if not isinstance(data, dict):
        return app_settings.get_default_settings()
    return sanitize_settings(data)


def save_settings(cfg: dict) -> dict:
    clean = sanitize_settings(cfg)
    path = _settings_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(clean, ensure_ascii=False, indent=2), encoding="utf-8")
    logger.info("Paramètres enregistrés dans %s", path)
    return clean


def update_settings(patch: dict) -> dict:
    """Fusionne un patch partiel (niveau section) avec les paramètres courants."""
    current = load_settings()
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(current.get(key), dict) and key != "sub_categories":
            current[key] = {**current[key], **value}
        elif value is not None:
            current[key] = value
    return save_settings(current)


def sub_categories(categorie: str | None = None) -> dict | list:
    subs = load_settings()["sub_categories"]
    if categorie is None:
        return subs
    return subs.get(categorie, [])


def default_tax_rates() -> dict:
    return load_settings()["taxes"]
