# trucktrack/config/settings.py
import os

APP_NAME: str = "Truck Track API"
APP_VERSION: str = "1.0.0"
SECRET_KEY: str = os.getenv("TRUCKTRACK_SECRET_KEY", "change-this-in-production-please-32bytes")

# DB-URL (la base sqlite est placée sous ./db/)
DATABASE_URL: str = os.getenv("TRUCKTRACK_DATABASE_URL", "sqlite:///./db/trucktrack.db")

# Paramètres métier modifiables (JSON)
SETTINGS_PATH: str = os.getenv("TRUCKTRACK_SETTINGS_PATH", "data/settings.json")

# Sans utilisateur connecté, toutes les actions sont permises tant que ce flag est faux
AUTH_REQUIRED: bool = os.getenv("TRUCKTRACK_AUTH_REQUIRED", "0") == "1"

# Utilisateurs de démonstration créés au démarrage si la table est vide
SEED_USERS: bool = os.getenv("TRUCKTRACK_SEED_USERS", "1") == "1"

LOG_LEVEL: str = os.getenv("TRUCKTRACK_LOG_LEVEL", "INFO")
LOG_FILE: str | None = os.getenv("TRUCKTRACK_LOG_FILE") or None

CORS_ORIGINS: list[str] = os.getenv(
    "TRUCKTRACK_CORS_ORIGINS",
    "http://localhost:3001,http://localhost:5173,http://127.0.0.1:3001,http://127.0.0.1:5173",
).split(",")

HOST: str = os.getenv("TRUCKTRACK_HOST", "127.0.0.1")
PORT: int = int(os.getenv("TRUCKTRACK_PORT", "3000"))
RELOAD: bool = os.getenv("TRUCKTRACK_RELOAD", "0").lower() in ("1", "true", "yes")

CURRENCY: str = "FCFA"


def get_default_settings() -> dict:
    """
    Valeurs par défaut des paramètres métier. Le fichier JSON ne contient
    que ce que l'utilisateur a modifié; le reste vient d'ici.
    """
    return {
        "company": {
            "name": "",
            "niu": "",
            "address": "",
            "city": "",
            "phone": "",
        },
        "taxes": {"tva": 19.25, "tps": 0.0},
        "currency": CURRENCY,
        "sub_categories": {
            "Carburant": ["Diesel", "Essence", "AdBlue"],
            "Maintenance": ["Révision", "Réparation", "Pièces détachées", "Vidange"],
            "Péage": ["Autoroute", "Pont", "Tunnel"],
            "Assurance": ["Assurance véhicule", "Assurance responsabilité"],
        },
    }
