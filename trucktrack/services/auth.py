# trucktrack/services/auth.py
import base64
import binascii
import hmac
import logging
import os
from dataclasses import dataclass, asdict
from hashlib import pbkdf2_hmac
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from trucktrack.config import settings as app_settings
from trucktrack.models.base import get_db
from trucktrack.services.errors import PermissionDeniedError
from trucktrack.models.user import (
    User,
    ROLE_ADMIN,
    ROLE_GESTIONNAIRE,
    ROLE_COMPTABLE,
)

logger = logging.getLogger(__name__)

# Clés de session
SESSION_USER_ID = "user_id"
SESSION_ROLE = "role"

# Comptes de démonstration (login, mot de passe, rôle)
SEED_ACCOUNTS = (
    ("admin", "admin123", ROLE_ADMIN),
    ("gestionnaire", "gestion123", ROLE_GESTIONNAIRE),
    ("comptable", "comptable123", ROLE_COMPTABLE),
)


# ---------- Hachage des mots de passe (PBKDF2) ----------
def _b64(b: bytes) -> str:
    return base64.b64encode(b).decode("ascii")

def _unb64(s: str) -> bytes:
    return base64.b64decode(s.encode("ascii"))

def hash_password(plain: str, *, iterations: int = 310_000, salt: bytes | None = None) -> str:
    salt = salt or os.urandom(16)
    dk = pbkdf2_hmac("sha256", plain.encode("utf-8"), salt, iterations)
    return f"pbkdf2${iterations}${_b64(salt)}${_b64(dk)}"

def verify_password(plain: str, stored: str) -> bool:
    try:
        scheme, s_iter, s_salt, s_hash = stored.split("$", 3)
        if scheme != "pbkdf2":
            return False
        iterations = int(s_iter)
        salt = _unb64(s_salt)
        expected = _unb64(s_hash)
    except (ValueError, binascii.Error):
        return False
    test = pbkdf2_hmac("sha256", plain.encode("utf-8"), salt, iterations)
    return hmac.compare_digest(test, expected)


# ---------- Permissions ----------
@dataclass(frozen=True)
class Permissions:
    can_create: bool
    can_modify_financial: bool
    can_delete_financial: bool
    can_modify_non_financial: bool
    can_delete_non_financial: bool
    can_settle_invoice: bool

    def as_dict(self) -> dict:
        return asdict(self)


def permissions_for(role: Optional[str]) -> Permissions:
    """
    Sans utilisateur connecté tout est permis, sauf si l'authentification
    est exigée (TRUCKTRACK_AUTH_REQUIRED=1).
    """
    if role is None:
        allowed = not app_settings.AUTH_REQUIRED
        return Permissions(*(allowed,) * 6)
    is_admin = role == ROLE_ADMIN
    is_manager = role in (ROLE_ADMIN, ROLE_GESTIONNAIRE)
    return Permissions(
        can_create=is_manager,
        can_modify_financial=is_admin,
        can_delete_financial=is_admin,
        can_modify_non_financial=is_manager,
        can_delete_non_financial=is_manager,
        can_settle_invoice=is_manager,
    )


# ---------- Session ----------
def authenticate_user(db: Session, login: str, password: str) -> Optional[User]:
    user = db.query(User).filter(User.login == login, User.is_active == True).first()  # noqa: E712
    if not user:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user

def login_user(request: Request, user: User) -> None:
    request.session[SESSION_USER_ID] = user.id
    request.session[SESSION_ROLE] = user.role
    logger.info("Connexion de %s (%s)", user.login, user.role)

def logout_user(request: Request) -> None:
    request.session.pop(SESSION_USER_ID, None)
    request.session.pop(SESSION_ROLE, None)

def get_current_user(request: Request, db: Session) -> Optional[User]:
    uid = request.session.get(SESSION_USER_ID)
    if not uid:
        return None
    return db.query(User).filter(User.id == uid, User.is_active == True).first()  # noqa: E712

def current_permissions(request: Request, db: Session = Depends(get_db)) -> Permissions:
    user = get_current_user(request, db)
    return permissions_for(user.role if user else None)


def require(flag: str):
    """Dépendance FastAPI: refuse (403) si la permission demandée manque."""
    def _check(perms: Permissions = Depends(current_permissions)) -> Permissions:
        if not getattr(perms, flag):
            raise PermissionDeniedError("Action non autorisée pour votre rôle")
        return perms
    return _check


# ---------- Seeds ----------
def seed_users_if_empty(db: Session) -> None:
    """Crée les comptes de démonstration si la table est vide."""
    if db.query(User).count() > 0:
        return
    for login, pw, role in SEED_ACCOUNTS:
        db.add(User(login=login, password_hash=hash_password(pw), role=role, is_active=True))
    db.commit()
    logger.info("%d utilisateur(s) de démonstration créé(s)", len(SEED_ACCOUNTS))
