# trucktrack/routers/auth.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from trucktrack.models.base import get_db
from trucktrack.schemas.system import LoginIn
from trucktrack.services import auth

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentification"])


def _user_out(user) -> dict | None:
    if user is None:
        return None
    return {"id": user.id, "login": user.login, "role": user.role}


@router.post("/login")
def login(payload: LoginIn, request: Request, db: Session = Depends(get_db)):
    user = auth.authenticate_user(db, payload.login, payload.password)
    if not user:
        logger.warning("Échec de connexion pour %s", payload.login)
        return JSONResponse({"ok": False, "error": "Identifiants invalides"}, status_code=401)
    auth.login_user(request, user)
    return {
        "ok": True,
        "user": _user_out(user),
        "permissions": auth.permissions_for(user.role).as_dict(),
    }


@router.post("/logout")
def logout(request: Request):
    auth.logout_user(request)
    return {"ok": True}


@router.get("/me")
def me(request: Request, db: Session = Depends(get_db)):
    user = auth.get_current_user(request, db)
    return {
        "user": _user_out(user),
        "permissions": auth.permissions_for(user.role if user else None).as_dict(),
    }
