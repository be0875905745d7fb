# trucktrack/routers/settings.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from trucktrack.schemas.system import SettingsPatch
from trucktrack.services import config_store
from trucktrack.services.auth import require

router = APIRouter(prefix="/settings", tags=["Paramètres"])


@router.get("")
def get_settings():
    return config_store.load_settings()


@router.put("", dependencies=[Depends(require("can_modify_financial"))])
def put_settings(payload: SettingsPatch):
    return config_store.update_settings(payload.model_dump(exclude_none=True))


@router.get("/sub-categories")
def get_sub_categories(categorie: Optional[str] = None):
    return config_store.sub_categories(categorie)
