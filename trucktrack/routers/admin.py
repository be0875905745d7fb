# trucktrack/routers/admin.py
from __future__ import annotations

import json
from datetime import date

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.orm import Session

from trucktrack.models.base import get_db
from trucktrack.schemas.system import RestoreIn
from trucktrack.services import backup as backup_service
from trucktrack.services.auth import require

router = APIRouter(prefix="/admin", tags=["Administration"])


@router.delete("/purge", dependencies=[Depends(require("can_delete_financial"))])
def purge(db: Session = Depends(get_db)):
    backup_service.purge(db)
    return {"message": "Base de données purgée avec succès"}


@router.get("/backup")
def backup(db: Session = Depends(get_db)):
    payload = backup_service.backup(db)
    filename = f"truck-track-backup-{date.today().isoformat()}.json"
    return Response(
        content=json.dumps(payload, ensure_ascii=False, indent=2),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/restore", dependencies=[Depends(require("can_delete_financial"))])
def restore(payload: RestoreIn, db: Session = Depends(get_db)):
    if payload.data is None:
        raise ValueError('Corps invalide : propriété "data" manquante')
    counts = backup_service.restore(db, payload.data)
    return {"message": "Restauration réussie", "counts": counts}
