# trucktrack/routers/dashboard.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from trucktrack.models.base import get_db
from trucktrack.services.context import FleetContext

router = APIRouter(tags=["Tableau de bord"])


@router.get("/dashboard")
def dashboard(db: Session = Depends(get_db)):
    ctx = FleetContext(db)
    ctx.refresh()
    return ctx.dashboard()
