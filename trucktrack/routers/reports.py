# trucktrack/routers/reports.py
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.orm import Session

from trucktrack.models.base import get_db
from trucktrack.models.entities import Expense, Invoice, Trip
from trucktrack.services import config_store, crud, exports
from trucktrack.services.errors import NotFoundError
from trucktrack.services.invoicing import InvoiceFilters
from trucktrack.services.reports import REPORTS, build_report

router = APIRouter(prefix="/reports", tags=["Rapports"])


def _file_response(content: bytes, media_type: str, filename: str, inline: bool = False) -> Response:
    disposition = "inline" if inline else "attachment"
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'{disposition}; filename="{filename}"'},
    )


@router.get("/invoices/{invoice_id}.pdf")
def invoice_pdf(invoice_id: str, db: Session = Depends(get_db)):
    invoice = crud.get_or_404(db, Invoice, invoice_id, "Facture")
    trip = db.get(Trip, invoice.trajet_id) if invoice.trajet_id else None
    expense = db.get(Expense, invoice.expense_id) if invoice.expense_id else None
    company = config_store.load_settings()["company"]
    pdf = exports.invoice_pdf(invoice, company, trip=trip, expense=expense,
                              client_name=trip.client if trip else None)
    return _file_response(pdf, exports.PDF_MEDIA_TYPE, f"{invoice.numero}.pdf", inline=True)


@router.get("/{name}.{fmt}")
def table_report(
    name: str,
    fmt: str,
    search: str = "",
    type: str = "",
    trip_id: str = "",
    driver_id: str = "",
    status: str = "",
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: Session = Depends(get_db),
):
    if name not in REPORTS or fmt not in ("xlsx", "pdf"):
        raise NotFoundError(f"Rapport {name}.{fmt} introuvable")
    filters = InvoiceFilters(search_term=search, type=type, trip_id=trip_id, driver_id=driver_id,
                             status=status, date_from=date_from, date_to=date_to)
    export = build_report(db, name, filters)
    stamp = date.today().isoformat()
    if fmt == "xlsx":
        return _file_response(exports.to_xlsx(export), exports.XLSX_MEDIA_TYPE, f"{name}-{stamp}.xlsx")
    return _file_response(exports.to_pdf(export), exports.PDF_MEDIA_TYPE, f"{name}-{stamp}.pdf", inline=True)
