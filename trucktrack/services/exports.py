# trucktrack/services/exports.py
"""
Exports tabulaires (Excel / PDF) et facture PDF.

Une colonne = (en-tête, fonction ligne -> valeur). Les mêmes colonnes
servent aux deux formats.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from io import BytesIO
from typing import Any, Callable, Optional, Sequence
from xml.sax.saxutils import escape

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from trucktrack.services.money import fmt_fcfa

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
PDF_MEDIA_TYPE = "application/pdf"

HEADER_BLUE = colors.HexColor("#1e40af")


@dataclass
class Column:
    header: str
    value: Callable[[Any], Any]


@dataclass
class TableExport:
    title: str
    columns: Sequence[Column]
    rows: Sequence[Any]
    filters_description: str = ""
    sheet_name: str = "Données"
    totals: list[tuple[str, Any]] = field(default_factory=list)

    def header_row(self) -> list[str]:
        return [c.header for c in self.columns]

    def data_rows(self) -> list[list[Any]]:
        out = []
        for row in self.rows:
            values = []
            for c in self.columns:
                v = c.value(row)
                values.append("" if v is None else v)
            out.append(values)
        return out


# ---------- Excel ----------

def to_xlsx(export: TableExport) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = export.sheet_name[:31]

    ws.append([export.title])
    ws["A1"].font = Font(bold=True, size=14)
    if export.filters_description:
        ws.append([export.filters_description])
    ws.append([])

    ws.append(export.header_row())
    header_idx = ws.max_row
    for cell in ws[header_idx]:
        cell.font = Font(bold=True, color="FFFFFF")
        cell.fill = PatternFill("solid", fgColor="1E40AF")

    data = export.data_rows()
    for values in data:
        ws.append(values)

    if export.totals:
        ws.append([])
        for label, value in export.totals:
            ws.append([label, value])

    for idx, col in enumerate(export.columns, start=1):
        width = max([len(str(col.header))] + [len(str(v[idx - 1])) for v in data])
        ws.column_dimensions[get_column_letter(idx)].width = min(max(width + 2, 10), 60)

    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()


# ---------- PDF ----------

def _doc(buf: BytesIO, wide: bool = False) -> SimpleDocTemplate:
    return SimpleDocTemplate(buf, pagesize=landscape(A4) if wide else A4,
                             leftMargin=15*mm, rightMargin=15*mm,
                             topMargin=12*mm, bottomMargin=12*mm)


def _grid_style(extra: Sequence[tuple] = ()) -> TableStyle:
    return TableStyle([("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
                       ("BACKGROUND", (0, 0), (-1, 0), HEADER_BLUE),
                       ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                       ("FONTSIZE", (0, 0), (-1, -1), 8),
                       *extra])


def to_pdf(export: TableExport) -> bytes:
    styles = getSampleStyleSheet()
    buf = BytesIO()
    doc = _doc(buf, wide=len(export.columns) > 6)
    story = [Paragraph(export.title, styles["Title"])]
    if export.filters_description:
        story.append(Paragraph(escape(export.filters_description), styles["Normal"]))
    story.append(Paragraph(f"Généré le {date.today():%d/%m/%Y}", styles["Normal"]))
    story.append(Spacer(1, 6))

    rows = [export.header_row()] + [[str(v) for v in values] for values in export.data_rows()]
    t = Table(rows, repeatRows=1)
    striped = [("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.whitesmoke])] if len(rows) > 1 else []
    t.setStyle(_grid_style(striped))
    story.append(t)

    if export.totals:
        story.append(Spacer(1, 8))
        story.append(Paragraph("Récapitulatif des totaux", styles["Heading3"]))
        t2 = Table([[label, str(value)] for label, value in export.totals], colWidths=[70*mm, 50*mm])
        t2.setStyle(TableStyle([("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
                                ("ALIGN", (1, 0), (1, -1), "RIGHT")]))
        story.append(t2)

    doc.build(story)
    return buf.getvalue()


def invoice_pdf(invoice, company: dict, trip=None, expense=None, client_name: Optional[str] = None) -> bytes:
    """Facture unique: en-tête société, référence, détail HT / remise / TVA / TPS / TTC."""
    styles = getSampleStyleSheet()
    buf = BytesIO()
    doc = _doc(buf)
    story = []

    story.append(Paragraph(escape(company.get("name") or "Truck Track"), styles["Title"]))
    ident = [company.get(k) for k in ("address", "city", "phone")]
    if company.get("niu"):
        ident.append(f"NIU: {company['niu']}")
    line = " · ".join(x for x in ident if x)
    if line:
        story.append(Paragraph(escape(line), styles["Normal"]))
    story.append(Spacer(1, 10))

    story.append(Paragraph(f"Facture {invoice.numero}", styles["Heading2"]))
    head = [["Date", f"{invoice.date_creation:%d/%m/%Y}"],
            ["Statut", "Payée" if invoice.statut == "payee" else "En attente"]]
    if client_name:
        head.append(["Client", client_name])
    if trip is not None:
        head.append(["Trajet", trip.label])
        if trip.marchandise:
            head.append(["Marchandise", trip.marchandise])
    if expense is not None:
        head.append(["Dépense", f"{expense.categorie}: {expense.description}"])
    if invoice.mode_paiement:
        head.append(["Mode de paiement", invoice.mode_paiement])
    t1 = Table(head, colWidths=[50*mm, 110*mm])
    t1.setStyle(TableStyle([("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
                            ("BACKGROUND", (0, 0), (0, -1), colors.whitesmoke)]))
    story.append(t1)
    story.append(Spacer(1, 10))

    amounts = [["Libellé", "Montant"], ["Montant HT", fmt_fcfa(invoice.montant_ht)]]
    if invoice.remise:
        amounts.append([f"Remise ({invoice.remise}%)", "-" + fmt_fcfa(invoice.montant_ht - invoice.montant_ht_apres_remise)])
        amounts.append(["HT après remise", fmt_fcfa(invoice.montant_ht_apres_remise)])
    if invoice.tva:
        amounts.append(["TVA", fmt_fcfa(invoice.tva)])
    if invoice.tps:
        amounts.append(["TPS", fmt_fcfa(invoice.tps)])
    amounts.append(["Montant TTC", fmt_fcfa(invoice.montant_ttc)])
    amounts.append(["Montant payé", fmt_fcfa(invoice.montant_paye or 0)])
    amounts.append(["Reste à payer", fmt_fcfa(max(invoice.montant_ttc - (invoice.montant_paye or 0), 0))])
    t2 = Table(amounts, colWidths=[100*mm, 60*mm])
    t2.setStyle(_grid_style([("ALIGN", (1, 0), (1, -1), "RIGHT"),
                             ("FONTSIZE", (0, 0), (-1, -1), 10)]))
    story.append(t2)

    if invoice.notes:
        story.append(Spacer(1, 8))
        story.append(Paragraph(escape(invoice.notes), styles["Normal"]))

    doc.build(story)
    return buf.getvalue()
