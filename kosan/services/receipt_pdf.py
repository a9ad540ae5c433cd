# kosan/services/receipt_pdf.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Optional

from reportlab.lib import colors
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, Table, TableStyle

from ..config import settings
from ..domain.formatting import format_period, format_rupiah, format_tanggal
from ..domain.sharing import receipt_download_name
from .pdf_layout import PagedDocument, PdfRenderError, RenderedPdf, y_from_top

log = logging.getLogger(__name__)

HEADER_FILL = colors.Color(0 / 255, 123 / 255, 255 / 255)
STAMP_RED = colors.Color(0.80, 0.08, 0.08)
TABLE_HEAD = ["Nama Penyewa", "Kamar", "Periode Sewa", "Nominal", "Tanggal", "Metode Pembayaran"]
TABLE_COL_WIDTHS_MM = [34, 20, 40, 28, 26, 32]

# Fixed positions, mm from the top-left corner of an A4 page.
LOGO_BOX = (15, 10, 25, 25)  # x, y, w, h
TABLE_ORIGIN = (15, 50)
SIGNATURE_LABEL = (160, 110)
SIGNATURE_LINE = (150, 120)
STAMP_CENTER = (45, 112)
STAMP_RADIUS_MM = 17


class ReceiptRenderError(PdfRenderError):
    pass


@dataclass(frozen=True)
class Letterhead:
    title: str
    address: str
    contact: str
    logo_path: Optional[str] = None


@dataclass(frozen=True)
class ReceiptData:
    full_name: str
    room_number: Optional[int]
    entry_date: Optional[date]
    payment_date: date
    amount: float
    payment_method: str


def default_letterhead() -> Letterhead:
    return Letterhead(
        title="BUKTI PEMBAYARAN KOS",
        address=settings.kos_address,
        contact=settings.kos_contact,
        logo_path=settings.receipt_logo_path,
    )


def _cell(value: str, style: ParagraphStyle) -> Paragraph:
    return Paragraph(value.replace("&", "&amp;").replace("<", "&lt;"), style)


def _draw_logo(doc: PagedDocument, logo_path: Optional[str]) -> None:
    if not logo_path:
        return
    if not Path(logo_path).is_file():
        log.warning("receipt logo not found: %s", logo_path)
        return
    x, y, w, h = LOGO_BOX
    doc.canvas.drawImage(logo_path, x * mm, y_from_top(y + h), width=w * mm, height=h * mm, mask="auto")


def _draw_table(doc: PagedDocument, data: ReceiptData) -> None:
    head_style = ParagraphStyle("head", fontName="Helvetica-Bold", fontSize=9, leading=11, alignment=1, textColor=colors.white)
    body_style = ParagraphStyle("body", fontName="Helvetica", fontSize=9, leading=11, alignment=1)

    row = [
        data.full_name,
        f"Kamar {data.room_number}" if data.room_number else "",
        format_period(data.entry_date, data.payment_date),
        format_rupiah(data.amount),
        data.payment_date.isoformat(),
        data.payment_method,
    ]
    table = Table(
        [[_cell(h, head_style) for h in TABLE_HEAD], [_cell(v, body_style) for v in row]],
        colWidths=[w * mm for w in TABLE_COL_WIDTHS_MM],
    )
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), HEADER_FILL),
                ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
                ("TOPPADDING", (0, 0), (-1, -1), 4),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
            ]
        )
    )
    _, height = table.wrapOn(doc.canvas, sum(TABLE_COL_WIDTHS_MM) * mm, 100 * mm)
    x, y = TABLE_ORIGIN
    table.drawOn(doc.canvas, x * mm, y_from_top(y) - height)


def _draw_paid_stamp(doc: PagedDocument, paid_on: date) -> None:
    c = doc.canvas
    cx, cy = STAMP_CENTER
    r = STAMP_RADIUS_MM * mm

    c.saveState()
    c.translate(cx * mm, y_from_top(cy))
    c.rotate(12)
    c.setStrokeColor(STAMP_RED)
    c.setFillColor(STAMP_RED)
    c.setLineWidth(2)
    c.circle(0, 0, r, stroke=1, fill=0)
    c.setLineWidth(0.8)
    c.circle(0, 0, r - 2.2 * mm, stroke=1, fill=0)

    c.setFont("Helvetica-Bold", 20)
    c.drawCentredString(0, -3 * mm, "LUNAS")
    c.setFont("Helvetica", 6.5)
    c.drawCentredString(0, 6.5 * mm, "PAID")
    c.drawCentredString(0, -9 * mm, format_tanggal(paid_on, pad_day=True))

    c.setFont("Helvetica-Bold", 7)
    for x in (-(r - 6 * mm), r - 6 * mm):
        c.drawCentredString(x, -1 * mm, "*")
    c.restoreState()


def render_receipt(data: ReceiptData, letterhead: Optional[Letterhead] = None) -> RenderedPdf:
    """
    Single-page receipt: letterhead, one-row payment table, signature line and
    a circular "LUNAS" stamp at fixed coordinates.
    """
    lh = letterhead or default_letterhead()
    try:
        doc = PagedDocument(title=lh.title)
        _draw_logo(doc, lh.logo_path)

        doc.font(18, bold=True)
        doc.centered(22, lh.title)

        doc.font(10)
        doc.centered(30, lh.address)
        doc.centered(36, lh.contact)

        _draw_table(doc, data)

        doc.font(10)
        doc.text(*SIGNATURE_LABEL, "Pengelola Kos")
        doc.text(*SIGNATURE_LINE, "_____________________")

        _draw_paid_stamp(doc, data.payment_date)
        content = doc.finish()
    except Exception as e:
        raise ReceiptRenderError(f"could not render receipt for {data.full_name}") from e

    return RenderedPdf(
        filename=receipt_download_name(data.full_name, data.payment_date),
        content=content,
        pages=1,
    )
