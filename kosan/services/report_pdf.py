# kosan/services/report_pdf.py
from __future__ import annotations

from datetime import date
from typing import Any, Iterable, Optional

from ..config import settings
from ..domain.formatting import format_rupiah, format_tanggal
from ..domain.periods import month_name
from ..domain.rollups import Bucket, DayBucket, total_amount
from .pdf_layout import PagedDocument, PdfRenderError, RenderedPdf

YEARLY_LINE_BREAK_MM = 250
DAILY_LINE_BREAK_MM = 260
FOOTER_Y_MM = 270


def _header(doc: PagedDocument, title: str, subtitle: str) -> None:
    doc.font(20, bold=True)
    doc.centered(30, title)
    doc.font(14)
    doc.centered(45, subtitle)
    doc.rule(55)


def _footer(doc: PagedDocument, today: date) -> None:
    doc.font(10)
    doc.text(20, FOOTER_Y_MM, f"Dibuat pada: {format_tanggal(today, pad_day=True)}")


def _summary(doc: PagedDocument, lines: list[str], start: float = 70, step: float = 15) -> None:
    doc.font(12)
    y = start
    for line in lines:
        doc.text(20, y, line)
        y += step


def _categories(doc: PagedDocument, by_category: list[Bucket]) -> None:
    doc.font(14, bold=True)
    doc.text(20, 125, "Pengeluaran per Kategori")
    doc.font(12)
    doc.y = 140
    for b in by_category:
        doc.text(25, doc.y, f"{b.label}: {format_rupiah(b.total)} ({b.count} transaksi)")
        doc.y += 15


def _render(filename: str, draw, *, title: str) -> RenderedPdf:
    try:
        doc = PagedDocument(title=title)
        draw(doc)
        content = doc.finish()
    except PdfRenderError:
        raise
    except Exception as e:
        raise PdfRenderError(f"could not render {filename}") from e
    return RenderedPdf(filename=filename, content=content, pages=doc.pages)


def render_yearly_expense_report(
    year: int,
    expenses: Iterable[Any],
    by_category: list[Bucket],
    by_month: list[Bucket],
    *,
    today: date,
) -> RenderedPdf:
    rows = list(expenses)
    total = total_amount(rows)

    def draw(doc: PagedDocument) -> None:
        _header(doc, "LAPORAN PENGELUARAN TAHUNAN", f"{settings.kos_name} - Tahun {year}")
        _summary(
            doc,
            [
                f"Total Pengeluaran: {format_rupiah(total)}",
                f"Jumlah Transaksi: {len(rows)}",
                f"Rata-rata per Bulan: {format_rupiah(total / 12)}",
            ],
        )
        _categories(doc, by_category)

        doc.y += 10
        doc.break_after(YEARLY_LINE_BREAK_MM)
        doc.font(14, bold=True)
        doc.text(20, doc.y, "Pengeluaran per Bulan")
        doc.y += 15
        doc.font(12)
        for b in by_month:
            doc.break_after(YEARLY_LINE_BREAK_MM)
            doc.text(25, doc.y, f"{b.label}: {format_rupiah(b.total)} ({b.count} transaksi)")
            doc.y += 15

        _footer(doc, today)

    return _render(f"laporan-pengeluaran-tahunan-{year}.pdf", draw, title="Laporan Pengeluaran Tahunan")


def render_monthly_expense_report(
    year: int,
    month: int,
    expenses: Iterable[Any],
    by_category: list[Bucket],
    by_day: list[DayBucket],
    *,
    today: date,
) -> RenderedPdf:
    rows = list(expenses)
    total = total_amount(rows)
    bulan = month_name(month)

    def draw(doc: PagedDocument) -> None:
        _header(doc, "LAPORAN PENGELUARAN BULANAN", f"{settings.kos_name} - {bulan} {year}")
        _summary(
            doc,
            [
                f"Total Pengeluaran: {format_rupiah(total)}",
                f"Jumlah Transaksi: {len(rows)}",
                f"Hari dengan Pengeluaran: {len(by_day)}",
            ],
        )
        _categories(doc, by_category)

        doc.y += 10
        doc.break_after(DAILY_LINE_BREAK_MM)
        doc.font(14, bold=True)
        doc.text(20, doc.y, "Rincian Harian")
        doc.y += 15

        for bucket in by_day:
            doc.break_after(DAILY_LINE_BREAK_MM)
            doc.font(11, bold=True)
            doc.text(20, doc.y, f"{format_tanggal(bucket.day)} - {format_rupiah(bucket.total)}")
            doc.y += 12

            doc.font(10)
            for item in bucket.items:
                doc.break_after(DAILY_LINE_BREAK_MM)
                note = f" ({item.description})" if getattr(item, "description", None) else ""
                doc.text(25, doc.y, f"- {item.category}: {format_rupiah(item.amount)}{note}")
                doc.y += 10
            doc.y += 5

        _footer(doc, today)

    return _render(f"laporan-pengeluaran-{bulan}-{year}.pdf", draw, title="Laporan Pengeluaran Bulanan")


def render_yearly_income_report(
    year: int,
    income_by_month: list[Bucket],
    *,
    total_expenses: float,
    active_residents: int,
    occupancy_rate: Optional[float] = None,
    today: date,
) -> RenderedPdf:
    total_income = float(sum(b.total for b in income_by_month))

    def draw(doc: PagedDocument) -> None:
        _header(doc, f"LAPORAN BULANAN {settings.kos_name}", f"Tahun {year}")

        lines = [
            f"Total Pemasukan: {format_rupiah(total_income)}",
            f"Total Pengeluaran: {format_rupiah(total_expenses)}",
            f"Keuntungan Bersih: {format_rupiah(total_income - total_expenses)}",
            f"Penghuni Aktif: {active_residents}",
        ]
        if occupancy_rate is not None:
            lines[-1] += f" (hunian {occupancy_rate:.1f}%)"
        _summary(doc, lines, start=85)

        doc.font(14, bold=True)
        doc.text(20, 155, "Pemasukan per Bulan")
        doc.font(12)
        doc.y = 170
        for b in income_by_month:
            if b.total <= 0:
                continue
            doc.break_after(YEARLY_LINE_BREAK_MM)
            doc.text(25, doc.y, f"{b.label}: {format_rupiah(b.total)} ({b.count} pembayaran)")
            doc.y += 15

        _footer(doc, today)

    return _render(f"laporan-kos-{year}.pdf", draw, title="Laporan Kos")
