# kosan/domain/formatting.py
from __future__ import annotations

from datetime import date
from typing import Any

from .periods import as_date, month_name, rental_period

PERIOD_SEPARATOR = " – "
PLACEHOLDER = "-"


def format_tanggal(d: date, *, pad_day: bool = False) -> str:
    """15 Januari 2025 (or 05 Januari 2025 with pad_day)."""
    day = f"{d.day:02d}" if pad_day else str(d.day)
    return f"{day} {month_name(d.month)} {d.year}"


def format_rupiah(amount: float) -> str:
    """Rp 1.500.000, Rp 1.500,5 (id-ID grouping, up to 3 decimals)."""
    value = round(float(amount or 0.0), 3)
    sign = "-" if value < 0 else ""
    whole, _, frac = f"{abs(value):.3f}".partition(".")
    frac = frac.rstrip("0")
    grouped = f"{int(whole):,}".replace(",", ".")
    return f"Rp {sign}{grouped}" + (f",{frac}" if frac else "")


def format_period(entry_date: Any, payment_date: Any) -> str:
    """Billing period label for a receipt, or '-' when either date is unusable."""
    entry = as_date(entry_date)
    paid = as_date(payment_date)
    if entry is None or paid is None:
        return PLACEHOLDER
    start, end = rental_period(entry, paid)
    return f"{format_tanggal(start)}{PERIOD_SEPARATOR}{format_tanggal(end)}"
