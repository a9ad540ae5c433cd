# kosan/domain/periods.py
"""
Calendar arithmetic for rent cycles.

A resident's rent cycle restarts every month on the day-of-month they moved
in. When that day does not exist in a month (moved in on the 31st, month has
30 days) the cycle day is clamped to the month's last day; it never rolls
over into the following month.
"""
from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from typing import Any, Optional
from zoneinfo import ZoneInfo

MONTHS_ID = [
    "Januari", "Februari", "Maret", "April", "Mei", "Juni",
    "Juli", "Agustus", "September", "Oktober", "November", "Desember",
]

_MONTH_LOOKUP = {name.lower(): i for i, name in enumerate(MONTHS_ID, start=1)}


def month_name(month: int) -> str:
    if not 1 <= int(month) <= 12:
        raise ValueError(f"month out of range: {month}")
    return MONTHS_ID[int(month) - 1]


def month_number(value: Any) -> int:
    """Accept 1..12 (int or digit string) or an Indonesian month name."""
    if isinstance(value, bool):
        raise ValueError(f"not a month: {value!r}")
    if isinstance(value, int):
        m = value
    else:
        s = str(value).strip()
        if s.isdigit():
            m = int(s)
        elif s.lower() in _MONTH_LOOKUP:
            return _MONTH_LOOKUP[s.lower()]
        else:
            raise ValueError(f"not a month: {value!r}")
    if not 1 <= m <= 12:
        raise ValueError(f"month out of range: {value!r}")
    return m


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_bounds(year: int, month: int) -> tuple[date, date]:
    return date(year, month, 1), date(year, month, days_in_month(year, month))


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    idx = year * 12 + (month - 1) + delta
    return idx // 12, idx % 12 + 1


def anchored_day(year: int, month: int, day: int) -> date:
    return date(year, month, min(day, days_in_month(year, month)))


def add_months(d: date, months: int) -> date:
    y, m = shift_month(d.year, d.month, months)
    return anchored_day(y, m, d.day)


def as_date(v: Any) -> Optional[date]:
    if v is None or v == "":
        return None
    if isinstance(v, datetime):
        return v.date()
    if isinstance(v, date):
        return v
    try:
        return date.fromisoformat(str(v).strip()[:10])
    except ValueError:
        return None


def rental_period(entry_date: date, payment_date: date) -> tuple[date, date]:
    """
    The one-month rent window a payment settles.

    The window starts on the move-in day-of-month in the payment's month. A
    payment made before that month's cycle day settles the previous cycle.
    The window ends exactly one cycle later.
    """
    y, m = payment_date.year, payment_date.month
    if payment_date.day < anchored_day(y, m, entry_date.day).day:
        y, m = shift_month(y, m, -1)

    start = anchored_day(y, m, entry_date.day)
    ey, em = shift_month(y, m, 1)
    end = anchored_day(ey, em, entry_date.day)
    return start, end


def stay_duration(entry_date: date, exit_date: date) -> str:
    months = (exit_date.year - entry_date.year) * 12 + (exit_date.month - entry_date.month)
    if exit_date.day < entry_date.day:
        months -= 1
    months = max(0, months)

    if months > 0:
        rest = (exit_date - add_months(entry_date, months)).days
        return f"{months} bulan" + (f" {rest} hari" if rest > 0 else "")
    return f"{max(0, (exit_date - entry_date).days)} hari"


def local_now(tz_name: str) -> datetime:
    return datetime.now(ZoneInfo(tz_name))


def in_rollover_blank(now: datetime, minutes: int) -> bool:
    """True during the first `minutes` minutes of a month (0 disables)."""
    if minutes <= 0:
        return False
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    return now.day == 1 and now - month_start < timedelta(minutes=minutes)
