# kosan/domain/rollups.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable

from .periods import MONTHS_ID, as_date, month_bounds

EXPENSE_CATEGORIES = [
    "Uang Sampah",
    "Gaji Ema Tati",
    "Belanja",
    "Service",
    "Lain-lain",
]


@dataclass(frozen=True)
class Bucket:
    label: str
    total: float
    count: int


@dataclass(frozen=True)
class DayBucket:
    day: date
    total: float
    items: list[Any] = field(default_factory=list)


def _amount(x: Any) -> float:
    return float(getattr(x, "amount", 0.0) or 0.0)


def total_amount(rows: Iterable[Any]) -> float:
    return float(sum(_amount(r) for r in rows))


def expenses_in_range(expenses: Iterable[Any], start: date, end: date) -> list[Any]:
    """Expenses whose expense_date falls in [start, end], both ends inclusive."""
    out = []
    for e in expenses:
        d = as_date(getattr(e, "expense_date", None))
        if d is not None and start <= d <= end:
            out.append(e)
    return out


def monthly_expense_total(expenses: Iterable[Any], year: int, month: int) -> float:
    start, end = month_bounds(year, month)
    return total_amount(expenses_in_range(expenses, start, end))


def expenses_by_category(expenses: Iterable[Any]) -> list[Bucket]:
    """Per-category totals in the fixed category order; empty categories are dropped."""
    rows = list(expenses)
    out = []
    for cat in EXPENSE_CATEGORIES:
        hits = [e for e in rows if getattr(e, "category", None) == cat]
        total = total_amount(hits)
        if total > 0:
            out.append(Bucket(label=cat, total=total, count=len(hits)))
    return out


def expenses_by_month(expenses: Iterable[Any], year: int) -> list[Bucket]:
    """Twelve buckets (Januari..Desember) for one calendar year."""
    totals = [0.0] * 12
    counts = [0] * 12
    for e in expenses:
        d = as_date(getattr(e, "expense_date", None))
        if d is None or d.year != year:
            continue
        totals[d.month - 1] += _amount(e)
        counts[d.month - 1] += 1
    return [Bucket(label=MONTHS_ID[i], total=totals[i], count=counts[i]) for i in range(12)]


def expenses_by_day(expenses: Iterable[Any]) -> list[DayBucket]:
    grouped: dict[date, list[Any]] = {}
    for e in expenses:
        d = as_date(getattr(e, "expense_date", None))
        if d is None:
            continue
        grouped.setdefault(d, []).append(e)
    return [DayBucket(day=d, total=total_amount(items), items=items) for d, items in sorted(grouped.items())]


def income_by_month(payments: Iterable[Any], year: int) -> list[Bucket]:
    """Income per billing month of `year`, keyed by the structured billing period."""
    totals = [0.0] * 12
    counts = [0] * 12
    for p in payments:
        if int(getattr(p, "billing_year", 0) or 0) != year:
            continue
        m = int(getattr(p, "billing_month", 0) or 0)
        if not 1 <= m <= 12:
            continue
        totals[m - 1] += _amount(p)
        counts[m - 1] += 1
    return [Bucket(label=MONTHS_ID[i], total=totals[i], count=counts[i]) for i in range(12)]


@dataclass(frozen=True)
class OccupancySummary:
    total_rooms: int
    occupied_rooms: int

    @property
    def vacant_rooms(self) -> int:
        return self.total_rooms - self.occupied_rooms

    @property
    def occupancy_rate(self) -> float:
        if self.total_rooms <= 0:
            return 0.0
        return round(self.occupied_rooms / self.total_rooms * 100.0, 1)


@dataclass(frozen=True)
class MonthSnapshot:
    income: float
    expenses: float

    @property
    def profit(self) -> float:
        return float(self.income - self.expenses)
