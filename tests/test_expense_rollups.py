# tests/test_expense_rollups.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from kosan.domain.rollups import (
    MonthSnapshot,
    OccupancySummary,
    expenses_by_category,
    expenses_by_day,
    expenses_by_month,
    income_by_month,
    monthly_expense_total,
)


@dataclass
class E:
    expense_date: date
    category: str
    amount: float


@dataclass
class Pay:
    billing_year: int
    billing_month: int
    amount: float


def _expenses():
    return [
        E(expense_date=date(2025, 1, 31), category="Belanja", amount=50_000),
        E(expense_date=date(2025, 2, 1), category="Uang Sampah", amount=20_000),
        E(expense_date=date(2025, 2, 14), category="Belanja", amount=75_000),
        E(expense_date=date(2025, 2, 28), category="Service", amount=150_000),
        E(expense_date=date(2025, 3, 1), category="Lain-lain", amount=10_000),
    ]


def test_monthly_total_includes_first_and_last_day():
    assert monthly_expense_total(_expenses(), 2025, 2) == 245_000


def test_categories_keep_fixed_order_and_drop_empty():
    feb = [e for e in _expenses() if e.expense_date.month == 2]
    buckets = expenses_by_category(feb)
    assert [b.label for b in buckets] == ["Uang Sampah", "Belanja", "Service"]
    assert buckets[1].total == 75_000 and buckets[1].count == 1


def test_by_month_and_by_day():
    months = expenses_by_month(_expenses(), 2025)
    assert len(months) == 12
    assert months[0].label == "Januari" and months[0].total == 50_000
    assert months[1].total == 245_000 and months[1].count == 3
    assert months[11].total == 0

    days = expenses_by_day(_expenses())
    assert [d.day for d in days] == sorted(d.day for d in days)
    assert days[0].day == date(2025, 1, 31)


def test_income_is_keyed_by_billing_period():
    payments = [
        Pay(billing_year=2025, billing_month=1, amount=500_000),
        Pay(billing_year=2025, billing_month=1, amount=700_000),
        Pay(billing_year=2024, billing_month=12, amount=900_000),
    ]
    months = income_by_month(payments, 2025)
    assert months[0].total == 1_200_000 and months[0].count == 2
    assert sum(b.total for b in months) == 1_200_000


def test_occupancy_and_profit():
    occ = OccupancySummary(total_rooms=15, occupied_rooms=4)
    assert occ.vacant_rooms == 11
    assert occ.occupancy_rate == 26.7
    assert OccupancySummary(total_rooms=0, occupied_rooms=0).occupancy_rate == 0.0
    assert MonthSnapshot(income=1_200_000, expenses=245_000).profit == 955_000
