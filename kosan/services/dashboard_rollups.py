# kosan/services/dashboard_rollups.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime

from fastapi import HTTPException
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.occupancy import is_active_resident, occupancy_for_rooms
from ..domain.periods import local_now, month_name
from ..domain.rollups import (
    Bucket,
    MonthSnapshot,
    OccupancySummary,
    expenses_by_month,
    income_by_month,
    monthly_expense_total,
    total_amount,
)
from ..models import Expense, Payment, Resident, Room
from .expense_service import expenses_between
from .pdf_layout import PdfRenderError, RenderedPdf
from .report_pdf import render_yearly_income_report

log = logging.getLogger(__name__)

RECENT_RESIDENTS = 5


@dataclass(frozen=True)
class DashboardRollup:
    occupancy: OccupancySummary
    active_residents: int
    month: str
    snapshot: MonthSnapshot
    recent_residents: list[Resident]


@dataclass(frozen=True)
class YearlyRollup:
    year: int
    income_by_month: list[Bucket]
    expenses_by_month: list[Bucket]
    occupancy: OccupancySummary
    active_residents: int

    @property
    def total_income(self) -> float:
        return float(sum(b.total for b in self.income_by_month))

    @property
    def total_expenses(self) -> float:
        return float(sum(b.total for b in self.expenses_by_month))

    @property
    def avg_monthly_income(self) -> float:
        return self.total_income / 12

    @property
    def avg_monthly_expenses(self) -> float:
        return self.total_expenses / 12


def _occupancy(db: Session, residents: list[Resident]) -> OccupancySummary:
    rooms = db.scalars(select(Room)).all()
    occ = occupancy_for_rooms(rooms, residents)
    return OccupancySummary(total_rooms=len(occ), occupied_rooms=sum(1 for o in occ if o.is_occupied))


def _active(residents: list[Resident]) -> list[Resident]:
    # is_active_resident falls back to the legacy flag when status_penghuni is NULL
    return [r for r in residents if is_active_resident(r)]


def dashboard_rollup(db: Session, *, now: datetime | None = None) -> DashboardRollup:
    now = now or local_now(settings.timezone)
    residents = list(db.scalars(select(Resident).order_by(desc(Resident.created_at), desc(Resident.id))).all())
    active = _active(residents)

    payments = db.scalars(
        select(Payment).where(Payment.billing_year == now.year, Payment.billing_month == now.month)
    ).all()
    expenses = db.scalars(select(Expense).where(Expense.expense_date >= date(now.year, now.month, 1))).all()

    return DashboardRollup(
        occupancy=_occupancy(db, residents),
        active_residents=len(active),
        month=f"{month_name(now.month)} {now.year}",
        snapshot=MonthSnapshot(
            income=total_amount(payments),
            expenses=monthly_expense_total(expenses, now.year, now.month),
        ),
        recent_residents=active[:RECENT_RESIDENTS],
    )


def yearly_rollup(db: Session, *, year: int) -> YearlyRollup:
    residents = list(db.scalars(select(Resident)).all())
    payments = db.scalars(select(Payment).where(Payment.billing_year == year)).all()
    expenses = expenses_between(db, date(year, 1, 1), date(year, 12, 31))

    return YearlyRollup(
        year=year,
        income_by_month=income_by_month(payments, year),
        expenses_by_month=expenses_by_month(expenses, year),
        occupancy=_occupancy(db, residents),
        active_residents=len(_active(residents)),
    )


def render_yearly_report(rollup: YearlyRollup, *, today: date) -> RenderedPdf:
    try:
        return render_yearly_income_report(
            rollup.year,
            rollup.income_by_month,
            total_expenses=rollup.total_expenses,
            active_residents=rollup.active_residents,
            occupancy_rate=rollup.occupancy.occupancy_rate,
            today=today,
        )
    except PdfRenderError as e:
        log.error("yearly report render failed", exc_info=True)
        raise HTTPException(status_code=502, detail="could not render report") from e
