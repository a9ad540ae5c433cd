# kosan/services/expense_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.periods import in_rollover_blank, local_now, month_bounds
from ..domain.rollups import (
    Bucket,
    DayBucket,
    expenses_by_category,
    expenses_by_day,
    expenses_by_month,
    total_amount,
)
from ..models import Expense
from ..schemas import ExpenseCreate
from .pdf_layout import PdfRenderError, RenderedPdf
from .report_pdf import render_monthly_expense_report, render_yearly_expense_report

log = logging.getLogger(__name__)


@dataclass
class ExpenseReport:
    period: str  # year | month
    year: int
    month: Optional[int]
    expenses: list[Expense]
    by_category: list[Bucket]
    by_month: list[Bucket] = field(default_factory=list)
    by_day: list[DayBucket] = field(default_factory=list)

    @property
    def total(self) -> float:
        return total_amount(self.expenses)

    @property
    def count(self) -> int:
        return len(self.expenses)


def _now() -> datetime:
    return local_now(settings.timezone)


def expenses_between(db: Session, start: date, end: date) -> list[Expense]:
    q = (
        select(Expense)
        .where(Expense.expense_date >= start, Expense.expense_date <= end)
        .order_by(Expense.expense_date, Expense.id)
    )
    return list(db.scalars(q).all())


def current_month_expenses(db: Session, *, now: datetime | None = None) -> list[Expense]:
    now = now or _now()
    if in_rollover_blank(now, settings.rollover_blank_minutes):
        return []

    start, end = month_bounds(now.year, now.month)
    q = (
        select(Expense)
        .where(Expense.expense_date >= start, Expense.expense_date <= end)
        .order_by(desc(Expense.expense_date), desc(Expense.id))
    )
    return list(db.scalars(q).all())


def record_expense(db: Session, payload: ExpenseCreate) -> Expense:
    row = Expense(**payload.model_dump())
    db.add(row)
    db.commit()
    db.refresh(row)
    log.info("expense recorded: %s", row.category, extra={"expense_id": row.id})
    return row


def update_expense(db: Session, row: Expense, payload: ExpenseCreate) -> Expense:
    for k, v in payload.model_dump().items():
        setattr(row, k, v)
    db.commit()
    db.refresh(row)
    log.info("expense updated", extra={"expense_id": row.id})
    return row


def delete_expense(db: Session, row: Expense) -> None:
    eid = row.id
    db.delete(row)
    db.commit()
    log.info("expense deleted", extra={"expense_id": eid})


# -------------------------
# Reports
# -------------------------
def build_report(db: Session, *, period: str, year: int, month: Optional[int] = None) -> ExpenseReport:
    if period == "year":
        rows = expenses_between(db, date(year, 1, 1), date(year, 12, 31))
        return ExpenseReport(
            period="year",
            year=year,
            month=None,
            expenses=rows,
            by_category=expenses_by_category(rows),
            by_month=expenses_by_month(rows, year),
        )

    if period == "month":
        if month is None or not 1 <= month <= 12:
            raise HTTPException(status_code=422, detail="month (1..12) is required for a monthly report")
        start, end = month_bounds(year, month)
        rows = expenses_between(db, start, end)
        return ExpenseReport(
            period="month",
            year=year,
            month=month,
            expenses=rows,
            by_category=expenses_by_category(rows),
            by_day=expenses_by_day(rows),
        )

    raise HTTPException(status_code=422, detail="period must be 'year' or 'month'")


def render_report(report: ExpenseReport, *, today: date) -> RenderedPdf:
    try:
        if report.period == "year":
            return render_yearly_expense_report(
                report.year, report.expenses, report.by_category, report.by_month, today=today
            )
        return render_monthly_expense_report(
            report.year, report.month, report.expenses, report.by_category, report.by_day, today=today
        )
    except PdfRenderError as e:
        log.error("expense report render failed", exc_info=True)
        raise HTTPException(status_code=502, detail="could not render report") from e
