# kosan/routers/expenses.py
from __future__ import annotations

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import get_admin
from ..config import settings
from ..db import get_db
from ..domain.periods import local_now
from ..domain.rollups import EXPENSE_CATEGORIES
from ..schemas import BucketOut, DayBucketOut, ExpenseCreate, ExpenseOut, ExpenseReportOut
from ..services.expense_service import (
    build_report,
    current_month_expenses,
    delete_expense,
    record_expense,
    render_report,
    update_expense,
)
from ..services.ownership import must_get_expense
from .payments import pdf_response

router = APIRouter(prefix="/expenses", tags=["expenses"])


@router.get("/categories", response_model=list[str])
def categories(a=Depends(get_admin)):
    return list(EXPENSE_CATEGORIES)


@router.get("", response_model=list[ExpenseOut])
def list_expenses(db: Session = Depends(get_db), a=Depends(get_admin)):
    return current_month_expenses(db)


@router.post("", response_model=ExpenseOut)
def create_expense(payload: ExpenseCreate, db: Session = Depends(get_db), a=Depends(get_admin)):
    return record_expense(db, payload)


@router.get("/report", response_model=ExpenseReportOut)
def report(
    period: Literal["year", "month"] = Query(default="month"),
    year: Optional[int] = Query(default=None, ge=2000, le=2200),
    month: Optional[int] = Query(default=None, ge=1, le=12),
    db: Session = Depends(get_db),
    a=Depends(get_admin),
):
    now = local_now(settings.timezone)
    if period == "month" and month is None:
        month = now.month
    r = build_report(db, period=period, year=year or now.year, month=month)

    return ExpenseReportOut(
        period=r.period,
        year=r.year,
        month=r.month,
        total=r.total,
        count=r.count,
        by_category=[BucketOut(label=b.label, total=b.total, count=b.count) for b in r.by_category],
        by_month=[BucketOut(label=b.label, total=b.total, count=b.count) for b in r.by_month],
        by_day=[
            DayBucketOut(day=d.day, total=d.total, items=[ExpenseOut.model_validate(e) for e in d.items])
            for d in r.by_day
        ],
    )


@router.get("/report.pdf")
def report_pdf(
    period: Literal["year", "month"] = Query(default="month"),
    year: Optional[int] = Query(default=None, ge=2000, le=2200),
    month: Optional[int] = Query(default=None, ge=1, le=12),
    db: Session = Depends(get_db),
    a=Depends(get_admin),
):
    now = local_now(settings.timezone)
    if period == "month" and month is None:
        month = now.month
    r = build_report(db, period=period, year=year or now.year, month=month)
    pdf = render_report(r, today=now.date())
    return pdf_response(pdf.filename, pdf.content)


@router.patch("/{expense_id}", response_model=ExpenseOut)
def patch_expense(
    expense_id: int,
    payload: ExpenseCreate,  # full-update for simplicity
    db: Session = Depends(get_db),
    a=Depends(get_admin),
):
    row = must_get_expense(db, expense_id=expense_id)
    return update_expense(db, row, payload)


@router.delete("/{expense_id}")
def remove_expense(expense_id: int, db: Session = Depends(get_db), a=Depends(get_admin)):
    row = must_get_expense(db, expense_id=expense_id)
    delete_expense(db, row)
    return {"ok": True}
