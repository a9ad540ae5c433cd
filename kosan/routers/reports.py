# kosan/routers/reports.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import get_admin
from ..config import settings
from ..db import get_db
from ..domain.periods import local_now
from ..schemas import BucketOut, YearlyReportOut
from ..services.dashboard_rollups import render_yearly_report, yearly_rollup
from .payments import pdf_response

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/yearly", response_model=YearlyReportOut)
def yearly(
    year: Optional[int] = Query(default=None, ge=2000, le=2200),
    db: Session = Depends(get_db),
    a=Depends(get_admin),
):
    r = yearly_rollup(db, year=year or local_now(settings.timezone).year)
    return YearlyReportOut(
        year=r.year,
        income_by_month=[BucketOut(label=b.label, total=b.total, count=b.count) for b in r.income_by_month],
        expenses_by_month=[BucketOut(label=b.label, total=b.total, count=b.count) for b in r.expenses_by_month],
        total_income=r.total_income,
        total_expenses=r.total_expenses,
        avg_monthly_income=r.avg_monthly_income,
        avg_monthly_expenses=r.avg_monthly_expenses,
        active_residents=r.active_residents,
        occupied_rooms=r.occupancy.occupied_rooms,
        vacant_rooms=r.occupancy.vacant_rooms,
        occupancy_rate=r.occupancy.occupancy_rate,
    )


@router.get("/yearly.pdf")
def yearly_pdf(
    year: Optional[int] = Query(default=None, ge=2000, le=2200),
    db: Session = Depends(get_db),
    a=Depends(get_admin),
):
    now = local_now(settings.timezone)
    pdf = render_yearly_report(yearly_rollup(db, year=year or now.year), today=now.date())
    return pdf_response(pdf.filename, pdf.content)
