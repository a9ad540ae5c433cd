# kosan/routers/dashboard.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import get_admin
from ..db import get_db
from ..schemas import DashboardOut, ResidentOut
from ..services.dashboard_rollups import dashboard_rollup

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/summary", response_model=DashboardOut)
def summary(db: Session = Depends(get_db), a=Depends(get_admin)):
    """
    Top cards of the admin home screen. Occupancy is folded from live
    residents; income is the current billing period, expenses the current
    calendar month.
    """
    r = dashboard_rollup(db)
    return DashboardOut(
        total_rooms=r.occupancy.total_rooms,
        occupied_rooms=r.occupancy.occupied_rooms,
        vacant_rooms=r.occupancy.vacant_rooms,
        occupancy_rate=r.occupancy.occupancy_rate,
        active_residents=r.active_residents,
        month=r.month,
        monthly_income=r.snapshot.income,
        monthly_expenses=r.snapshot.expenses,
        profit=r.snapshot.profit,
        recent_residents=[ResidentOut.model_validate(x) for x in r.recent_residents],
    )
