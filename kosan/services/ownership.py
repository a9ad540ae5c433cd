# kosan/services/ownership.py
from __future__ import annotations

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import Room, Resident, Payment, Expense


def must_get_room(db: Session, *, room_id: int) -> Room:
    row = db.scalar(select(Room).where(Room.id == room_id))
    if not row:
        raise HTTPException(status_code=404, detail="room not found")
    return row


def must_get_resident(db: Session, *, resident_id: int) -> Resident:
    row = db.scalar(select(Resident).where(Resident.id == resident_id))
    if not row:
        raise HTTPException(status_code=404, detail="resident not found")
    return row


def must_get_payment(db: Session, *, payment_id: int) -> Payment:
    row = db.scalar(select(Payment).where(Payment.id == payment_id))
    if not row:
        raise HTTPException(status_code=404, detail="payment not found")
    return row


def must_get_expense(db: Session, *, expense_id: int) -> Expense:
    row = db.scalar(select(Expense).where(Expense.id == expense_id))
    if not row:
        raise HTTPException(status_code=404, detail="expense not found")
    return row
