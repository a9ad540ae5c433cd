# kosan/models.py
from __future__ import annotations

import json
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base
from .domain.occupancy import STATUS_ACTIVE, STATUS_EXITED, is_active_resident  # noqa: F401
from .domain.periods import month_name

DOC_CREATED = "created"
DOC_ATTACHED = "attached"
DOC_PENDING = "pending"


# -----------------------------
# Admin accounts
# -----------------------------
class Admin(Base):
    __tablename__ = "admins"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(200), nullable=False, unique=True, index=True)
    name: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


# -----------------------------
# Rooms / Residents
# -----------------------------
class Room(Base):
    """
    A rentable room. Occupancy is never stored here: it is folded from the
    active residents on every read (see domain.occupancy).
    """

    __tablename__ = "rooms"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    room_number: Mapped[int] = mapped_column(Integer, nullable=False, unique=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    residents: Mapped[List["Resident"]] = relationship(back_populates="room")


class Resident(Base):
    __tablename__ = "residents"
    __table_args__ = (Index("ix_residents_room_status", "room_id", "status_penghuni"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone_number: Mapped[str] = mapped_column(String(40), nullable=False)
    room_id: Mapped[int] = mapped_column(Integer, ForeignKey("rooms.id"), nullable=False, index=True)
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    marital_status: Mapped[str] = mapped_column(String(40), nullable=False, default="Belum Menikah")

    # status_penghuni is authoritative; is_active is kept in lockstep for older readers.
    # NULL status only exists on legacy rows and falls back to is_active.
    status_penghuni: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, default=STATUS_ACTIVE, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    tanggal_keluar: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    ktp_image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    marriage_certificate_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    document_state: Mapped[str] = mapped_column(String(20), nullable=False, default=DOC_CREATED)
    pending_documents_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    room: Mapped["Room"] = relationship(back_populates="residents")
    payments: Mapped[List["Payment"]] = relationship(back_populates="resident", cascade="all, delete-orphan")

    @property
    def room_number(self) -> Optional[int]:
        return self.room.room_number if self.room is not None else None

    @property
    def is_current(self) -> bool:
        return is_active_resident(self)

    @property
    def pending_documents(self) -> list[str]:
        if not self.pending_documents_json:
            return []
        try:
            return [str(x) for x in json.loads(self.pending_documents_json)]
        except ValueError:
            return []

    @pending_documents.setter
    def pending_documents(self, kinds: list[str]) -> None:
        self.pending_documents_json = json.dumps(sorted(set(kinds))) if kinds else None


# -----------------------------
# Money in / money out
# -----------------------------
class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (Index("ix_payments_billing", "billing_year", "billing_month"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    resident_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("residents.id", ondelete="CASCADE"), nullable=False, index=True
    )

    payment_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    billing_year: Mapped[int] = mapped_column(Integer, nullable=False)
    billing_month: Mapped[int] = mapped_column(Integer, nullable=False)  # 1..12
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    payment_method: Mapped[str] = mapped_column(String(40), nullable=False)
    receipt_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    resident: Mapped["Resident"] = relationship(back_populates="payments")

    @property
    def payment_month(self) -> str:
        return month_name(self.billing_month)

    @property
    def resident_name(self) -> Optional[str]:
        return self.resident.full_name if self.resident is not None else None

    @property
    def room_number(self) -> Optional[int]:
        return self.resident.room_number if self.resident is not None else None


class Expense(Base):
    __tablename__ = "expenses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    category: Mapped[str] = mapped_column(String(60), nullable=False, index=True)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    expense_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
