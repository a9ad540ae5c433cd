# kosan/schemas.py
from __future__ import annotations

from datetime import date, datetime
from typing import Optional, List, Literal

from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator

from .domain.periods import month_number
from .domain.rollups import EXPENSE_CATEGORIES

PaymentMethod = Literal["Tunai", "Transfer Bank", "E-Wallet", "Kartu Debit"]
MaritalStatus = Literal["Belum Menikah", "Menikah"]
ResidentStatus = Literal["Aktif", "Sudah Keluar"]
DocumentKind = Literal["ktp", "marriage"]


# -------------------- Auth / Session --------------------

class LoginIn(BaseModel):
    email: str
    password: str


class SessionOut(BaseModel):
    status: str
    admin_id: Optional[int] = None
    email: Optional[str] = None
    name: Optional[str] = None
    expires_at: Optional[datetime] = None


# -------------------- Rooms --------------------

class RoomCreate(BaseModel):
    room_number: int = Field(..., ge=1)


class RoomOut(BaseModel):
    """Room plus occupancy folded from live residents."""
    id: int
    room_number: int
    capacity: int
    active_count: int
    available_slots: int
    is_occupied: bool


# -------------------- Residents --------------------

def _strip_text(v):
    """Trim free-text form input; whitespace-only becomes None."""
    if v is None:
        return None
    v = str(v).strip()
    return v or None


class OccupantSlot(BaseModel):
    """
    One occupant block of the add/edit room forms.

    Every field is optional at this level: a block left completely blank is
    skipped, a block filled only partially is rejected by the service.
    """
    resident_id: Optional[int] = None
    full_name: Optional[str] = None
    phone_number: Optional[str] = None
    entry_date: Optional[date] = None
    marital_status: MaritalStatus = "Belum Menikah"

    @field_validator("full_name", "phone_number", mode="before")
    @classmethod
    def _strip(cls, v):
        return _strip_text(v)

    @field_validator("entry_date", mode="before")
    @classmethod
    def _blank_date(cls, v):
        return None if v == "" else v

    def is_blank(self) -> bool:
        return not (self.full_name or self.phone_number or self.entry_date)

    def is_complete(self) -> bool:
        return bool(self.full_name and self.phone_number and self.entry_date)


class OccupantGroupIn(BaseModel):
    occupants: List[OccupantSlot] = Field(default_factory=list)


class ResidentUpdate(BaseModel):
    full_name: Optional[str] = None
    phone_number: Optional[str] = None
    room_id: Optional[int] = None
    entry_date: Optional[date] = None
    marital_status: Optional[MaritalStatus] = None
    status_penghuni: Optional[ResidentStatus] = None

    @field_validator("full_name", "phone_number", mode="before")
    @classmethod
    def _strip(cls, v):
        return _strip_text(v)

    @field_validator("full_name", "phone_number", "room_id", "entry_date", "marital_status", "status_penghuni")
    @classmethod
    def _no_blanks(cls, v):
        # Fields left out of the body are never validated; one sent as null or blank is rejected.
        if v is None:
            raise ValueError("must not be empty")
        return v


class ResidentOut(BaseModel):
    id: int
    full_name: str
    phone_number: str
    room_id: int
    room_number: Optional[int] = None
    entry_date: date
    marital_status: str
    status_penghuni: Optional[str] = None
    is_active: bool
    tanggal_keluar: Optional[date] = None
    ktp_image_url: Optional[str] = None
    marriage_certificate_url: Optional[str] = None
    document_state: str
    pending_documents: List[str] = Field(default_factory=list)
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PendingDocumentOut(BaseModel):
    resident_id: int
    kind: str


class GroupWriteOut(BaseModel):
    residents: List[ResidentOut]
    pending_documents: List[PendingDocumentOut] = Field(default_factory=list)


class OccupantFormOut(BaseModel):
    room_id: int
    room_number: int
    capacity: int
    blocks: List[OccupantSlot]


class ResidentHistoryOut(BaseModel):
    id: int
    full_name: str
    room_id: int
    room_number: Optional[int] = None
    entry_date: date
    tanggal_keluar: Optional[date] = None
    stay_duration: str


# -------------------- Payments --------------------

class PaymentCreate(BaseModel):
    resident_id: int
    payment_date: date
    billing_month: int = Field(..., description="1..12 or an Indonesian month name")
    billing_year: Optional[int] = Field(default=None, ge=2000, le=2200)
    amount: float = Field(..., ge=0)
    payment_method: PaymentMethod

    @field_validator("billing_month", mode="before")
    @classmethod
    def _month(cls, v):
        return month_number(v)

    @model_validator(mode="after")
    def _default_year(self):
        if self.billing_year is None:
            self.billing_year = self.payment_date.year
        return self


class PaymentOut(BaseModel):
    id: int
    resident_id: int
    resident_name: Optional[str] = None
    room_number: Optional[int] = None
    payment_date: date
    billing_year: int
    billing_month: int
    payment_month: str
    amount: float
    payment_method: str
    receipt_url: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PaymentCandidateOut(BaseModel):
    id: int
    full_name: str
    room_number: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class ShareOut(BaseModel):
    receipt_url: str
    share_url: str


# -------------------- Expenses --------------------

class ExpenseCreate(BaseModel):
    category: str
    amount: float = Field(..., ge=0)
    expense_date: date
    description: Optional[str] = None

    @field_validator("category")
    @classmethod
    def _category(cls, v: str) -> str:
        if v not in EXPENSE_CATEGORIES:
            raise ValueError(f"category must be one of {EXPENSE_CATEGORIES}")
        return v


class ExpenseOut(BaseModel):
    """Stored rows are echoed as-is; only writes are held to EXPENSE_CATEGORIES."""
    id: int
    category: str
    amount: float
    expense_date: date
    description: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BucketOut(BaseModel):
    label: str
    total: float
    count: int


class DayBucketOut(BaseModel):
    day: date
    total: float
    items: List[ExpenseOut]


class ExpenseReportOut(BaseModel):
    period: Literal["year", "month"]
    year: int
    month: Optional[int] = None
    total: float
    count: int
    by_category: List[BucketOut]
    by_month: List[BucketOut] = Field(default_factory=list)
    by_day: List[DayBucketOut] = Field(default_factory=list)


# -------------------- Reports / Dashboard --------------------

class YearlyReportOut(BaseModel):
    year: int
    income_by_month: List[BucketOut]
    expenses_by_month: List[BucketOut]
    total_income: float
    total_expenses: float
    avg_monthly_income: float
    avg_monthly_expenses: float
    active_residents: int
    occupied_rooms: int
    vacant_rooms: int
    occupancy_rate: float


class DashboardOut(BaseModel):
    total_rooms: int
    occupied_rooms: int
    vacant_rooms: int
    occupancy_rate: float
    active_residents: int
    month: str
    monthly_income: float
    monthly_expenses: float
    profit: float
    recent_residents: List[ResidentOut]
