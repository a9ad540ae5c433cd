# kosan/services/payment_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from fastapi import HTTPException
from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.periods import in_rollover_blank, local_now, month_bounds
from ..domain.sharing import receipt_object_name, whatsapp_share_link
from ..models import Payment, Resident
from ..schemas import PaymentCreate
from .ownership import must_get_resident
from .pdf_layout import PdfRenderError, RenderedPdf
from .receipt_pdf import ReceiptData, render_receipt
from .storage import RECEIPT_BUCKET, LocalBlobStorage, StorageError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShareResult:
    receipt_url: str
    share_url: str


def _now() -> datetime:
    return local_now(settings.timezone)


# -------------------------
# Reads
# -------------------------
def current_month_payments(db: Session, *, now: datetime | None = None) -> list[Payment]:
    """Payments dated inside the current calendar month, newest first."""
    now = now or _now()
    if in_rollover_blank(now, settings.rollover_blank_minutes):
        return []

    start, end = month_bounds(now.year, now.month)
    q = (
        select(Payment)
        .where(Payment.payment_date >= start, Payment.payment_date <= end)
        .order_by(desc(Payment.created_at), desc(Payment.id))
    )
    return list(db.scalars(q).all())


def payment_candidates(db: Session, *, now: datetime | None = None) -> list[Resident]:
    """
    Active residents with no payment recorded for the current billing period,
    ordered by room number.
    """
    now = now or _now()
    paid_ids = set(
        db.scalars(
            select(Payment.resident_id).where(
                Payment.billing_year == now.year,
                Payment.billing_month == now.month,
            )
        ).all()
    )
    residents = db.scalars(select(Resident).order_by(Resident.id)).all()
    out = [r for r in residents if r.is_current and r.id not in paid_ids]
    out.sort(key=lambda r: (r.room_number or 0, r.id))
    return out


# -------------------------
# Writes
# -------------------------
def record_payment(db: Session, payload: PaymentCreate) -> Payment:
    must_get_resident(db, resident_id=payload.resident_id)

    row = Payment(**payload.model_dump())
    db.add(row)
    db.commit()
    db.refresh(row)
    log.info("payment recorded", extra={"payment_id": row.id, "resident_id": row.resident_id})
    return row


def update_payment(db: Session, row: Payment, payload: PaymentCreate) -> Payment:
    must_get_resident(db, resident_id=payload.resident_id)

    for k, v in payload.model_dump().items():
        setattr(row, k, v)

    db.commit()
    db.refresh(row)
    log.info("payment updated", extra={"payment_id": row.id, "resident_id": row.resident_id})
    return row


def delete_payment(db: Session, row: Payment) -> None:
    pid = row.id
    db.delete(row)
    db.commit()
    log.info("payment deleted", extra={"payment_id": pid})


# -------------------------
# Receipts
# -------------------------
def receipt_data(row: Payment) -> ReceiptData:
    resident = row.resident
    return ReceiptData(
        full_name=resident.full_name,
        room_number=resident.room_number,
        entry_date=resident.entry_date,
        payment_date=row.payment_date,
        amount=float(row.amount),
        payment_method=row.payment_method,
    )


def render_payment_receipt(row: Payment) -> RenderedPdf:
    try:
        return render_receipt(receipt_data(row))
    except PdfRenderError as e:
        log.error("receipt render failed", exc_info=True, extra={"payment_id": row.id})
        raise HTTPException(status_code=502, detail="could not render receipt") from e


def share_receipt(db: Session, storage: LocalBlobStorage, row: Payment) -> ShareResult:
    """
    Render the receipt, upload it, then store its public URL on the payment.

    receipt_url is only written once the upload has succeeded; any failure
    before that leaves the payment exactly as it was.
    """
    pdf = render_payment_receipt(row)
    object_name = receipt_object_name(row.resident.full_name, row.payment_date)

    try:
        url = storage.upload(RECEIPT_BUCKET, object_name, pdf.content, content_type="application/pdf")
    except StorageError as e:
        log.warning("receipt upload failed", exc_info=True, extra={"payment_id": row.id, "bucket": RECEIPT_BUCKET})
        raise HTTPException(status_code=502, detail="could not upload receipt") from e

    try:
        row.receipt_url = url
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        log.error("receipt url not saved", exc_info=True, extra={"payment_id": row.id})
        raise HTTPException(status_code=502, detail="could not save receipt link") from e

    db.refresh(row)
    log.info("receipt shared", extra={"payment_id": row.id, "bucket": RECEIPT_BUCKET})
    return ShareResult(receipt_url=url, share_url=whatsapp_share_link(url, row.payment_date))
