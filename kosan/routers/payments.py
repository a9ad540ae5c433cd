# kosan/routers/payments.py
from __future__ import annotations

from urllib.parse import quote

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ..auth import get_admin
from ..db import get_db
from ..schemas import PaymentCandidateOut, PaymentCreate, PaymentOut, ShareOut
from ..services.ownership import must_get_payment
from ..services.payment_service import (
    current_month_payments,
    delete_payment,
    payment_candidates,
    record_payment,
    render_payment_receipt,
    share_receipt,
    update_payment,
)
from ..services.storage import LocalBlobStorage, get_storage

router = APIRouter(prefix="/payments", tags=["payments"])


def pdf_response(filename: str, content: bytes) -> Response:
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"},
    )


@router.get("", response_model=list[PaymentOut])
def list_payments(db: Session = Depends(get_db), a=Depends(get_admin)):
    return current_month_payments(db)


@router.get("/candidates", response_model=list[PaymentCandidateOut])
def candidates(db: Session = Depends(get_db), a=Depends(get_admin)):
    return payment_candidates(db)


@router.post("", response_model=PaymentOut)
def create_payment(payload: PaymentCreate, db: Session = Depends(get_db), a=Depends(get_admin)):
    return record_payment(db, payload)


@router.get("/{payment_id}", response_model=PaymentOut)
def get_payment(payment_id: int, db: Session = Depends(get_db), a=Depends(get_admin)):
    return must_get_payment(db, payment_id=payment_id)


@router.patch("/{payment_id}", response_model=PaymentOut)
def patch_payment(
    payment_id: int,
    payload: PaymentCreate,  # full-update for simplicity
    db: Session = Depends(get_db),
    a=Depends(get_admin),
):
    row = must_get_payment(db, payment_id=payment_id)
    return update_payment(db, row, payload)


@router.delete("/{payment_id}")
def remove_payment(payment_id: int, db: Session = Depends(get_db), a=Depends(get_admin)):
    row = must_get_payment(db, payment_id=payment_id)
    delete_payment(db, row)
    return {"ok": True}


@router.get("/{payment_id}/receipt.pdf")
def receipt_pdf(payment_id: int, db: Session = Depends(get_db), a=Depends(get_admin)):
    row = must_get_payment(db, payment_id=payment_id)
    pdf = render_payment_receipt(row)
    return pdf_response(pdf.filename, pdf.content)


@router.post("/{payment_id}/share", response_model=ShareOut)
def share(
    payment_id: int,
    db: Session = Depends(get_db),
    storage: LocalBlobStorage = Depends(get_storage),
    a=Depends(get_admin),
):
    row = must_get_payment(db, payment_id=payment_id)
    result = share_receipt(db, storage, row)
    return ShareOut(receipt_url=result.receipt_url, share_url=result.share_url)
