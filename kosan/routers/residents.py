# kosan/routers/residents.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from sqlalchemy import desc, select
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from ..auth import get_admin
from ..config import settings
from ..db import get_db
from ..domain.periods import local_now, stay_duration
from ..models import STATUS_ACTIVE, STATUS_EXITED, Resident
from ..schemas import DocumentKind, ResidentHistoryOut, ResidentOut, ResidentStatus, ResidentUpdate
from ..services.ownership import must_get_resident
from ..services.resident_service import (
    UploadedDocument,
    attach_document,
    delete_resident,
    exit_history,
    mark_exited,
    residents_with_pending_documents,
    update_resident,
)
from ..services.storage import LocalBlobStorage, get_storage

router = APIRouter(prefix="/residents", tags=["residents"])


def _today():
    return local_now(settings.timezone).date()


@router.get("", response_model=list[ResidentOut])
def list_residents(
    status: Optional[ResidentStatus] = Query(default=None),
    room_id: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
    a=Depends(get_admin),
):
    q = select(Resident)
    if room_id is not None:
        q = q.where(Resident.room_id == room_id)
    rows = db.scalars(q.order_by(desc(Resident.created_at), desc(Resident.id))).all()

    if status == STATUS_ACTIVE:
        return [r for r in rows if r.is_current]
    if status == STATUS_EXITED:
        return [r for r in rows if not r.is_current]
    return list(rows)


@router.get("/history", response_model=list[ResidentHistoryOut])
def history(db: Session = Depends(get_db), a=Depends(get_admin)):
    today = _today()
    out = []
    for r in exit_history(db):
        left = r.tanggal_keluar or today
        out.append(
            ResidentHistoryOut(
                id=r.id,
                full_name=r.full_name,
                room_id=r.room_id,
                room_number=r.room_number,
                entry_date=r.entry_date,
                tanggal_keluar=r.tanggal_keluar,
                stay_duration=stay_duration(r.entry_date, left),
            )
        )
    return out


@router.get("/pending-documents", response_model=list[ResidentOut])
def pending_documents(db: Session = Depends(get_db), a=Depends(get_admin)):
    return residents_with_pending_documents(db)


@router.get("/{resident_id}", response_model=ResidentOut)
def get_resident(resident_id: int, db: Session = Depends(get_db), a=Depends(get_admin)):
    return must_get_resident(db, resident_id=resident_id)


@router.patch("/{resident_id}", response_model=ResidentOut)
def patch_resident(
    resident_id: int,
    payload: ResidentUpdate,
    db: Session = Depends(get_db),
    a=Depends(get_admin),
):
    row = must_get_resident(db, resident_id=resident_id)
    return update_resident(db, row, payload, today=_today())


@router.post("/{resident_id}/exit", response_model=ResidentOut)
def exit_resident(resident_id: int, db: Session = Depends(get_db), a=Depends(get_admin)):
    row = must_get_resident(db, resident_id=resident_id)
    return mark_exited(db, row, today=_today())


@router.delete("/{resident_id}")
def remove_resident(resident_id: int, db: Session = Depends(get_db), a=Depends(get_admin)):
    row = must_get_resident(db, resident_id=resident_id)
    delete_resident(db, row)
    return {"ok": True}


@router.post("/{resident_id}/documents/{kind}", response_model=ResidentOut)
async def upload_document(
    resident_id: int,
    kind: DocumentKind,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    storage: LocalBlobStorage = Depends(get_storage),
    a=Depends(get_admin),
):
    """Attach (or retry attaching) an identity document to an existing resident."""
    doc = UploadedDocument(
        kind=kind,
        filename=file.filename or "",
        content=await file.read(),
        content_type=file.content_type or "application/octet-stream",
    )
    return await run_in_threadpool(_attach_uploaded, db, storage, resident_id, doc)


def _attach_uploaded(db: Session, storage: LocalBlobStorage, resident_id: int, doc: UploadedDocument) -> ResidentOut:
    row = must_get_resident(db, resident_id=resident_id)
    if not attach_document(db, storage, row, doc):
        raise HTTPException(status_code=502, detail=f"could not upload {doc.kind} document; marked as pending")
    db.refresh(row)
    return ResidentOut.model_validate(row)
