# kosan/routers/rooms.py
from __future__ import annotations

import re

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from ..auth import get_admin
from ..db import get_db
from ..domain.occupancy import RoomOccupancy, room_capacity
from ..models import Room
from ..schemas import (
    GroupWriteOut,
    OccupantFormOut,
    OccupantGroupIn,
    PendingDocumentOut,
    ResidentOut,
    RoomCreate,
    RoomOut,
)
from ..services.ownership import must_get_room
from ..services.resident_service import (
    GroupWriteResult,
    UploadedDocument,
    all_room_occupancy,
    create_group,
    occupant_form,
    rooms_open_for_new_group,
    save_group,
)
from ..services.storage import LocalBlobStorage, get_storage

router = APIRouter(prefix="/rooms", tags=["rooms"])

_FILE_FIELD = re.compile(r"^(ktp|marriage)_(\d+)$")


def _room_out(o: RoomOccupancy) -> RoomOut:
    return RoomOut(
        id=o.room_id,
        room_number=o.room_number,
        capacity=o.capacity,
        active_count=o.active_count,
        available_slots=o.available,
        is_occupied=o.is_occupied,
    )


def _group_out(result: GroupWriteResult) -> GroupWriteOut:
    # Reads resident.room lazily, so it runs in the threadpool with the write.
    return GroupWriteOut(
        residents=[ResidentOut.model_validate(r) for r in result.residents],
        pending_documents=[PendingDocumentOut(resident_id=rid, kind=kind) for rid, kind in result.pending],
    )


async def _read_group_form(request: Request) -> tuple[OccupantGroupIn, dict[int, list[UploadedDocument]]]:
    """
    Only the body read is awaited here; the database and storage writes that
    follow run in the threadpool.

    Accepts either a JSON body ({"occupants": [...]}) or a multipart form with
    a `payload` JSON field plus optional `ktp_<i>` / `marriage_<i>` files, where
    <i> is the occupant block index.
    """
    content_type = request.headers.get("content-type", "")
    documents: dict[int, list[UploadedDocument]] = {}

    try:
        if content_type.startswith("application/json"):
            return OccupantGroupIn.model_validate_json(await request.body()), documents

        form = await request.form()
        group = OccupantGroupIn.model_validate_json(str(form.get("payload") or "{}"))
    except ValidationError as e:
        raise RequestValidationError(e.errors()) from e

    for key, value in form.multi_items():
        m = _FILE_FIELD.match(key)
        if not m or not isinstance(value, UploadFile) or not value.filename:
            continue
        documents.setdefault(int(m.group(2)), []).append(
            UploadedDocument(
                kind=m.group(1),
                filename=value.filename,
                content=await value.read(),
                content_type=value.content_type or "application/octet-stream",
            )
        )
    return group, documents


@router.get("", response_model=list[RoomOut])
def list_rooms(db: Session = Depends(get_db), a=Depends(get_admin)):
    return [_room_out(o) for o in all_room_occupancy(db)]


@router.get("/available", response_model=list[RoomOut])
def available_rooms(db: Session = Depends(get_db), a=Depends(get_admin)):
    """Rooms a new group can move into: fully vacant only."""
    return [_room_out(o) for o in rooms_open_for_new_group(db)]


@router.post("", response_model=RoomOut)
def create_room(payload: RoomCreate, db: Session = Depends(get_db), a=Depends(get_admin)):
    existing = db.scalar(select(Room).where(Room.room_number == payload.room_number))
    if existing:
        raise HTTPException(status_code=409, detail=f"room {payload.room_number} already exists")

    row = Room(room_number=payload.room_number)
    db.add(row)
    db.commit()
    db.refresh(row)
    return _room_out(
        RoomOccupancy(room_id=row.id, room_number=row.room_number, capacity=room_capacity(row.room_number), active_count=0)
    )


@router.post("/{room_id}/residents", response_model=GroupWriteOut)
async def add_residents(
    room_id: int,
    request: Request,
    db: Session = Depends(get_db),
    storage: LocalBlobStorage = Depends(get_storage),
    a=Depends(get_admin),
):
    group, documents = await _read_group_form(request)
    return await run_in_threadpool(
        lambda: _group_out(create_group(db, storage, room_id=room_id, slots=group.occupants, documents=documents))
    )


@router.get("/{room_id}/occupants", response_model=OccupantFormOut)
def get_occupants(room_id: int, db: Session = Depends(get_db), a=Depends(get_admin)):
    room = must_get_room(db, room_id=room_id)
    return OccupantFormOut(
        room_id=room.id,
        room_number=room.room_number,
        capacity=room_capacity(room.room_number),
        blocks=occupant_form(db, room),
    )


@router.put("/{room_id}/occupants", response_model=GroupWriteOut)
async def put_occupants(
    room_id: int,
    request: Request,
    db: Session = Depends(get_db),
    storage: LocalBlobStorage = Depends(get_storage),
    a=Depends(get_admin),
):
    group, documents = await _read_group_form(request)
    return await run_in_threadpool(
        lambda: _group_out(save_group(db, storage, room_id=room_id, blocks=group.occupants, documents=documents))
    )
