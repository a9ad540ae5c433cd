# kosan/services/resident_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from pathlib import PurePosixPath
from typing import Iterable, Optional

from fastapi import HTTPException
from sqlalchemy import select, desc
from sqlalchemy.orm import Session

from ..domain.occupancy import RoomOccupancy, occupancy_for_rooms, room_capacity, rooms_for_new_group
from ..models import (
    DOC_ATTACHED,
    DOC_CREATED,
    DOC_PENDING,
    STATUS_ACTIVE,
    STATUS_EXITED,
    Resident,
    Room,
)
from ..schemas import OccupantSlot, ResidentUpdate
from .ownership import must_get_room
from .storage import DOCUMENT_BUCKET, LocalBlobStorage, StorageError

log = logging.getLogger(__name__)

DOCUMENT_FOLDERS = {"ktp": "ktp", "marriage": "buku-nikah"}
DOCUMENT_COLUMNS = {"ktp": "ktp_image_url", "marriage": "marriage_certificate_url"}


@dataclass(frozen=True)
class UploadedDocument:
    kind: str  # ktp | marriage
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


@dataclass
class GroupWriteResult:
    residents: list[Resident]
    pending: list[tuple[int, str]] = field(default_factory=list)


# -------------------------
# Occupancy reads
# -------------------------
def active_residents_in_room(db: Session, *, room_id: int) -> list[Resident]:
    rows = db.scalars(select(Resident).where(Resident.room_id == room_id).order_by(Resident.id)).all()
    return [r for r in rows if r.is_current]


def all_room_occupancy(db: Session) -> list[RoomOccupancy]:
    rooms = db.scalars(select(Room)).all()
    residents = db.scalars(select(Resident)).all()
    return occupancy_for_rooms(rooms, residents)


def rooms_open_for_new_group(db: Session) -> list[RoomOccupancy]:
    return rooms_for_new_group(db.scalars(select(Room)).all(), db.scalars(select(Resident)).all())


def room_occupancy(db: Session, room: Room) -> RoomOccupancy:
    active = active_residents_in_room(db, room_id=room.id)
    return RoomOccupancy(
        room_id=room.id,
        room_number=room.room_number,
        capacity=room_capacity(room.room_number),
        active_count=len(active),
    )


# -------------------------
# Slot validation
# -------------------------
def _filled_slots(slots: Iterable[OccupantSlot]) -> list[tuple[int, OccupantSlot]]:
    """(index, slot) for every non-blank slot; a partially filled slot is a 422."""
    out = []
    for i, slot in enumerate(slots):
        if slot.is_blank():
            continue
        if not slot.is_complete():
            raise HTTPException(
                status_code=422,
                detail=f"occupant {i + 1}: full_name, phone_number and entry_date are required",
            )
        out.append((i, slot))
    return out


def _new_resident(room_id: int, slot: OccupantSlot) -> Resident:
    return Resident(
        full_name=slot.full_name,
        phone_number=slot.phone_number,
        room_id=room_id,
        entry_date=slot.entry_date,
        marital_status=slot.marital_status,
        status_penghuni=STATUS_ACTIVE,
        is_active=True,
        document_state=DOC_CREATED,
    )


# -------------------------
# Documents (second write phase)
# -------------------------
def _object_path(resident_id: int, doc: UploadedDocument) -> str:
    suffix = PurePosixPath(doc.filename or "").suffix.lower() or ".bin"
    return f"{DOCUMENT_FOLDERS[doc.kind]}/{resident_id}{suffix}"


def _refresh_document_state(row: Resident) -> None:
    if row.pending_documents:
        row.document_state = DOC_PENDING
    elif row.ktp_image_url or row.marriage_certificate_url:
        row.document_state = DOC_ATTACHED
    else:
        row.document_state = DOC_CREATED


def attach_document(db: Session, storage: LocalBlobStorage, row: Resident, doc: UploadedDocument) -> bool:
    """
    Upload one identity document and link it to an existing resident.

    The resident row is never rolled back on failure: the document kind is
    flagged as pending so it can be re-attached later.
    """
    if doc.kind not in DOCUMENT_FOLDERS:
        raise HTTPException(status_code=422, detail=f"unknown document kind: {doc.kind}")

    pending = set(row.pending_documents)
    try:
        url = storage.upload(DOCUMENT_BUCKET, _object_path(row.id, doc), doc.content, content_type=doc.content_type)
    except StorageError:
        log.warning("document upload failed", exc_info=True, extra={"resident_id": row.id})
        pending.add(doc.kind)
        row.pending_documents = sorted(pending)
        _refresh_document_state(row)
        db.commit()
        return False

    setattr(row, DOCUMENT_COLUMNS[doc.kind], url)
    pending.discard(doc.kind)
    row.pending_documents = sorted(pending)
    _refresh_document_state(row)
    db.commit()
    log.info("document attached: %s", doc.kind, extra={"resident_id": row.id})
    return True


def _attach_all(
    db: Session,
    storage: LocalBlobStorage,
    rows_by_index: dict[int, Resident],
    documents: dict[int, list[UploadedDocument]],
) -> list[tuple[int, str]]:
    pending: list[tuple[int, str]] = []
    for idx, docs in sorted(documents.items()):
        row = rows_by_index.get(idx)
        if row is None:
            continue
        for doc in docs:
            if not attach_document(db, storage, row, doc):
                pending.append((row.id, doc.kind))
    return pending


def residents_with_pending_documents(db: Session) -> list[Resident]:
    return list(
        db.scalars(select(Resident).where(Resident.document_state == DOC_PENDING).order_by(Resident.id)).all()
    )


# -------------------------
# Add flow
# -------------------------
def create_group(
    db: Session,
    storage: LocalBlobStorage,
    *,
    room_id: int,
    slots: list[OccupantSlot],
    documents: Optional[dict[int, list[UploadedDocument]]] = None,
) -> GroupWriteResult:
    """Move a new group into a fully vacant room, then attach their documents."""
    room = must_get_room(db, room_id=room_id)
    occ = room_occupancy(db, room)
    if not occ.is_fully_vacant:
        raise HTTPException(status_code=409, detail=f"room {room.room_number} is not vacant")

    filled = _filled_slots(slots)
    if not filled:
        raise HTTPException(status_code=422, detail="at least one occupant must be filled in")
    if len(filled) > occ.capacity:
        raise HTTPException(status_code=422, detail=f"room {room.room_number} holds at most {occ.capacity}")

    rows_by_index = {i: _new_resident(room.id, slot) for i, slot in filled}
    db.add_all(rows_by_index.values())
    db.commit()
    for row in rows_by_index.values():
        db.refresh(row)
        log.info("resident created", extra={"resident_id": row.id, "room_id": room.id})

    pending = _attach_all(db, storage, rows_by_index, documents or {})
    return GroupWriteResult(residents=list(rows_by_index.values()), pending=pending)


# -------------------------
# Edit flow
# -------------------------
def occupant_form(db: Session, room: Room) -> list[OccupantSlot]:
    """One block per active occupant (carrying its id) plus an empty block while a slot is open."""
    active = active_residents_in_room(db, room_id=room.id)
    blocks = [
        OccupantSlot(
            resident_id=r.id,
            full_name=r.full_name,
            phone_number=r.phone_number,
            entry_date=r.entry_date,
            marital_status=r.marital_status,
        )
        for r in active
    ]
    if len(active) < room_capacity(room.room_number):
        blocks.append(OccupantSlot())
    return blocks


def save_group(
    db: Session,
    storage: LocalBlobStorage,
    *,
    room_id: int,
    blocks: list[OccupantSlot],
    documents: Optional[dict[int, list[UploadedDocument]]] = None,
) -> GroupWriteResult:
    """
    Apply the room edit form.

    Blocks that carry a resident_id update that occupant; blocks without one
    insert a new occupant when filled. Records are matched by id, never by
    their position in the form.
    """
    room = must_get_room(db, room_id=room_id)
    capacity = room_capacity(room.room_number)
    current = {r.id: r for r in active_residents_in_room(db, room_id=room.id)}

    seen: set[int] = set()
    updates: list[tuple[int, OccupantSlot]] = []
    for i, block in enumerate(blocks):
        if block.resident_id is None:
            continue
        if block.resident_id not in current:
            raise HTTPException(
                status_code=422,
                detail=f"resident {block.resident_id} is not an active occupant of room {room.room_number}",
            )
        if block.resident_id in seen:
            raise HTTPException(status_code=422, detail=f"resident {block.resident_id} appears twice")
        if not block.is_complete():
            raise HTTPException(
                status_code=422,
                detail=f"occupant {i + 1}: full_name, phone_number and entry_date are required",
            )
        seen.add(block.resident_id)
        updates.append((i, block))

    inserts = _filled_slots([b if b.resident_id is None else OccupantSlot() for b in blocks])
    if not updates and not inserts:
        raise HTTPException(status_code=422, detail="at least one occupant must be filled in")
    if len(current) + len(inserts) > capacity:
        raise HTTPException(status_code=422, detail=f"room {room.room_number} holds at most {capacity}")

    rows_by_index: dict[int, Resident] = {}
    for i, block in updates:
        row = current[block.resident_id]
        row.full_name = block.full_name
        row.phone_number = block.phone_number
        row.entry_date = block.entry_date
        row.marital_status = block.marital_status
        rows_by_index[i] = row
    for i, block in inserts:
        row = _new_resident(room.id, block)
        db.add(row)
        rows_by_index[i] = row

    db.commit()
    for row in rows_by_index.values():
        db.refresh(row)
    log.info(
        "room occupants saved: %d updated, %d added",
        len(updates),
        len(inserts),
        extra={"room_id": room.id},
    )

    pending = _attach_all(db, storage, rows_by_index, documents or {})
    return GroupWriteResult(residents=[rows_by_index[i] for i in sorted(rows_by_index)], pending=pending)


def _ensure_room_has_space(db: Session, room: Room, *, exclude_resident_id: int) -> None:
    others = [r for r in active_residents_in_room(db, room_id=room.id) if r.id != exclude_resident_id]
    if len(others) >= room_capacity(room.room_number):
        raise HTTPException(status_code=409, detail=f"room {room.room_number} is full")


def update_resident(db: Session, row: Resident, payload: ResidentUpdate, *, today: date) -> Resident:
    data = payload.model_dump(exclude_unset=True)
    status = data.pop("status_penghuni", None)
    becomes_active = status == STATUS_ACTIVE or (status is None and row.is_current)

    target_room_id = data.get("room_id") or row.room_id
    if becomes_active and (target_room_id != row.room_id or not row.is_current):
        target = must_get_room(db, room_id=target_room_id)
        _ensure_room_has_space(db, target, exclude_resident_id=row.id)

    for k, v in data.items():
        if v is None:
            continue
        setattr(row, k, v)

    if status == STATUS_EXITED and row.is_current:
        _apply_exit(row, today)
    elif status == STATUS_ACTIVE:
        row.status_penghuni = STATUS_ACTIVE
        row.is_active = True
        row.tanggal_keluar = None

    db.commit()
    db.refresh(row)
    log.info("resident updated", extra={"resident_id": row.id, "room_id": row.room_id})
    return row


# -------------------------
# Exit / delete / history
# -------------------------
def _apply_exit(row: Resident, today: date) -> None:
    row.status_penghuni = STATUS_EXITED
    row.is_active = False
    row.tanggal_keluar = today


def mark_exited(db: Session, row: Resident, *, today: date) -> Resident:
    if not row.is_current:
        raise HTTPException(status_code=409, detail="resident already exited")
    _apply_exit(row, today)
    db.commit()
    db.refresh(row)
    log.info("resident exited", extra={"resident_id": row.id, "room_id": row.room_id})
    return row


def delete_resident(db: Session, row: Resident) -> None:
    rid, room_id = row.id, row.room_id
    db.delete(row)
    db.commit()
    log.info("resident deleted", extra={"resident_id": rid, "room_id": room_id})


def exit_history(db: Session) -> list[Resident]:
    return list(
        db.scalars(
            select(Resident)
            .where(Resident.status_penghuni == STATUS_EXITED)
            .order_by(desc(Resident.tanggal_keluar), desc(Resident.id))
        ).all()
    )
