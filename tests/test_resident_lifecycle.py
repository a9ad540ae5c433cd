# tests/test_resident_lifecycle.py
from __future__ import annotations

import asyncio
import json
from datetime import date

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from kosan.db import SessionLocal
from kosan.models import Resident, Room
from kosan.schemas import OccupantSlot, ResidentUpdate
from kosan.services.resident_service import (
    UploadedDocument,
    attach_document,
    create_group,
    mark_exited,
    occupant_form,
    room_occupancy,
    save_group,
    update_resident,
)
from kosan.services.storage import LocalBlobStorage, StorageError, get_storage


class FailingStorage(LocalBlobStorage):
    def __init__(self):
        super().__init__("/nonexistent", "http://testserver/storage")

    def upload(self, bucket, path, data, *, content_type, upsert=True):
        raise StorageError("bucket unavailable")


def _mk_room(db, number: int) -> Room:
    row = Room(room_number=number)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def _slot(name: str, **kw) -> OccupantSlot:
    return OccupantSlot(full_name=name, phone_number="0812", entry_date=date(2025, 1, 15), **kw)


def _headers() -> dict[str, str]:
    return {"X-Admin-Email": "admin@kosan.local"}


def test_add_flow_skips_blank_slots(tmp_path):
    db = SessionLocal()
    try:
        room = _mk_room(db, 8)
        storage = LocalBlobStorage(tmp_path, "http://testserver/storage")
        result = create_group(db, storage, room_id=room.id, slots=[_slot("Budi"), OccupantSlot()])

        assert [r.full_name for r in result.residents] == ["Budi"]
        assert result.residents[0].status_penghuni == "Aktif"
        assert result.residents[0].document_state == "created"
        assert room_occupancy(db, room).active_count == 1
    finally:
        db.close()


def test_add_flow_validation(tmp_path):
    db = SessionLocal()
    try:
        single = _mk_room(db, 1)
        shared = _mk_room(db, 9)
        storage = LocalBlobStorage(tmp_path, "http://testserver/storage")

        with pytest.raises(HTTPException) as e:
            create_group(db, storage, room_id=single.id, slots=[OccupantSlot(), OccupantSlot()])
        assert e.value.status_code == 422

        with pytest.raises(HTTPException) as e:
            create_group(db, storage, room_id=single.id, slots=[OccupantSlot(full_name="Budi")])
        assert e.value.status_code == 422

        with pytest.raises(HTTPException) as e:
            create_group(db, storage, room_id=shared.id, slots=[_slot("A"), _slot("B"), _slot("C")])
        assert e.value.status_code == 422

        create_group(db, storage, room_id=shared.id, slots=[_slot("A")])
        with pytest.raises(HTTPException) as e:
            create_group(db, storage, room_id=shared.id, slots=[_slot("B")])
        assert e.value.status_code == 409
    finally:
        db.close()


def test_exit_removes_resident_from_occupancy(tmp_path):
    db = SessionLocal()
    try:
        room = _mk_room(db, 3)
        storage = LocalBlobStorage(tmp_path, "http://testserver/storage")
        row = create_group(db, storage, room_id=room.id, slots=[_slot("Sari")]).residents[0]

        mark_exited(db, row, today=date(2025, 6, 30))
        assert row.status_penghuni == "Sudah Keluar"
        assert row.tanggal_keluar == date(2025, 6, 30)
        assert row.is_active is False
        assert room_occupancy(db, room).active_count == 0
        assert room_occupancy(db, room).is_fully_vacant

        with pytest.raises(HTTPException) as e:
            mark_exited(db, row, today=date(2025, 7, 1))
        assert e.value.status_code == 409
    finally:
        db.close()


def test_failed_document_upload_keeps_resident_and_marks_pending(tmp_path):
    db = SessionLocal()
    try:
        room = _mk_room(db, 2)
        docs = {0: [UploadedDocument(kind="ktp", filename="ktp.JPG", content=b"img", content_type="image/jpeg")]}
        result = create_group(db, FailingStorage(), room_id=room.id, slots=[_slot("Dewi")], documents=docs)

        row = result.residents[0]
        assert result.pending == [(row.id, "ktp")]
        assert row.id is not None
        assert row.document_state == "pending"
        assert row.pending_documents == ["ktp"]
        assert row.ktp_image_url is None

        ok = attach_document(db, LocalBlobStorage(tmp_path, "http://testserver/storage"), row, docs[0][0])
        assert ok is True
        assert row.document_state == "attached"
        assert row.pending_documents == []
        assert row.ktp_image_url == f"http://testserver/storage/ktp-images/ktp/{row.id}.jpg"
        assert (tmp_path / "ktp-images" / "ktp" / f"{row.id}.jpg").read_bytes() == b"img"
    finally:
        db.close()


def test_edit_flow_matches_blocks_by_resident_id(tmp_path):
    db = SessionLocal()
    try:
        room = _mk_room(db, 10)
        storage = LocalBlobStorage(tmp_path, "http://testserver/storage")
        a, b = create_group(db, storage, room_id=room.id, slots=[_slot("Andi"), _slot("Bayu")]).residents

        form = occupant_form(db, room)
        assert [blk.resident_id for blk in form] == [a.id, b.id]

        # blocks arrive in the opposite order; each must still land on its own record
        blocks = [
            OccupantSlot(resident_id=b.id, full_name="Bayu Pratama", phone_number="0899", entry_date=date(2025, 1, 15)),
            OccupantSlot(resident_id=a.id, full_name="Andi", phone_number="0811", entry_date=date(2025, 1, 15)),
        ]
        save_group(db, storage, room_id=room.id, blocks=blocks)
        db.refresh(a)
        db.refresh(b)
        assert (a.full_name, a.phone_number) == ("Andi", "0811")
        assert (b.full_name, b.phone_number) == ("Bayu Pratama", "0899")

        with pytest.raises(HTTPException) as e:
            save_group(db, storage, room_id=room.id, blocks=[*blocks, _slot("Citra")])
        assert e.value.status_code == 422
    finally:
        db.close()


def test_edit_flow_fills_open_slot_and_rejects_foreign_ids(tmp_path):
    db = SessionLocal()
    try:
        room = _mk_room(db, 11)
        other = _mk_room(db, 4)
        storage = LocalBlobStorage(tmp_path, "http://testserver/storage")
        a = create_group(db, storage, room_id=room.id, slots=[_slot("Andi")]).residents[0]
        stranger = create_group(db, storage, room_id=other.id, slots=[_slot("Eko")]).residents[0]

        form = occupant_form(db, room)
        assert len(form) == 2 and form[1].resident_id is None

        result = save_group(
            db,
            storage,
            room_id=room.id,
            blocks=[OccupantSlot(resident_id=a.id, full_name="Andi", phone_number="0812", entry_date=date(2025, 1, 15)), _slot("Citra")],
        )
        assert sorted(r.full_name for r in result.residents) == ["Andi", "Citra"]
        assert room_occupancy(db, room).available == 0

        with pytest.raises(HTTPException) as e:
            save_group(db, storage, room_id=room.id, blocks=[_slot("X", resident_id=stranger.id)])
        assert e.value.status_code == 422
    finally:
        db.close()


def test_moving_into_a_full_room_is_rejected(tmp_path):
    db = SessionLocal()
    try:
        full = _mk_room(db, 5)
        empty = _mk_room(db, 6)
        storage = LocalBlobStorage(tmp_path, "http://testserver/storage")
        create_group(db, storage, room_id=full.id, slots=[_slot("Fajar")])
        mover = create_group(db, storage, room_id=empty.id, slots=[_slot("Gita")]).residents[0]

        with pytest.raises(HTTPException) as e:
            update_resident(db, mover, ResidentUpdate(room_id=full.id), today=date(2025, 2, 1))
        assert e.value.status_code == 409

        update_resident(db, mover, ResidentUpdate(phone_number="0877"), today=date(2025, 2, 1))
        assert mover.phone_number == "0877"
        assert db.get(Resident, mover.id).room_id == empty.id
    finally:
        db.close()


def test_add_residents_over_http_with_failing_document_upload(app, client):
    db = SessionLocal()
    try:
        room_id = _mk_room(db, 12).id
    finally:
        db.close()

    app.dependency_overrides[get_storage] = FailingStorage
    payload = {
        "occupants": [
            {"full_name": "Hadi", "phone_number": "0812", "entry_date": "2025-01-15"},
            {"full_name": "", "phone_number": "", "entry_date": ""},
        ]
    }
    r = client.post(
        f"/api/rooms/{room_id}/residents",
        data={"payload": json.dumps(payload)},
        files={"ktp_0": ("ktp.png", b"png", "image/png")},
        headers=_headers(),
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert len(body["residents"]) == 1
    rid = body["residents"][0]["id"]
    assert body["pending_documents"] == [{"resident_id": rid, "kind": "ktp"}]

    pending = client.get("/api/residents/pending-documents", headers=_headers()).json()
    assert [p["id"] for p in pending] == [rid]

    rooms = {x["room_number"]: x for x in client.get("/api/rooms", headers=_headers()).json()}
    assert rooms[12]["active_count"] == 1 and rooms[12]["available_slots"] == 1


def test_exit_and_history_over_http(client):
    r = client.post("/api/rooms", json={"room_number": 1}, headers=_headers())
    assert r.status_code == 200
    room_id = r.json()["id"]

    r = client.post(
        f"/api/rooms/{room_id}/residents",
        json={"occupants": [{"full_name": "Indah", "phone_number": "0812", "entry_date": "2025-01-15"}]},
        headers=_headers(),
    )
    rid = r.json()["residents"][0]["id"]

    available = [x["room_number"] for x in client.get("/api/rooms/available", headers=_headers()).json()]
    assert available == []

    r = client.post(f"/api/residents/{rid}/exit", headers=_headers())
    assert r.status_code == 200
    assert r.json()["status_penghuni"] == "Sudah Keluar"

    history = client.get("/api/residents/history", headers=_headers()).json()
    assert [h["id"] for h in history] == [rid]
    assert history[0]["stay_duration"]

    active = client.get("/api/residents", params={"status": "Aktif"}, headers=_headers()).json()
    assert active == []

    assert client.delete(f"/api/residents/{rid}", headers=_headers()).json() == {"ok": True}
    assert client.get(f"/api/residents/{rid}", headers=_headers()).status_code == 404


def test_patch_rejects_blank_required_fields(client):
    r = client.post("/api/rooms", json={"room_number": 2}, headers=_headers())
    room_id = r.json()["id"]
    r = client.post(
        f"/api/rooms/{room_id}/residents",
        json={"occupants": [{"full_name": "Sari", "phone_number": "0812", "entry_date": "2025-01-15"}]},
        headers=_headers(),
    )
    rid = r.json()["residents"][0]["id"]

    r = client.patch(f"/api/residents/{rid}", json={"full_name": "   ", "phone_number": ""}, headers=_headers())
    assert r.status_code == 422

    r = client.patch(f"/api/residents/{rid}", json={"room_id": None, "full_name": "Sari B"}, headers=_headers())
    assert r.status_code == 422

    r = client.patch(f"/api/residents/{rid}", json={"full_name": "  Sari B  "}, headers=_headers())
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["full_name"] == "Sari B"
    assert body["phone_number"] == "0812"
    assert body["room_id"] == room_id


def test_resident_update_only_checks_fields_that_were_sent():
    assert ResidentUpdate(phone_number=" 0877 ").model_dump(exclude_unset=True) == {"phone_number": "0877"}
    with pytest.raises(ValidationError):
        ResidentUpdate(full_name="")
    with pytest.raises(ValidationError):
        ResidentUpdate(entry_date=None)


def _off_loop_recorder(fn, seen: list[bool]):
    def wrapper(*args, **kwargs):
        try:
            asyncio.get_running_loop()
            seen.append(False)
        except RuntimeError:
            seen.append(True)
        return fn(*args, **kwargs)

    return wrapper


def test_group_writes_and_uploads_run_off_the_event_loop(app, client, monkeypatch, tmp_path):
    import kosan.routers.residents as residents_router
    import kosan.routers.rooms as rooms_router

    seen: list[bool] = []
    monkeypatch.setattr(rooms_router, "create_group", _off_loop_recorder(create_group, seen))
    monkeypatch.setattr(rooms_router, "save_group", _off_loop_recorder(save_group, seen))
    monkeypatch.setattr(residents_router, "attach_document", _off_loop_recorder(attach_document, seen))
    app.dependency_overrides[get_storage] = lambda: LocalBlobStorage(tmp_path, "http://testserver/storage")

    room_id = client.post("/api/rooms", json={"room_number": 10}, headers=_headers()).json()["id"]
    r = client.post(
        f"/api/rooms/{room_id}/residents",
        json={"occupants": [{"full_name": "Joko", "phone_number": "0812", "entry_date": "2025-01-15"}]},
        headers=_headers(),
    )
    assert r.status_code == 200, r.text
    rid = r.json()["residents"][0]["id"]

    r = client.put(
        f"/api/rooms/{room_id}/occupants",
        json={"occupants": [{"resident_id": rid, "full_name": "Joko", "phone_number": "0899", "entry_date": "2025-01-15"}]},
        headers=_headers(),
    )
    assert r.status_code == 200, r.text

    r = client.post(
        f"/api/residents/{rid}/documents/ktp",
        files={"file": ("ktp.jpg", b"jpg", "image/jpeg")},
        headers=_headers(),
    )
    assert r.status_code == 200, r.text
    assert r.json()["document_state"] == "attached"
    assert (tmp_path / "ktp-images" / "ktp" / f"{rid}.jpg").read_bytes() == b"jpg"

    assert seen == [True, True, True]
