# tests/test_payments.py
from __future__ import annotations

from datetime import date, datetime
from urllib.parse import quote

from kosan.config import settings
from kosan.db import SessionLocal
from kosan.models import Payment, Resident, Room
import kosan.services.payment_service as payment_service
from kosan.services.payment_service import current_month_payments, payment_candidates
from kosan.services.receipt_pdf import ReceiptData
from kosan.services.storage import LocalBlobStorage, StorageError, get_storage


class FailingStorage(LocalBlobStorage):
    def __init__(self):
        super().__init__("/nonexistent", "http://testserver/storage")

    def upload(self, bucket, path, data, *, content_type, upsert=True):
        raise StorageError("bucket unavailable")


def _headers() -> dict[str, str]:
    return {"X-Admin-Email": "admin@kosan.local"}


def _mk_resident(db, room_number: int, name: str, *, exited: bool = False) -> Resident:
    room = db.query(Room).filter(Room.room_number == room_number).one_or_none()
    if room is None:
        room = Room(room_number=room_number)
        db.add(room)
        db.commit()
    r = Resident(
        full_name=name,
        phone_number="0812",
        room_id=room.id,
        entry_date=date(2025, 1, 15),
        status_penghuni="Sudah Keluar" if exited else "Aktif",
        is_active=not exited,
        tanggal_keluar=date(2025, 2, 1) if exited else None,
    )
    db.add(r)
    db.commit()
    db.refresh(r)
    return r


def _mk_payment(db, resident_id: int, *, paid: date, year: int, month: int, amount: float = 500_000) -> Payment:
    p = Payment(
        resident_id=resident_id,
        payment_date=paid,
        billing_year=year,
        billing_month=month,
        amount=amount,
        payment_method="Tunai",
    )
    db.add(p)
    db.commit()
    db.refresh(p)
    return p


def test_candidates_exclude_paid_and_exited_and_sort_by_room():
    db = SessionLocal()
    try:
        r3 = _mk_resident(db, 3, "Tiga")
        r1 = _mk_resident(db, 1, "Satu")
        _mk_resident(db, 2, "Keluar", exited=True)
        r5 = _mk_resident(db, 5, "Lunas")

        _mk_payment(db, r5.id, paid=date(2025, 3, 2), year=2025, month=3)
        # same month name, previous year: does not count
        _mk_payment(db, r3.id, paid=date(2024, 3, 2), year=2024, month=3)

        out = payment_candidates(db, now=datetime(2025, 3, 10, 9, 0))
        assert [r.id for r in out] == [r1.id, r3.id]
        assert all(r.id != r5.id for r in out)
    finally:
        db.close()


def test_current_month_list_and_rollover_blank(monkeypatch):
    db = SessionLocal()
    try:
        r = _mk_resident(db, 1, "Satu")
        march = _mk_payment(db, r.id, paid=date(2025, 3, 1), year=2025, month=3)
        _mk_payment(db, r.id, paid=date(2025, 2, 28), year=2025, month=2)

        rows = current_month_payments(db, now=datetime(2025, 3, 1, 0, 1))
        assert [p.id for p in rows] == [march.id]

        monkeypatch.setattr(settings, "rollover_blank_minutes", 2)
        assert current_month_payments(db, now=datetime(2025, 3, 1, 0, 1)) == []
        assert [p.id for p in current_month_payments(db, now=datetime(2025, 3, 1, 0, 5))] == [march.id]
    finally:
        db.close()


def test_record_payment_accepts_month_name(client):
    db = SessionLocal()
    try:
        rid = _mk_resident(db, 4, "Empat").id
    finally:
        db.close()

    r = client.post(
        "/api/payments",
        json={
            "resident_id": rid,
            "payment_date": "2025-02-10",
            "billing_month": "Februari",
            "amount": 750000,
            "payment_method": "Transfer Bank",
        },
        headers=_headers(),
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["billing_month"] == 2 and body["billing_year"] == 2025
    assert body["payment_month"] == "Februari"
    assert body["room_number"] == 4

    bad = client.post(
        "/api/payments",
        json={"resident_id": rid, "payment_date": "2025-02-10", "billing_month": 2, "amount": -1, "payment_method": "Tunai"},
        headers=_headers(),
    )
    assert bad.status_code == 422

    missing = client.post(
        "/api/payments",
        json={"resident_id": 999, "payment_date": "2025-02-10", "billing_month": 2, "amount": 1, "payment_method": "Tunai"},
        headers=_headers(),
    )
    assert missing.status_code == 404


def test_receipt_download(client):
    db = SessionLocal()
    try:
        r = _mk_resident(db, 7, "Budi Santoso")
        pid = _mk_payment(db, r.id, paid=date(2025, 2, 10), year=2025, month=2).id
    finally:
        db.close()

    res = client.get(f"/api/payments/{pid}/receipt.pdf", headers=_headers())
    assert res.status_code == 200
    assert res.headers["content-type"] == "application/pdf"
    assert "kwitansi-Budi%20Santoso-2025-02-10.pdf" in res.headers["content-disposition"]
    assert res.content.startswith(b"%PDF")
    assert b"LUNAS" in res.content


def test_share_failure_leaves_receipt_url_untouched(app, client):
    db = SessionLocal()
    try:
        r = _mk_resident(db, 7, "Budi Santoso")
        pid = _mk_payment(db, r.id, paid=date(2025, 2, 10), year=2025, month=2).id
    finally:
        db.close()

    app.dependency_overrides[get_storage] = FailingStorage
    res = client.post(f"/api/payments/{pid}/share", headers=_headers())
    assert res.status_code == 502

    db = SessionLocal()
    try:
        assert db.get(Payment, pid).receipt_url is None
    finally:
        db.close()


def test_share_uploads_then_persists_url(app, client, tmp_path):
    db = SessionLocal()
    try:
        r = _mk_resident(db, 7, "Budi  Santoso")
        pid = _mk_payment(db, r.id, paid=date(2025, 2, 10), year=2025, month=2).id
    finally:
        db.close()

    app.dependency_overrides[get_storage] = lambda: LocalBlobStorage(tmp_path, "http://testserver/storage")
    res = client.post(f"/api/payments/{pid}/share", headers=_headers())
    assert res.status_code == 200, res.text
    body = res.json()

    url = "http://testserver/storage/kwitansi/kwitansi-Budi_Santoso-2025-02-10.pdf"
    assert body["receipt_url"] == url
    message = f"Berikut kwitansi pembayaran kos bulan Februari 2025: {url}"
    assert body["share_url"] == "https://wa.me/?text=" + quote(message, safe="")
    assert (tmp_path / "kwitansi" / "kwitansi-Budi_Santoso-2025-02-10.pdf").read_bytes().startswith(b"%PDF")

    db = SessionLocal()
    try:
        assert db.get(Payment, pid).receipt_url == url
    finally:
        db.close()


def test_share_render_failure_uploads_nothing(app, client, monkeypatch, tmp_path):
    db = SessionLocal()
    try:
        r = _mk_resident(db, 7, "Budi Santoso")
        pid = _mk_payment(db, r.id, paid=date(2025, 2, 10), year=2025, month=2).id
    finally:
        db.close()

    # No payment date: the receipt table cannot be laid out.
    broken = ReceiptData(
        full_name="Budi Santoso",
        room_number=7,
        entry_date=date(2025, 1, 15),
        payment_date=None,
        amount=500_000,
        payment_method="Tunai",
    )
    monkeypatch.setattr(payment_service, "receipt_data", lambda row: broken)
    app.dependency_overrides[get_storage] = lambda: LocalBlobStorage(tmp_path, "http://testserver/storage")

    res = client.post(f"/api/payments/{pid}/share", headers=_headers())
    assert res.status_code == 502
    assert res.json()["detail"] == "could not render receipt"
    assert not (tmp_path / "kwitansi").exists()

    db = SessionLocal()
    try:
        assert db.get(Payment, pid).receipt_url is None
    finally:
        db.close()
