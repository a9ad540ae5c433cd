# kosan/cli/seed.py
from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from kosan.db import SessionLocal, init_db
from kosan.domain.occupancy import room_capacity
from kosan.models import Admin, Room


@dataclass(frozen=True)
class SeedResult:
    admin_email: str
    rooms_created: int
    total_rooms: int
    total_beds: int


def _get_or_create_admin(db: Session, email: str, name: str) -> Admin:
    row = db.query(Admin).filter(Admin.email == email).one_or_none()
    if row:
        return row
    row = Admin(email=email, name=name)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def _ensure_rooms(db: Session, count: int) -> int:
    existing = {n for (n,) in db.query(Room.room_number).all()}
    created = 0
    for number in range(1, count + 1):
        if number in existing:
            continue
        db.add(Room(room_number=number))
        created += 1
    db.commit()
    return created


def seed(*, rooms: int = 15, admin_email: str = "admin@kosan.local", admin_name: str = "Admin") -> SeedResult:
    init_db()

    db = SessionLocal()
    try:
        admin = _get_or_create_admin(db, admin_email.strip().lower(), admin_name)
        created = _ensure_rooms(db, rooms)
        numbers = [n for (n,) in db.query(Room.room_number).all()]
        return SeedResult(
            admin_email=str(admin.email),
            rooms_created=created,
            total_rooms=len(numbers),
            total_beds=sum(room_capacity(n) for n in numbers),
        )
    finally:
        db.close()
