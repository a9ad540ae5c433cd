# kosan/domain/occupancy.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

# Resident lifecycle values stored in residents.status_penghuni.
STATUS_ACTIVE = "Aktif"
STATUS_EXITED = "Sudah Keluar"

SHARED_ROOM_NUMBERS = range(7, 16)  # rooms 7..15 take two occupants
SHARED_ROOM_CAPACITY = 2
SINGLE_ROOM_CAPACITY = 1


def room_capacity(room_number: int) -> int:
    return SHARED_ROOM_CAPACITY if int(room_number) in SHARED_ROOM_NUMBERS else SINGLE_ROOM_CAPACITY


def is_active_resident(r: Any) -> bool:
    """status_penghuni decides; rows written before it existed (NULL) fall back to is_active."""
    status = getattr(r, "status_penghuni", None)
    if status is None:
        return bool(getattr(r, "is_active", False))
    return status == STATUS_ACTIVE


def active_counts(residents: Iterable[Any]) -> dict[int, int]:
    """room_id -> number of active residents assigned to it."""
    out: dict[int, int] = {}
    for r in residents:
        if not is_active_resident(r):
            continue
        rid = int(getattr(r, "room_id"))
        out[rid] = out.get(rid, 0) + 1
    return out


def available_slots(capacity: int, active: int) -> int:
    return max(0, int(capacity) - int(active))


@dataclass(frozen=True)
class RoomOccupancy:
    room_id: int
    room_number: int
    capacity: int
    active_count: int

    @property
    def available(self) -> int:
        return available_slots(self.capacity, self.active_count)

    @property
    def is_occupied(self) -> bool:
        return self.active_count > 0

    @property
    def is_fully_vacant(self) -> bool:
        return self.available == self.capacity


def occupancy_for_rooms(rooms: Iterable[Any], residents: Iterable[Any]) -> list[RoomOccupancy]:
    counts = active_counts(residents)
    out = []
    for room in sorted(rooms, key=lambda x: int(getattr(x, "room_number"))):
        rid = int(getattr(room, "id"))
        number = int(getattr(room, "room_number"))
        out.append(
            RoomOccupancy(
                room_id=rid,
                room_number=number,
                capacity=room_capacity(number),
                active_count=counts.get(rid, 0),
            )
        )
    return out


def rooms_for_new_group(rooms: Iterable[Any], residents: Iterable[Any]) -> list[RoomOccupancy]:
    """
    Rooms offered in the add-residents flow: only fully vacant ones.
    A half-filled shared room is topped up through its own edit flow.
    """
    return [o for o in occupancy_for_rooms(rooms, residents) if o.is_fully_vacant]
