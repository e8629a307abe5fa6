from datetime import datetime, timezone
from threading import Lock
from typing import Dict, List, Optional

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from booking import credential_digest
from main import app, get_repository
from reservations import ReservationManager
from schemas import Reservation, ReservationInformation, ReservedRoom, Room


class InMemoryRoomRepository:
    """Room store with the same version-checked save as the MongoDB one."""

    def __init__(self, rooms: Optional[List[Room]] = None) -> None:
        self._rooms: Dict[str, Room] = {}
        self._lock = Lock()
        self.save_calls = 0
        for room in rooms or []:
            self._rooms[room.id] = room

    def _copy(self, room: Room) -> Room:
        return room.model_copy(deep=True)

    def list_rooms(self) -> List[Room]:
        with self._lock:
            return [self._copy(r) for r in self._rooms.values()]

    def find_room_by_id(self, room_id: str) -> Optional[Room]:
        with self._lock:
            room = self._rooms.get(room_id)
            return self._copy(room) if room else None

    def find_rooms_by_reservation_credential(self, code: str, name: str) -> List[Room]:
        with self._lock:
            return [
                self._copy(room) for room in self._rooms.values()
                if any(r.code == code and r.name == name for r in room.reservations)
            ]

    def find_room_by_reservation_id_and_credential(self, reservation_id, code, name):
        with self._lock:
            for room in self._rooms.values():
                if any(r.id == reservation_id and r.code == code and r.name == name
                       for r in room.reservations):
                    return self._copy(room)
        return None

    def find_room_by_cancelled_reservation(self, reservation_id, code, name):
        credential = credential_digest(code, name)
        with self._lock:
            for room in self._rooms.values():
                if any(c.reservation_id == reservation_id and c.credential == credential
                       for c in room.cancellations):
                    return self._copy(room)
        return None

    def reservation_code_exists(self, code: str) -> bool:
        with self._lock:
            return any(r.code == code for room in self._rooms.values() for r in room.reservations)

    def save_room(self, room: Room) -> bool:
        with self._lock:
            self.save_calls += 1
            current = self._rooms.get(room.id)
            if current is None or current.version != room.version:
                return False
            self._rooms[room.id] = room.model_copy(update={"version": room.version + 1}, deep=True)
            return True


def utc(year, month, day):
    return datetime(year, month, day, tzinfo=timezone.utc)


def make_room(number: int, *stays) -> Room:
    room_id = str(ObjectId())
    reservations = [
        Reservation(
            id=str(ObjectId()),
            code=f"CODE{number}{i:02d}".ljust(10, "X")[:10],
            name="Existing Guest",
            reservation_information=[
                ReservationInformation(
                    checkin=checkin,
                    checkout=checkout,
                    room=[ReservedRoom(room_id=room_id, number=number)],
                )
            ],
        )
        for i, (checkin, checkout) in enumerate(stays)
    ]
    return Room(id=room_id, number=number, capacity=2, floor=number // 100,
                price=120.0, wifi=True, reservations=reservations)


@pytest.fixture
def room_101():
    return make_room(101, (utc(2024, 3, 10), utc(2024, 3, 15)))


@pytest.fixture
def rooms(room_101):
    return [make_room(202), room_101, make_room(9)]


@pytest.fixture
def repository(rooms):
    return InMemoryRoomRepository(rooms)


@pytest.fixture
def manager(repository):
    return ReservationManager(repository)


@pytest.fixture
def booking_request():
    return {
        "name": "Ada Lovelace",
        "address": "12 St James's Square",
        "city": "London",
        "zip": "SW1Y 4JH",
        "country": "UK",
        "checkin": "2024-04-01",
        "checkout": "2024-04-05",
    }


@pytest.fixture
def client(repository):
    app.dependency_overrides[get_repository] = lambda: repository
    yield TestClient(app)
    app.dependency_overrides.clear()
