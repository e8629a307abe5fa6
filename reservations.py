"""Reservation lifecycle: create, look up by shared secret, cancel."""
import logging
from typing import Callable, List, Optional

from bson import ObjectId

from booking import (
    credential_digest,
    generate_reservation_code,
    is_room_available,
    parse_stay,
    to_utc,
)
from errors import (
    RepositoryFailure,
    ReservationNotFound,
    RoomNotFound,
    RoomUnavailable,
    Unauthorized,
    ValidationFailed,
)
from repository import RoomRepository
from schemas import (
    Cancellation,
    Reservation,
    ReservationInformation,
    ReservationRequest,
    ReservationView,
    ReservedRoom,
    Room,
)

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("name", "address", "city", "zip", "country", "checkin", "checkout")
CODE_ATTEMPTS = 10
# Cancellation markers kept per room, oldest dropped first
CANCELLATION_HISTORY = 50


def _present(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def validate_request(request: ReservationRequest) -> None:
    fields = {
        field: "Valid" if _present(getattr(request, field)) else f"Missing field {field}"
        for field in REQUIRED_FIELDS
    }
    if any(status != "Valid" for status in fields.values()):
        raise ValidationFailed(fields)


class ReservationManager:
    def __init__(
        self,
        repository: RoomRepository,
        save_retries: int = 5,
        code_generator: Callable[[], str] = generate_reservation_code,
    ):
        self.repository = repository
        self.save_retries = max(1, save_retries)
        self.code_generator = code_generator

    def _new_code(self) -> str:
        for _ in range(CODE_ATTEMPTS):
            code = self.code_generator()
            if not self.repository.reservation_code_exists(code):
                return code
        raise RepositoryFailure("could not allocate a unique reservation code")

    def _load_room(self, room_id: str) -> Room:
        room = self.repository.find_room_by_id(room_id)
        if room is None:
            raise RoomNotFound()
        return room

    def create(self, room_id: str, request: ReservationRequest) -> Reservation:
        room = self._load_room(room_id)
        validate_request(request)
        checkin, checkout = parse_stay(request.checkin, request.checkout)
        code = self._new_code()

        for attempt in range(self.save_retries):
            if not is_room_available(room, checkin, checkout):
                raise RoomUnavailable()

            reservation = Reservation(
                id=str(ObjectId()),
                code=code,
                name=request.name,
                reservation_information=[
                    ReservationInformation(
                        checkin=checkin,
                        checkout=checkout,
                        room=[ReservedRoom(room_id=room.id, number=room.number)],
                    )
                ],
            )
            updated = room.model_copy(update={"reservations": room.reservations + [reservation]})
            if self.repository.save_room(updated):
                logger.info("Created reservation %s in room %s", reservation.id, room.id)
                return reservation

            logger.warning(
                "Room %s changed while booking (attempt %d/%d), reloading",
                room.id, attempt + 1, self.save_retries,
            )
            room = self._load_room(room_id)

        raise RepositoryFailure(f"room {room_id} kept changing while booking")

    def lookup(self, code: Optional[str], name: Optional[str]) -> List[ReservationView]:
        if not code or not name:
            raise Unauthorized()

        rooms = self.repository.find_rooms_by_reservation_credential(code, name)
        matches = [
            reservation
            for room in rooms
            for reservation in room.reservations
            if reservation.code == code and reservation.name == name
            and reservation.reservation_information
        ]
        if not matches:
            raise Unauthorized()

        matches.sort(key=lambda r: to_utc(r.reservation_information[0].checkin))
        return [ReservationView.from_reservation(r) for r in matches]

    def cancel(self, reservation_id: str, code: Optional[str], name: Optional[str]) -> None:
        if not code or not name:
            raise Unauthorized()

        room = self.repository.find_room_by_reservation_id_and_credential(reservation_id, code, name)
        if room is None:
            if self.repository.find_room_by_cancelled_reservation(reservation_id, code, name):
                raise ReservationNotFound()
            raise Unauthorized()

        for attempt in range(self.save_retries):
            index = next(
                (i for i, r in enumerate(room.reservations) if r.id == reservation_id), None
            )
            if index is None:
                raise ReservationNotFound()

            reservation = room.reservations[index]
            tombstone = Cancellation(
                reservation_id=reservation.id,
                credential=credential_digest(reservation.code, reservation.name),
            )
            updated = room.model_copy(update={
                "reservations": room.reservations[:index] + room.reservations[index + 1:],
                "cancellations": (room.cancellations + [tombstone])[-CANCELLATION_HISTORY:],
            })
            if self.repository.save_room(updated):
                logger.info("Cancelled reservation %s in room %s", reservation_id, room.id)
                return

            logger.warning(
                "Room %s changed while cancelling (attempt %d/%d), reloading",
                room.id, attempt + 1, self.save_retries,
            )
            room = self.repository.find_room_by_id(room.id)
            if room is None:
                raise ReservationNotFound()

        raise RepositoryFailure(f"room kept changing while cancelling {reservation_id}")
