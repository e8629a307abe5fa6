from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime, timezone


# ---------- Stored documents ----------
# A room document embeds its reservations; ids are ObjectId hex strings.

class ReservedRoom(BaseModel):
    """Snapshot of the room taken when the reservation was made."""
    room_id: str
    number: int


class ReservationInformation(BaseModel):
    checkin: datetime
    checkout: datetime
    room: List[ReservedRoom] = []


class Reservation(BaseModel):
    id: str
    code: str
    name: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    reservation_information: List[ReservationInformation] = []


class Cancellation(BaseModel):
    """Marker left by a cancel; the guest credential is kept only as a digest."""
    reservation_id: str
    credential: str
    cancelled_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Room(BaseModel):
    id: str
    number: int
    capacity: Optional[int] = None
    floor: Optional[int] = None
    room_image: Optional[str] = None
    price: Optional[float] = None
    wifi: bool = False
    parking: bool = False
    breakfast: bool = False
    reservations: List[Reservation] = []
    cancellations: List[Cancellation] = []
    # Optimistic-concurrency counter, stored as "__v"
    version: int = 0


# ---------- Requests ----------

def _as_text(value):
    # Form frontends send numeric zips and house numbers as JSON numbers
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class ReservationRequest(BaseModel):
    # Everything optional so missing fields are reported together
    name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    zip: Optional[str] = None
    country: Optional[str] = None
    checkin: Optional[str] = None
    checkout: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def scalars_as_text(cls, value):
        return _as_text(value)


class CredentialRequest(BaseModel):
    code: Optional[str] = None
    name: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def scalars_as_text(cls, value):
        return _as_text(value)


# ---------- Responses ----------

class RoomView(BaseModel):
    id: str
    number: int
    capacity: Optional[int] = None
    floor: Optional[int] = None
    room_image: Optional[str] = None
    price: Optional[float] = None
    wifi: bool = False
    parking: bool = False
    breakfast: bool = False

    @classmethod
    def from_room(cls, room: Room) -> "RoomView":
        return cls(**room.model_dump(exclude={"reservations", "cancellations", "version"}))


class StayView(BaseModel):
    checkin: datetime
    checkout: datetime
    room: List[ReservedRoom] = []


class ReservationView(BaseModel):
    """Guest-facing view of a reservation: only its first stay is surfaced."""
    id: str
    code: str
    name: str
    created_at: datetime
    reservation_information: StayView

    @classmethod
    def from_reservation(cls, reservation: Reservation) -> "ReservationView":
        stay = reservation.reservation_information[0]
        return cls(
            id=reservation.id,
            code=reservation.code,
            name=reservation.name,
            created_at=reservation.created_at,
            reservation_information=StayView(**stay.model_dump()),
        )
