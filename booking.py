"""Availability engine over half-open [checkin, checkout) stays."""
import hashlib
import logging
import secrets
import string
from datetime import date, datetime, timezone
from typing import Iterable, List, Tuple, Union

from errors import InvalidDateRange
from schemas import Room

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 10

Instant = Union[str, date, datetime]


def overlaps(req_in: datetime, req_out: datetime, ex_in: datetime, ex_out: datetime) -> bool:
    # Overlap check: (start < existing_end) and (end > existing_start)
    return req_in < ex_out and req_out > ex_in


def to_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_instant(value: Instant) -> datetime:
    """Parse an ISO date or date-time into a UTC-aware datetime.

    Naive values are taken to be UTC already. Anything unparseable raises
    InvalidDateRange.
    """
    if isinstance(value, datetime):
        return to_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if not isinstance(value, str) or not value.strip():
        raise InvalidDateRange()
    try:
        return to_utc(datetime.fromisoformat(value.strip()))
    except ValueError:
        raise InvalidDateRange()


def parse_stay(checkin: Instant, checkout: Instant) -> Tuple[datetime, datetime]:
    """Parse a requested stay; empty or inverted stays are rejected."""
    start = parse_instant(checkin)
    end = parse_instant(checkout)
    if start >= end:
        raise InvalidDateRange()
    return start, end


def generate_reservation_code() -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def credential_digest(code: str, name: str) -> str:
    return hashlib.sha256(f"{code}\x00{name}".encode("utf-8")).hexdigest()


def is_room_available(room: Room, checkin: datetime, checkout: datetime) -> bool:
    for reservation in room.reservations:
        for stay in reservation.reservation_information:
            if overlaps(checkin, checkout, to_utc(stay.checkin), to_utc(stay.checkout)):
                return False
    return True


def find_available(rooms: Iterable[Room], checkin: Instant, checkout: Instant) -> List[Room]:
    """Return the rooms free for the whole stay, ordered by room number.

    The input rooms are not modified.
    """
    try:
        start, end = parse_stay(checkin, checkout)
    except InvalidDateRange:
        logger.info("Rejected availability query checkin=%r checkout=%r", checkin, checkout)
        raise

    available = [room for room in rooms if is_room_available(room, start, end)]
    return sorted(available, key=lambda room: room.number)
