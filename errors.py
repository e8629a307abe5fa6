from typing import Dict


class BookingError(Exception):
    """Base class for errors scoped to a single request."""
    status_code = 500
    body_key = "message"
    message = "Internal server error"

    def to_body(self) -> dict:
        return {self.body_key: self.message}


class InvalidDateRange(BookingError):
    status_code = 400
    message = "Invalid check-in or check-out date"


class RoomNotFound(BookingError):
    status_code = 404
    message = "A room with this ID does not exist"


class RoomUnavailable(BookingError):
    status_code = 409
    message = "The room is not available for the requested dates"


class ValidationFailed(BookingError):
    status_code = 400
    body_key = "error"
    message = "Validation failed"

    def __init__(self, fields: Dict[str, str]):
        super().__init__(self.message)
        self.fields = fields

    @property
    def missing(self):
        return [name for name, status in self.fields.items() if status != "Valid"]

    def to_body(self) -> dict:
        return {"error": self.message, "fields": dict(self.fields)}


class Unauthorized(BookingError):
    # Deliberately the same for absent and wrong credentials
    status_code = 401
    body_key = "error"
    message = "Unauthorized"


class ReservationNotFound(BookingError):
    status_code = 404
    body_key = "error"
    message = "A reservation with this ID does not exist"


class RepositoryFailure(BookingError):
    status_code = 500
    message = "Internal server error"
