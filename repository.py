"""Room repository backed by a MongoDB collection."""
import functools
import logging
from typing import List, Optional, Protocol

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import ValidationError
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from booking import credential_digest
from errors import RepositoryFailure
from schemas import Room

logger = logging.getLogger(__name__)


class RoomRepository(Protocol):
    def list_rooms(self) -> List[Room]: ...

    def find_room_by_id(self, room_id: str) -> Optional[Room]: ...

    def find_rooms_by_reservation_credential(self, code: str, name: str) -> List[Room]: ...

    def find_room_by_reservation_id_and_credential(
        self, reservation_id: str, code: str, name: str
    ) -> Optional[Room]: ...

    def find_room_by_cancelled_reservation(
        self, reservation_id: str, code: str, name: str
    ) -> Optional[Room]: ...

    def reservation_code_exists(self, code: str) -> bool: ...

    def save_room(self, room: Room) -> bool:
        """Persist the room if nobody saved it since it was read."""
        ...


def _object_id(value: str) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def _storage_errors(method):
    @functools.wraps(method)
    def wrapper(*args, **kwargs):
        try:
            return method(*args, **kwargs)
        except PyMongoError as err:
            logger.exception("MongoDB operation %s failed", method.__name__)
            raise RepositoryFailure() from err
        except ValidationError as err:
            logger.error("Malformed room document in %s: %s", method.__name__, err)
            raise RepositoryFailure() from err
    return wrapper


# ---------- Document mapping ----------

def room_from_document(doc: dict) -> Room:
    data = dict(doc)
    data["id"] = str(data.pop("_id"))
    data["version"] = data.pop("__v", None) or 0
    data["reservations"] = [
        {
            **{k: v for k, v in r.items() if k != "_id"},
            "id": str(r["_id"]),
            "reservation_information": [
                {
                    "checkin": info["checkin"],
                    "checkout": info["checkout"],
                    "room": [
                        {"room_id": str(snap["room_id"]), "number": snap["number"]}
                        for snap in info.get("room", [])
                    ],
                }
                for info in r.get("reservation_information", [])
            ],
        }
        for r in data.get("reservations", [])
    ]
    data["cancellations"] = [
        {**c, "reservation_id": str(c["reservation_id"])}
        for c in data.get("cancellations", [])
    ]
    return Room.model_validate(data)


def rooms_from_documents(docs) -> List[Room]:
    rooms = []
    for doc in docs:
        try:
            rooms.append(room_from_document(doc))
        except ValidationError as err:
            logger.warning("Skipping malformed room document %s: %s", doc.get("_id"), err)
    return rooms


def reservations_to_documents(room: Room) -> List[dict]:
    docs = []
    for reservation in room.reservations:
        doc = reservation.model_dump(exclude={"id"})
        doc["_id"] = ObjectId(reservation.id)
        docs.append(doc)
    return docs


def cancellations_to_documents(room: Room) -> List[dict]:
    docs = []
    for cancellation in room.cancellations:
        doc = cancellation.model_dump()
        doc["reservation_id"] = ObjectId(cancellation.reservation_id)
        docs.append(doc)
    return docs


class MongoRoomRepository:
    def __init__(self, collection: Collection):
        self.collection = collection

    @_storage_errors
    def list_rooms(self) -> List[Room]:
        return rooms_from_documents(self.collection.find())

    @_storage_errors
    def find_room_by_id(self, room_id: str) -> Optional[Room]:
        oid = _object_id(room_id)
        if oid is None:
            return None
        doc = self.collection.find_one({"_id": oid})
        return room_from_document(doc) if doc else None

    @_storage_errors
    def find_rooms_by_reservation_credential(self, code: str, name: str) -> List[Room]:
        # $elemMatch: code and name must belong to the same reservation
        cursor = self.collection.find({"reservations": {"$elemMatch": {"code": code, "name": name}}})
        return rooms_from_documents(cursor)

    @_storage_errors
    def find_room_by_reservation_id_and_credential(
        self, reservation_id: str, code: str, name: str
    ) -> Optional[Room]:
        oid = _object_id(reservation_id)
        if oid is None:
            return None
        doc = self.collection.find_one(
            {"reservations": {"$elemMatch": {"_id": oid, "code": code, "name": name}}}
        )
        return room_from_document(doc) if doc else None

    @_storage_errors
    def find_room_by_cancelled_reservation(
        self, reservation_id: str, code: str, name: str
    ) -> Optional[Room]:
        oid = _object_id(reservation_id)
        if oid is None:
            return None
        doc = self.collection.find_one(
            {"cancellations": {"$elemMatch": {
                "reservation_id": oid, "credential": credential_digest(code, name),
            }}}
        )
        return room_from_document(doc) if doc else None

    @_storage_errors
    def reservation_code_exists(self, code: str) -> bool:
        return self.collection.find_one({"reservations.code": code}, {"_id": 1}) is not None

    @_storage_errors
    def save_room(self, room: Room) -> bool:
        oid = _object_id(room.id)
        if oid is None:
            return False
        # Documents written by other tools may not carry a version yet
        expected = room.version if room.version else {"$in": [0, None]}
        result = self.collection.update_one(
            {"_id": oid, "__v": expected},
            {"$set": {
                "reservations": reservations_to_documents(room),
                "cancellations": cancellations_to_documents(room),
                "__v": room.version + 1,
            }},
        )
        return result.matched_count == 1
