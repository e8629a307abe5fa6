import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import database
from booking import find_available
from errors import BookingError, RoomNotFound
from repository import MongoRoomRepository, RoomRepository
from reservations import ReservationManager
from schemas import CredentialRequest, Reservation, ReservationRequest, RoomView

settings = database.get_settings()
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    client = database.connect(settings)
    app.state.repository = MongoRoomRepository(database.rooms_collection(client, settings))
    logger.info("Hotel reservations service started")
    try:
        yield
    finally:
        database.close(client)


app = FastAPI(title="Hotel Reservations API", version="1.0.0", lifespan=lifespan)

# CORS for the frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


# ---------- Dependencies ----------
def get_repository(request: Request) -> RoomRepository:
    return request.app.state.repository


def get_manager(repository: RoomRepository = Depends(get_repository)) -> ReservationManager:
    return ReservationManager(repository, save_retries=settings.save_retries)


# ---------- Routes ----------
router = APIRouter(prefix="/api/v1")


@router.get("/rooms")
def list_rooms(repository: RoomRepository = Depends(get_repository)):
    rooms = repository.list_rooms()
    return {"availableRooms": [RoomView.from_room(room) for room in rooms]}


@router.get("/rooms/availability/checkin/{checkin}/checkout/{checkout}")
def availability(checkin: str, checkout: str, repository: RoomRepository = Depends(get_repository)):
    rooms = find_available(repository.list_rooms(), checkin, checkout)
    return {"availableRooms": [RoomView.from_room(room) for room in rooms]}


@router.get("/rooms/{room_id}")
def get_room(room_id: str, repository: RoomRepository = Depends(get_repository)):
    room = repository.find_room_by_id(room_id)
    if room is None:
        raise RoomNotFound()
    return {"room": RoomView.from_room(room)}


@router.post("/rooms/{room_id}/reservation", response_model=Reservation, status_code=201)
def create_reservation(
    room_id: str,
    body: ReservationRequest,
    manager: ReservationManager = Depends(get_manager),
):
    return manager.create(room_id, body)


@router.post("/rooms/reservations")
def find_reservations(body: CredentialRequest, manager: ReservationManager = Depends(get_manager)):
    return {"reservations": manager.lookup(body.code, body.name)}


@router.post("/rooms/reservations/{reservation_id}/cancel", status_code=204)
def cancel_reservation(
    reservation_id: str,
    body: CredentialRequest,
    manager: ReservationManager = Depends(get_manager),
):
    manager.cancel(reservation_id, body.code, body.name)
    return Response(status_code=204)


app.include_router(router)


@app.get("/")
def root():
    return {"name": "Hotel Reservations API", "status": "ok"}
