# booking_core/routers/bookings.py
# Bookings are never deleted: cancellation is a status change.

from datetime import date, datetime
from fastapi import APIRouter, Depends, HTTPException, Query, status
from redis import Redis
from sqlalchemy.orm import Session

from ..database import get_db
from ..redis_client import get_redis
from ..models import Bookings as DBBookings
from ..schemas.bookings import (
    BookingCreate,
    BookingRead,
    BookingStatusUpdate,
    SlotConflictDetail,
)
from ..services.events import booking_payload, emit_event
from ..services.slots import (
    InvalidRequest,
    InvalidStatusTransition,
    Reservation,
    ReservationCommitter,
    ReservationNotFound,
    ReservationStatus,
    SlotConflict,
    StoreUnavailable,
    transition_status,
)
from ..services.slots.config import minutes_to_time_str, time_str_to_minutes
from ..services.slots.store import to_reservation

router = APIRouter(prefix="/bookings", tags=["bookings"])


def get_committer() -> ReservationCommitter:
    return ReservationCommitter()


def _to_read(reservation: Reservation) -> BookingRead:
    return BookingRead(
        id=reservation.id,
        professional_id=reservation.resource_id,
        client_id=reservation.client_id,
        service_id=reservation.service_id,
        date=reservation.date,
        time=minutes_to_time_str(reservation.start_minutes),
        start_minutes=reservation.start_minutes,
        duration_minutes=reservation.duration_minutes,
        status=reservation.status.value,
        request_token=reservation.request_token,
    )


@router.get("/", response_model=list[BookingRead])
def list_bookings(
    professional_id: int,
    target_date: date | None = Query(None, alias="date"),
    db: Session = Depends(get_db),
):
    query = db.query(DBBookings).filter(DBBookings.professional_id == professional_id)
    if target_date is not None:
        query = query.filter(DBBookings.booking_date == target_date.isoformat())
    rows = query.order_by(DBBookings.booking_date, DBBookings.start_minutes).all()
    return [_to_read(to_reservation(row)) for row in rows]


@router.get("/{id}", response_model=BookingRead)
def get_booking(id: int, db: Session = Depends(get_db)):
    obj = db.get(DBBookings, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")
    return _to_read(to_reservation(obj))


@router.post("/", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
def create_booking(
    data: BookingCreate,
    committer: ReservationCommitter = Depends(get_committer),
    redis: Redis = Depends(get_redis),
):
    # The committer reads and writes on its own sessions
    try:
        reservation = committer.commit(
            resource_id=data.professional_id,
            target_date=data.date,
            start_minutes=time_str_to_minutes(data.time),
            duration_minutes=data.duration_minutes,
            client_id=data.client_id,
            service_id=data.service_id,
            request_token=data.request_token,
            now=datetime.now(),
        )
    except InvalidRequest as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SlotConflict as e:
        detail = SlotConflictDetail(
            message=str(e),
            conflict_start=minutes_to_time_str(e.conflict_start) if e.conflict_start is not None else None,
            conflict_end=minutes_to_time_str(e.conflict_end) if e.conflict_end is not None else None,
            suggested_times=[minutes_to_time_str(s) for s in e.suggested_starts],
        )
        raise HTTPException(status_code=409, detail=detail.model_dump())
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))

    emit_event(redis, "booking_created", booking_payload(reservation))
    return _to_read(reservation)


@router.post("/{id}/status", response_model=BookingRead)
def update_booking_status(
    id: int,
    data: BookingStatusUpdate,
    db: Session = Depends(get_db),
    redis: Redis = Depends(get_redis),
):
    try:
        reservation = transition_status(db, id, ReservationStatus(data.status), data.reason)
    except ReservationNotFound:
        raise HTTPException(status_code=404, detail="Not found")
    except InvalidStatusTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))

    emit_event(redis, "booking_status_changed", booking_payload(reservation))
    return _to_read(reservation)


@router.delete("/{id}")
def delete_not_allowed():
    raise HTTPException(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        detail="Method not allowed",
    )
