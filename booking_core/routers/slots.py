# booking_core/routers/slots.py
"""
Slots API endpoints.

GET /slots/day - Bookable starts for a professional, day and duration
"""

from datetime import date, datetime
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.slots import SlotInfo, SlotsDayResponse
from ..services.slots import (
    InvalidRequest,
    ScheduleConfigProvider,
    SlotRequest,
    StoreUnavailable,
    compute_available_slots,
    get_booking_config,
)
from ..services.slots.config import minutes_to_time_str


router = APIRouter(prefix="/slots", tags=["slots"])


def resolve_duration(
    schedule: ScheduleConfigProvider,
    service_id: int | None,
    duration: int | None,
) -> int:
    """Explicit duration wins; otherwise the service's duration + break."""
    if duration is not None:
        return duration
    if service_id is None:
        raise HTTPException(status_code=400, detail="service_id or duration required")

    service_duration = schedule.get_service_duration(service_id)
    if service_duration is None:
        raise HTTPException(status_code=400, detail=f"Unknown service {service_id}")
    return service_duration


@router.get("/day", response_model=SlotsDayResponse)
def get_slots_day(
    professional_id: int,
    service_id: int | None = None,
    duration: int | None = None,
    target_date: date = Query(..., alias="date"),
    db: Session = Depends(get_db),
):
    """Get available start times for a professional on a specific day."""
    config = get_booking_config()
    schedule = ScheduleConfigProvider(db, config)

    try:
        duration_min = resolve_duration(schedule, service_id, duration)
        request = SlotRequest(
            resource_id=professional_id,
            date=target_date,
            service_duration_minutes=duration_min,
        )
        slots = compute_available_slots(db, request, now=datetime.now(), config=config)
        slot_step = schedule.get_slot_step(professional_id)
    except InvalidRequest as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (StoreUnavailable, SQLAlchemyError):
        raise HTTPException(status_code=503, detail="Store unavailable")

    return SlotsDayResponse(
        professional_id=professional_id,
        date=target_date,
        service_id=service_id,
        duration_minutes=duration_min,
        slot_step_minutes=slot_step,
        slots=[
            SlotInfo(
                time=minutes_to_time_str(slot.start_minutes),
                start_minutes=slot.start_minutes,
                end_minutes=slot.end_minutes,
            )
            for slot in slots
        ],
    )
