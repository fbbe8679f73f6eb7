# booking_core/schemas/bookings.py

from datetime import date
from typing import Literal, Optional
from pydantic import BaseModel, Field


class BookingCreate(BaseModel):
    professional_id: int
    client_id: str = Field(min_length=1)
    service_id: Optional[int] = None

    date: date
    time: str = Field(pattern=r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")  # "HH:MM"

    # Required unless service_id is given (then duration_min + break_min)
    duration_minutes: Optional[int] = None

    request_token: Optional[str] = None

    model_config = {"from_attributes": True}


class BookingRead(BaseModel):
    id: int

    professional_id: int
    client_id: str
    service_id: Optional[int] = None

    date: date
    time: str
    start_minutes: int
    duration_minutes: int

    status: str
    request_token: Optional[str] = None

    model_config = {"from_attributes": True}


class BookingStatusUpdate(BaseModel):
    status: Literal["confirmed", "completed", "cancelled"]
    reason: Optional[str] = None


class SlotConflictDetail(BaseModel):
    message: str
    conflict_start: Optional[str] = None
    conflict_end: Optional[str] = None
    suggested_times: list[str] = []
