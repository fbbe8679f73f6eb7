"""
Pydantic schemas for slots API.
"""

from datetime import date
from pydantic import BaseModel, Field


class SlotInfo(BaseModel):
    """A single bookable start."""
    time: str  # "HH:MM"
    start_minutes: int
    end_minutes: int

    model_config = {"from_attributes": True}


class SlotsDayResponse(BaseModel):
    """Available starts for a professional/day/duration."""
    professional_id: int
    date: date
    service_id: int | None = None
    duration_minutes: int
    slot_step_minutes: int = Field(description="Grid step in minutes")
    slots: list[SlotInfo]

    model_config = {"from_attributes": True}
