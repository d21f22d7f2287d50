"""
Pydantic schemas for the booking calendar: single-date checks and the
disabled-date set.
"""

from datetime import date
from typing import Literal, Optional

from pydantic import BaseModel

AvailabilityStatus = Literal["available", "limited", "full", "blocked", "outside_window"]


class DateAvailability(BaseModel):
    date: date
    is_available: bool
    remaining_spots: int
    is_blocked: bool
    status: AvailabilityStatus
    message: str
    # Set when the lookup failed and the optimistic fallback was used
    warning: Optional[str] = None


class DisabledDatesResponse(BaseModel):
    adventure_id: int
    window_start: date
    window_end: date
    dates: list[date]
    cached: bool = False
