"""
Pydantic schemas for adventure responses.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class AdventureResponse(BaseModel):
    id: int
    title: str
    description: Optional[str]
    location: Optional[str]
    price_per_person: Decimal
    duration_hours: int
    max_participants: Optional[int]
    daily_capacity: int
    difficulty_level: str
    group_discount_percentage: Decimal
    early_bird_discount_percentage: Decimal
    early_bird_days: int
    min_advance_booking_hours: int
    max_advance_booking_days: int
    cancellation_policy: str
    image_urls: list[str]

    model_config = {"from_attributes": True}
