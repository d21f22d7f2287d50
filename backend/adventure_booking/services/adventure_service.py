"""
Adventure lookups and booking-window rules.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from adventure_booking.models.adventure import Adventure


async def get_adventure(db: AsyncSession, adventure_id: int) -> Adventure:
    """Get a single active adventure by ID."""
    result = await db.execute(
        select(Adventure).where(Adventure.id == adventure_id, Adventure.is_active.is_(True))
    )
    adventure = result.scalar_one_or_none()

    if not adventure:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Adventure {adventure_id} not found",
        )
    return adventure


def booking_window(adventure: Adventure, now: Optional[datetime] = None) -> tuple[date, date]:
    """First and last dates a guest may book, honoring the advance-booking rules."""
    now = now or datetime.now(timezone.utc)
    earliest = (now + timedelta(hours=adventure.min_advance_booking_hours)).date()
    latest = now.date() + timedelta(days=adventure.max_advance_booking_days)
    return earliest, latest


def is_within_window(adventure: Adventure, booking_date: date, now: Optional[datetime] = None) -> bool:
    earliest, latest = booking_window(adventure, now)
    return earliest <= booking_date <= latest


def ensure_bookable_date(adventure: Adventure, booking_date: date, now: Optional[datetime] = None) -> None:
    earliest, latest = booking_window(adventure, now)
    if not earliest <= booking_date <= latest:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Bookings for this adventure must fall between {earliest} and {latest}",
        )
