"""
Disabled-dates aggregator for the booking calendar.

Scans tomorrow through BOOKING_WINDOW_DAYS ahead and returns the union of
  (a) dates an operator has blocked, and
  (b) dates the current guest already holds a confirmed booking on for
      this adventure.

Read-only and idempotent. The route caches the result per
(adventure, guest); booking writes invalidate it.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from adventure_booking.core.config import get_settings
from adventure_booking.models.availability import AdventureAvailability
from adventure_booking.models.booking import CONFIRMED, Booking


def calendar_window(today: Optional[date] = None) -> tuple[date, date]:
    today = today or datetime.now(timezone.utc).date()
    return today + timedelta(days=1), today + timedelta(days=get_settings().BOOKING_WINDOW_DAYS)


async def disabled_dates(
    db: AsyncSession,
    adventure_id: int,
    user_id: Optional[str] = None,
    today: Optional[date] = None,
) -> list[date]:
    start, end = calendar_window(today)

    blocked = await db.execute(
        select(AdventureAvailability.date).where(
            AdventureAvailability.adventure_id == adventure_id,
            AdventureAvailability.is_blocked.is_(True),
            AdventureAvailability.date.between(start, end),
        )
    )
    dates = set(blocked.scalars().all())

    if user_id:
        booked = await db.execute(
            select(Booking.booking_date).where(
                Booking.adventure_id == adventure_id,
                Booking.user_id == user_id,
                Booking.status == CONFIRMED,
                Booking.booking_date.between(start, end),
            )
        )
        dates.update(booked.scalars().all())

    return sorted(dates)
