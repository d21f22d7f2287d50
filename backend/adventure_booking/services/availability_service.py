"""
Availability resolver: how many spots are left on an adventure date.

CAPACITY MODEL
==============

  Override row for (adventure, date)?
    blocked / status "unavailable"   -> 0
    otherwise                        -> available_spots - booked_spots - holds
  No row
                                     -> default_capacity - confirmed - holds

  default_capacity = adventure.max_participants, else daily_capacity
  confirmed        = participants of confirmed bookings on that date
  holds            = participants of pending bookings whose expires_at is
                     still in the future

Expired holds are filtered out at read time; nothing rewrites them. On
override dates the booking writer folds confirmed bookings into
booked_spots, so only the live holds are subtracted on top.

FAILURE POLICY
==============

A failed read does not report the date as sold out. The resolver falls back
to FALLBACK_CAPACITY and attaches a warning, so the guest can keep going
toward the booking write, where the strict variant re-checks capacity and
propagates errors.
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Generic, Optional, TypeVar

from sqlalchemy import and_, case, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from adventure_booking.core.config import get_settings
from adventure_booking.core.logging import get_logger
from adventure_booking.core.metrics import record_availability_lookup, record_db_operation
from adventure_booking.models.adventure import Adventure
from adventure_booking.models.availability import AdventureAvailability
from adventure_booking.models.booking import CONFIRMED, PENDING, Booking
from adventure_booking.schemas.availability import DateAvailability
from adventure_booking.services.adventure_service import is_within_window

logger = get_logger(__name__)

T = TypeVar("T")

DEGRADED_WARNING = (
    "Live availability could not be confirmed. "
    "Spots are checked again when the booking is submitted."
)


@dataclass(frozen=True)
class Resolved(Generic[T]):
    """A lookup result that may have been produced by the optimistic fallback."""

    value: T
    warning: Optional[str] = None

    @property
    def degraded(self) -> bool:
        return self.warning is not None


@dataclass(frozen=True)
class CapacitySnapshot:
    remaining: int
    source: str  # override, computed, fallback
    override: Optional[AdventureAvailability] = None

    @property
    def is_blocked(self) -> bool:
        override = self.override
        return override is not None and (override.is_blocked or override.status == "unavailable")


async def get_override(db: AsyncSession, adventure_id: int, day: date) -> Optional[AdventureAvailability]:
    result = await db.execute(
        select(AdventureAvailability).where(
            AdventureAvailability.adventure_id == adventure_id,
            AdventureAvailability.date == day,
        )
    )
    return result.scalar_one_or_none()


async def count_participants(
    db: AsyncSession,
    adventure_id: int,
    day: date,
    now: datetime,
) -> tuple[int, int]:
    """(confirmed participants, live hold participants) for one adventure date."""
    confirmed = func.coalesce(
        func.sum(case((Booking.status == CONFIRMED, Booking.participants), else_=0)), 0
    )
    held = func.coalesce(
        func.sum(case((Booking.status == PENDING, Booking.participants), else_=0)), 0
    )
    result = await db.execute(
        select(confirmed, held).where(
            Booking.adventure_id == adventure_id,
            Booking.booking_date == day,
            or_(
                Booking.status == CONFIRMED,
                and_(Booking.status == PENDING, Booking.expires_at > now),
            ),
        )
    )
    confirmed_count, held_count = result.one()
    return int(confirmed_count), int(held_count)


async def compute_capacity(
    db: AsyncSession,
    adventure: Adventure,
    day: date,
    now: Optional[datetime] = None,
) -> CapacitySnapshot:
    """Strict capacity lookup. Database errors propagate to the caller."""
    now = now or datetime.now(timezone.utc)
    record_db_operation("read")

    override = await get_override(db, adventure.id, day)
    if override is not None and (override.is_blocked or override.status == "unavailable"):
        return CapacitySnapshot(remaining=0, source="override", override=override)

    confirmed, held = await count_participants(db, adventure.id, day, now)

    if override is not None:
        remaining = override.available_spots - override.booked_spots - held
        return CapacitySnapshot(remaining=max(0, remaining), source="override", override=override)

    remaining = adventure.default_capacity - confirmed - held
    return CapacitySnapshot(remaining=max(0, remaining), source="computed")


async def resolve_capacity(
    db: AsyncSession,
    adventure: Adventure,
    day: date,
    now: Optional[datetime] = None,
) -> Resolved[CapacitySnapshot]:
    """Capacity lookup that degrades to the optimistic fallback on read errors."""
    adventure_id = adventure.id
    try:
        snapshot = await compute_capacity(db, adventure, day, now)
    except SQLAlchemyError as e:
        await db.rollback()
        fallback = get_settings().FALLBACK_CAPACITY
        logger.warning(
            "availability_lookup_degraded",
            adventure_id=adventure_id,
            date=str(day),
            fallback_capacity=fallback,
            error=str(e),
        )
        record_availability_lookup("fallback", degraded=True)
        return Resolved(CapacitySnapshot(remaining=fallback, source="fallback"), warning=DEGRADED_WARNING)

    record_availability_lookup(snapshot.source)
    return Resolved(snapshot)


async def remaining_spots(
    db: AsyncSession,
    adventure: Adventure,
    day: date,
    now: Optional[datetime] = None,
) -> Resolved[int]:
    resolved = await resolve_capacity(db, adventure, day, now)
    return Resolved(resolved.value.remaining, warning=resolved.warning)


async def check_date_availability(
    db: AsyncSession,
    adventure: Adventure,
    day: date,
    now: Optional[datetime] = None,
) -> DateAvailability:
    """
    Single-date check for the booking calendar.

    Distinguishes an operator block from a sold-out date so the guest sees
    the right message for each.
    """
    settings = get_settings()

    if not is_within_window(adventure, day, now):
        return DateAvailability(
            date=day,
            is_available=False,
            remaining_spots=0,
            is_blocked=False,
            status="outside_window",
            message="This date is outside the booking window",
        )

    resolved = await resolve_capacity(db, adventure, day, now)
    snapshot = resolved.value
    remaining = snapshot.remaining

    if snapshot.is_blocked:
        availability_status, message = "blocked", "This date has been closed by the operator"
    elif remaining == 0:
        availability_status, message = "full", "Fully booked"
    elif remaining <= settings.LIMITED_SPOTS_THRESHOLD:
        availability_status, message = "limited", f"Only {remaining} spots left"
    else:
        availability_status, message = "available", f"{remaining} spots available"

    return DateAvailability(
        date=day,
        is_available=availability_status in ("available", "limited"),
        remaining_spots=remaining,
        is_blocked=snapshot.is_blocked,
        status=availability_status,
        message=message,
        warning=resolved.warning,
    )
