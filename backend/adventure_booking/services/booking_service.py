"""
Booking writer with concurrency-safe capacity claims.

CONCURRENCY STRATEGY: Optimistic Locking with Retry
====================================================

Problem:
  Two guests look at the last three spots of a date at the same moment.
  Both are told "3 spots left", both submit a party of three, both inserts
  succeed. Result: overbooking.

Capacity is not a stored counter here: it is derived from the bookings
table (or an operator override row), so there is no single row whose
decrement could fail. Instead every writer serializes on the adventure's
`version` column:

  1. Read the adventure and its current version
  2. Recompute remaining capacity for the date (strict: errors propagate)
  3. Reject if the party does not fit
  4. UPDATE adventures SET version = version + 1
     WHERE id = :adventure_id AND version = :current_version
  5. If rows_affected == 0, another booking for this adventure committed
     in between -> roll back and retry from step 1
  6. Insert the booking in the same transaction and commit it before the
     route responds, so a failed commit is reported as a failed booking

  A concurrent writer blocks on the row lock taken in step 4 until the
  winner commits, then sees a changed version and retries against the
  winner's booking. Checks on the bookings table (participants > 0,
  status vocabulary) and on override rows (booked_spots <= available_spots
  via a guarded UPDATE) are the final safety net.

Pending bookings are holds: they count against capacity until expires_at
and need no cleanup when a guest walks away.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import case, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from adventure_booking.core.config import get_settings
from adventure_booking.core.logging import get_logger
from adventure_booking.core.metrics import record_booking_attempt, record_db_operation
from adventure_booking.models.adventure import Adventure
from adventure_booking.models.availability import AdventureAvailability
from adventure_booking.models.booking import CANCELLED, CONFIRMED, PENDING, Booking
from adventure_booking.schemas.booking import BookingCreate
from adventure_booking.schemas.pricing import PricingBreakdown, SelectedAddOn
from adventure_booking.services.availability_service import compute_capacity

logger = get_logger(__name__)


def as_utc(value: datetime) -> datetime:
    """Stores without timezone support hand back naive UTC timestamps."""
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


async def _bump_adventure_version(db: AsyncSession, adventure_id: int, current_version: int) -> bool:
    result = await db.execute(
        update(Adventure)
        .where(Adventure.id == adventure_id, Adventure.version == current_version)
        .values(version=Adventure.version + 1)
    )
    return result.rowcount == 1


async def _claim_override_spots(db: AsyncSession, override_id: int, participants: int) -> bool:
    result = await db.execute(
        update(AdventureAvailability)
        .where(
            AdventureAvailability.id == override_id,
            AdventureAvailability.booked_spots + participants <= AdventureAvailability.available_spots,
        )
        .values(
            booked_spots=AdventureAvailability.booked_spots + participants,
            version=AdventureAvailability.version + 1,
        )
    )
    return result.rowcount == 1


async def _release_override_spots(db: AsyncSession, booking: Booking) -> None:
    await db.execute(
        update(AdventureAvailability)
        .where(
            AdventureAvailability.adventure_id == booking.adventure_id,
            AdventureAvailability.date == booking.booking_date,
        )
        .values(
            booked_spots=case(
                (AdventureAvailability.booked_spots >= booking.participants,
                 AdventureAvailability.booked_spots - booking.participants),
                else_=0,
            ),
            version=AdventureAvailability.version + 1,
        )
    )


async def _ensure_no_confirmed_booking(db: AsyncSession, user_id: str, adventure_id: int, day: date) -> None:
    """One confirmed booking per guest, adventure and date."""
    existing = await db.execute(
        select(Booking.id).where(
            Booking.user_id == user_id,
            Booking.adventure_id == adventure_id,
            Booking.booking_date == day,
            Booking.status == CONFIRMED,
        )
    )
    if existing.first():
        record_booking_attempt("conflict")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="You already have a booking for this adventure on this date",
        )


async def _load_adventure(db: AsyncSession, adventure_id: int) -> Adventure:
    result = await db.execute(
        select(Adventure)
        .where(Adventure.id == adventure_id, Adventure.is_active.is_(True))
        .execution_options(populate_existing=True)
    )
    adventure = result.scalar_one_or_none()
    if not adventure:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Adventure {adventure_id} not found",
        )
    return adventure


async def create_booking(
    db: AsyncSession,
    user_id: Optional[str],
    adventure_id: int,
    form: BookingCreate,
    add_ons: list[SelectedAddOn],
    pricing: PricingBreakdown,
    payment_ref: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Booking:
    """
    Write a booking: confirmed when a payment reference is supplied,
    otherwise a pending hold that lapses after HOLD_TTL_HOURS.
    Retries up to MAX_RETRY_ATTEMPTS on version conflicts.
    """
    settings = get_settings()
    now = now or datetime.now(timezone.utc)
    participants = form.participants
    booking_status = CONFIRMED if payment_ref else PENDING

    try:
        if user_id:
            await _ensure_no_confirmed_booking(db, user_id, adventure_id, form.selected_date)

        for attempt in range(1, settings.MAX_RETRY_ATTEMPTS + 1):
            adventure = await _load_adventure(db, adventure_id)
            current_version = adventure.version
            guide_id = adventure.guide_id

            snapshot = await compute_capacity(db, adventure, form.selected_date, now)
            if snapshot.is_blocked:
                record_booking_attempt("conflict")
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="This date has been closed by the operator",
                )
            if participants > snapshot.remaining:
                logger.warning(
                    "booking_failed_no_spots",
                    adventure_id=adventure_id,
                    date=str(form.selected_date),
                    requested=participants,
                    remaining=snapshot.remaining,
                )
                record_booking_attempt("conflict")
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=f"Not enough spots. Requested: {participants}, Available: {snapshot.remaining}",
                )

            if not await _bump_adventure_version(db, adventure_id, current_version):
                logger.info(
                    "booking_retry",
                    adventure_id=adventure_id,
                    attempt=attempt,
                    reason="version_conflict",
                )
                record_db_operation("retry")
                await db.rollback()
                if attempt == settings.MAX_RETRY_ATTEMPTS:
                    record_booking_attempt("conflict")
                    raise HTTPException(
                        status_code=status.HTTP_409_CONFLICT,
                        detail="Booking failed due to high demand. Please try again.",
                    )
                continue

            override_claimed = False
            if booking_status == CONFIRMED and snapshot.override is not None:
                if not await _claim_override_spots(db, snapshot.override.id, participants):
                    record_booking_attempt("conflict")
                    raise HTTPException(
                        status_code=status.HTTP_409_CONFLICT,
                        detail="Not enough spots left on this date",
                    )
                override_claimed = True

            booking = Booking(
                user_id=user_id,
                adventure_id=adventure_id,
                guide_id=guide_id,
                booking_date=form.selected_date,
                start_time=form.selected_time,
                participants=participants,
                base_price=pricing.base_price,
                discount_amount=pricing.discount_total,
                add_ons_amount=pricing.add_ons_total,
                tax_amount=pricing.tax_amount,
                total_amount=pricing.total_amount,
                status=booking_status,
                payment_status="paid" if payment_ref else "pending",
                payment_ref=payment_ref,
                expires_at=now + timedelta(hours=settings.HOLD_TTL_HOURS),
                confirmed_at=now if payment_ref else None,
                override_spots_claimed=override_claimed,
                lead_guest_name=form.lead_guest.name,
                lead_guest_email=form.lead_guest.email,
                lead_guest_phone=form.lead_guest.phone,
                guest_details=form.guest_details.model_dump(),
                add_ons=[item.model_dump(mode="json") for item in add_ons],
                special_requests=form.special_requests,
                email_notifications=form.notifications.email,
                sms_notifications=form.notifications.sms,
                whatsapp_notifications=form.notifications.whatsapp,
            )
            db.add(booking)
            await db.commit()
            await db.refresh(booking)
            record_db_operation("write")

            logger.info(
                "booking_created",
                booking_id=booking.id,
                user_id=user_id,
                adventure_id=adventure_id,
                date=str(form.selected_date),
                participants=participants,
                status=booking_status,
                attempt=attempt,
            )
            record_booking_attempt("created")
            return booking

    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(
            "booking_write_failed",
            adventure_id=adventure_id,
            date=str(form.selected_date),
            error=str(e),
        )
        record_booking_attempt("error")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Booking could not be created. Please try again.",
        ) from e

    # Should not reach here, but just in case
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Booking failed unexpectedly",
    )


async def get_booking(db: AsyncSession, booking_id: int) -> Booking:
    result = await db.execute(select(Booking).where(Booking.id == booking_id))
    booking = result.scalar_one_or_none()

    if not booking:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Booking not found",
        )
    return booking


async def confirm_booking(
    db: AsyncSession,
    booking_id: int,
    payment_ref: str,
    now: Optional[datetime] = None,
) -> Booking:
    """
    Promote a pending hold to confirmed once payment has succeeded.

    A hold past its expires_at is no longer reserving anything and cannot
    be confirmed; the guest has to book again.
    """
    now = now or datetime.now(timezone.utc)
    booking = await get_booking(db, booking_id)

    if booking.status == CONFIRMED and booking.payment_ref == payment_ref:
        return booking

    if booking.status != PENDING:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Booking is {booking.status} and cannot be confirmed",
        )

    if as_utc(booking.expires_at) <= now:
        logger.info("booking_confirm_rejected", booking_id=booking_id, reason="hold_expired")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="This booking hold has expired. Please book again.",
        )

    if booking.user_id:
        await _ensure_no_confirmed_booking(db, booking.user_id, booking.adventure_id, booking.booking_date)

    override_claimed = False
    result = await db.execute(
        select(AdventureAvailability.id).where(
            AdventureAvailability.adventure_id == booking.adventure_id,
            AdventureAvailability.date == booking.booking_date,
        )
    )
    override_id = result.scalar_one_or_none()
    if override_id is not None:
        if not await _claim_override_spots(db, override_id, booking.participants):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Not enough spots left on this date",
            )
        override_claimed = True

    updated = await db.execute(
        update(Booking)
        .where(Booking.id == booking_id, Booking.status == PENDING)
        .values(
            status=CONFIRMED,
            payment_status="paid",
            payment_ref=payment_ref,
            confirmed_at=now,
            override_spots_claimed=override_claimed,
        )
    )
    if updated.rowcount == 0:
        # Lost a race with a concurrent confirm or cancel
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Booking was modified concurrently. Please retry.",
        )

    await db.commit()
    await db.refresh(booking)
    logger.info(
        "booking_confirmed",
        booking_id=booking.id,
        adventure_id=booking.adventure_id,
        date=str(booking.booking_date),
    )
    record_booking_attempt("confirmed")
    return booking


async def record_payment_failure(db: AsyncSession, booking_id: int, payment_ref: str) -> Booking:
    """Release a pending hold whose payment was declined."""
    booking = await get_booking(db, booking_id)

    updated = await db.execute(
        update(Booking)
        .where(Booking.id == booking_id, Booking.status == PENDING)
        .values(
            status=CANCELLED,
            payment_status="failed",
            payment_ref=payment_ref,
            cancelled_at=datetime.now(timezone.utc),
        )
    )
    if updated.rowcount == 0:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Booking is {booking.status}; only pending bookings can fail payment",
        )

    await db.commit()
    await db.refresh(booking)
    logger.info("booking_payment_failed", booking_id=booking.id, adventure_id=booking.adventure_id)
    record_booking_attempt("cancelled")
    return booking


async def cancel_booking(
    db: AsyncSession,
    booking_id: int,
    user_id: str,
) -> Booking:
    """
    Cancel a booking. Spots a confirmed booking took on an override row are
    handed back; computed capacity frees itself once the status changes.
    """
    result = await db.execute(
        select(Booking).where(
            Booking.id == booking_id,
            Booking.user_id == user_id,
        )
    )
    booking = result.scalar_one_or_none()

    if not booking:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Booking not found",
        )

    if booking.status not in (PENDING, CONFIRMED):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Booking is already {booking.status}",
        )

    if booking.override_spots_claimed:
        await _release_override_spots(db, booking)

    booking.status = CANCELLED
    booking.cancelled_at = datetime.now(timezone.utc)
    booking.override_spots_claimed = False
    await db.commit()
    await db.refresh(booking)

    logger.info(
        "booking_cancelled",
        booking_id=booking.id,
        user_id=user_id,
        adventure_id=booking.adventure_id,
        spots_released=booking.participants,
    )
    record_booking_attempt("cancelled")
    return booking


async def get_user_bookings(db: AsyncSession, user_id: str) -> list[Booking]:
    """Get all bookings for a user."""
    result = await db.execute(
        select(Booking)
        .where(Booking.user_id == user_id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
    )
    return list(result.scalars().all())
