"""
Booking endpoints with concurrency-safe capacity claims.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from adventure_booking.api.deps import BookingContext, get_booking_context, get_current_user_id
from adventure_booking.core.logging import get_logger
from adventure_booking.core.metrics import booking_latency, record_booking_attempt
from adventure_booking.db.session import get_db
from adventure_booking.schemas.booking import BookingCancelResponse, BookingCreate, BookingResponse, PaymentUpdate
from adventure_booking.services.adventure_service import ensure_bookable_date, get_adventure
from adventure_booking.services.availability_service import check_date_availability
from adventure_booking.services.booking_service import (
    cancel_booking,
    confirm_booking,
    create_booking,
    get_user_bookings,
    record_payment_failure,
)
from adventure_booking.services.cache_service import invalidate_calendar_cache
from adventure_booking.services.quote_service import build_quote

logger = get_logger(__name__)
router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking_endpoint(
    booking_data: BookingCreate,
    ctx: BookingContext = Depends(get_booking_context),
    db: AsyncSession = Depends(get_db),
):
    """
    Book an adventure date.

    The price is recomputed server-side and availability is re-checked
    right before the write. The writer then claims capacity under an
    optimistic lock, retrying up to 3 times before returning 409.
    """
    with booking_latency.time():
        adventure = await get_adventure(db, booking_data.adventure_id)
        ensure_bookable_date(adventure, booking_data.selected_date)
        quote = await build_quote(db, adventure, booking_data)

        availability = await check_date_availability(db, adventure, booking_data.selected_date)
        if availability.warning is None:
            if availability.is_blocked:
                record_booking_attempt("conflict")
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=availability.message)
            if booking_data.participants > availability.remaining_spots:
                record_booking_attempt("conflict")
                detail = (
                    "Fully booked"
                    if availability.remaining_spots == 0
                    else f"Only {availability.remaining_spots} spots available for this date"
                )
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)
        else:
            logger.warning("booking_precheck_degraded", adventure_id=booking_data.adventure_id)

        booking = await create_booking(
            db,
            ctx.user_id,
            booking_data.adventure_id,
            booking_data,
            quote.add_ons,
            quote.pricing,
            payment_ref=booking_data.payment_ref,
        )

    await invalidate_calendar_cache(booking_data.adventure_id)
    return booking


@router.post("/{booking_id}/confirm", response_model=BookingResponse)
async def confirm_booking_endpoint(
    booking_id: int,
    payment: PaymentUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Mark a pending hold as paid and confirmed."""
    booking = await confirm_booking(db, booking_id, payment.payment_ref)
    await invalidate_calendar_cache(booking.adventure_id)
    return booking


@router.post("/{booking_id}/payment-failed", response_model=BookingResponse)
async def payment_failed_endpoint(
    booking_id: int,
    payment: PaymentUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Release a pending hold after a declined payment."""
    booking = await record_payment_failure(db, booking_id, payment.payment_ref)
    await invalidate_calendar_cache(booking.adventure_id)
    return booking


@router.delete("/{booking_id}", response_model=BookingCancelResponse)
async def cancel_booking_endpoint(
    booking_id: int,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Cancel a booking and release its spots."""
    booking = await cancel_booking(db, booking_id, user_id)
    await invalidate_calendar_cache(booking.adventure_id)
    return BookingCancelResponse(
        message="Booking cancelled successfully",
        booking_id=booking.id,
        status=booking.status,
    )


@router.get("/", response_model=list[BookingResponse])
async def list_user_bookings(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Get all bookings for the signed-in guest."""
    return await get_user_bookings(db, user_id)
