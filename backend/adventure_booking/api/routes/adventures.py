"""
Adventure endpoints backing the booking widget: detail, per-date
availability, calendar disabled dates, promo checks and live quotes.
"""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from adventure_booking.api.deps import BookingContext, get_booking_context
from adventure_booking.core.logging import get_logger
from adventure_booking.db.session import get_db
from adventure_booking.schemas.adventure import AdventureResponse
from adventure_booking.schemas.availability import DateAvailability, DisabledDatesResponse
from adventure_booking.schemas.pricing import QuoteRequest, QuoteResponse
from adventure_booking.schemas.promotion import PromotionResponse, PromoValidateRequest, PromoValidateResponse
from adventure_booking.services.adventure_service import ensure_bookable_date, get_adventure
from adventure_booking.services.availability_service import check_date_availability
from adventure_booking.services.cache_service import get_cached_disabled_dates, set_cached_disabled_dates
from adventure_booking.services.calendar_service import calendar_window, disabled_dates
from adventure_booking.services.promotion_service import INVALID_PROMO_MESSAGE, validate_promo_code
from adventure_booking.services.quote_service import build_quote

logger = get_logger(__name__)
router = APIRouter(prefix="/adventures", tags=["Adventures"])


@router.get("/{adventure_id}", response_model=AdventureResponse)
async def get_adventure_endpoint(adventure_id: int, db: AsyncSession = Depends(get_db)):
    return await get_adventure(db, adventure_id)


@router.get("/{adventure_id}/availability", response_model=DateAvailability)
async def check_availability_endpoint(
    adventure_id: int,
    day: date = Query(..., alias="date"),
    db: AsyncSession = Depends(get_db),
):
    """
    Remaining spots for one date. Not cached: the booking step needs live
    counts. A `warning` in the response means the count is an optimistic
    estimate and the booking write will re-check.
    """
    adventure = await get_adventure(db, adventure_id)
    return await check_date_availability(db, adventure, day)


@router.get("/{adventure_id}/disabled-dates", response_model=DisabledDatesResponse)
async def disabled_dates_endpoint(
    adventure_id: int,
    ctx: BookingContext = Depends(get_booking_context),
    db: AsyncSession = Depends(get_db),
):
    """
    Dates the calendar must grey out. Cached in Redis per guest and
    invalidated by every booking write for the adventure.
    """
    await get_adventure(db, adventure_id)
    start, end = calendar_window()

    cached = await get_cached_disabled_dates(adventure_id, ctx.user_id)
    if cached is not None:
        logger.info("disabled_dates_cache_hit", adventure_id=adventure_id)
        return DisabledDatesResponse(
            adventure_id=adventure_id, window_start=start, window_end=end, dates=cached, cached=True
        )

    dates = await disabled_dates(db, adventure_id, ctx.user_id)
    await set_cached_disabled_dates(adventure_id, ctx.user_id, dates)
    return DisabledDatesResponse(adventure_id=adventure_id, window_start=start, window_end=end, dates=dates)


@router.post("/{adventure_id}/promotions/validate", response_model=PromoValidateResponse)
async def validate_promo_endpoint(
    adventure_id: int,
    payload: PromoValidateRequest,
    db: AsyncSession = Depends(get_db),
):
    """Check a promo code. Always 200: an invalid code is not an error for the booking flow."""
    await get_adventure(db, adventure_id)
    promotion = await validate_promo_code(db, payload.code, adventure_id)
    if promotion is None:
        return PromoValidateResponse(valid=False, message=INVALID_PROMO_MESSAGE)
    return PromoValidateResponse(
        valid=True,
        message="Promo code applied",
        promotion=PromotionResponse.model_validate(promotion),
    )


@router.post("/{adventure_id}/quote", response_model=QuoteResponse)
async def quote_endpoint(
    adventure_id: int,
    payload: QuoteRequest,
    db: AsyncSession = Depends(get_db),
):
    """Itemized price for the current selection. Recomputed on every change; nothing is stored."""
    adventure = await get_adventure(db, adventure_id)
    ensure_bookable_date(adventure, payload.selected_date)
    return await build_quote(db, adventure, payload)
