"""
Assembles a quote for a request: prices the add-on selection from the
catalog, checks the promo code and runs the pricing calculator.
"""

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession

from adventure_booking.models.adventure import Adventure
from adventure_booking.schemas.pricing import BookingParams, QuoteRequest, QuoteResponse
from adventure_booking.services.add_ons import resolve_add_ons
from adventure_booking.services.pricing_service import calculate_pricing
from adventure_booking.services.promotion_service import (
    INVALID_PROMO_MESSAGE,
    normalize_code,
    validate_promo_code,
)


async def build_quote(db: AsyncSession, adventure: Adventure, request: QuoteRequest) -> QuoteResponse:
    add_ons = resolve_add_ons(request.add_ons)

    promotion = None
    promo_code = None
    promo_message = None
    if request.promo_code and request.promo_code.strip():
        promo_code = normalize_code(request.promo_code)
        promotion = await validate_promo_code(db, promo_code, adventure.id)
        if promotion is None:
            # Invalid codes never block the booking; the quote just goes without
            promo_message = INVALID_PROMO_MESSAGE
        if inspect(adventure).expired:
            # The promo lookup failed and rolled the session back
            await db.refresh(adventure)

    params = BookingParams(
        selected_date=request.selected_date,
        selected_time=getattr(request, "selected_time", None),
        participants=request.participants,
        selected_add_ons=add_ons,
    )
    pricing = calculate_pricing(adventure, params, promotion)

    return QuoteResponse(
        pricing=pricing,
        add_ons=add_ons,
        promo_code=promo_code,
        promo_applied=promotion is not None,
        promo_message=promo_message,
    )
