from adventure_booking.schemas.adventure import AdventureResponse
from adventure_booking.schemas.availability import DateAvailability, DisabledDatesResponse
from adventure_booking.schemas.booking import BookingCancelResponse, BookingCreate, BookingResponse, PaymentUpdate
from adventure_booking.schemas.pricing import (
    AddOnRequest,
    BookingParams,
    PricingBreakdown,
    QuoteRequest,
    QuoteResponse,
    SelectedAddOn,
)
from adventure_booking.schemas.promotion import PromoValidateRequest, PromoValidateResponse, PromotionResponse

__all__ = [
    "AdventureResponse",
    "DateAvailability", "DisabledDatesResponse",
    "BookingCreate", "BookingResponse", "BookingCancelResponse", "PaymentUpdate",
    "AddOnRequest", "BookingParams", "PricingBreakdown", "QuoteRequest", "QuoteResponse", "SelectedAddOn",
    "PromoValidateRequest", "PromoValidateResponse", "PromotionResponse",
]
