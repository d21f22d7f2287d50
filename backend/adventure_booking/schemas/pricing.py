"""
Pydantic schemas for quotes: booking parameters, add-on selections and the
itemized price breakdown.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class AddOnRequest(BaseModel):
    id: str = Field(..., min_length=1, max_length=50)
    quantity: int = Field(default=1, ge=0, le=20)


class SelectedAddOn(BaseModel):
    id: str
    name: str
    price: Decimal = Field(..., ge=0)
    quantity: int = Field(default=1, ge=1)
    # Item ids a combo replaces; empty for plain add-ons
    includes: list[str] = Field(default_factory=list)


class BookingParams(BaseModel):
    selected_date: date
    selected_time: Optional[str] = Field(None, pattern=r"^\d{2}:\d{2}$")
    participants: int = Field(..., ge=1, le=50)
    selected_add_ons: list[SelectedAddOn] = Field(default_factory=list)


class QuoteRequest(BaseModel):
    selected_date: date
    participants: int = Field(..., ge=1, le=50)
    add_ons: list[AddOnRequest] = Field(default_factory=list)
    promo_code: Optional[str] = Field(None, max_length=50)


class PricingBreakdown(BaseModel):
    base_price: Decimal
    participants: int
    subtotal: Decimal
    group_discount: Decimal
    early_bird_discount: Decimal
    promo_discount: Decimal
    add_ons_total: Decimal
    tax_amount: Decimal
    total_amount: Decimal

    @property
    def discount_total(self) -> Decimal:
        return self.group_discount + self.early_bird_discount + self.promo_discount


class QuoteResponse(BaseModel):
    pricing: PricingBreakdown
    add_ons: list[SelectedAddOn]
    promo_code: Optional[str] = None
    promo_applied: bool = False
    promo_message: Optional[str] = None
