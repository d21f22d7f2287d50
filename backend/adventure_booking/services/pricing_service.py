"""
Pricing calculator.

Pure function of (adventure, booking parameters, optional promotion, now):
no I/O, no caching. Every quote is recomputed from scratch whenever the
date, party size, add-ons or promotion change.

Order of operations:
  1. subtotal          = price_per_person * participants
  2. group discount    = subtotal * group % (party of 4 or more)
  3. early-bird        = subtotal * early-bird % (booked far enough ahead)
  4. promo discount    = percentage (capped) or fixed amount
  5. add-ons           = sum(price * quantity) after combo normalization
  6. tax               = (subtotal - discounts + add-ons) * TAX_RATE
  7. total             = subtotal - discounts + add-ons + tax

Discounts are applied in that order and each is capped at what is left of
the subtotal, so the discounted subtotal bottoms out at zero. Each term is
rounded to cents before it feeds the next one; the breakdown therefore
satisfies the total identity exactly.
"""

import math
from datetime import date, datetime, time, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from adventure_booking.core.config import get_settings
from adventure_booking.models.adventure import Adventure
from adventure_booking.models.promotion import Promotion
from adventure_booking.schemas.pricing import BookingParams, PricingBreakdown
from adventure_booking.services.add_ons import normalize_add_ons

CENTS = Decimal("0.01")
HUNDRED = Decimal("100")
ZERO = Decimal("0.00")


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def days_until(booking_date: date, now: datetime) -> int:
    """Whole days from `now` to the start (UTC midnight) of `booking_date`, rounded up."""
    start = datetime.combine(booking_date, time.min, tzinfo=timezone.utc)
    return math.ceil((start - now).total_seconds() / 86400)


def _percent_of(amount: Decimal, percentage) -> Decimal:
    return to_money(amount * Decimal(str(percentage)) / HUNDRED)


def promo_discount_for(promotion: Promotion, subtotal: Decimal) -> Decimal:
    if promotion.discount_type == "percentage":
        discount = _percent_of(subtotal, promotion.discount_value)
        if promotion.max_discount_amount is not None:
            discount = min(discount, to_money(promotion.max_discount_amount))
        return discount
    return to_money(promotion.discount_value)


def calculate_pricing(
    adventure: Adventure,
    params: BookingParams,
    promotion: Optional[Promotion] = None,
    now: Optional[datetime] = None,
) -> PricingBreakdown:
    settings = get_settings()
    now = now or datetime.now(timezone.utc)

    base_price = to_money(adventure.price_per_person)
    participants = params.participants
    subtotal = to_money(base_price * participants)
    discountable = subtotal

    group_discount = ZERO
    group_pct = Decimal(str(adventure.group_discount_percentage or 0))
    if participants >= settings.GROUP_DISCOUNT_MIN_PARTICIPANTS and group_pct > 0:
        group_discount = min(_percent_of(subtotal, group_pct), discountable)
    discountable -= group_discount

    early_bird_discount = ZERO
    early_pct = Decimal(str(adventure.early_bird_discount_percentage or 0))
    if early_pct > 0 and days_until(params.selected_date, now) >= adventure.early_bird_days:
        early_bird_discount = min(_percent_of(subtotal, early_pct), discountable)
    discountable -= early_bird_discount

    promo_discount = ZERO
    if promotion is not None:
        promo_discount = min(promo_discount_for(promotion, subtotal), discountable)

    add_ons_total = to_money(
        sum(
            (to_money(item.price) * item.quantity for item in normalize_add_ons(params.selected_add_ons)),
            ZERO,
        )
    )

    taxable = subtotal - group_discount - early_bird_discount - promo_discount + add_ons_total
    tax_amount = to_money(taxable * settings.TAX_RATE)

    return PricingBreakdown(
        base_price=base_price,
        participants=participants,
        subtotal=subtotal,
        group_discount=group_discount,
        early_bird_discount=early_bird_discount,
        promo_discount=promo_discount,
        add_ons_total=add_ons_total,
        tax_amount=tax_amount,
        total_amount=taxable + tax_amount,
    )
