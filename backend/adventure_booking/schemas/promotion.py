"""
Pydantic schemas for promo code checks.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class PromoValidateRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)


class PromotionResponse(BaseModel):
    code: str
    name: str
    discount_type: str
    discount_value: Decimal
    max_discount_amount: Optional[Decimal]
    expires_at: datetime

    model_config = {"from_attributes": True}


class PromoValidateResponse(BaseModel):
    valid: bool
    message: str
    promotion: Optional[PromotionResponse] = None
