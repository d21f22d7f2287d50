"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from adventure_booking.schemas.pricing import QuoteRequest


class LeadGuest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=50)


class EmergencyContact(BaseModel):
    name: str = ""
    phone: str = ""


class GuestDetails(BaseModel):
    dietary_restrictions: list[str] = Field(default_factory=list)
    experience_level: str = ""
    emergency_contact: EmergencyContact = Field(default_factory=EmergencyContact)


class Notifications(BaseModel):
    email: bool = True
    sms: bool = False
    whatsapp: bool = False


class BookingCreate(QuoteRequest):
    adventure_id: int
    selected_time: Optional[str] = Field(None, pattern=r"^\d{2}:\d{2}$")
    lead_guest: LeadGuest
    guest_details: GuestDetails = Field(default_factory=GuestDetails)
    special_requests: Optional[str] = Field(None, max_length=2000)
    notifications: Notifications = Field(default_factory=Notifications)
    payment_ref: Optional[str] = Field(None, max_length=255)


class BookingResponse(BaseModel):
    id: int
    user_id: Optional[str]
    adventure_id: int
    booking_date: date
    start_time: Optional[str]
    participants: int
    base_price: Decimal
    discount_amount: Decimal
    add_ons_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    status: str
    payment_status: str
    expires_at: datetime
    confirmed_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    add_ons: list[dict]
    created_at: datetime

    model_config = {"from_attributes": True}


class PaymentUpdate(BaseModel):
    payment_ref: str = Field(..., min_length=1, max_length=255)


class BookingCancelResponse(BaseModel):
    message: str
    booking_id: int
    status: str
