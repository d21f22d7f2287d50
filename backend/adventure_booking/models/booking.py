"""
Booking model representing a guest's reservation of an adventure date.

Key design decisions:
- A pending booking is a hold: it reserves capacity until `expires_at`,
  after which capacity queries simply stop counting it
- Monetary fields are a snapshot of the quote the guest accepted
- Status field allows cancellation without deleting records
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from adventure_booking.db.base import Base, TimestampMixin

PENDING = "pending"
CONFIRMED = "confirmed"
CANCELLED = "cancelled"
EXPIRED = "expired"


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=True, index=True)
    adventure_id = Column(Integer, ForeignKey("adventures.id"), nullable=False, index=True)
    guide_id = Column(String(64), nullable=True)

    booking_date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=True)
    participants = Column(Integer, nullable=False)

    base_price = Column(Numeric(10, 2), nullable=False)
    discount_amount = Column(Numeric(10, 2), nullable=False, default=0)
    add_ons_amount = Column(Numeric(10, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(10, 2), nullable=False, default=0)
    total_amount = Column(Numeric(10, 2), nullable=False)

    status = Column(String(20), nullable=False, default=PENDING)
    payment_status = Column(String(20), nullable=False, default="pending")
    payment_ref = Column(String(255), nullable=True, index=True)

    # Set when a confirmation added this party to the date's override booked_spots
    override_spots_claimed = Column(Boolean, nullable=False, default=False)

    expires_at = Column(DateTime(timezone=True), nullable=False)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    lead_guest_name = Column(String(255), nullable=True)
    lead_guest_email = Column(String(255), nullable=True)
    lead_guest_phone = Column(String(50), nullable=True)
    guest_details = Column(JSON, nullable=False, default=dict)
    add_ons = Column(JSON, nullable=False, default=list)
    special_requests = Column(Text, nullable=True)

    email_notifications = Column(Boolean, nullable=False, default=True)
    sms_notifications = Column(Boolean, nullable=False, default=False)
    whatsapp_notifications = Column(Boolean, nullable=False, default=False)

    adventure = relationship("Adventure", back_populates="bookings")

    __table_args__ = (
        CheckConstraint("participants > 0", name="check_booking_participants_positive"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'expired')",
            name="check_booking_status",
        ),
        CheckConstraint(
            "payment_status IN ('pending', 'paid', 'failed', 'refunded')",
            name="check_booking_payment_status",
        ),
        # Capacity sums always filter on (adventure, date, status)
        Index("ix_bookings_adventure_date_status", "adventure_id", "booking_date", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, adventure={self.adventure_id}, date={self.booking_date}, "
            f"participants={self.participants}, status={self.status})>"
        )
