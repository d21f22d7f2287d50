"""
Adventure model: the bookable tour product.

Key design decisions:
- Pricing rules (group / early-bird percentages) live on the product row so
  a quote needs a single read
- `version` is the optimistic-lock token the booking writer bumps when it
  claims capacity on any date of this adventure
- Collections of dates and bookings raise on lazy access: capacity is
  always read through explicit queries
"""

from sqlalchemy import Boolean, CheckConstraint, Column, Integer, JSON, Numeric, String, Text
from sqlalchemy.orm import relationship

from adventure_booking.db.base import Base, TimestampMixin


class Adventure(Base, TimestampMixin):
    __tablename__ = "adventures"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    location = Column(String(255), nullable=True)
    guide_id = Column(String(64), nullable=True)
    difficulty_level = Column(String(20), nullable=False, default="moderate")
    duration_hours = Column(Integer, nullable=False, default=8)
    image_urls = Column(JSON, nullable=False, default=list)

    # Pricing
    price_per_person = Column(Numeric(10, 2), nullable=False)
    group_discount_percentage = Column(Numeric(5, 2), nullable=False, default=0)
    early_bird_discount_percentage = Column(Numeric(5, 2), nullable=False, default=0)
    early_bird_days = Column(Integer, nullable=False, default=7)

    # Capacity and booking rules
    max_participants = Column(Integer, nullable=True)
    daily_capacity = Column(Integer, nullable=False, default=8)
    min_advance_booking_hours = Column(Integer, nullable=False, default=24)
    max_advance_booking_days = Column(Integer, nullable=False, default=365)
    cancellation_policy = Column(String(20), nullable=False, default="moderate")

    is_active = Column(Boolean, nullable=False, default=True)

    # Optimistic locking version counter
    version = Column(Integer, nullable=False, default=1)

    availability = relationship("AdventureAvailability", back_populates="adventure", lazy="raise")
    bookings = relationship("Booking", back_populates="adventure", lazy="raise")

    __table_args__ = (
        CheckConstraint("price_per_person >= 0", name="check_adventure_price_non_negative"),
        CheckConstraint("daily_capacity > 0", name="check_adventure_daily_capacity_positive"),
    )

    @property
    def default_capacity(self) -> int:
        return self.max_participants or self.daily_capacity

    def __repr__(self) -> str:
        return f"<Adventure(id={self.id}, title={self.title}, capacity={self.default_capacity})>"
