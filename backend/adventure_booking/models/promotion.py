"""
Promotion codes. Read-only from the booking core; usage_count is advanced
by the payment flow.
"""

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, JSON, Numeric, String

from adventure_booking.db.base import Base, TimestampMixin


class Promotion(Base, TimestampMixin):
    __tablename__ = "promotions"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(String(1000), nullable=True)

    discount_type = Column(String(20), nullable=False)  # percentage, fixed
    discount_value = Column(Numeric(10, 2), nullable=False)
    max_discount_amount = Column(Numeric(10, 2), nullable=True)

    # Empty or null allow-list means every adventure is eligible
    adventure_ids = Column(JSON, nullable=True)

    starts_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    usage_limit = Column(Integer, nullable=True)
    usage_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("discount_type IN ('percentage', 'fixed')", name="check_promotion_discount_type"),
        CheckConstraint("discount_value >= 0", name="check_promotion_value_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Promotion(code={self.code}, {self.discount_type}={self.discount_value})>"
