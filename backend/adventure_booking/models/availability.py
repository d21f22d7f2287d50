"""
Per-date availability override, maintained by operators.

Absence of a row for a date means "use the adventure's default capacity";
a row replaces that computation entirely for its date.
"""

from sqlalchemy import Boolean, CheckConstraint, Column, Date, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from adventure_booking.db.base import Base, TimestampMixin


class AdventureAvailability(Base, TimestampMixin):
    __tablename__ = "adventure_availability"

    id = Column(Integer, primary_key=True, index=True)
    adventure_id = Column(Integer, ForeignKey("adventures.id"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    available_spots = Column(Integer, nullable=False)
    booked_spots = Column(Integer, nullable=False, default=0)
    is_blocked = Column(Boolean, nullable=False, default=False)
    status = Column(String(20), nullable=False, default="available")  # available, limited, unavailable

    version = Column(Integer, nullable=False, default=1)

    adventure = relationship("Adventure", back_populates="availability")

    __table_args__ = (
        UniqueConstraint("adventure_id", "date", name="uq_adventure_availability_date"),
        CheckConstraint("available_spots >= 0", name="check_availability_spots_non_negative"),
        CheckConstraint("booked_spots >= 0", name="check_availability_booked_non_negative"),
        CheckConstraint(
            "status IN ('available', 'limited', 'unavailable')",
            name="check_availability_status",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<AdventureAvailability(adventure={self.adventure_id}, date={self.date}, "
            f"booked={self.booked_spots}/{self.available_spots}, blocked={self.is_blocked})>"
        )
