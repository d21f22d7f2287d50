from adventure_booking.models.adventure import Adventure
from adventure_booking.models.availability import AdventureAvailability
from adventure_booking.models.booking import Booking
from adventure_booking.models.promotion import Promotion

__all__ = ["Adventure", "AdventureAvailability", "Booking", "Promotion"]
