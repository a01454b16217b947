from staybook.models.listing import Listing
from staybook.models.payout import PayoutLedger, PayoutRequest
from staybook.models.reservation import Reservation
from staybook.models.reservation_event import ReservationEvent
from staybook.models.reservation_night import ReservationNight

__all__ = [
    "Listing",
    "Reservation",
    "ReservationNight",
    "ReservationEvent",
    "PayoutRequest",
    "PayoutLedger",
]
