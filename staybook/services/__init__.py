from staybook.services.availability_service import AvailabilityService
from staybook.services.balance_service import BalanceService, PayoutBalance
from staybook.services.cancellation_service import CancellationPolicy, CancellationQuote
from staybook.services.listing_service import ListingService
from staybook.services.payout_service import PayoutErrorCode, PayoutIssue, PayoutService
from staybook.services.pricing_service import PriceBreakdown, PricingService
from staybook.services.reservation_service import ReservationService

__all__ = [
    "AvailabilityService",
    "BalanceService",
    "CancellationPolicy",
    "CancellationQuote",
    "ListingService",
    "PayoutBalance",
    "PayoutErrorCode",
    "PayoutIssue",
    "PayoutService",
    "PriceBreakdown",
    "PricingService",
    "ReservationService",
]
