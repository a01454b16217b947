from datetime import timedelta

from flask import Blueprint, jsonify, request

from staybook.models.base import utcnow
from staybook.services import AvailabilityService, ListingService, PricingService
from staybook.services.common import parse_date, to_int

api_listing_bp = Blueprint("api_listing", __name__)


@api_listing_bp.get("/<int:listing_id>/availability")
def check_availability(listing_id):
    listing = ListingService.get_listing(listing_id)
    exclude = request.args.get("exclude_reservation_id", type=int)
    check_in, check_out = AvailabilityService.validate_range(
        request.args.get("check_in"), request.args.get("check_out")
    )
    available = AvailabilityService.is_available(listing.id, check_in, check_out, exclude_reservation_id=exclude)
    return jsonify(
        {
            "listing_id": listing.id,
            "check_in": check_in.isoformat(),
            "check_out": check_out.isoformat(),
            "available": available,
        }
    )


@api_listing_bp.get("/<int:listing_id>/booked-dates")
def booked_dates(listing_id):
    listing = ListingService.get_listing(listing_id)
    raw_start = request.args.get("from")
    start = parse_date(raw_start, "from date") if raw_start else utcnow().date()
    months = min(max(to_int(request.args.get("months", "3"), "Months"), 1), 12)
    end = start + timedelta(days=30 * months)
    return jsonify(
        {
            "listing_id": listing.id,
            "booked_dates": AvailabilityService.booked_ranges(listing.id, start, end),
            "availability_period": {"from": start.isoformat(), "to": end.isoformat()},
        }
    )


@api_listing_bp.get("/<int:listing_id>/quote")
def quote_stay(listing_id):
    listing = ListingService.get_listing(listing_id)
    check_in, check_out = AvailabilityService.validate_range(
        request.args.get("check_in"), request.args.get("check_out")
    )
    pricing = PricingService.compute_pricing(
        listing.price_per_night,
        (check_out - check_in).days,
        request.args.get("guest_count", "1"),
    )
    return jsonify(
        {
            "listing_id": listing.id,
            "check_in": check_in.isoformat(),
            "check_out": check_out.isoformat(),
            "available": AvailabilityService.is_available(listing.id, check_in, check_out),
            "pricing": pricing.to_dict(),
        }
    )
