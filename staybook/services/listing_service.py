from staybook.errors import NotFoundError
from staybook.extensions import db
from staybook.models import Listing


class ListingService:
    """Read-only view of listings; listing management lives elsewhere."""

    @staticmethod
    def get_listing(listing_id):
        listing = db.session.get(Listing, listing_id) if listing_id is not None else None
        if not listing:
            raise NotFoundError("Listing not found.")
        return listing

    @staticmethod
    def nightly_price(listing_id):
        return ListingService.get_listing(listing_id).price_per_night

    @staticmethod
    def host_for(listing_id):
        return ListingService.get_listing(listing_id).host_id
