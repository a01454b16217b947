from datetime import timedelta

from staybook.errors import ValidationError
from staybook.models import Reservation
from staybook.models.enums import BLOCKING_STATUSES, values
from staybook.services.common import parse_date


class AvailabilityService:
    @staticmethod
    def validate_range(check_in, check_out):
        check_in_date = parse_date(check_in, "check-in date")
        check_out_date = parse_date(check_out, "check-out date")
        if check_out_date <= check_in_date:
            raise ValidationError("Check-out date must be after check-in date.")
        return check_in_date, check_out_date

    @staticmethod
    def nights_between(check_in, check_out):
        return [check_in + timedelta(days=offset) for offset in range((check_out - check_in).days)]

    @staticmethod
    def _blocking_query(listing_id, exclude_reservation_id=None):
        query = Reservation.query.filter(Reservation.listing_id == listing_id).filter(
            Reservation.status.in_(values(BLOCKING_STATUSES))
        )
        if exclude_reservation_id is not None:
            query = query.filter(Reservation.id != exclude_reservation_id)
        return query

    @staticmethod
    def find_conflicts(listing_id, check_in, check_out, exclude_reservation_id=None):
        check_in_date, check_out_date = AvailabilityService.validate_range(check_in, check_out)
        # Half-open ranges: a stay ending on our check-in day does not overlap.
        return (
            AvailabilityService._blocking_query(listing_id, exclude_reservation_id)
            .filter(Reservation.check_in_date < check_out_date, Reservation.check_out_date > check_in_date)
            .order_by(Reservation.check_in_date)
            .all()
        )

    @staticmethod
    def is_available(listing_id, check_in, check_out, exclude_reservation_id=None):
        return not AvailabilityService.find_conflicts(listing_id, check_in, check_out, exclude_reservation_id)

    @staticmethod
    def booked_ranges(listing_id, start, end):
        """Blocking ranges that intersect ``[start, end)``, for calendar display."""
        start_date, end_date = AvailabilityService.validate_range(start, end)
        rows = (
            AvailabilityService._blocking_query(listing_id)
            .filter(Reservation.check_in_date < end_date, Reservation.check_out_date > start_date)
            .order_by(Reservation.check_in_date)
            .all()
        )
        return [
            {
                "check_in": row.check_in_date.isoformat(),
                "check_out": row.check_out_date.isoformat(),
                "status": row.status,
            }
            for row in rows
        ]
