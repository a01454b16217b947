from flask import current_app
from sqlalchemy.exc import IntegrityError

from staybook.errors import ConflictError, NotFoundError, StateError, ValidationError
from staybook.extensions import db
from staybook.models import Reservation, ReservationEvent, ReservationNight
from staybook.models.base import utcnow
from staybook.models.enums import (
    BLOCKING_STATUSES,
    CANCELLABLE_STATUSES,
    REFUND_TRANSITIONS,
    RESERVATION_ACTIONS,
    RESERVATION_TRANSITIONS,
    RefundStatus,
    ReservationStatus,
)
from staybook.services.availability_service import AvailabilityService
from staybook.services.cancellation_service import CancellationPolicy
from staybook.services.common import as_utc, clean_text, parse_date, to_int
from staybook.services.listing_service import ListingService
from staybook.services.pricing_service import PricingService
from staybook.signals import reservation_created, reservation_status_changed

STATUS_TIMESTAMPS = {
    ReservationStatus.APPROVED: "approved_at",
    ReservationStatus.REJECTED: "rejected_at",
    ReservationStatus.CONFIRMED: "confirmed_at",
    ReservationStatus.COMPLETED: "completed_at",
    ReservationStatus.CANCELLED: "cancelled_at",
}

ACTION_NAMES = {status: action for action, status in RESERVATION_ACTIONS.items()}

MAX_SPECIAL_REQUEST_LENGTH = 1000
DATES_UNAVAILABLE = "Selected dates are not available."


class ReservationService:
    @staticmethod
    def get_reservation(reservation_id):
        reservation = db.session.get(Reservation, reservation_id) if reservation_id is not None else None
        if not reservation:
            raise NotFoundError("Reservation not found.")
        return reservation

    @staticmethod
    def get_by_confirmation_number(confirmation_number):
        number = (confirmation_number or "").strip().upper()
        reservation = Reservation.query.filter_by(confirmation_number=number).first() if number else None
        if not reservation:
            raise NotFoundError("Reservation not found.")
        return reservation

    @staticmethod
    def list_events(reservation_id):
        reservation = ReservationService.get_reservation(reservation_id)
        return reservation.events.all()

    @staticmethod
    def _confirmation_number(reservation):
        # Uniqueness comes from the primary key; the date is only for readability.
        stamp = (reservation.created_at or utcnow()).strftime("%Y%m%d")
        return f"RES{stamp}-{reservation.id:06d}"

    @staticmethod
    def _validate_stay(check_in, check_out, today=None):
        check_in_date, check_out_date = AvailabilityService.validate_range(check_in, check_out)
        today = today or utcnow().date()
        if check_in_date < today:
            raise ValidationError("Check-in date cannot be in the past.")
        nights = (check_out_date - check_in_date).days
        max_nights = current_app.config.get("MAX_STAY_NIGHTS", 365)
        if nights > max_nights:
            raise ValidationError(f"Reservation cannot exceed {max_nights} nights.")
        return check_in_date, check_out_date, nights

    @staticmethod
    def _validate_guest_count(guest_count):
        guests = to_int(guest_count, "Guest count")
        max_guests = current_app.config.get("MAX_GUESTS", 20)
        if guests < 1 or guests > max_guests:
            raise ValidationError(f"Guest count must be between 1 and {max_guests}.")
        return guests

    @staticmethod
    def _claim_nights(listing_id, reservation_id, check_in, check_out):
        db.session.add_all(
            [
                ReservationNight(listing_id=listing_id, reservation_id=reservation_id, night=night)
                for night in AvailabilityService.nights_between(check_in, check_out)
            ]
        )

    @staticmethod
    def _release_nights(reservation_id):
        ReservationNight.query.filter_by(reservation_id=reservation_id).delete(synchronize_session=False)

    @staticmethod
    def _record_event(reservation_id, action, old_status, new_status, notes=None):
        db.session.add(
            ReservationEvent(
                reservation_id=reservation_id,
                action=action,
                old_status=old_status,
                new_status=new_status,
                notes=clean_text(notes),
            )
        )

    @staticmethod
    def _check_expected(current, expected_status):
        if expected_status is None:
            return
        try:
            expected = ReservationStatus(str(expected_status).strip().lower())
        except ValueError as exc:
            raise ValidationError(f"Unknown reservation status: {expected_status}.") from exc
        if expected != current:
            raise StateError(f"Reservation is {current.value}, not {expected.value}. Refresh and try again.")

    @staticmethod
    def _compare_and_set(reservation, current, target, fields=None):
        """Write ``target`` only if the stored status is still ``current``."""
        changes = dict(fields or {})
        changes["status"] = target.value
        changes["updated_at"] = utcnow()
        updated = Reservation.query.filter_by(id=reservation.id, status=current.value).update(
            changes, synchronize_session=False
        )
        if updated != 1:
            db.session.rollback()
            current_app.logger.warning(
                "Lost status race on reservation %s (%s -> %s).", reservation.id, current.value, target.value
            )
            raise StateError("Reservation was modified by another request. Refresh and try again.")

    @staticmethod
    def _announce(reservation, old_status, new_status):
        reservation_status_changed.send(
            current_app._get_current_object(),
            reservation=reservation,
            old_status=old_status.value,
            new_status=new_status.value,
        )

    @staticmethod
    def resolve_target(action):
        key = (action or "").strip().lower()
        if key in RESERVATION_ACTIONS:
            return RESERVATION_ACTIONS[key]
        try:
            return ReservationStatus(key)
        except ValueError as exc:
            raise ValidationError(f"Unknown reservation action: {action}.") from exc

    @staticmethod
    def create_reservation(
        listing_id,
        guest_id,
        check_in,
        check_out,
        guest_count=1,
        base_price=None,
        special_requests=None,
        today=None,
    ):
        listing = ListingService.get_listing(listing_id)
        if not listing.is_active:
            raise ConflictError("Listing is not accepting reservations.")

        guest = to_int(guest_id, "Guest id")
        if guest == listing.host_id:
            raise ValidationError("You cannot reserve your own listing.")

        check_in_date, check_out_date, nights = ReservationService._validate_stay(check_in, check_out, today)
        guests = ReservationService._validate_guest_count(guest_count)
        notes = clean_text(special_requests)
        if notes and len(notes) > MAX_SPECIAL_REQUEST_LENGTH:
            raise ValidationError(f"Special requests cannot exceed {MAX_SPECIAL_REQUEST_LENGTH} characters.")

        if not AvailabilityService.is_available(listing.id, check_in_date, check_out_date):
            raise ConflictError(DATES_UNAVAILABLE)

        price = listing.price_per_night if base_price is None else base_price
        pricing = PricingService.compute_pricing(price, nights, guests)

        reservation = Reservation(
            listing_id=listing.id,
            guest_id=guest,
            host_id=listing.host_id,
            status=ReservationStatus.PENDING.value,
            check_in_date=check_in_date,
            check_out_date=check_out_date,
            guest_count=guests,
            special_requests=notes,
            base_price=pricing.base_price,
            nights=pricing.nights,
            subtotal=pricing.subtotal,
            service_fee=pricing.service_fee,
            cleaning_fee=pricing.cleaning_fee,
            taxes=pricing.taxes,
            total_amount=pricing.total_amount,
        )
        # The availability check above can be stale by now; the unique night
        # claims make the insert itself fail if someone else got there first.
        try:
            db.session.add(reservation)
            db.session.flush()
            reservation.confirmation_number = ReservationService._confirmation_number(reservation)
            ReservationService._claim_nights(listing.id, reservation.id, check_in_date, check_out_date)
            ReservationService._record_event(reservation.id, "created", None, ReservationStatus.PENDING.value)
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            current_app.logger.info(
                "Rejected overlapping reservation on listing %s (%s to %s).", listing.id, check_in_date, check_out_date
            )
            raise ConflictError(DATES_UNAVAILABLE) from exc

        current_app.logger.info(
            "Reservation %s created on listing %s for guest %s (%s to %s, total %s).",
            reservation.confirmation_number,
            listing.id,
            guest,
            check_in_date,
            check_out_date,
            pricing.total_amount,
        )
        reservation_created.send(current_app._get_current_object(), reservation=reservation)
        return reservation

    @staticmethod
    def transition(reservation_id, action, expected_status=None, notes=None, now=None):
        target = ReservationService.resolve_target(action)
        if target == ReservationStatus.CANCELLED:
            ReservationService.cancel_reservation(
                reservation_id, now=now, reason=notes, expected_status=expected_status
            )
            return ReservationService.get_reservation(reservation_id)

        reservation = ReservationService.get_reservation(reservation_id)
        current = ReservationStatus(reservation.status)
        ReservationService._check_expected(current, expected_status)
        if target not in RESERVATION_TRANSITIONS[current]:
            raise StateError(f"Cannot change status from {current.value} to {target.value}.")

        moment = as_utc(now or utcnow())
        ReservationService._compare_and_set(reservation, current, target, {STATUS_TIMESTAMPS[target]: moment})
        if target not in BLOCKING_STATUSES:
            ReservationService._release_nights(reservation.id)
        ReservationService._record_event(reservation.id, ACTION_NAMES[target], current.value, target.value, notes)
        db.session.commit()

        current_app.logger.info("Reservation %s moved %s -> %s.", reservation.id, current.value, target.value)
        ReservationService._announce(reservation, current, target)
        return reservation

    @staticmethod
    def quote_cancellation(reservation_id, now=None):
        reservation = ReservationService.get_reservation(reservation_id)
        return CancellationPolicy.quote(reservation.check_in_date, reservation.total_amount, now or utcnow())

    @staticmethod
    def cancel_reservation(reservation_id, now=None, reason=None, expected_status=None):
        reservation = ReservationService.get_reservation(reservation_id)
        current = ReservationStatus(reservation.status)
        ReservationService._check_expected(current, expected_status)
        if current not in CANCELLABLE_STATUSES:
            raise StateError(f"Cannot cancel a {current.value} reservation.")

        moment = as_utc(now or utcnow())
        quote = CancellationPolicy.quote(reservation.check_in_date, reservation.total_amount, moment)
        refund_status = RefundStatus.PENDING.value if quote.refund_amount > 0 else None
        ReservationService._compare_and_set(
            reservation,
            current,
            ReservationStatus.CANCELLED,
            {
                "cancelled_at": moment,
                "cancellation_reason": clean_text(reason),
                "refund_percentage": quote.refund_percentage,
                "refund_amount": quote.refund_amount,
                "refund_status": refund_status,
                "refund_updated_at": moment if refund_status else None,
            },
        )
        ReservationService._release_nights(reservation.id)
        ReservationService._record_event(
            reservation.id,
            "cancel",
            current.value,
            ReservationStatus.CANCELLED.value,
            " ".join(
                part
                for part in (f"{quote.policy}. Refund {quote.refund_percentage}% ({quote.refund_amount}).", clean_text(reason))
                if part
            ),
        )
        db.session.commit()

        current_app.logger.info(
            "Reservation %s cancelled from %s, %s days before check-in, refund %s.",
            reservation.id,
            current.value,
            quote.days_until_check_in,
            quote.refund_amount,
        )
        ReservationService._announce(reservation, current, ReservationStatus.CANCELLED)
        return quote

    @staticmethod
    def reschedule(reservation_id, check_in, check_out, today=None):
        reservation = ReservationService.get_reservation(reservation_id)
        if reservation.status != ReservationStatus.PENDING.value:
            raise StateError("Only pending reservations can change dates.")

        check_in_date, check_out_date, nights = ReservationService._validate_stay(check_in, check_out, today)
        if not AvailabilityService.is_available(
            reservation.listing_id, check_in_date, check_out_date, exclude_reservation_id=reservation.id
        ):
            raise ConflictError(DATES_UNAVAILABLE)

        old_range = f"{reservation.check_in_date} to {reservation.check_out_date}"
        listing_id = reservation.listing_id
        pricing = PricingService.compute_pricing(reservation.base_price, nights, reservation.guest_count)
        try:
            ReservationService._compare_and_set(
                reservation,
                ReservationStatus.PENDING,
                ReservationStatus.PENDING,
                {
                    "check_in_date": check_in_date,
                    "check_out_date": check_out_date,
                    "nights": pricing.nights,
                    "subtotal": pricing.subtotal,
                    "service_fee": pricing.service_fee,
                    "cleaning_fee": pricing.cleaning_fee,
                    "taxes": pricing.taxes,
                    "total_amount": pricing.total_amount,
                },
            )
            ReservationService._release_nights(reservation.id)
            ReservationService._claim_nights(listing_id, reservation.id, check_in_date, check_out_date)
            ReservationService._record_event(
                reservation.id,
                "reschedule",
                ReservationStatus.PENDING.value,
                ReservationStatus.PENDING.value,
                f"{old_range} -> {check_in_date} to {check_out_date}",
            )
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            raise ConflictError(DATES_UNAVAILABLE) from exc

        current_app.logger.info("Reservation %s rescheduled from %s.", reservation.id, old_range)
        return reservation

    @staticmethod
    def update_refund_status(reservation_id, status, notes=None):
        reservation = ReservationService.get_reservation(reservation_id)
        if reservation.status != ReservationStatus.CANCELLED.value or not reservation.refund_status:
            raise StateError("Reservation has no refund to update.")
        try:
            target = RefundStatus(str(status or "").strip().lower())
        except ValueError as exc:
            raise ValidationError(f"Unknown refund status: {status}.") from exc

        current = RefundStatus(reservation.refund_status)
        if target not in REFUND_TRANSITIONS[current]:
            raise StateError(f"Cannot change refund from {current.value} to {target.value}.")

        updated = Reservation.query.filter_by(id=reservation.id, refund_status=current.value).update(
            {"refund_status": target.value, "refund_updated_at": utcnow(), "updated_at": utcnow()},
            synchronize_session=False,
        )
        if updated != 1:
            db.session.rollback()
            raise StateError("Refund was modified by another request. Refresh and try again.")
        ReservationService._record_event(
            reservation.id,
            f"refund_{target.value}",
            ReservationStatus.CANCELLED.value,
            ReservationStatus.CANCELLED.value,
            notes,
        )
        db.session.commit()
        current_app.logger.info("Refund for reservation %s moved %s -> %s.", reservation.id, current.value, target.value)
        return reservation

    @staticmethod
    def complete_finished_stays(as_of=None):
        """Complete confirmed reservations whose check-out date has passed."""
        cutoff = parse_date(as_of, "as-of date") if as_of else utcnow().date()
        reservation_ids = [
            row.id
            for row in Reservation.query.filter(Reservation.status == ReservationStatus.CONFIRMED.value)
            .filter(Reservation.check_out_date < cutoff)
            .order_by(Reservation.id)
            .all()
        ]
        completed = []
        for reservation_id in reservation_ids:
            try:
                completed.append(
                    ReservationService.transition(
                        reservation_id,
                        "complete",
                        expected_status=ReservationStatus.CONFIRMED.value,
                        notes="Auto-completed after check-out date",
                    )
                )
            except StateError:
                current_app.logger.warning("Skipped auto-completion of reservation %s: status changed.", reservation_id)
        return completed
