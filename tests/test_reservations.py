import re
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from staybook.errors import ConflictError, NotFoundError, StateError, ValidationError
from staybook.extensions import db
from staybook.models import Reservation, ReservationNight
from staybook.models.enums import ReservationStatus
from staybook.services import AvailabilityService, ReservationService
from staybook.signals import reservation_created, reservation_status_changed

TODAY = date(2030, 1, 1)

CHECK_IN = date(2030, 1, 20)
CHECK_OUT = date(2030, 1, 22)


@pytest.fixture
def listing(make_listing):
    return make_listing(host_id=7, price="2500.00")


def _nights_held(reservation_id):
    return ReservationNight.query.filter_by(reservation_id=reservation_id).count()


class TestCreate:
    def test_creates_pending_reservation_with_pricing(self, listing, book):
        reservation = book(listing, CHECK_IN, CHECK_OUT, guest_count=3)

        assert reservation.status == "pending"
        assert reservation.host_id == 7
        assert reservation.nights == 2
        assert reservation.subtotal == Decimal("5000.00")
        assert reservation.total_amount == Decimal("6150.00")
        assert reservation.total_amount == (
            reservation.subtotal + reservation.service_fee + reservation.cleaning_fee + reservation.taxes
        )
        assert re.fullmatch(r"RES\d{8}-\d{6}", reservation.confirmation_number)
        assert _nights_held(reservation.id) == 2
        assert [event.action for event in ReservationService.list_events(reservation.id)] == ["created"]

    def test_confirmation_numbers_are_unique(self, listing, book):
        first = book(listing, CHECK_IN, CHECK_OUT)
        second = book(listing, CHECK_OUT, CHECK_OUT + timedelta(days=1))

        assert first.confirmation_number != second.confirmation_number
        assert ReservationService.get_by_confirmation_number(second.confirmation_number.lower()).id == second.id

    def test_explicit_base_price_overrides_listing_price(self, listing):
        reservation = ReservationService.create_reservation(
            listing.id, 99, CHECK_IN, CHECK_OUT, base_price="1000", today=TODAY
        )

        assert reservation.base_price == Decimal("1000.00")
        assert reservation.total_amount == Decimal("2490.00")

    def test_overlap_is_a_conflict(self, listing, book):
        book(listing, CHECK_IN, CHECK_OUT)

        with pytest.raises(ConflictError):
            book(listing, CHECK_IN + timedelta(days=1), CHECK_OUT + timedelta(days=3))

    def test_back_to_back_is_allowed(self, listing, book):
        book(listing, CHECK_IN, CHECK_OUT, status="confirmed")
        follow_up = book(listing, CHECK_OUT, CHECK_OUT + timedelta(days=2))

        assert follow_up.status == "pending"

    def test_stale_availability_check_still_cannot_double_book(self, listing, book, monkeypatch):
        book(listing, CHECK_IN, CHECK_OUT)
        monkeypatch.setattr(AvailabilityService, "is_available", lambda *args, **kwargs: True)

        with pytest.raises(ConflictError):
            book(listing, CHECK_IN - timedelta(days=1), CHECK_IN + timedelta(days=1))

        assert Reservation.query.filter_by(listing_id=listing.id).count() == 1

    def test_announces_creation(self, app, listing, book):
        created = []

        def receiver(sender, reservation):
            created.append(reservation.id)

        with reservation_created.connected_to(receiver, app):
            reservation = book(listing, CHECK_IN, CHECK_OUT)

        assert created == [reservation.id]

    @pytest.mark.parametrize(
        "check_in, check_out, message",
        [
            (date(2029, 12, 31), date(2030, 1, 2), "past"),
            (CHECK_IN, CHECK_IN, "after check-in"),
            (CHECK_IN, CHECK_IN + timedelta(days=366), "exceed"),
        ],
    )
    def test_rejects_invalid_dates(self, listing, check_in, check_out, message):
        with pytest.raises(ValidationError, match=message):
            ReservationService.create_reservation(listing.id, 99, check_in, check_out, today=TODAY)

    @pytest.mark.parametrize("guest_count", [0, 21, "many"])
    def test_rejects_invalid_guest_count(self, listing, guest_count):
        with pytest.raises(ValidationError):
            ReservationService.create_reservation(
                listing.id, 99, CHECK_IN, CHECK_OUT, guest_count=guest_count, today=TODAY
            )

    def test_host_cannot_book_own_listing(self, listing):
        with pytest.raises(ValidationError, match="own listing"):
            ReservationService.create_reservation(listing.id, 7, CHECK_IN, CHECK_OUT, today=TODAY)

    def test_unknown_listing(self, app):
        with pytest.raises(NotFoundError):
            ReservationService.create_reservation(404, 99, CHECK_IN, CHECK_OUT, today=TODAY)

    def test_inactive_listing(self, make_listing):
        listing = make_listing(is_active=False)

        with pytest.raises(ConflictError):
            ReservationService.create_reservation(listing.id, 99, CHECK_IN, CHECK_OUT, today=TODAY)

    def test_max_stay_comes_from_config(self, app, listing):
        app.config["MAX_STAY_NIGHTS"] = 7

        with pytest.raises(ValidationError, match="7 nights"):
            ReservationService.create_reservation(
                listing.id, 99, CHECK_IN, CHECK_IN + timedelta(days=8), today=TODAY
            )


class TestTransitions:
    def test_happy_path(self, listing, book):
        reservation = book(listing, CHECK_IN, CHECK_OUT)

        for action, status in [("approve", "approved"), ("confirm", "confirmed"), ("complete", "completed")]:
            assert ReservationService.transition(reservation.id, action).status == status

        stored = ReservationService.get_reservation(reservation.id)
        assert stored.approved_at is not None
        assert stored.confirmed_at is not None
        assert stored.completed_at is not None
        assert _nights_held(reservation.id) == 0
        assert [event.action for event in stored.events] == ["created", "approve", "confirm", "complete"]

    def test_status_names_work_as_actions(self, listing, book):
        reservation = book(listing, CHECK_IN, CHECK_OUT)

        assert ReservationService.transition(reservation.id, "Approved").status == "approved"

    def test_completed_cannot_go_back_to_approved(self, listing, book):
        reservation = book(listing, CHECK_IN, CHECK_OUT, status="completed")

        with pytest.raises(StateError):
            ReservationService.transition(reservation.id, "approve")

    def test_pending_cannot_skip_to_confirmed(self, listing, book):
        reservation = book(listing, CHECK_IN, CHECK_OUT)

        with pytest.raises(StateError):
            ReservationService.transition(reservation.id, "confirm")
        assert ReservationService.get_reservation(reservation.id).status == "pending"

    @pytest.mark.parametrize("status", ["rejected", "completed"])
    def test_terminal_states(self, listing, book, status):
        reservation = book(listing, CHECK_IN, CHECK_OUT, status=status)

        for action in ["approve", "reject", "confirm", "complete", "cancel"]:
            with pytest.raises(StateError):
                ReservationService.transition(reservation.id, action)

    def test_unknown_action(self, listing, book):
        reservation = book(listing, CHECK_IN, CHECK_OUT)

        with pytest.raises(ValidationError):
            ReservationService.transition(reservation.id, "teleport")

    def test_rejection_frees_the_dates(self, listing, book):
        book(listing, CHECK_IN, CHECK_OUT, status="rejected")

        assert book(listing, CHECK_IN, CHECK_OUT).status == "pending"

    def test_expected_status_must_match(self, listing, book):
        reservation = book(listing, CHECK_IN, CHECK_OUT, status="approved")

        with pytest.raises(StateError):
            ReservationService.transition(reservation.id, "cancel", expected_status="pending")
        assert ReservationService.get_reservation(reservation.id).status == "approved"

    def test_lost_race_is_a_state_error(self, listing, book):
        reservation = book(listing, CHECK_IN, CHECK_OUT)
        stale = ReservationService.get_reservation(reservation.id)
        # Another request approves it after we read "pending".
        Reservation.query.filter_by(id=reservation.id).update({"status": "approved"}, synchronize_session=False)
        db.session.commit()

        with pytest.raises(StateError):
            ReservationService._compare_and_set(stale, ReservationStatus.PENDING, ReservationStatus.REJECTED)
        assert ReservationService.get_reservation(reservation.id).status == "approved"

    def test_status_change_hook(self, app, listing, book):
        seen = []

        def receiver(sender, reservation, old_status, new_status):
            seen.append((reservation.id, old_status, new_status))

        reservation = book(listing, CHECK_IN, CHECK_OUT)
        with reservation_status_changed.connected_to(receiver, app):
            ReservationService.transition(reservation.id, "approve")
            ReservationService.cancel_reservation(reservation.id)

        assert seen == [
            (reservation.id, "pending", "approved"),
            (reservation.id, "approved", "cancelled"),
        ]

    def test_missing_reservation(self, app):
        with pytest.raises(NotFoundError):
            ReservationService.transition(12345, "approve")


class TestCancel:
    @pytest.mark.parametrize(
        "days_before, percentage, refund, refund_status",
        [(8, 100, "6150.00", "pending"), (4, 50, "3075.00", "pending"), (1, 0, "0.00", None)],
    )
    def test_refund_is_recorded(self, listing, book, days_before, percentage, refund, refund_status):
        reservation = book(listing, CHECK_IN, CHECK_OUT, status="confirmed")
        now = datetime(2030, 1, 20, tzinfo=timezone.utc) - timedelta(days=days_before)

        quote = ReservationService.cancel_reservation(reservation.id, now=now, reason="Change of plans")

        assert quote.refund_percentage == percentage
        assert quote.refund_amount == Decimal(refund)
        stored = ReservationService.get_reservation(reservation.id)
        assert stored.status == "cancelled"
        assert stored.refund_amount == Decimal(refund)
        assert stored.refund_percentage == percentage
        assert stored.refund_status == refund_status
        assert stored.cancellation_reason == "Change of plans"
        assert _nights_held(reservation.id) == 0

    @pytest.mark.parametrize("status", ["pending", "approved", "confirmed"])
    def test_cancellable_states(self, listing, book, status):
        reservation = book(listing, CHECK_IN, CHECK_OUT, status=status)

        ReservationService.cancel_reservation(reservation.id)

        assert ReservationService.get_reservation(reservation.id).status == "cancelled"

    def test_cannot_cancel_twice(self, listing, book):
        reservation = book(listing, CHECK_IN, CHECK_OUT)
        ReservationService.cancel_reservation(reservation.id)

        with pytest.raises(StateError):
            ReservationService.cancel_reservation(reservation.id)

    def test_cancel_action_goes_through_policy(self, listing, book):
        reservation = book(listing, CHECK_IN, CHECK_OUT, status="approved")
        now = datetime(2030, 1, 15, tzinfo=timezone.utc)

        cancelled = ReservationService.transition(reservation.id, "cancel", now=now, notes="Host unavailable")

        assert cancelled.status == "cancelled"
        assert cancelled.refund_percentage == 50
        assert cancelled.refund_amount == Decimal("3075.00")

    def test_quote_preview_does_not_change_state(self, listing, book):
        reservation = book(listing, CHECK_IN, CHECK_OUT)

        quote = ReservationService.quote_cancellation(reservation.id, now=date(2030, 1, 10))

        assert quote.days_until_check_in == 10
        assert ReservationService.get_reservation(reservation.id).status == "pending"


class TestReschedule:
    def test_moves_dates_and_reprices(self, listing, book):
        reservation = book(listing, CHECK_IN, CHECK_OUT)

        moved = ReservationService.reschedule(reservation.id, CHECK_IN + timedelta(days=1), CHECK_OUT + timedelta(days=2), today=TODAY)

        assert moved.check_in_date == CHECK_IN + timedelta(days=1)
        assert moved.nights == 3
        assert moved.total_amount == Decimal("9200.00")
        assert _nights_held(reservation.id) == 3

    def test_conflicts_with_other_reservations(self, listing, book):
        reservation = book(listing, CHECK_IN, CHECK_OUT)
        book(listing, date(2030, 2, 1), date(2030, 2, 5))

        with pytest.raises(ConflictError):
            ReservationService.reschedule(reservation.id, date(2030, 1, 30), date(2030, 2, 2), today=TODAY)

    def test_only_pending(self, listing, book):
        reservation = book(listing, CHECK_IN, CHECK_OUT, status="approved")

        with pytest.raises(StateError):
            ReservationService.reschedule(reservation.id, CHECK_IN, CHECK_OUT + timedelta(days=1), today=TODAY)


class TestRefundStatus:
    def test_refund_progresses_to_completion(self, listing, book):
        reservation = book(listing, CHECK_IN, CHECK_OUT, status="confirmed")
        ReservationService.cancel_reservation(reservation.id, now=date(2030, 1, 1))

        ReservationService.update_refund_status(reservation.id, "processing")
        ReservationService.update_refund_status(reservation.id, "completed", notes="Paid back")

        stored = ReservationService.get_reservation(reservation.id)
        assert stored.refund_status == "completed"
        assert stored.events.all()[-1].action == "refund_completed"

    def test_completed_refund_is_final(self, listing, book):
        reservation = book(listing, CHECK_IN, CHECK_OUT)
        ReservationService.cancel_reservation(reservation.id, now=date(2030, 1, 1))
        ReservationService.update_refund_status(reservation.id, "completed")

        with pytest.raises(StateError):
            ReservationService.update_refund_status(reservation.id, "pending")

    def test_no_refund_to_update(self, listing, book):
        reservation = book(listing, CHECK_IN, CHECK_OUT)
        ReservationService.cancel_reservation(reservation.id, now=date(2030, 1, 19))

        with pytest.raises(StateError):
            ReservationService.update_refund_status(reservation.id, "completed")

    def test_unknown_refund_status(self, listing, book):
        reservation = book(listing, CHECK_IN, CHECK_OUT)
        ReservationService.cancel_reservation(reservation.id, now=date(2030, 1, 1))

        with pytest.raises(ValidationError):
            ReservationService.update_refund_status(reservation.id, "lost")


def test_complete_finished_stays(listing, book):
    finished = book(listing, CHECK_IN, CHECK_OUT, status="confirmed")
    upcoming = book(listing, date(2030, 3, 1), date(2030, 3, 3), status="confirmed")
    unconfirmed = book(listing, date(2030, 1, 5), date(2030, 1, 7), status="approved")

    completed = ReservationService.complete_finished_stays(date(2030, 2, 1))

    assert [reservation.id for reservation in completed] == [finished.id]
    assert ReservationService.get_reservation(upcoming.id).status == "confirmed"
    assert ReservationService.get_reservation(unconfirmed.id).status == "approved"
