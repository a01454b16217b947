from datetime import date
from decimal import Decimal

import pytest

from staybook import create_app
from staybook.extensions import db
from staybook.models import Listing, PayoutRequest, Reservation
from staybook.services import ReservationService

TODAY = date(2030, 1, 1)


@pytest.fixture
def app():
    app = create_app("testing")
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_listing(app):
    def _make(host_id=1, price="2500.00", title="Seaside villa", is_active=True):
        listing = Listing(host_id=host_id, title=title, price_per_night=Decimal(price), is_active=is_active)
        db.session.add(listing)
        db.session.commit()
        return listing

    return _make


@pytest.fixture
def book(app):
    """Create a reservation through the engine and walk it to ``status``."""

    walk = {
        "pending": [],
        "approved": ["approve"],
        "rejected": ["reject"],
        "confirmed": ["approve", "confirm"],
        "completed": ["approve", "confirm", "complete"],
    }

    def _book(listing, check_in, check_out, status="pending", guest_id=99, guest_count=1):
        reservation = ReservationService.create_reservation(
            listing_id=listing.id,
            guest_id=guest_id,
            check_in=check_in,
            check_out=check_out,
            guest_count=guest_count,
            today=TODAY,
        )
        for action in walk[status]:
            ReservationService.transition(reservation.id, action)
        return reservation

    return _book


@pytest.fixture
def ledger_rows(app):
    """Insert reservation and payout rows directly, as an existing store would hold them."""

    counter = {"offset": 0}

    def _reservation(host_id, status, total, refund_amount=None, refund_status=None, listing_id=None):
        counter["offset"] += 3
        start = date(2031, 1, 1).toordinal() + counter["offset"]
        check_in = date.fromordinal(start)
        check_out = date.fromordinal(start + 2)
        total = Decimal(str(total))
        row = Reservation(
            listing_id=listing_id or 1,
            guest_id=500,
            host_id=host_id,
            status=status,
            check_in_date=check_in,
            check_out_date=check_out,
            guest_count=1,
            base_price=Decimal("0.00"),
            nights=2,
            subtotal=total,
            service_fee=Decimal("0.00"),
            cleaning_fee=Decimal("0.00"),
            taxes=Decimal("0.00"),
            total_amount=total,
            refund_amount=None if refund_amount is None else Decimal(str(refund_amount)),
            refund_status=refund_status,
        )
        db.session.add(row)
        db.session.commit()
        return row

    def _payout(host_id, amount, status, method="gcash"):
        amount = Decimal(str(amount))
        row = PayoutRequest(
            host_id=host_id,
            amount=amount,
            fee=Decimal("15.00"),
            net_amount=amount - Decimal("15.00"),
            payment_method=method,
            account_details={"mobile_number": "09170000000", "account_name": "Host"},
            status=status,
        )
        db.session.add(row)
        db.session.commit()
        return row

    class Rows:
        reservation = staticmethod(_reservation)
        payout = staticmethod(_payout)

    return Rows
