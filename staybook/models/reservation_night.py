from staybook.extensions import db
from staybook.models.base import PKType


class ReservationNight(db.Model):
    """One occupied night of a blocking reservation.

    The unique (listing_id, night) pair is the storage-level guard against
    double booking: two overlapping reservations cannot both commit.
    """

    __tablename__ = "reservation_nights"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    listing_id = db.Column(PKType, db.ForeignKey("listings.id", ondelete="CASCADE"), nullable=False)
    reservation_id = db.Column(
        PKType, db.ForeignKey("reservations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    night = db.Column(db.Date, nullable=False)

    reservation = db.relationship("Reservation", back_populates="nights_held")

    __table_args__ = (db.UniqueConstraint("listing_id", "night", name="uq_reservation_night_listing"),)
