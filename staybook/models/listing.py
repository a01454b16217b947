from staybook.extensions import db
from staybook.models.base import PKType, TimestampMixin


class Listing(TimestampMixin, db.Model):
    __tablename__ = "listings"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    host_id = db.Column(PKType, nullable=False, index=True)
    title = db.Column(db.String(140), nullable=False)
    price_per_night = db.Column(db.Numeric(10, 2), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    reservations = db.relationship("Reservation", back_populates="listing", lazy="dynamic")

    __table_args__ = (db.CheckConstraint("price_per_night >= 0", name="ck_listing_price_non_negative"),)
