from staybook.extensions import db
from staybook.models.base import PKType, TimestampMixin, money_column
from staybook.models.enums import ReservationStatus


class Reservation(TimestampMixin, db.Model):
    __tablename__ = "reservations"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    listing_id = db.Column(PKType, db.ForeignKey("listings.id", ondelete="CASCADE"), nullable=False, index=True)
    guest_id = db.Column(PKType, nullable=False, index=True)
    host_id = db.Column(PKType, nullable=False, index=True)
    confirmation_number = db.Column(db.String(32), nullable=True, unique=True, index=True)

    status = db.Column(db.String(24), nullable=False, default=ReservationStatus.PENDING.value, index=True)
    check_in_date = db.Column(db.Date, nullable=False)
    check_out_date = db.Column(db.Date, nullable=False)
    guest_count = db.Column(db.Integer, nullable=False, default=1)
    special_requests = db.Column(db.Text, nullable=True)

    base_price = money_column()
    nights = db.Column(db.Integer, nullable=False)
    subtotal = money_column()
    service_fee = money_column()
    cleaning_fee = money_column()
    taxes = money_column()
    total_amount = money_column()

    refund_percentage = db.Column(db.Integer, nullable=True)
    refund_amount = money_column(nullable=True)
    refund_status = db.Column(db.String(24), nullable=True, index=True)
    cancellation_reason = db.Column(db.Text, nullable=True)

    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    rejected_at = db.Column(db.DateTime(timezone=True), nullable=True)
    confirmed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    refund_updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    listing = db.relationship("Listing", back_populates="reservations")
    nights_held = db.relationship(
        "ReservationNight", back_populates="reservation", lazy="dynamic", cascade="all, delete-orphan"
    )
    events = db.relationship(
        "ReservationEvent",
        back_populates="reservation",
        lazy="dynamic",
        cascade="all, delete-orphan",
        order_by="ReservationEvent.id",
    )

    __table_args__ = (
        db.Index("ix_reservations_listing_status", "listing_id", "status"),
        db.Index("ix_reservations_host_status", "host_id", "status"),
        db.CheckConstraint("check_out_date > check_in_date", name="ck_reservation_dates_ordered"),
        db.CheckConstraint("nights > 0", name="ck_reservation_nights_positive"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "confirmation_number": self.confirmation_number,
            "listing_id": self.listing_id,
            "guest_id": self.guest_id,
            "host_id": self.host_id,
            "status": self.status,
            "check_in_date": self.check_in_date.isoformat(),
            "check_out_date": self.check_out_date.isoformat(),
            "guest_count": self.guest_count,
            "special_requests": self.special_requests,
            "pricing": {
                "base_price": str(self.base_price),
                "nights": self.nights,
                "subtotal": str(self.subtotal),
                "service_fee": str(self.service_fee),
                "cleaning_fee": str(self.cleaning_fee),
                "taxes": str(self.taxes),
                "total_amount": str(self.total_amount),
            },
            "refund": {
                "percentage": self.refund_percentage,
                "amount": None if self.refund_amount is None else str(self.refund_amount),
                "status": self.refund_status,
            },
            "cancellation_reason": self.cancellation_reason,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
