from staybook.extensions import db
from staybook.models.base import PKType, TimestampMixin


class ReservationEvent(TimestampMixin, db.Model):
    __tablename__ = "reservation_events"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    reservation_id = db.Column(
        PKType, db.ForeignKey("reservations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    action = db.Column(db.String(32), nullable=False)
    old_status = db.Column(db.String(24), nullable=True)
    new_status = db.Column(db.String(24), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    reservation = db.relationship("Reservation", back_populates="events")

    def to_dict(self):
        return {
            "id": self.id,
            "action": self.action,
            "old_status": self.old_status,
            "new_status": self.new_status,
            "notes": self.notes,
            "created_at": self.created_at.isoformat(),
        }
