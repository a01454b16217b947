from staybook.extensions import db
from staybook.models.base import PKType, TimestampMixin, money_column
from staybook.models.enums import PayoutStatus


class PayoutRequest(TimestampMixin, db.Model):
    __tablename__ = "payout_requests"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    host_id = db.Column(PKType, nullable=False, index=True)
    amount = money_column()
    fee = money_column(default=0)
    net_amount = money_column()
    payment_method = db.Column(db.String(24), nullable=False)
    account_details = db.Column(db.JSON, nullable=False, default=dict)
    status = db.Column(db.String(24), nullable=False, default=PayoutStatus.PENDING.value, index=True)
    notes = db.Column(db.Text, nullable=True)
    processed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    __table_args__ = (
        db.Index("ix_payout_requests_host_status", "host_id", "status"),
        db.CheckConstraint("amount > 0", name="ck_payout_amount_positive"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "host_id": self.host_id,
            "amount": str(self.amount),
            "fee": str(self.fee),
            "net_amount": str(self.net_amount),
            "payment_method": self.payment_method,
            "account_details": self.account_details,
            "status": self.status,
            "notes": self.notes,
            "processed_at": self.processed_at.isoformat() if self.processed_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class PayoutLedger(TimestampMixin, db.Model):
    """Per-host serialization point for payout requests."""

    __tablename__ = "payout_ledgers"

    host_id = db.Column(PKType, primary_key=True, autoincrement=False)
    version = db.Column(db.Integer, nullable=False, default=0)
