from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import func, select

from staybook.extensions import db
from staybook.models import PayoutRequest, Reservation
from staybook.models.enums import (
    EARNING_STATUSES,
    IN_FLIGHT_REFUND_STATUSES,
    OPEN_PAYOUT_STATUSES,
    PayoutStatus,
    RefundStatus,
    ReservationStatus,
    values,
)
from staybook.services.common import ZERO, round2


@dataclass(frozen=True)
class PayoutBalance:
    total_earned: Decimal
    available_for_payout: Decimal
    pending_payout: Decimal
    total_withdrawn: Decimal
    pending_refunds: Decimal
    completed_refunds: Decimal
    net_earnings: Decimal

    def to_dict(self):
        return {
            "total_earned": str(self.total_earned),
            "available_for_payout": str(self.available_for_payout),
            "pending_payout": str(self.pending_payout),
            "total_withdrawn": str(self.total_withdrawn),
            "pending_refunds": str(self.pending_refunds),
            "completed_refunds": str(self.completed_refunds),
            "net_earnings": str(self.net_earnings),
        }


def _sum_reservations(column, *criteria):
    return (
        select(func.coalesce(func.sum(column), 0))
        .where(*criteria)
        .scalar_subquery()
    )


def _sum_payouts(host_id, statuses):
    return (
        select(func.coalesce(func.sum(PayoutRequest.amount), 0))
        .where(PayoutRequest.host_id == host_id, PayoutRequest.status.in_(values(statuses)))
        .scalar_subquery()
    )


class BalanceService:
    @staticmethod
    def summarize(total_earned, pending_payout, total_withdrawn, pending_refunds, completed_refunds):
        """Reduce raw totals into a balance. Available funds never go below zero."""
        earned = round2(total_earned)
        pending = round2(pending_payout)
        withdrawn = round2(total_withdrawn)
        refunds_in_flight = round2(pending_refunds)
        refunds_done = round2(completed_refunds)
        available = earned - pending - withdrawn - refunds_in_flight - refunds_done
        return PayoutBalance(
            total_earned=earned,
            available_for_payout=max(available, ZERO),
            pending_payout=pending,
            total_withdrawn=withdrawn,
            pending_refunds=refunds_in_flight,
            completed_refunds=refunds_done,
            net_earnings=earned - refunds_done,
        )

    @staticmethod
    def compute_balance(host_id):
        # One statement, one snapshot: a payout committed mid-query cannot
        # show up in some totals and not in others.
        cancelled = Reservation.status == ReservationStatus.CANCELLED.value
        host_reservations = Reservation.host_id == host_id
        statement = select(
            _sum_reservations(
                Reservation.total_amount,
                host_reservations,
                Reservation.status.in_(values(EARNING_STATUSES)),
            ),
            _sum_payouts(host_id, OPEN_PAYOUT_STATUSES),
            _sum_payouts(host_id, {PayoutStatus.COMPLETED}),
            _sum_reservations(
                Reservation.refund_amount,
                host_reservations,
                cancelled,
                Reservation.refund_status.in_(values(IN_FLIGHT_REFUND_STATUSES)),
            ),
            _sum_reservations(
                Reservation.refund_amount,
                host_reservations,
                cancelled,
                Reservation.refund_status == RefundStatus.COMPLETED.value,
            ),
        )
        earned, pending_payout, withdrawn, pending_refunds, completed_refunds = db.session.execute(statement).one()
        return BalanceService.summarize(
            Decimal(str(earned)),
            Decimal(str(pending_payout)),
            Decimal(str(withdrawn)),
            Decimal(str(pending_refunds)),
            Decimal(str(completed_refunds)),
        )
