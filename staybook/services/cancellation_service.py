import math
from dataclasses import dataclass
from decimal import Decimal

from staybook.services.common import as_utc, round2, to_money

SECONDS_PER_DAY = 24 * 60 * 60

# (minimum days before check-in, refund percentage, policy text), most generous first.
REFUND_TIERS = (
    (7, 100, "Free cancellation until 7 days before check-in"),
    (3, 50, "50% refund for cancellations 3-6 days before check-in"),
)
NO_REFUND_POLICY = "No refund for cancellations within 3 days of check-in"


@dataclass(frozen=True)
class CancellationQuote:
    days_until_check_in: int
    refund_percentage: int
    refund_amount: Decimal
    policy: str

    def to_dict(self):
        return {
            "days_until_check_in": self.days_until_check_in,
            "refund_percentage": self.refund_percentage,
            "refund_amount": str(self.refund_amount),
            "policy": self.policy,
        }


class CancellationPolicy:
    @staticmethod
    def days_until(check_in_date, now):
        delta = as_utc(check_in_date) - as_utc(now)
        return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)

    @staticmethod
    def tier_for(days_until_check_in):
        for min_days, percentage, policy in REFUND_TIERS:
            if days_until_check_in >= min_days:
                return percentage, policy
        # Past check-in lands here as well.
        return 0, NO_REFUND_POLICY

    @staticmethod
    def quote(check_in_date, total_amount, now):
        days = CancellationPolicy.days_until(check_in_date, now)
        percentage, policy = CancellationPolicy.tier_for(days)
        total = to_money(total_amount, "Total amount")
        return CancellationQuote(
            days_until_check_in=days,
            refund_percentage=percentage,
            refund_amount=round2(total * percentage / Decimal(100)),
            policy=policy,
        )
