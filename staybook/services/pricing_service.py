from dataclasses import dataclass
from decimal import Decimal

from staybook.errors import ValidationError
from staybook.services.common import round2, to_int, to_money

SERVICE_FEE_RATE = Decimal("0.10")
TAX_RATE = Decimal("0.12")
CLEANING_FEE = Decimal("50.00")


@dataclass(frozen=True)
class PriceBreakdown:
    base_price: Decimal
    nights: int
    subtotal: Decimal
    service_fee: Decimal
    cleaning_fee: Decimal
    taxes: Decimal
    total_amount: Decimal

    def to_dict(self):
        return {
            "base_price": str(self.base_price),
            "nights": self.nights,
            "subtotal": str(self.subtotal),
            "service_fee": str(self.service_fee),
            "cleaning_fee": str(self.cleaning_fee),
            "taxes": str(self.taxes),
            "total_amount": str(self.total_amount),
        }


class PricingService:
    @staticmethod
    def compute_pricing(base_price, nights, guest_count=1):
        """Fee breakdown for a stay.

        ``guest_count`` is validated but has no effect on the price.
        """
        price = to_money(base_price, "Base price")
        nights_int = to_int(nights, "Nights")
        guests = to_int(guest_count, "Guest count")
        if price < 0:
            raise ValidationError("Base price cannot be negative.")
        if nights_int < 0:
            raise ValidationError("Nights cannot be negative.")
        if guests < 1:
            raise ValidationError("Guest count must be at least 1.")

        subtotal = round2(price * nights_int)
        service_fee = round2(subtotal * SERVICE_FEE_RATE)
        taxes = round2(subtotal * TAX_RATE)
        total = round2(subtotal + service_fee + CLEANING_FEE + taxes)
        return PriceBreakdown(
            base_price=round2(price),
            nights=nights_int,
            subtotal=subtotal,
            service_fee=service_fee,
            cleaning_fee=CLEANING_FEE,
            taxes=taxes,
            total_amount=total,
        )
