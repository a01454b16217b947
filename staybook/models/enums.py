from enum import Enum


class ReservationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RefundStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    REJECTED = "rejected"
    FAILED = "failed"


class PayoutStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    PROCESSING = "processing"
    COMPLETED = "completed"
    REJECTED = "rejected"
    FAILED = "failed"


class PaymentMethod(str, Enum):
    BANK_TRANSFER = "bank_transfer"
    GCASH = "gcash"
    PAYMAYA = "paymaya"


# Single source of truth for the reservation lifecycle.
RESERVATION_TRANSITIONS = {
    ReservationStatus.PENDING: {
        ReservationStatus.APPROVED,
        ReservationStatus.REJECTED,
        ReservationStatus.CANCELLED,
    },
    ReservationStatus.APPROVED: {ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED},
    ReservationStatus.CONFIRMED: {ReservationStatus.COMPLETED, ReservationStatus.CANCELLED},
    ReservationStatus.REJECTED: set(),
    ReservationStatus.COMPLETED: set(),
    ReservationStatus.CANCELLED: set(),
}

RESERVATION_ACTIONS = {
    "approve": ReservationStatus.APPROVED,
    "reject": ReservationStatus.REJECTED,
    "confirm": ReservationStatus.CONFIRMED,
    "complete": ReservationStatus.COMPLETED,
    "cancel": ReservationStatus.CANCELLED,
}

# Statuses whose date range is held against the listing calendar.
BLOCKING_STATUSES = frozenset(
    {ReservationStatus.PENDING, ReservationStatus.APPROVED, ReservationStatus.CONFIRMED}
)

CANCELLABLE_STATUSES = frozenset(
    status for status, targets in RESERVATION_TRANSITIONS.items() if ReservationStatus.CANCELLED in targets
)

EARNING_STATUSES = frozenset(
    {ReservationStatus.APPROVED, ReservationStatus.CONFIRMED, ReservationStatus.COMPLETED}
)

REFUND_TRANSITIONS = {
    RefundStatus.PENDING: {
        RefundStatus.PROCESSING,
        RefundStatus.COMPLETED,
        RefundStatus.REJECTED,
        RefundStatus.FAILED,
    },
    RefundStatus.PROCESSING: {RefundStatus.COMPLETED, RefundStatus.FAILED},
    RefundStatus.COMPLETED: set(),
    RefundStatus.REJECTED: set(),
    RefundStatus.FAILED: set(),
}

IN_FLIGHT_REFUND_STATUSES = frozenset({RefundStatus.PENDING, RefundStatus.PROCESSING})

PAYOUT_TRANSITIONS = {
    PayoutStatus.PENDING: {PayoutStatus.APPROVED, PayoutStatus.REJECTED},
    PayoutStatus.APPROVED: {PayoutStatus.PROCESSING, PayoutStatus.REJECTED},
    PayoutStatus.PROCESSING: {PayoutStatus.COMPLETED, PayoutStatus.FAILED},
    PayoutStatus.COMPLETED: set(),
    PayoutStatus.REJECTED: set(),
    PayoutStatus.FAILED: set(),
}

OPEN_PAYOUT_STATUSES = frozenset({PayoutStatus.PENDING, PayoutStatus.APPROVED, PayoutStatus.PROCESSING})


def values(statuses):
    return sorted(status.value for status in statuses)
