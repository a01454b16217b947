from dataclasses import asdict, dataclass
from decimal import Decimal
from enum import Enum

from flask import current_app
from sqlalchemy.exc import IntegrityError

from staybook.errors import NotFoundError, StateError, ValidationError
from staybook.extensions import db
from staybook.models import PayoutLedger, PayoutRequest
from staybook.models.base import utcnow
from staybook.models.enums import PAYOUT_TRANSITIONS, PaymentMethod, PayoutStatus, values
from staybook.services.balance_service import BalanceService
from staybook.services.common import round2, to_int, to_money

MINIMUM_PAYOUT = Decimal("100.00")

PAYOUT_FEES = {
    PaymentMethod.BANK_TRANSFER: Decimal("25.00"),
    PaymentMethod.GCASH: Decimal("15.00"),
    PaymentMethod.PAYMAYA: Decimal("15.00"),
}

REQUIRED_DETAILS = {
    PaymentMethod.BANK_TRANSFER: ("bank_code", "account_number", "account_name"),
    PaymentMethod.GCASH: ("mobile_number", "account_name"),
    PaymentMethod.PAYMAYA: ("mobile_number", "account_name"),
}


class PayoutErrorCode(str, Enum):
    INVALID_AMOUNT = "invalid_amount"
    BELOW_MINIMUM = "below_minimum"
    EXCEEDS_AVAILABLE = "exceeds_available"
    INVALID_METHOD = "invalid_method"
    MISSING_DETAILS = "missing_details"
    MISSING_BANK_CODE = "missing_bank_code"
    MISSING_ACCOUNT_NUMBER = "missing_account_number"
    MISSING_ACCOUNT_NAME = "missing_account_name"
    MISSING_MOBILE_NUMBER = "missing_mobile_number"


MISSING_FIELD_CODES = {
    "bank_code": (PayoutErrorCode.MISSING_BANK_CODE, "Bank is required."),
    "account_number": (PayoutErrorCode.MISSING_ACCOUNT_NUMBER, "Account number is required."),
    "account_name": (PayoutErrorCode.MISSING_ACCOUNT_NAME, "Account name is required."),
    "mobile_number": (PayoutErrorCode.MISSING_MOBILE_NUMBER, "Mobile number is required."),
}


@dataclass(frozen=True)
class PayoutIssue:
    field: str
    code: PayoutErrorCode
    message: str

    def to_dict(self):
        data = asdict(self)
        data["code"] = self.code.value
        return data


class PayoutService:
    @staticmethod
    def payout_fee(payment_method):
        return PAYOUT_FEES[PaymentMethod(payment_method)]

    @staticmethod
    def net_amount(amount, payment_method):
        return round2(to_money(amount, "Amount") - PayoutService.payout_fee(payment_method))

    @staticmethod
    def validate_payout_request(payload, balance):
        """Every problem with ``payload`` at once; an empty list means it is acceptable."""
        issues = []

        amount = None
        try:
            amount = to_money(payload.get("amount"), "Amount")
        except ValidationError:
            issues.append(PayoutIssue("amount", PayoutErrorCode.INVALID_AMOUNT, "Amount must be a number."))
        if amount is not None:
            if amount <= 0:
                issues.append(PayoutIssue("amount", PayoutErrorCode.INVALID_AMOUNT, "Amount must be greater than 0."))
            if amount < MINIMUM_PAYOUT:
                issues.append(
                    PayoutIssue("amount", PayoutErrorCode.BELOW_MINIMUM, f"Minimum payout amount is {MINIMUM_PAYOUT}.")
                )
            if amount > balance.available_for_payout:
                issues.append(
                    PayoutIssue(
                        "amount",
                        PayoutErrorCode.EXCEEDS_AVAILABLE,
                        f"Amount exceeds available balance of {balance.available_for_payout}.",
                    )
                )

        method = None
        try:
            method = PaymentMethod(str(payload.get("payment_method") or "").strip().lower())
        except ValueError:
            issues.append(
                PayoutIssue(
                    "payment_method",
                    PayoutErrorCode.INVALID_METHOD,
                    f"Payment method must be one of: {', '.join(values(PaymentMethod))}.",
                )
            )

        details = payload.get("account_details")
        if not isinstance(details, dict) or not details:
            issues.append(
                PayoutIssue("account_details", PayoutErrorCode.MISSING_DETAILS, "Payment details are required.")
            )
            details = {}
        if method is not None:
            for field in REQUIRED_DETAILS[method]:
                if not str(details.get(field) or "").strip():
                    code, message = MISSING_FIELD_CODES[field]
                    issues.append(PayoutIssue(f"account_details.{field}", code, message))
        return issues

    @staticmethod
    def _lock_ledger(host_id):
        ledger = PayoutLedger.query.filter_by(host_id=host_id).with_for_update().first()
        if ledger:
            return ledger
        try:
            db.session.add(PayoutLedger(host_id=host_id, version=0))
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            current_app.logger.debug("Payout ledger for host %s created concurrently.", host_id)
        return PayoutLedger.query.filter_by(host_id=host_id).with_for_update().one()

    @staticmethod
    def create_payout_request(host_id, payload):
        host = to_int(host_id, "Host id")
        payload = payload or {}

        ledger = PayoutService._lock_ledger(host)
        seen_version = ledger.version
        balance = BalanceService.compute_balance(host)
        issues = PayoutService.validate_payout_request(payload, balance)
        if issues:
            db.session.rollback()
            current_app.logger.info(
                "Payout request from host %s rejected: %s", host, ", ".join(issue.code.value for issue in issues)
            )
            raise ValidationError("Payout request is invalid.", errors=[issue.to_dict() for issue in issues])

        method = PaymentMethod(str(payload["payment_method"]).strip().lower())
        amount = round2(to_money(payload["amount"], "Amount"))
        fee = PAYOUT_FEES[method]
        payout = PayoutRequest(
            host_id=host,
            amount=amount,
            fee=fee,
            net_amount=round2(amount - fee),
            payment_method=method.value,
            account_details={key: str(value).strip() for key, value in payload["account_details"].items()},
            status=PayoutStatus.PENDING.value,
            notes=(payload.get("notes") or "").strip() or None,
        )
        db.session.add(payout)

        # Debit the ledger only if nobody else did since we read the balance.
        bumped = PayoutLedger.query.filter_by(host_id=host, version=seen_version).update(
            {"version": seen_version + 1, "updated_at": utcnow()}, synchronize_session=False
        )
        if bumped != 1:
            db.session.rollback()
            current_app.logger.warning("Concurrent payout request for host %s; rejecting the later one.", host)
            raise StateError("Balance changed while the request was processed. Refresh and try again.")
        db.session.commit()

        current_app.logger.info(
            "Payout request %s created for host %s: %s via %s (fee %s).", payout.id, host, amount, method.value, fee
        )
        return payout

    @staticmethod
    def get_payout(payout_id):
        payout = db.session.get(PayoutRequest, payout_id) if payout_id is not None else None
        if not payout:
            raise NotFoundError("Payout request not found.")
        return payout

    @staticmethod
    def list_for_host(host_id, statuses=None):
        query = PayoutRequest.query.filter_by(host_id=to_int(host_id, "Host id"))
        if statuses:
            try:
                wanted = {PayoutStatus(str(status).strip().lower()) for status in statuses}
            except ValueError as exc:
                raise ValidationError("Unknown payout status filter.") from exc
            query = query.filter(PayoutRequest.status.in_(values(wanted)))
        return query.order_by(PayoutRequest.created_at.desc(), PayoutRequest.id.desc()).all()

    @staticmethod
    def update_status(payout_id, status, notes=None):
        payout = PayoutService.get_payout(payout_id)
        try:
            target = PayoutStatus(str(status or "").strip().lower())
        except ValueError as exc:
            raise ValidationError(f"Unknown payout status: {status}.") from exc

        current = PayoutStatus(payout.status)
        if target not in PAYOUT_TRANSITIONS[current]:
            raise StateError(f"Cannot change payout from {current.value} to {target.value}.")

        changes = {"status": target.value, "updated_at": utcnow()}
        if (notes or "").strip():
            changes["notes"] = notes.strip()
        if target in {PayoutStatus.COMPLETED, PayoutStatus.REJECTED, PayoutStatus.FAILED}:
            changes["processed_at"] = utcnow()
        updated = PayoutRequest.query.filter_by(id=payout.id, status=current.value).update(
            changes, synchronize_session=False
        )
        if updated != 1:
            db.session.rollback()
            raise StateError("Payout was modified by another request. Refresh and try again.")
        db.session.commit()
        current_app.logger.info("Payout %s moved %s -> %s.", payout.id, current.value, target.value)
        return payout
