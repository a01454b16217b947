from datetime import date, datetime, time, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from staybook.errors import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def round2(value):
    """Round to cents, half-up. Every monetary figure in the engine goes through here."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_money(value, label):
    if isinstance(value, bool) or value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{label} must be a number.")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"{label} must be a number.") from exc
    if not amount.is_finite():
        raise ValidationError(f"{label} must be a number.")
    return amount


def to_int(value, label):
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be an integer.")
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{label} must be an integer.") from exc
    return parsed


def parse_date(value, label):
    """Accept a date, a datetime (time of day dropped) or an ISO ``YYYY-MM-DD`` string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = (value or "").strip() if isinstance(value, str) else ""
    if not raw:
        raise ValidationError(f"{label} is required.")
    try:
        return date.fromisoformat(raw[:10])
    except ValueError as exc:
        raise ValidationError(f"Invalid {label} format. Use YYYY-MM-DD.") from exc


def clean_text(value):
    return (value or "").strip() or None


def as_utc(moment):
    """Aware UTC datetime for ``moment``; naive values are taken as UTC, dates as midnight."""
    if isinstance(moment, datetime):
        if moment.tzinfo is None:
            return moment.replace(tzinfo=timezone.utc)
        return moment.astimezone(timezone.utc)
    if isinstance(moment, date):
        return datetime.combine(moment, time.min, tzinfo=timezone.utc)
    raise TypeError(f"Expected date or datetime, got {type(moment).__name__}")
