from datetime import datetime, timezone

from sqlalchemy import BigInteger, Integer

from staybook.extensions import db


# Use BIGINT in PostgreSQL, but INTEGER in SQLite so autoincrement works.
PKType = BigInteger().with_variant(Integer, "sqlite")


def utcnow():
    return datetime.now(timezone.utc)


def money_column(nullable=False, default=None):
    return db.Column(db.Numeric(12, 2), nullable=nullable, default=default)


class TimestampMixin:
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
