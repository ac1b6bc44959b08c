"""
TimestampedModel — abstract base with created_at / updated_at columns.
"""

from datetime import datetime, timezone

from richhabits.models import db


def utcnow():
    return datetime.now(timezone.utc)


def iso(value):
    """Serialise a date/datetime for JSON responses (None-safe)."""
    return value.isoformat() if value else None


class TimestampedModel(db.Model):
    """Abstract base for tables that track creation and update times."""
    __abstract__ = True

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)
