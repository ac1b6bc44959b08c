"""Shared blueprint helpers.

Lookup and commit helpers return ``(obj, error)`` / ``error`` pairs so a
view can bail out with ``if err: return err``. Error bodies use the
``api_error`` shape. The parsers raise ``ValidationError`` and are meant
for service code and request payload coercion.
"""
import logging
import uuid
from datetime import date
from decimal import Decimal, InvalidOperation

from flask import request
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from richhabits.core.exceptions import ValidationError
from richhabits.models import db
from richhabits.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def get_or_404(model, pk, label=None):
    """``(obj, None)`` when the row exists, else ``(None, 404 response)``.

        order, err = get_or_404(Order, order_id)
        if err:
            return err
    """
    obj = db.session.get(model, pk)
    if obj is None:
        return None, api_error(E.NOT_FOUND, f"{label or model.__name__} not found")
    return obj, None


def db_commit_or_error():
    """Commit the session; on failure roll back and return a ready response.

    A unique/FK violation maps to 409, anything else the driver raises to 500.
    """
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Commit rejected by constraint: %s", exc.orig)
        return api_error(E.CONFLICT_DUPLICATE, "Duplicate or constraint violation")
    except OperationalError:
        db.session.rollback()
        logger.exception("Database unavailable during commit")
        return api_error(E.INTERNAL, "Database error")
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Commit failed")
        return api_error(E.INTERNAL, "Database error")
    return None


def paginate_query(query, default_limit=200, max_limit=1000):
    """Apply ``?limit=&offset=`` to ``query``; returns ``(items, total)``."""
    total = query.count()
    limit = _int_arg("limit", default_limit)
    limit = default_limit if limit < 1 else min(limit, max_limit)
    offset = max(_int_arg("offset", 0), 0)
    return query.limit(limit).offset(offset).all(), total


def _int_arg(name, default):
    try:
        return int(request.args.get(name, default))
    except (TypeError, ValueError):
        return default


def parse_bool_arg(name, default=False):
    """Read a boolean query-string flag (``?includeArchived=true``)."""
    raw = request.args.get(name)
    if raw is None:
        return default
    return raw.lower() in ("1", "true", "yes", "on")


def generate_code(prefix):
    """Human-facing record code, e.g. ``ORD-3F9A1C2B``."""
    return f"{prefix}-{uuid.uuid4().hex[:8].upper()}"


def parse_iso_date(value, field):
    """Parse an ISO ``YYYY-MM-DD`` string (None/"" → None); raise ValidationError otherwise."""
    if value in (None, ""):
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ValidationError(f"{field} must be an ISO date (YYYY-MM-DD)", details={"field": field})


def parse_decimal(value, field):
    if value in (None, ""):
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number", details={"field": field})
