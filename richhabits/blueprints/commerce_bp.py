"""
Commerce Blueprint — quotes (``quotes``), events (``events``) and team stores (``orders``).
"""

import logging
from datetime import datetime, time

from flask import Blueprint, g, jsonify, request

from richhabits.middleware.permission_required import require_permission
from richhabits.models import db
from richhabits.models.commerce import (
    EVENT_STATUSES,
    EVENT_TYPES,
    QUOTE_STATUSES,
    TEAM_STORE_STATUSES,
    Event,
    Quote,
    TeamStore,
)
from richhabits.utils.helpers import (
    db_commit_or_error,
    generate_code,
    get_or_404,
    paginate_query,
    parse_bool_arg,
    parse_decimal,
    parse_iso_date,
)

logger = logging.getLogger(__name__)

commerce_bp = Blueprint("commerce_bp", __name__, url_prefix="/api")


def _choice(data, key, allowed):
    """Validate an enum field; returns an error tuple or None."""
    if key in data and data[key] not in allowed:
        return jsonify({"error": f"Invalid {key}. Must be one of: {list(allowed)}"}), 400
    return None


def _required_name(data, key):
    if not (data.get(key) or "").strip():
        return jsonify({"error": f"{key} is required"}), 400
    return None


def _deleted(obj_id, err):
    if err:
        return err
    return jsonify({"deleted": True, "id": obj_id}), 200


# ═══════════════════════════════════════════════════════════════════════════
#  QUOTES
# ═══════════════════════════════════════════════════════════════════════════

_QUOTE_FIELDS = {
    "quoteName": "quote_name",
    "orgId": "org_id",
    "contactId": "contact_id",
    "status": "status",
    "notes": "notes",
}


def _apply_quote(quote, data):
    err = _choice(data, "status", QUOTE_STATUSES)
    if err:
        return err
    for key, attr in _QUOTE_FIELDS.items():
        if key in data:
            setattr(quote, attr, data[key])
    if "validUntil" in data:
        quote.valid_until = parse_iso_date(data["validUntil"], "validUntil")
    for key, attr in (("subtotal", "subtotal"), ("taxRate", "tax_rate"), ("total", "total")):
        if key in data:
            setattr(quote, attr, parse_decimal(data[key], key))
    return None


def _scoped_quotes():
    q = Quote.query
    principal = g.principal
    if principal.role == "sales":
        q = q.filter(Quote.salesperson_id == principal.id)
    return q


@commerce_bp.route("/quotes", methods=["GET"])
@require_permission("quotes", "read")
def list_quotes():
    q = _scoped_quotes()
    status = request.args.get("status")
    if status:
        q = q.filter(Quote.status == status)
    items, _ = paginate_query(q.order_by(Quote.id.desc()))
    return jsonify([x.to_dict() for x in items]), 200


@commerce_bp.route("/quotes", methods=["POST"])
@require_permission("quotes", "write")
def create_quote():
    data = request.get_json(silent=True) or {}
    err = _required_name(data, "quoteName")
    if err:
        return err
    quote = Quote(quote_code=generate_code("QTE"), status="draft")
    err = _apply_quote(quote, data)
    if err:
        return err
    principal = g.principal
    quote.salesperson_id = principal.id if principal.role == "sales" else data.get("salespersonId")

    db.session.add(quote)
    err = db_commit_or_error()
    if err:
        return err
    logger.info("Quote %s created by user %s", quote.quote_code, principal.id)
    return jsonify(quote.to_dict()), 201


@commerce_bp.route("/quotes/<int:quote_id>", methods=["GET"])
@require_permission("quotes", "read")
def get_quote(quote_id):
    quote = _scoped_quotes().filter(Quote.id == quote_id).first()
    if quote is None:
        return jsonify({"error": "Quote not found"}), 404
    return jsonify(quote.to_dict()), 200


@commerce_bp.route("/quotes/<int:quote_id>", methods=["PUT"])
@require_permission("quotes", "write")
def update_quote(quote_id):
    quote = _scoped_quotes().filter(Quote.id == quote_id).first()
    if quote is None:
        return jsonify({"error": "Quote not found"}), 404
    data = request.get_json(silent=True) or {}
    err = _apply_quote(quote, data)
    if err:
        return err
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(quote.to_dict()), 200


@commerce_bp.route("/quotes/<int:quote_id>", methods=["DELETE"])
@require_permission("quotes", "delete")
def delete_quote(quote_id):
    quote = _scoped_quotes().filter(Quote.id == quote_id).first()
    if quote is None:
        return jsonify({"error": "Quote not found"}), 404
    db.session.delete(quote)
    return _deleted(quote_id, db_commit_or_error())


# ═══════════════════════════════════════════════════════════════════════════
#  EVENTS
# ═══════════════════════════════════════════════════════════════════════════

def _apply_event(event, data):
    for key, allowed in (("status", EVENT_STATUSES), ("eventType", EVENT_TYPES)):
        err = _choice(data, key, allowed)
        if err:
            return err
    if "name" in data:
        event.name = data["name"]
    if "status" in data:
        event.status = data["status"]
    if "eventType" in data:
        event.event_type = data["eventType"]
    for key, attr in (("orgId", "org_id"), ("location", "location"), ("notes", "notes")):
        if key in data:
            setattr(event, attr, data[key])
    for key, attr in (("startDate", "start_date"), ("endDate", "end_date")):
        if key in data:
            day = parse_iso_date(data[key], key)
            setattr(event, attr, None if day is None else _midnight(day))
    return None


def _midnight(day):
    return datetime.combine(day, time.min)


@commerce_bp.route("/events", methods=["GET"])
@require_permission("events", "read")
def list_events():
    q = Event.query
    status = request.args.get("status")
    if status:
        q = q.filter(Event.status == status)
    items, _ = paginate_query(q.order_by(Event.id.desc()))
    return jsonify([e.to_dict() for e in items]), 200


@commerce_bp.route("/events", methods=["POST"])
@require_permission("events", "write")
def create_event():
    data = request.get_json(silent=True) or {}
    err = _required_name(data, "name")
    if err:
        return err
    event = Event(event_code=generate_code("EVT"), created_by=g.current_user.id)
    err = _apply_event(event, data)
    if err:
        return err
    db.session.add(event)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(event.to_dict()), 201


@commerce_bp.route("/events/<int:event_id>", methods=["GET"])
@require_permission("events", "read")
def get_event(event_id):
    event, err = get_or_404(Event, event_id)
    if err:
        return err
    return jsonify(event.to_dict()), 200


@commerce_bp.route("/events/<int:event_id>", methods=["PUT"])
@require_permission("events", "write")
def update_event(event_id):
    event, err = get_or_404(Event, event_id)
    if err:
        return err
    data = request.get_json(silent=True) or {}
    err = _apply_event(event, data)
    if err:
        return err
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(event.to_dict()), 200


@commerce_bp.route("/events/<int:event_id>", methods=["DELETE"])
@require_permission("events", "delete")
def delete_event(event_id):
    event, err = get_or_404(Event, event_id)
    if err:
        return err
    db.session.delete(event)
    return _deleted(event_id, db_commit_or_error())


# ═══════════════════════════════════════════════════════════════════════════
#  TEAM STORES  (scoped by the orders resource)
# ═══════════════════════════════════════════════════════════════════════════

def _store_forbidden(store):
    principal = g.principal
    if principal.role == "sales" and store.salesperson_id != principal.id:
        return jsonify({"error": "Access denied"}), 403
    return None


def _apply_store(store, data):
    err = _choice(data, "status", TEAM_STORE_STATUSES)
    if err:
        return err
    for key, attr in (("storeName", "store_name"), ("orderId", "order_id"),
                      ("orgId", "org_id"), ("status", "status"), ("notes", "notes")):
        if key in data:
            setattr(store, attr, data[key])
    for key, attr in (("storeOpenDate", "store_open_date"), ("storeCloseDate", "store_close_date")):
        if key in data:
            setattr(store, attr, parse_iso_date(data[key], key))
    if (store.store_open_date and store.store_close_date
            and store.store_close_date < store.store_open_date):
        return jsonify({"error": "storeCloseDate must not be before storeOpenDate"}), 400
    return None


@commerce_bp.route("/team-stores", methods=["GET"])
@require_permission("orders", "read")
def list_team_stores():
    q = TeamStore.query
    if not parse_bool_arg("includeArchived"):
        q = q.filter(TeamStore.archived.is_(False))
    if g.principal.role == "sales":
        q = q.filter(TeamStore.salesperson_id == g.principal.id)
    items, _ = paginate_query(q.order_by(TeamStore.id.desc()))
    return jsonify([s.to_dict() for s in items]), 200


@commerce_bp.route("/team-stores", methods=["POST"])
@require_permission("orders", "write")
def create_team_store():
    data = request.get_json(silent=True) or {}
    err = _required_name(data, "storeName")
    if err:
        return err
    store = TeamStore(store_code=generate_code("TS"), status="pending")
    err = _apply_store(store, data)
    if err:
        return err
    principal = g.principal
    store.salesperson_id = principal.id if principal.role == "sales" else data.get("salespersonId")

    db.session.add(store)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(store.to_dict()), 201


@commerce_bp.route("/team-stores/<int:store_id>", methods=["GET"])
@require_permission("orders", "read")
def get_team_store(store_id):
    store, err = get_or_404(TeamStore, store_id, label="Team store")
    if err:
        return err
    err = _store_forbidden(store)
    if err:
        return err
    return jsonify(store.to_dict()), 200


@commerce_bp.route("/team-stores/<int:store_id>", methods=["PUT"])
@require_permission("orders", "write")
def update_team_store(store_id):
    store, err = get_or_404(TeamStore, store_id, label="Team store")
    if err:
        return err
    err = _store_forbidden(store)
    if err:
        return err
    data = request.get_json(silent=True) or {}
    err = _apply_store(store, data)
    if err:
        return err
    if "archived" in data:
        store.archived = bool(data["archived"])
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(store.to_dict()), 200


@commerce_bp.route("/team-stores/<int:store_id>", methods=["DELETE"])
@require_permission("orders", "delete")
def delete_team_store(store_id):
    store, err = get_or_404(TeamStore, store_id, label="Team store")
    if err:
        return err
    err = _store_forbidden(store)
    if err:
        return err
    db.session.delete(store)
    return _deleted(store_id, db_commit_or_error())
