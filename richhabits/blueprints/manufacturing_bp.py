"""
Manufacturing Blueprint (resource ``manufacturing``).

Endpoints:
    GET    /api/manufacturing                  — list (manufacturers see their own)
    POST   /api/manufacturing                  — create a record for an order
    GET    /api/manufacturing/<id>             — detail with update trail
    PUT    /api/manufacturing/<id>             — update; a status change logs an update row
    DELETE /api/manufacturing/<id>             — delete
    POST   /api/manufacturing/<id>/archive     — archive
    GET    /api/manufacturing-updates          — update trail (?manufacturingId=)
    POST   /api/manufacturing-updates          — post an update (moves the record status)
"""

import logging

from flask import Blueprint, g, jsonify, request

from richhabits.middleware.permission_required import require_permission
from richhabits.models import db
from richhabits.models.base import utcnow
from richhabits.models.manufacturing import (
    MANUFACTURING_PRIORITIES,
    MANUFACTURING_STATUSES,
    Manufacturing,
    ManufacturingUpdate,
)
from richhabits.models.order import Order
from richhabits.services.notification import NotificationService
from richhabits.services.permission_service import filter_data_by_role, record_visible_to
from richhabits.utils.helpers import (
    db_commit_or_error,
    get_or_404,
    paginate_query,
    parse_bool_arg,
    parse_iso_date,
)

logger = logging.getLogger(__name__)

manufacturing_bp = Blueprint("manufacturing_bp", __name__, url_prefix="/api")

_FIELDS = {
    "manufacturerId": "manufacturer_id",
    "assignedTo": "assigned_to",
    "trackingNumber": "tracking_number",
    "productionNotes": "production_notes",
}


def _invalid_status(status):
    return jsonify({
        "error": f"Invalid status. Must be one of: {', '.join(MANUFACTURING_STATUSES)}",
    }), 400


def _apply(record, data):
    if "priority" in data:
        if data["priority"] not in MANUFACTURING_PRIORITIES:
            return jsonify({"error": f"Invalid priority. Must be one of: {list(MANUFACTURING_PRIORITIES)}"}), 400
        record.priority = data["priority"]
    if "estCompletion" in data:
        record.est_completion = parse_iso_date(data["estCompletion"], "estCompletion")
    if "actualCompletionDate" in data:
        record.actual_completion_date = parse_iso_date(
            data["actualCompletionDate"], "actualCompletionDate",
        )
    for key, attr in _FIELDS.items():
        # Manufacturers never change record ownership
        if key == "manufacturerId" and g.principal.role == "manufacturer":
            continue
        if key in data:
            setattr(record, attr, data[key])
    return None


def _record_status_change(record, status, notes=None):
    """Move ``record`` to ``status`` and append the matching update row."""
    old_status = record.status
    record.status = status
    update = ManufacturingUpdate(
        manufacturing_id=record.id,
        status=status,
        notes=notes,
        updated_by=g.current_user.id,
        manufacturer_id=record.manufacturer_id,
    )
    db.session.add(update)
    if old_status != status:
        NotificationService.notify_manufacturing_status_change(record, old_status)
    return update


def _hidden(record):
    if not record_visible_to(g.principal, "manufacturing", record.to_dict()):
        return jsonify({"error": "Access denied"}), 403
    return None


# ═══════════════════════════════════════════════════════════════════════════
#  MANUFACTURING RECORDS
# ═══════════════════════════════════════════════════════════════════════════

@manufacturing_bp.route("/manufacturing", methods=["GET"])
@require_permission("manufacturing", "read")
def list_manufacturing():
    q = Manufacturing.query
    if not parse_bool_arg("includeArchived"):
        q = q.filter(Manufacturing.archived.is_(False))
    status = request.args.get("status")
    if status:
        q = q.filter(Manufacturing.status == status)
    items, _ = paginate_query(q.order_by(Manufacturing.id.desc()))
    return jsonify(
        filter_data_by_role([m.to_dict() for m in items], g.principal, "manufacturing")
    ), 200


@manufacturing_bp.route("/manufacturing", methods=["POST"])
@require_permission("manufacturing", "write")
def create_manufacturing():
    data = request.get_json(silent=True) or {}
    order_id = data.get("orderId")
    if order_id is None:
        return jsonify({"error": "orderId is required"}), 400
    _, err = get_or_404(Order, order_id)
    if err:
        return err
    if Manufacturing.query.filter_by(order_id=order_id).first():
        return jsonify({"error": "Order already has a manufacturing record"}), 409

    status = data.get("status", "awaiting_admin_confirmation")
    if status not in MANUFACTURING_STATUSES:
        return _invalid_status(status)

    record = Manufacturing(order_id=order_id, status=status)
    err = _apply(record, data)
    if err:
        return err
    if g.principal.role == "manufacturer":
        record.manufacturer_id = g.principal.manufacturer_id
    db.session.add(record)
    err = db_commit_or_error()
    if err:
        return err
    logger.info("Manufacturing %s created for order %s", record.id, order_id)
    NotificationService.notify_manufacturing_awaiting_confirmation(record)
    return jsonify(record.to_dict()), 201


@manufacturing_bp.route("/manufacturing/<int:record_id>", methods=["GET"])
@require_permission("manufacturing", "read")
def get_manufacturing(record_id):
    record, err = get_or_404(Manufacturing, record_id, label="Manufacturing record")
    if err:
        return err
    err = _hidden(record)
    if err:
        return err
    d = record.to_dict()
    d["updates"] = [u.to_dict() for u in record.updates.all()]
    return jsonify(d), 200


@manufacturing_bp.route("/manufacturing/<int:record_id>", methods=["PUT"])
@require_permission("manufacturing", "write")
def update_manufacturing(record_id):
    record, err = get_or_404(Manufacturing, record_id, label="Manufacturing record")
    if err:
        return err
    err = _hidden(record)
    if err:
        return err

    data = request.get_json(silent=True) or {}
    if "status" in data and data["status"] not in MANUFACTURING_STATUSES:
        return _invalid_status(data["status"])
    err = _apply(record, data)
    if err:
        return err
    if "status" in data and data["status"] != record.status:
        _record_status_change(record, data["status"], data.get("notes"))

    err = db_commit_or_error()
    if err:
        return err
    return jsonify(record.to_dict()), 200


@manufacturing_bp.route("/manufacturing/<int:record_id>", methods=["DELETE"])
@require_permission("manufacturing", "delete")
def delete_manufacturing(record_id):
    record, err = get_or_404(Manufacturing, record_id, label="Manufacturing record")
    if err:
        return err
    err = _hidden(record)
    if err:
        return err
    db.session.delete(record)
    err = db_commit_or_error()
    if err:
        return err
    logger.info("Manufacturing %s deleted by user %s", record_id, g.principal.id)
    return jsonify({"deleted": True, "id": record_id}), 200


@manufacturing_bp.route("/manufacturing/<int:record_id>/archive", methods=["POST"])
@require_permission("manufacturing", "write")
def archive_manufacturing(record_id):
    record, err = get_or_404(Manufacturing, record_id, label="Manufacturing record")
    if err:
        return err
    err = _hidden(record)
    if err:
        return err
    record.archived = True
    record.archived_at = utcnow()
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Manufacturing record archived", "manufacturing": record.to_dict()}), 200


# ═══════════════════════════════════════════════════════════════════════════
#  UPDATE TRAIL
# ═══════════════════════════════════════════════════════════════════════════

@manufacturing_bp.route("/manufacturing-updates", methods=["GET"])
@require_permission("manufacturing", "read")
def list_updates():
    q = ManufacturingUpdate.query
    manufacturing_id = request.args.get("manufacturingId", type=int)
    if manufacturing_id is not None:
        record, err = get_or_404(Manufacturing, manufacturing_id, label="Manufacturing record")
        if err:
            return err
        err = _hidden(record)
        if err:
            return err
        q = q.filter(ManufacturingUpdate.manufacturing_id == manufacturing_id)
    elif g.principal.role == "manufacturer":
        if g.principal.manufacturer_id is None:
            return jsonify([]), 200
        q = q.filter(ManufacturingUpdate.manufacturer_id == g.principal.manufacturer_id)
    items, _ = paginate_query(q.order_by(ManufacturingUpdate.id.desc()))
    return jsonify([u.to_dict() for u in items]), 200


@manufacturing_bp.route("/manufacturing-updates", methods=["POST"])
@require_permission("manufacturing", "write")
def create_update():
    """Body: {manufacturingId, status, notes?}"""
    data = request.get_json(silent=True) or {}
    manufacturing_id = data.get("manufacturingId")
    if manufacturing_id is None:
        return jsonify({"error": "manufacturingId is required"}), 400
    record, err = get_or_404(Manufacturing, manufacturing_id, label="Manufacturing record")
    if err:
        return err
    err = _hidden(record)
    if err:
        return err

    status = data.get("status") or record.status
    if status not in MANUFACTURING_STATUSES:
        return _invalid_status(status)

    update = _record_status_change(record, status, data.get("notes"))
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(update.to_dict()), 201
