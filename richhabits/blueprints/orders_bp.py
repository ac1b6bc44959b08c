"""
Orders Blueprint — orders, status workflow and sized line items (resource ``orders``).

Endpoints:
    GET    /api/orders                        — list (role-filtered)
    POST   /api/orders                        — create
    GET    /api/orders/<id>                   — detail with line items
    PUT    /api/orders/<id>                   — update (status excluded)
    DELETE /api/orders/<id>                   — delete
    PUT    /api/orders/<id>/status            — workflow transition (409 on invalid)
    GET    /api/orders/<id>/line-items        — list line items
    POST   /api/orders/<id>/line-items        — add a line item
    PATCH  /api/order-line-items/<id>         — edit a line item
"""

import logging

from flask import Blueprint, g, jsonify, request

from richhabits.middleware.permission_required import require_permission
from richhabits.models import db
from richhabits.models.order import ORDER_PRIORITIES, SIZE_COLUMNS, Order, OrderLineItem
from richhabits.services.notification import NotificationService
from richhabits.services.permission_service import filter_data_by_role, record_visible_to
from richhabits.services.upload_service import normalize_object_reference
from richhabits.services.workflow import allowed_next_statuses, ensure_transition
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

orders_bp = Blueprint("orders_bp", __name__, url_prefix="/api")

_ORDER_FIELDS = {
    "orgId": "org_id",
    "trackingNumber": "tracking_number",
    "notes": "notes",
}


def _apply_order(order, data):
    if "orderName" in data:
        name = (data.get("orderName") or "").strip()
        if not name:
            return jsonify({"error": "orderName cannot be empty"}), 400
        order.order_name = name
    if "priority" in data:
        if data["priority"] not in ORDER_PRIORITIES:
            return jsonify({"error": f"Invalid priority. Must be one of: {list(ORDER_PRIORITIES)}"}), 400
        order.priority = data["priority"]
    if "estimatedDelivery" in data:
        order.estimated_delivery = parse_iso_date(data["estimatedDelivery"], "estimatedDelivery")
    for key, attr in _ORDER_FIELDS.items():
        if key in data:
            setattr(order, attr, data[key])
    return None


def _apply_line_item(item, data):
    if "variantId" in data:
        item.variant_id = data["variantId"]
    if "itemName" in data:
        item.item_name = data["itemName"]
    if "notes" in data:
        item.notes = data["notes"]
    if "unitPrice" in data:
        item.unit_price = parse_decimal(data["unitPrice"], "unitPrice")
    if "imageUrl" in data:
        item.image_url = normalize_object_reference(data["imageUrl"])
    for size in SIZE_COLUMNS:
        if size in data:
            qty = data[size]
            if isinstance(qty, bool) or not isinstance(qty, int) or qty < 0:
                return jsonify({"error": f"{size} must be a non-negative integer"}), 400
            setattr(item, size, qty)
    return None


def _forbidden_for_sales(order):
    principal = g.principal
    if principal.role == "sales" and not record_visible_to(principal, "orders", order.to_dict()):
        return jsonify({"error": "Access denied"}), 403
    return None


# ═══════════════════════════════════════════════════════════════════════════
#  ORDERS
# ═══════════════════════════════════════════════════════════════════════════

@orders_bp.route("/orders", methods=["GET"])
@require_permission("orders", "read")
def list_orders():
    q = Order.query
    if not parse_bool_arg("includeArchived"):
        q = q.filter(Order.archived.is_(False))
    status = request.args.get("status")
    if status:
        q = q.filter(Order.status == status)
    items, _ = paginate_query(q.order_by(Order.id.desc()))
    return jsonify(filter_data_by_role([o.to_dict() for o in items], g.principal, "orders")), 200


@orders_bp.route("/orders", methods=["POST"])
@require_permission("orders", "write")
def create_order():
    data = request.get_json(silent=True) or {}
    if not (data.get("orderName") or "").strip():
        return jsonify({"error": "orderName is required"}), 400

    order = Order(order_code=generate_code("ORD"), status="new")
    err = _apply_order(order, data)
    if err:
        return err

    principal = g.principal
    if principal.role == "sales":
        order.salesperson_id = principal.id
    else:
        order.salesperson_id = data.get("salespersonId")

    db.session.add(order)
    err = db_commit_or_error()
    if err:
        return err
    logger.info("Order %s created by user %s", order.order_code, principal.id)
    return jsonify(order.to_dict()), 201


@orders_bp.route("/orders/<int:order_id>", methods=["GET"])
@require_permission("orders", "read")
def get_order(order_id):
    order, err = get_or_404(Order, order_id)
    if err:
        return err
    err = _forbidden_for_sales(order)
    if err:
        return err
    d = order.to_dict(include_line_items=True)
    d["allowedStatuses"] = allowed_next_statuses("order", order.status)
    return jsonify(d), 200


@orders_bp.route("/orders/<int:order_id>", methods=["PUT"])
@require_permission("orders", "write")
def update_order(order_id):
    order, err = get_or_404(Order, order_id)
    if err:
        return err
    err = _forbidden_for_sales(order)
    if err:
        return err

    data = request.get_json(silent=True) or {}
    if "status" in data:
        return jsonify({"error": "Use PUT /api/orders/<id>/status to change status"}), 400
    err = _apply_order(order, data)
    if err:
        return err
    if "salespersonId" in data and g.principal.role != "sales":
        order.salesperson_id = data["salespersonId"]
    if "archived" in data:
        order.archived = bool(data["archived"])

    err = db_commit_or_error()
    if err:
        return err
    return jsonify(order.to_dict()), 200


@orders_bp.route("/orders/<int:order_id>", methods=["DELETE"])
@require_permission("orders", "delete")
def delete_order(order_id):
    order, err = get_or_404(Order, order_id)
    if err:
        return err
    err = _forbidden_for_sales(order)
    if err:
        return err
    db.session.delete(order)
    err = db_commit_or_error()
    if err:
        return err
    logger.info("Order %s deleted by user %s", order_id, g.principal.id)
    return jsonify({"deleted": True, "id": order_id}), 200


@orders_bp.route("/orders/<int:order_id>/status", methods=["PUT"])
@require_permission("orders", "write")
def change_order_status(order_id):
    """Move an order through its workflow. Body: {status}"""
    order, err = get_or_404(Order, order_id)
    if err:
        return err
    err = _forbidden_for_sales(order)
    if err:
        return err

    data = request.get_json(silent=True) or {}
    target = data.get("status")
    if not target:
        return jsonify({"error": "status is required"}), 400
    ensure_transition("order", order.status, target)

    old_status = order.status
    order.status = target
    NotificationService.notify_order_status_change(order, old_status)
    err = db_commit_or_error()
    if err:
        return err
    logger.info("Order %s: %s → %s by user %s", order.order_code, old_status, target,
                g.principal.id)
    return jsonify(order.to_dict()), 200


# ═══════════════════════════════════════════════════════════════════════════
#  LINE ITEMS
# ═══════════════════════════════════════════════════════════════════════════

@orders_bp.route("/orders/<int:order_id>/line-items", methods=["GET"])
@require_permission("orders", "read")
def list_line_items(order_id):
    order, err = get_or_404(Order, order_id)
    if err:
        return err
    err = _forbidden_for_sales(order)
    if err:
        return err
    items = order.line_items.order_by(OrderLineItem.id).all()
    return jsonify([li.to_dict() for li in items]), 200


@orders_bp.route("/orders/<int:order_id>/line-items", methods=["POST"])
@require_permission("orders", "write")
def create_line_item(order_id):
    order, err = get_or_404(Order, order_id)
    if err:
        return err
    err = _forbidden_for_sales(order)
    if err:
        return err

    data = request.get_json(silent=True) or {}
    # orderId always comes from the URL
    item = OrderLineItem(order_id=order.id)
    err = _apply_line_item(item, data)
    if err:
        return err
    db.session.add(item)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(item.to_dict()), 201


@orders_bp.route("/order-line-items/<int:item_id>", methods=["PATCH"])
@require_permission("orders", "write")
def update_line_item(item_id):
    item, err = get_or_404(OrderLineItem, item_id, label="Line item")
    if err:
        return err
    err = _forbidden_for_sales(item.order)
    if err:
        return err

    data = request.get_json(silent=True) or {}
    data.pop("orderId", None)
    err = _apply_line_item(item, data)
    if err:
        return err
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(item.to_dict()), 200
