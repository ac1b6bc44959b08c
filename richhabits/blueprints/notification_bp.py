"""
Notification Blueprint — the signed-in user's in-app notifications.

Notifications are always scoped to the real user (never the test-mode
principal); another user's notification is reported as 404.
"""

import logging

from flask import Blueprint, g, jsonify, request

from richhabits.auth import require_auth
from richhabits.services.notification import NotificationService
from richhabits.utils.helpers import parse_bool_arg

logger = logging.getLogger(__name__)

notification_bp = Blueprint("notification_bp", __name__, url_prefix="/api/notifications")


def _int_arg(name, default, maximum=None):
    try:
        value = max(int(request.args.get(name, default)), 0)
    except (TypeError, ValueError):
        return default
    return min(value, maximum) if maximum is not None else value


@notification_bp.route("", methods=["GET"])
@require_auth
def list_notifications():
    """List notifications, newest first. Query: unreadOnly, limit, offset."""
    items, total = NotificationService.list_for_user(
        g.current_user.id,
        unread_only=parse_bool_arg("unreadOnly"),
        limit=_int_arg("limit", 50, maximum=200),
        offset=_int_arg("offset", 0),
    )
    return jsonify({"items": [n.to_dict() for n in items], "total": total}), 200


@notification_bp.route("/unread-count", methods=["GET"])
@require_auth
def unread_count():
    return jsonify({"count": NotificationService.unread_count(g.current_user.id)}), 200


@notification_bp.route("/<int:notification_id>/read", methods=["PATCH"])
@require_auth
def mark_read(notification_id):
    notif = NotificationService.mark_read(g.current_user.id, notification_id)
    return jsonify(notif.to_dict()), 200


@notification_bp.route("/mark-all-read", methods=["POST"])
@require_auth
def mark_all_read():
    count = NotificationService.mark_all_read(g.current_user.id)
    return jsonify({"updated": count}), 200


@notification_bp.route("/<int:notification_id>", methods=["DELETE"])
@require_auth
def delete_notification(notification_id):
    NotificationService.delete(g.current_user.id, notification_id)
    return jsonify({"deleted": True, "id": notification_id}), 200
