"""Hub Blueprint — live tile counts for the role landing pages."""

from flask import Blueprint, g, jsonify

from richhabits.auth import require_auth
from richhabits.services.workflow import hub_counts

hub_bp = Blueprint("hub_bp", __name__, url_prefix="/api/hub")


@hub_bp.route("/counts", methods=["GET"])
@require_auth
def counts():
    principal = g.principal
    # Tiles follow the test-mode principal; the inbox stays the signed-in user's
    tiles = hub_counts(principal, inbox_user_id=g.current_user.id)
    return jsonify({"role": principal.role, "counts": tiles}), 200
