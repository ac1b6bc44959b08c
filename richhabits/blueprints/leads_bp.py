"""
Leads Blueprint — sales pipeline records (resource ``leads``).

Sales users see and edit only the leads they own; new leads created by a
sales user are always owned by them. Stage changes are free-form within
LEAD_STAGES.
"""

import logging

from flask import Blueprint, g, jsonify, request

from richhabits.middleware.permission_required import require_permission
from richhabits.models import db
from richhabits.models.auth import User
from richhabits.models.crm import LEAD_STAGES, Lead
from richhabits.services.permission_service import filter_data_by_role, record_visible_to
from richhabits.utils.helpers import (
    db_commit_or_error,
    generate_code,
    get_or_404,
    paginate_query,
    parse_bool_arg,
)

logger = logging.getLogger(__name__)

leads_bp = Blueprint("leads_bp", __name__, url_prefix="/api/leads")

_UPDATABLE = {
    "orgId": "org_id",
    "contactId": "contact_id",
    "notes": "notes",
    "score": "score",
}


def _apply(lead, data):
    """Copy writable fields from ``data``; returns an error tuple or None."""
    if "stage" in data:
        if data["stage"] not in LEAD_STAGES:
            return jsonify({"error": f"Invalid stage. Must be one of: {list(LEAD_STAGES)}"}), 400
        lead.stage = data["stage"]
    for key, attr in _UPDATABLE.items():
        if key in data:
            setattr(lead, attr, data[key])
    return None


def _forbidden_for_sales(lead):
    principal = g.principal
    if principal.role == "sales" and not record_visible_to(principal, "leads", lead.to_dict()):
        return jsonify({"error": "Access denied"}), 403
    return None


@leads_bp.route("", methods=["GET"])
@require_permission("leads", "read")
def list_leads():
    q = Lead.query
    if not parse_bool_arg("includeArchived"):
        q = q.filter(Lead.archived.is_(False))
    stage = request.args.get("stage")
    if stage:
        q = q.filter(Lead.stage == stage)
    items, _ = paginate_query(q.order_by(Lead.id.desc()))
    return jsonify(filter_data_by_role([lead.to_dict() for lead in items], g.principal, "leads")), 200


@leads_bp.route("", methods=["POST"])
@require_permission("leads", "write")
def create_lead():
    data = request.get_json(silent=True) or {}
    lead = Lead(lead_code=generate_code("LEAD"), stage="future_lead")
    err = _apply(lead, data)
    if err:
        return err

    principal = g.principal
    if principal.role == "sales":
        lead.owner_user_id = principal.id
    else:
        lead.owner_user_id = data.get("ownerUserId")

    db.session.add(lead)
    err = db_commit_or_error()
    if err:
        return err
    logger.info("Lead %s created by user %s", lead.lead_code, principal.id)
    return jsonify(lead.to_dict()), 201


@leads_bp.route("/owners", methods=["GET"])
@require_permission("leads", "read")
def list_owners():
    """Minimal user list for owner dropdowns."""
    users = User.query.filter_by(is_active=True).order_by(User.id).all()
    return jsonify([{"id": u.id, "name": u.name} for u in users]), 200


@leads_bp.route("/<int:lead_id>", methods=["GET"])
@require_permission("leads", "read")
def get_lead(lead_id):
    lead, err = get_or_404(Lead, lead_id)
    if err:
        return err
    err = _forbidden_for_sales(lead)
    if err:
        return err
    return jsonify(lead.to_dict()), 200


@leads_bp.route("/<int:lead_id>", methods=["PUT"])
@require_permission("leads", "write")
def update_lead(lead_id):
    lead, err = get_or_404(Lead, lead_id)
    if err:
        return err
    err = _forbidden_for_sales(lead)
    if err:
        return err

    data = request.get_json(silent=True) or {}
    err = _apply(lead, data)
    if err:
        return err
    if "ownerUserId" in data and g.principal.role != "sales":
        lead.owner_user_id = data["ownerUserId"]

    err = db_commit_or_error()
    if err:
        return err
    return jsonify(lead.to_dict()), 200


@leads_bp.route("/<int:lead_id>/archive", methods=["POST"])
@require_permission("leads", "delete")
def archive_lead(lead_id):
    lead, err = get_or_404(Lead, lead_id)
    if err:
        return err
    if g.principal.role == "sales":
        return jsonify({"error": "Sales users cannot archive leads"}), 403

    lead.archived = True
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Lead archived successfully", "lead": lead.to_dict()}), 200


@leads_bp.route("/<int:lead_id>", methods=["DELETE"])
@require_permission("leads", "delete")
def delete_lead(lead_id):
    lead, err = get_or_404(Lead, lead_id)
    if err:
        return err
    err = _forbidden_for_sales(lead)
    if err:
        return err

    db.session.delete(lead)
    err = db_commit_or_error()
    if err:
        return err
    logger.info("Lead %s deleted by user %s", lead_id, g.principal.id)
    return jsonify({"deleted": True, "id": lead_id}), 200
