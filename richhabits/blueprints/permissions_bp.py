"""
Permissions Blueprint — roles, resources, role rows and per-user overrides.

Endpoints (all under /api/permissions):
    GET    /user-permissions               — full dataset for the signed-in user
    GET    /roles | /resources | ""        — admin listings (userManagement read)
    GET    /roles/<id>                     — role with its rows
    POST   /roles                          — create (optional copyFromRoleId)
    PUT    /roles/<id>                     — update
    DELETE /roles/<id>                     — delete (system roles refused)
    POST   /bulk-update                    — upsert role rows
    POST   /seed                           — write the static table into the store
    GET    /user/<user_id>                 — per-user overrides (users read)
    POST   /user/<user_id>                 — upsert an override (users write)
    DELETE /user/<user_id>/<resource_id>   — drop an override
    GET    /nav                            — accessible navigation + landing paths

Every mutation clears the permission cache.
"""

import logging

from flask import Blueprint, g, jsonify, request

from richhabits.auth import require_auth
from richhabits.middleware.permission_required import require_permission
from richhabits.models import db
from richhabits.models.auth import Resource, Role, RolePermission, User, UserPermission
from richhabits.services.app_config import AppConfig
from richhabits.services.permission_service import (
    get_accessible_nav_items,
    get_default_landing_path,
    get_role_dashboard_path,
    get_role_home_path,
    invalidate_all_cache,
    invalidate_cache,
    seed_permissions,
    server_resolver,
)
from richhabits.utils.helpers import db_commit_or_error, get_or_404

logger = logging.getLogger(__name__)

permissions_bp = Blueprint("permissions_bp", __name__, url_prefix="/api/permissions")

FLAG_FIELDS = {
    "canView": "can_view",
    "canCreate": "can_create",
    "canEdit": "can_edit",
    "canDelete": "can_delete",
    "pageVisible": "page_visible",
}


def _parse_flags(payload, partial=False):
    """Return ({column: bool}, None) or (None, error message)."""
    if not isinstance(payload, dict):
        return None, "permissions must be an object"
    flags = {}
    for key, column in FLAG_FIELDS.items():
        if key not in payload:
            if partial:
                continue
            return None, f"permissions.{key} is required"
        if not isinstance(payload[key], bool):
            return None, f"permissions.{key} must be a boolean"
        flags[column] = payload[key]
    return flags, None


def _positive_int(value):
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


# ═══════════════════════════════════════════════════════════════════════════
#  DATASET + LISTINGS
# ═══════════════════════════════════════════════════════════════════════════

@permissions_bp.route("/user-permissions", methods=["GET"])
@require_auth
def user_permissions():
    """Everything a client needs to run PermissionResolver locally."""
    return jsonify({
        "permissions": [p.to_dict() for p in RolePermission.query.order_by(RolePermission.id).all()],
        "roles": [r.to_dict() for r in Role.query.order_by(Role.id).all()],
        "resources": [r.to_dict() for r in Resource.query.order_by(Resource.id).all()],
    }), 200


@permissions_bp.route("/roles", methods=["GET"])
@require_permission("userManagement", "read")
def list_roles():
    return jsonify([r.to_dict() for r in Role.query.order_by(Role.id).all()]), 200


@permissions_bp.route("/resources", methods=["GET"])
@require_permission("userManagement", "read")
def list_resources():
    return jsonify([r.to_dict() for r in Resource.query.order_by(Resource.id).all()]), 200


@permissions_bp.route("", methods=["GET"])
@require_permission("userManagement", "read")
def list_role_permissions():
    rows = RolePermission.query.order_by(RolePermission.id).all()
    return jsonify([p.to_dict() for p in rows]), 200


# ═══════════════════════════════════════════════════════════════════════════
#  ROLES
# ═══════════════════════════════════════════════════════════════════════════

@permissions_bp.route("/roles/<int:role_id>", methods=["GET"])
@require_permission("userManagement", "read")
def get_role(role_id):
    role, err = get_or_404(Role, role_id)
    if err:
        return err
    return jsonify(role.to_dict(include_permissions=True)), 200


@permissions_bp.route("/roles", methods=["POST"])
@require_permission("userManagement", "write")
def create_role():
    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()
    display_name = (data.get("displayName") or "").strip()
    if not name:
        return jsonify({"error": "name is required"}), 400
    if not display_name:
        return jsonify({"error": "displayName is required"}), 400
    if Role.query.filter_by(name=name).first():
        return jsonify({"error": f"Role '{name}' already exists"}), 409

    role = Role(
        name=name,
        display_name=display_name,
        description=data.get("description"),
        is_system=False,
    )
    db.session.add(role)
    db.session.flush()

    copy_from = data.get("copyFromRoleId")
    if copy_from is not None:
        source = db.session.get(Role, copy_from) if _positive_int(copy_from) else None
        if source is None:
            db.session.rollback()
            return jsonify({"error": "copyFromRoleId does not reference a role"}), 400
        for perm in source.permissions.all():
            db.session.add(RolePermission(
                role_id=role.id,
                resource_id=perm.resource_id,
                can_view=perm.can_view,
                can_create=perm.can_create,
                can_edit=perm.can_edit,
                can_delete=perm.can_delete,
                page_visible=perm.page_visible,
            ))

    err = db_commit_or_error()
    if err:
        return err
    invalidate_all_cache()
    logger.info("Role %s created by user %s", role.name, g.current_user.id)
    return jsonify(role.to_dict()), 201


@permissions_bp.route("/roles/<int:role_id>", methods=["PUT"])
@require_permission("userManagement", "write")
def update_role(role_id):
    role, err = get_or_404(Role, role_id)
    if err:
        return err
    data = request.get_json(silent=True) or {}

    if "name" in data:
        name = (data.get("name") or "").strip()
        if not name:
            return jsonify({"error": "name cannot be empty"}), 400
        if role.is_system and name != role.name:
            return jsonify({"error": "Cannot rename system role"}), 403
        role.name = name
    if "displayName" in data:
        display_name = (data.get("displayName") or "").strip()
        if not display_name:
            return jsonify({"error": "displayName cannot be empty"}), 400
        role.display_name = display_name
    if "description" in data:
        role.description = data["description"]

    err = db_commit_or_error()
    if err:
        return err
    invalidate_all_cache()
    return jsonify(role.to_dict()), 200


@permissions_bp.route("/roles/<int:role_id>", methods=["DELETE"])
@require_permission("userManagement", "write")
def delete_role(role_id):
    role, err = get_or_404(Role, role_id)
    if err:
        return err
    if role.is_system:
        return jsonify({"error": "Cannot delete system role"}), 403

    db.session.delete(role)
    err = db_commit_or_error()
    if err:
        return err
    invalidate_all_cache()
    logger.info("Role %s deleted by user %s", role_id, g.current_user.id)
    return jsonify({"message": "Role deleted successfully"}), 200


# ═══════════════════════════════════════════════════════════════════════════
#  ROLE ROWS
# ═══════════════════════════════════════════════════════════════════════════

@permissions_bp.route("/bulk-update", methods=["POST"])
@require_permission("userManagement", "write")
def bulk_update():
    """Upsert role rows. Body: {updates: [{roleId, resourceId, permissions: {...}}]}"""
    data = request.get_json(silent=True) or {}
    updates = data.get("updates")
    if not isinstance(updates, list):
        return jsonify({"error": "Updates must be an array"}), 400

    validated = []
    for i, item in enumerate(updates):
        if not isinstance(item, dict):
            return jsonify({"error": f"Invalid update at index {i}: must be an object"}), 400
        role_id = item.get("roleId")
        resource_id = item.get("resourceId")
        if not _positive_int(role_id):
            return jsonify({"error": f"Invalid update at index {i}: Role ID must be a positive integer"}), 400
        if not _positive_int(resource_id):
            return jsonify({"error": f"Invalid update at index {i}: Resource ID must be a positive integer"}), 400
        flags, msg = _parse_flags(item.get("permissions"))
        if msg:
            return jsonify({"error": f"Invalid update at index {i}: {msg}"}), 400
        if db.session.get(Role, role_id) is None or db.session.get(Resource, resource_id) is None:
            return jsonify({"error": f"Invalid update at index {i}: unknown role or resource"}), 400
        validated.append((role_id, resource_id, flags))

    for role_id, resource_id, flags in validated:
        row = RolePermission.query.filter_by(role_id=role_id, resource_id=resource_id).first()
        if row is None:
            row = RolePermission(role_id=role_id, resource_id=resource_id)
            db.session.add(row)
        for column, value in flags.items():
            setattr(row, column, value)

    err = db_commit_or_error()
    if err:
        return err
    invalidate_all_cache()
    logger.info("Bulk permission update: %d rows by user %s", len(validated), g.current_user.id)
    return jsonify({"message": "Permissions updated successfully", "updated": len(validated)}), 200


@permissions_bp.route("/seed", methods=["POST"])
@require_permission("userManagement", "write")
def seed():
    data = request.get_json(silent=True) or {}
    stats = seed_permissions(overwrite=bool(data.get("overwrite")))
    return jsonify({"success": True, "message": "Permissions seeded successfully", "stats": stats}), 200


# ═══════════════════════════════════════════════════════════════════════════
#  PER-USER OVERRIDES
# ═══════════════════════════════════════════════════════════════════════════

@permissions_bp.route("/user/<int:user_id>", methods=["GET"])
@require_permission("users", "read")
def list_user_overrides(user_id):
    _, err = get_or_404(User, user_id)
    if err:
        return err
    rows = UserPermission.query.filter_by(user_id=user_id).order_by(UserPermission.id).all()
    return jsonify([r.to_dict() for r in rows]), 200


@permissions_bp.route("/user/<int:user_id>", methods=["POST"])
@require_permission("users", "write")
def upsert_user_override(user_id):
    """Body: {resourceId, permissions: {canView, canCreate, canEdit, canDelete, pageVisible}}"""
    _, err = get_or_404(User, user_id)
    if err:
        return err
    data = request.get_json(silent=True) or {}
    resource_id = data.get("resourceId")
    if not _positive_int(resource_id):
        return jsonify({"error": "resourceId must be a positive integer"}), 400
    _, err = get_or_404(Resource, resource_id)
    if err:
        return err
    flags, msg = _parse_flags(data.get("permissions"))
    if msg:
        return jsonify({"error": msg}), 400

    row = UserPermission.query.filter_by(user_id=user_id, resource_id=resource_id).first()
    created = row is None
    if created:
        row = UserPermission(user_id=user_id, resource_id=resource_id)
        db.session.add(row)
    for column, value in flags.items():
        setattr(row, column, value)

    err = db_commit_or_error()
    if err:
        return err
    invalidate_cache(user_id)
    return jsonify(row.to_dict()), 201 if created else 200


@permissions_bp.route("/user/<int:user_id>/<int:resource_id>", methods=["DELETE"])
@require_permission("users", "write")
def delete_user_override(user_id, resource_id):
    row = UserPermission.query.filter_by(user_id=user_id, resource_id=resource_id).first()
    if row is None:
        return jsonify({"error": "Permission override not found"}), 404
    db.session.delete(row)
    err = db_commit_or_error()
    if err:
        return err
    invalidate_cache(user_id)
    return "", 204


# ═══════════════════════════════════════════════════════════════════════════
#  NAVIGATION
# ═══════════════════════════════════════════════════════════════════════════

@permissions_bp.route("/nav", methods=["GET"])
@require_auth
def nav():
    principal = g.principal
    resolver = server_resolver(principal)
    enable_role_home = AppConfig.load(g.current_user.id).is_feature_enabled("enableRoleHome")
    return jsonify({
        "role": principal.role,
        "items": get_accessible_nav_items(principal.role, can_read=resolver.can_access),
        "homePath": get_role_home_path(principal.role),
        "dashboardPath": get_role_dashboard_path(principal.role),
        "landingPath": get_default_landing_path(principal.role, enable_role_home),
    }), 200
