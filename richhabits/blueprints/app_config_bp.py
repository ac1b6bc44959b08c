"""
App Config Blueprint — per-user feature flags and admin test mode.

Endpoints:
    GET    /api/app-config                 — {featureFlags, testModeUser, testMode}
    PUT    /api/app-config/feature-flags   — body {flag: bool, ...}
    POST   /api/app-config/test-mode       — body {testUser: {id, name, email, role}}
    DELETE /api/app-config/test-mode       — leave test mode
"""

import logging

from flask import Blueprint, g, jsonify, request

from richhabits.auth import require_auth, require_role
from richhabits.core.exceptions import ValidationError
from richhabits.services.app_config import AppConfig

logger = logging.getLogger(__name__)

app_config_bp = Blueprint("app_config_bp", __name__, url_prefix="/api/app-config")


@app_config_bp.route("", methods=["GET"])
@require_auth
def get_config():
    return jsonify(AppConfig.load(g.current_user.id).to_dict()), 200


@app_config_bp.route("/feature-flags", methods=["PUT"])
@require_auth
def update_feature_flags():
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        raise ValidationError("Body must be an object of {flag: boolean}")

    config = AppConfig.load(g.current_user.id)
    for flag, value in data.items():
        config.set_feature_flag(flag, value)
    return jsonify(config.to_dict()), 200


@app_config_bp.route("/test-mode", methods=["POST"])
@require_role("admin")
def enter_test_mode():
    data = request.get_json(silent=True) or {}
    config = AppConfig.load(g.current_user.id)
    # The real user, not the principal: an admin already in test mode may switch
    config.enter_test_mode(g.current_user, data.get("testUser"))
    return jsonify(config.to_dict()), 200


@app_config_bp.route("/test-mode", methods=["DELETE"])
@require_auth
def exit_test_mode():
    config = AppConfig.load(g.current_user.id).exit_test_mode()
    return jsonify(config.to_dict()), 200
