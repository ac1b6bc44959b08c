"""
Auth Blueprint — session login, current user, CSRF token, license acceptance.

Endpoints:
  POST /api/auth/local/login   — email + password → session cookie
  GET  /api/auth/user          — current user (with effectiveRole / testMode)
  POST /api/auth/logout        — clear the session
  GET  /api/auth/csrf-token    — token for the X-CSRF-Token header
  POST /api/license/accept     — record license acceptance (idempotent)
"""

import logging

from flask import Blueprint, current_app, g, jsonify, request

from richhabits import limiter
from richhabits.auth import current_user, login_user, logout_user, require_auth
from richhabits.middleware.csrf import generate_csrf_token
from richhabits.middleware.rate_limiter import LOGIN_LIMIT
from richhabits.models.auth import User
from richhabits.models.base import utcnow
from richhabits.utils.crypto import hash_password, needs_rehash, verify_password
from richhabits.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth_bp", __name__, url_prefix="/api")


def _user_payload(user):
    d = user.to_dict()
    principal = g.principal if getattr(g, "principal", None) is not None else user
    d["effectiveRole"] = principal.role
    d["testMode"] = principal is not user
    if d["testMode"]:
        d["testModeUser"] = principal.to_dict()
    return d


# ═══════════════════════════════════════════════════════════════
# POST /api/auth/local/login
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/auth/local/login", methods=["POST"])
@limiter.limit(LOGIN_LIMIT)
def login():
    """
    Authenticate with email + password and start a session.

    Body: { "email": "...", "password": "..." }
    """
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    if not email or not password:
        return jsonify({"error": "Email and password are required"}), 400

    user = User.query.filter(User.email.ilike(email)).first()
    if user is None or not verify_password(password, user.password_hash):
        logger.info("Login failed for %s", email)
        return jsonify({"error": "Invalid email or password"}), 401
    if not user.is_active:
        logger.info("Login refused for deactivated account %s", email)
        return jsonify({"error": "Account deactivated"}), 403

    if needs_rehash(user.password_hash):
        user.password_hash = hash_password(password)
    login_user(user)
    err = db_commit_or_error()
    if err:
        return err

    logger.info("Login successful for %s (%s)", email, user.role,
                extra={"user_id": user.id, "role": user.role})
    return jsonify({"message": "Login successful", "user": user.to_dict()}), 200


# ═══════════════════════════════════════════════════════════════
# GET /api/auth/user
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/auth/user", methods=["GET"])
@require_auth
def get_user():
    return jsonify(_user_payload(current_user())), 200


@auth_bp.route("/auth/logout", methods=["POST"])
def logout():
    user = current_user()
    logout_user()
    if user is not None:
        logger.info("Logout for user %s", user.id, extra={"user_id": user.id})
    return jsonify({"message": "Logged out"}), 200


@auth_bp.route("/auth/csrf-token", methods=["GET"])
def csrf_token():
    return jsonify({"csrfToken": generate_csrf_token()}), 200


# ═══════════════════════════════════════════════════════════════
# POST /api/license/accept
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/license/accept", methods=["POST"])
@require_auth
def accept_license():
    """Record that the user accepted the current license version."""
    user = current_user()
    version = current_app.config.get("LICENSE_VERSION", "1.0")

    if user.license_version != version or user.license_accepted_at is None:
        user.license_version = version
        user.license_accepted_at = utcnow()
        err = db_commit_or_error()
        if err:
            return err
        logger.info("User %s accepted license %s", user.id, version)

    return jsonify({
        "accepted": True,
        "licenseVersion": user.license_version,
        "licenseAcceptedAt": user.to_dict()["licenseAcceptedAt"],
    }), 200
