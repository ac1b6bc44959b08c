"""
Permission Decorators — route protection over the role × resource matrix.

Usage:
    @orders_bp.route("", methods=["POST"])
    @require_permission("orders", "write")
    def create_order():
        ...

    @bp.route("/overview")
    @require_any_permission(("finance", "read"), ("orders", "viewAll"))
    def overview():
        ...

Both decorators imply authentication: anonymous requests get 401 and
deactivated accounts 403. Checks run against ``g.principal`` so an admin in
test mode is evaluated with the test user's role.
"""

import functools
import logging

from flask import g, jsonify

from richhabits.services.permission_service import evaluate_permission

logger = logging.getLogger(__name__)


def _auth_error():
    if getattr(g, "account_deactivated", False):
        return jsonify({"error": "Account deactivated"}), 403
    if getattr(g, "principal", None) is None:
        return jsonify({"error": "Unauthorized"}), 401
    return None


def require_permission(resource: str, kind: str = "read"):
    """
    Decorator: require ``kind`` access on ``resource``.

    Args:
        resource: Resource name, e.g. "orders"
        kind: One of read | write | delete | viewAll
    """
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            err = _auth_error()
            if err:
                return err

            principal = g.principal
            result = evaluate_permission(principal, resource, kind)
            if not result["allowed"]:
                logger.warning(
                    "User %s (%s) denied %s on %s [%s] at %s",
                    principal.id, principal.role, kind, resource, result["decision"], f.__name__,
                    extra={"user_id": principal.id, "role": principal.role,
                           "resource": resource, "permission": kind,
                           "decision": result["decision"]},
                )
                return jsonify({
                    "error": f"Access denied: Insufficient permissions for {resource}",
                }), 403

            return f(*args, **kwargs)
        return decorated
    return decorator


def require_any_permission(*checks: tuple[str, str]):
    """
    Decorator: require at least ONE of the ``(resource, kind)`` pairs.
    """
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            err = _auth_error()
            if err:
                return err

            principal = g.principal
            if not any(evaluate_permission(principal, res, kind)["allowed"]
                       for res, kind in checks):
                logger.warning(
                    "User %s (%s) denied: missing any of %s on %s",
                    principal.id, principal.role, checks, f.__name__,
                )
                resources = ", ".join(res for res, _ in checks)
                return jsonify({
                    "error": f"Access denied: Insufficient permissions for {resources}",
                }), 403

            return f(*args, **kwargs)
        return decorated
    return decorator
