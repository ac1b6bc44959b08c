"""
Rich Habits OS
Session authentication.

Provides:
    - init_auth(app): before_request hook that loads the session user into ``g``
    - login_user / logout_user: session cookie management
    - require_auth: decorator returning 401 JSON for anonymous requests
    - current_user / current_principal accessors

Session model:
    The signed Flask session cookie holds ``user_id``. On each request the
    user row is loaded; deactivated users are treated as signed out and get
    403 from protected routes.

    ``g.principal`` is the identity permission checks run against. It is the
    User itself, except for an admin with test mode active, where it is the
    configured test user (see ``richhabits.services.app_config``).
"""

import functools
import logging

from flask import g, jsonify, session

from richhabits.models import db
from richhabits.models.auth import User
from richhabits.models.base import utcnow

logger = logging.getLogger(__name__)

SESSION_USER_KEY = "user_id"


def login_user(user: User) -> None:
    """Start a fresh session for ``user`` (drops any pre-login session state)."""
    session.clear()
    session[SESSION_USER_KEY] = user.id
    session.permanent = True
    user.last_login_at = utcnow()


def logout_user() -> None:
    session.clear()


def current_user():
    return getattr(g, "current_user", None)


def current_principal():
    return getattr(g, "principal", None)


def _load_session_user():
    g.current_user = None
    g.principal = None
    g.effective_role = None
    g.test_mode = False
    g.account_deactivated = False

    user_id = session.get(SESSION_USER_KEY)
    if user_id is None:
        return

    user = db.session.get(User, user_id)
    if user is None:
        session.pop(SESSION_USER_KEY, None)
        return
    if not user.is_active:
        g.account_deactivated = True
        return

    from richhabits.services.app_config import effective_principal

    principal = effective_principal(user)
    g.current_user = user
    g.principal = principal
    g.effective_role = principal.role
    g.test_mode = principal is not user


def require_auth(f):
    """Decorator: require a signed-in, active user."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        if getattr(g, "account_deactivated", False):
            return jsonify({"error": "Account deactivated"}), 403
        if current_user() is None:
            return jsonify({"error": "Unauthorized"}), 401
        return f(*args, **kwargs)

    return decorated


def require_role(*roles: str):
    """Decorator: require the signed-in user's real role to be one of ``roles``."""
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            user = current_user()
            if user is None:
                return jsonify({"error": "Unauthorized"}), 401
            if user.role not in roles:
                logger.warning(
                    "Role check failed: user %s (%s) needs one of %s",
                    user.id, user.role, roles,
                )
                return jsonify({"error": "Insufficient permissions"}), 403
            return f(*args, **kwargs)
        return decorated
    return decorator


def init_auth(app):
    """Install the session-user loader for every request."""

    @app.before_request
    def _before_request_auth():
        _load_session_user()

    logger.info("Session auth middleware installed")
