"""
CSRF protection for cookie-authenticated API calls.

Token format:  ``<nonce>.<hex hmac_sha256(session_secret, nonce)>``

The per-session secret is created lazily and kept in the signed session
cookie. Mutating requests (POST/PUT/PATCH/DELETE) under /api/ must send a
token in the ``X-CSRF-Token`` header that verifies against that secret.

Exempt: safe methods, /api/public/*, the login endpoint, non-API paths.

Usage:
    from richhabits.middleware.csrf import init_csrf, generate_csrf_token
    init_csrf(app)
"""

import hashlib
import hmac
import logging
import secrets

from flask import jsonify, request, session

from richhabits.models.base import utcnow

logger = logging.getLogger(__name__)

CSRF_HEADER = "X-CSRF-Token"
SESSION_SECRET_KEY = "csrf_secret"

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})
EXEMPT_PREFIXES = ("/api/public/",)
EXEMPT_PATHS = frozenset({"/api/auth/local/login"})


def _session_secret() -> str:
    secret = session.get(SESSION_SECRET_KEY)
    if not secret:
        secret = secrets.token_hex(32)
        session[SESSION_SECRET_KEY] = secret
    return secret


def _sign(secret: str, nonce: str) -> str:
    return hmac.new(secret.encode("utf-8"), nonce.encode("utf-8"), hashlib.sha256).hexdigest()


def generate_csrf_token() -> str:
    nonce = secrets.token_urlsafe(16)
    return f"{nonce}.{_sign(_session_secret(), nonce)}"


def validate_csrf_token(token) -> bool:
    if not token or "." not in token:
        return False
    secret = session.get(SESSION_SECRET_KEY)
    if not secret:
        return False
    nonce, _, signature = token.partition(".")
    return hmac.compare_digest(_sign(secret, nonce), signature)


def _is_exempt(path: str, method: str) -> bool:
    if method in SAFE_METHODS:
        return True
    if not path.startswith("/api/"):
        return True
    if path in EXEMPT_PATHS:
        return True
    return path.startswith(EXEMPT_PREFIXES)


def init_csrf(app):
    """Register the CSRF before_request check (active when CSRF_ENABLED)."""

    @app.before_request
    def _check_csrf():
        if not app.config.get("CSRF_ENABLED", True):
            return None
        if _is_exempt(request.path, request.method):
            return None
        if validate_csrf_token(request.headers.get(CSRF_HEADER)):
            return None

        logger.warning(
            "CSRF validation failed: %s %s", request.method, request.path,
            extra={"method": request.method, "path": request.path},
        )
        return jsonify({
            "success": False,
            "error": "Invalid CSRF token",
            "code": "CSRF_VALIDATION_FAILED",
            "timestamp": utcnow().isoformat(),
        }), 403
