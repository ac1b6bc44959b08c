"""JSON error bodies for the API.

Every error the API emits has the shape
``{"error": message, "code": code[, "details": {...}]}``.

    from richhabits.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Lead not found")
    return api_error(E.VALIDATION_INVALID, "Invalid stage", details={"allowed": [...]})

``register_error_handlers`` maps the service-layer exceptions and the
HTTP-level failures (404, 405, 413, 415, 429, 500) onto the same shape.
"""

from __future__ import annotations

import logging

from flask import Flask, jsonify, request

from richhabits.core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDenied,
    TransitionError,
    ValidationError,
)

logger = logging.getLogger(__name__)


class E:
    """Error codes carried in the ``code`` field."""

    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    BUSINESS_RULE = "ERR_BUSINESS_RULE"

    UNAUTHENTICATED = "ERR_UNAUTHENTICATED"
    FORBIDDEN = "ERR_FORBIDDEN"
    NOT_FOUND = "ERR_NOT_FOUND"
    METHOD_NOT_ALLOWED = "ERR_METHOD_NOT_ALLOWED"

    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    CONFLICT_STATE = "ERR_CONFLICT_STATE"

    PAYLOAD_TOO_LARGE = "ERR_PAYLOAD_TOO_LARGE"
    UNSUPPORTED_MEDIA = "ERR_UNSUPPORTED_MEDIA"
    RATE_LIMITED = "ERR_RATE_LIMITED"

    INTERNAL = "ERR_INTERNAL"


_STATUS_FOR_CODE: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.BUSINESS_RULE: 422,
    E.UNAUTHENTICATED: 401,
    E.FORBIDDEN: 403,
    E.NOT_FOUND: 404,
    E.METHOD_NOT_ALLOWED: 405,
    E.CONFLICT_DUPLICATE: 409,
    E.CONFLICT_STATE: 409,
    E.PAYLOAD_TOO_LARGE: 413,
    E.UNSUPPORTED_MEDIA: 415,
    E.RATE_LIMITED: 429,
    E.INTERNAL: 500,
}


def api_error(code: str, message: str, *, status: int | None = None,
              details: dict | None = None, **extra):
    """Build ``(response, status)`` for a Flask view.

    ``status`` overrides the code's usual HTTP status. Keyword ``extra``
    fields are copied into the top level of the body.
    """
    body: dict = {"error": message, "code": code}
    if details:
        body["details"] = details
    body.update(extra)
    return jsonify(body), status or _STATUS_FOR_CODE.get(code, 400)


def register_error_handlers(app: Flask) -> None:
    """Attach JSON handlers for service exceptions and HTTP errors."""

    @app.errorhandler(NotFoundError)
    def _not_found_error(e):
        return api_error(E.NOT_FOUND, str(e))

    @app.errorhandler(ValidationError)
    def _validation_error(e):
        code = E.BUSINESS_RULE if e.status == 422 else E.VALIDATION_INVALID
        return api_error(code, str(e), status=e.status, details=e.details or None)

    @app.errorhandler(ConflictError)
    def _conflict_error(e):
        return api_error(E.CONFLICT_DUPLICATE, str(e))

    @app.errorhandler(PermissionDenied)
    def _permission_denied(e):
        return api_error(E.FORBIDDEN, str(e))

    @app.errorhandler(TransitionError)
    def _transition_error(e):
        return api_error(E.CONFLICT_STATE, e.reason,
                         details={"from": e.current, "to": e.target})

    @app.errorhandler(404)
    def _http_404(e):
        if request.path.startswith("/api/"):
            return api_error(E.NOT_FOUND, "Not found", path=request.path)
        return e

    @app.errorhandler(405)
    def _http_405(e):
        return api_error(E.METHOD_NOT_ALLOWED, "Method not allowed")

    @app.errorhandler(413)
    def _http_413(e):
        return api_error(E.PAYLOAD_TOO_LARGE, "Request body too large")

    @app.errorhandler(415)
    def _http_415(e):
        return api_error(E.UNSUPPORTED_MEDIA, e.description)

    @app.errorhandler(429)
    def _http_429(e):
        return api_error(E.RATE_LIMITED, "Too many requests", retry_after=e.description)

    @app.errorhandler(500)
    def _http_500(e):
        logger.error("Unhandled error on %s %s: %s", request.method, request.path, e,
                     exc_info=True)
        if request.path.startswith("/api/"):
            return api_error(E.INTERNAL, "Internal server error")
        return "<h1>500 Internal Server Error</h1>", 500
