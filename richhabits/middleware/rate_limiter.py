"""
Rate limiting configuration.

The Limiter instance is created in ``richhabits/__init__.py`` with no
default limits; this module applies limits per blueprint:

    - auth (login):   10/minute per IP (credential stuffing)
    - upload:         30/minute per IP
    - write-heavy:    120/minute per IP
    - health:         exempt

Usage:
    from richhabits.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

LOGIN_LIMIT = "10/minute"
UPLOAD_LIMIT = "30/minute"
WRITE_LIMIT = "120/minute"

_WRITE_BLUEPRINTS = (
    "leads_bp", "orders_bp", "design_jobs_bp", "manufacturing_bp",
    "commerce_bp", "permissions_bp",
)


def init_rate_limits(app, limiter):
    """
    Apply per-blueprint rate limits.

    The login view carries its own ``@limiter.limit(LOGIN_LIMIT)`` so the
    rest of the auth blueprint (``/api/auth/user`` polled by the SPA) is
    not throttled. Rate limiting is disabled in testing mode.
    """

    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    bp = app.blueprints.get("upload_bp")
    if bp:
        limiter.limit(UPLOAD_LIMIT)(bp)

    for bp_name in _WRITE_BLUEPRINTS:
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(WRITE_LIMIT)(bp)

    bp = app.blueprints.get("health_bp")
    if bp:
        limiter.exempt(bp)

    app.logger.info(
        "Rate limiter configured — login: %s, upload: %s, write: %s",
        LOGIN_LIMIT, UPLOAD_LIMIT, WRITE_LIMIT,
    )
