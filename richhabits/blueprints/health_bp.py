"""
Health check blueprint.

    GET /api/health       liveness; 200 whenever the process is serving
    GET /api/ready        readiness booleans; always 200
    GET /health/details   per-dependency status and latency; 503 when the DB is down
"""

import logging
import platform
import time

import redis as redis_lib
from flask import Blueprint, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError

from richhabits.models import db
from richhabits.models.base import utcnow

logger = logging.getLogger(__name__)

health_bp = Blueprint("health_bp", __name__)

_STARTED_AT = time.monotonic()


def _uptime():
    return round(time.monotonic() - _STARTED_AT, 3)


def _environment():
    if current_app.testing:
        return "testing"
    return "development" if current_app.debug else "production"


def _elapsed_ms(t0):
    return round((time.perf_counter() - t0) * 1000, 1)


def check_database():
    """``{"status": "ok", "latency_ms": ...}`` or ``{"status": "error", "detail": ...}``."""
    t0 = time.perf_counter()
    try:
        db.session.execute(db.text("SELECT 1"))
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Database health check failed: %s", exc)
        return {"status": "error", "detail": str(exc)}
    return {"status": "ok", "latency_ms": _elapsed_ms(t0)}


def check_redis():
    # Redis only backs the rate limiter; its failure never degrades overall status
    redis_url = current_app.config.get("REDIS_URL") or ""
    if not redis_url.startswith(("redis://", "rediss://")):
        return {"status": "skipped", "detail": "no REDIS_URL configured"}
    t0 = time.perf_counter()
    try:
        redis_lib.from_url(redis_url, socket_timeout=2).ping()
    except redis_lib.RedisError as exc:
        logger.warning("Redis health check failed: %s", exc)
        return {"status": "error", "detail": str(exc)}
    return {"status": "ok", "latency_ms": _elapsed_ms(t0)}


@health_bp.route("/api/health", methods=["GET"])
def health():
    return jsonify({
        "status": "healthy",
        "timestamp": utcnow().isoformat(),
        "uptime": _uptime(),
        "environment": _environment(),
        "version": current_app.config.get("APP_VERSION", "1.0.0"),
    }), 200


@health_bp.route("/api/ready", methods=["GET"])
def ready():
    """Readiness probe; a failed DB check is reported, not turned into a 5xx."""
    return jsonify({
        "status": "ready",
        "timestamp": utcnow().isoformat(),
        "checks": {
            "database": check_database()["status"] == "ok",
            "session": bool(current_app.secret_key),
            "auth": "auth_bp" in current_app.blueprints,
        },
    }), 200


@health_bp.route("/health/details", methods=["GET"])
def details():
    checks = {
        "database": check_database(),
        "redis": check_redis(),
        "app": {
            "name": current_app.config.get("APP_NAME", "Rich Habits OS"),
            "version": current_app.config.get("APP_VERSION", "1.0.0"),
            "python": platform.python_version(),
            "debug": current_app.debug,
            "testing": current_app.testing,
        },
    }
    healthy = checks["database"]["status"] == "ok"
    return jsonify({
        "status": "ok" if healthy else "degraded",
        "timestamp": utcnow().isoformat(),
        "uptime": _uptime(),
        "environment": _environment(),
        "checks": checks,
    }), 200 if healthy else 503
