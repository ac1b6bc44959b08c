"""
Rich Habits OS
Flask Application Factory.

Usage:
    from richhabits import create_app
    app = create_app()           # defaults to APP_ENV, else "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

import click
from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from richhabits.config import config
from richhabits.models import db
from richhabits.auth import init_auth
from richhabits.middleware.csrf import init_csrf
from richhabits.middleware.logging_config import configure_logging
from richhabits.middleware.rate_limiter import init_rate_limits
from richhabits.middleware.security_headers import init_security_headers
from richhabits.middleware.timing import init_request_timing
from richhabits.utils.errors import register_error_handlers

logger = logging.getLogger(__name__)

# ── SQLite FK enforcement (global engine event) ─────────────────────────
from sqlalchemy import event as _sa_event, engine as _sa_engine  # noqa: E402


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # no global limit; applied per blueprint
    storage_uri=os.getenv("REDIS_URL") or "memory://",
)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    # Instantiated so ProductionConfig can refuse to start without its env vars
    app.config.from_object(config[config_name]())

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(
            app,
            origins=[o.strip() for o in cors_origins.split(",") if o.strip()],
            supports_credentials=True,
        )
    else:
        CORS(app)

    # ── Request timing middleware ────────────────────────────────────────
    init_request_timing(app)

    # ── Session auth + CSRF ──────────────────────────────────────────────
    init_auth(app)
    init_csrf(app)

    # ── Security headers ─────────────────────────────────────────────────
    init_security_headers(app)

    # ── Request guards (input length + Content-Type) ─────────────────────
    app.config.setdefault("MAX_CONTENT_LENGTH", 2 * 1024 * 1024)  # 2 MB

    @app.before_request
    def _guard_request():
        from flask import abort
        max_len = app.config.get("MAX_CONTENT_LENGTH")
        if max_len and request.content_length and request.content_length > max_len:
            abort(413, description="Request body too large")
        if request.method in ("POST", "PUT", "PATCH") and request.path.startswith("/api/"):
            ct = request.content_type or ""
            if request.data and "json" not in ct and "multipart/form-data" not in ct:
                abort(415, description="Content-Type must be application/json")

    # ── Import all models so create_all / Flask-Migrate see them ─────────
    from richhabits.models import auth as _auth_models              # noqa: F401
    from richhabits.models import crm as _crm_models                # noqa: F401
    from richhabits.models import catalog as _catalog_models        # noqa: F401
    from richhabits.models import order as _order_models            # noqa: F401
    from richhabits.models import design as _design_models          # noqa: F401
    from richhabits.models import manufacturing as _manufacturing_models  # noqa: F401
    from richhabits.models import notification as _notification_models  # noqa: F401
    from richhabits.models import commerce as _commerce_models      # noqa: F401
    from richhabits.models import preferences as _preferences_models  # noqa: F401
    from richhabits.models import migration_log as _migration_log_models  # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) + permission seed ──────
    with app.app_context():
        try:
            db.create_all()
            app.logger.info("db.create_all() completed successfully")
        except Exception as e:
            app.logger.warning("db.create_all() failed: %s", e)

        if app.config.get("PERMISSIONS_AUTO_SEED"):
            from richhabits.services.permission_service import seed_permissions
            try:
                seed_permissions()
            except Exception:
                db.session.rollback()
                app.logger.exception("Permission auto-seed failed; static fallback stays in effect")

    # ── Blueprints ───────────────────────────────────────────────────────
    from richhabits.blueprints.health_bp import health_bp
    from richhabits.blueprints.auth_bp import auth_bp
    from richhabits.blueprints.permissions_bp import permissions_bp
    from richhabits.blueprints.leads_bp import leads_bp
    from richhabits.blueprints.orders_bp import orders_bp
    from richhabits.blueprints.design_jobs_bp import design_jobs_bp
    from richhabits.blueprints.manufacturing_bp import manufacturing_bp
    from richhabits.blueprints.commerce_bp import commerce_bp
    from richhabits.blueprints.notification_bp import notification_bp
    from richhabits.blueprints.upload_bp import upload_bp
    from richhabits.blueprints.app_config_bp import app_config_bp
    from richhabits.blueprints.hub_bp import hub_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(permissions_bp)
    app.register_blueprint(leads_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(design_jobs_bp)
    app.register_blueprint(manufacturing_bp)
    app.register_blueprint(commerce_bp)
    app.register_blueprint(notification_bp)
    app.register_blueprint(upload_bp)
    app.register_blueprint(app_config_bp)
    app.register_blueprint(hub_bp)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("seed-permissions")
    @click.option("--overwrite", is_flag=True, help="Reset edited role rows to the static table.")
    def seed_permissions_cmd(overwrite):
        """Write system roles, resources and role permissions."""
        from richhabits.services.permission_service import seed_permissions
        stats = seed_permissions(overwrite=overwrite)
        click.echo(f"Permission seed: {stats}")

    @app.cli.command("export-data")
    @click.option("--json-path", default="production-data-export.json")
    @click.option("--text-path", default="production-data-export.txt")
    def export_data_cmd(json_path, text_path):
        """Export every table to JSON and a text dump."""
        from richhabits.services.data_transfer import source_database_url, write_export
        counts = write_export(json_path, text_path, database_url=source_database_url())
        for name, count in counts.items():
            click.echo(f"  {name}: {count}")

    @app.cli.command("import-data")
    @click.option("--json-path", default="production-data-export.json")
    def import_data_cmd(json_path):
        """Replace the database contents with an export file."""
        from richhabits.services.data_transfer import import_all, read_export
        if not os.path.exists(json_path):
            raise click.ClickException(f"Export file not found: {json_path}")
        counts = import_all(read_export(json_path))
        for name, count in counts.items():
            click.echo(f"  {name}: {count}")

    @app.cli.command("migrate-manufacturing-statuses")
    @click.option("--dry-run", is_flag=True)
    @click.option("--force", is_flag=True)
    def migrate_manufacturing_statuses_cmd(dry_run, force):
        """Rewrite legacy manufacturing statuses onto the 7-stage workflow."""
        from richhabits.services.status_migration import migrate_manufacturing_statuses
        stats = migrate_manufacturing_statuses(dry_run=dry_run, force=force)
        click.echo(f"Updated {stats['updated']} rows, skipped {stats['skipped']} steps")

    # ── Error handlers ───────────────────────────────────────────────────
    register_error_handlers(app)

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
