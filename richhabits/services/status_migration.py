"""
Manufacturing status migration — legacy values onto the 7-stage workflow.

    pending      → awaiting_admin_confirmation
    in_progress  → cutting_sewing
    complete     → complete

Applied to ``manufacturing`` then ``manufacturing_updates``. Every
(table, old → new) step commits together with its DataMigrationLog row, so
an interrupted run resumes at the first unlogged step. ``force`` re-runs
logged steps; ``dry_run`` only counts.
"""

import logging

from flask import has_app_context

from richhabits.models import db
from richhabits.models.manufacturing import Manufacturing, ManufacturingUpdate
from richhabits.models.migration_log import DataMigrationLog
from richhabits.services.workflow import LEGACY_MANUFACTURING_STATUS_MAP

logger = logging.getLogger(__name__)

MIGRATION_NAME = "manufacturing_status_workflow"

# Table name → model, in the order the steps run
MIGRATION_TABLES = (
    ("manufacturing", Manufacturing),
    ("manufacturing_updates", ManufacturingUpdate),
)


def _step_log(table_name, old, new):
    return DataMigrationLog.query.filter_by(
        migration=MIGRATION_NAME, table_name=table_name, old_value=old, new_value=new,
    ).first()


def _run_step(model, table_name, old, new, force):
    """Rewrite one (table, old → new) pair and write its log row in one transaction."""
    try:
        if old != new:
            updated = (
                db.session.query(model)
                .filter(model.status == old)
                .update({model.status: new}, synchronize_session=False)
            )
        else:
            updated = 0

        log = _step_log(table_name, old, new) if force else None
        if log is None:
            log = DataMigrationLog(
                migration=MIGRATION_NAME, table_name=table_name, old_value=old, new_value=new,
            )
            db.session.add(log)
        log.rows_updated = updated
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Migration step %s: %s → %s failed; rolled back", table_name, old, new)
        raise
    return updated


def _migrate(dry_run=False, force=False):
    stats = {"steps": [], "updated": 0, "skipped": 0, "dryRun": dry_run}

    for table_name, model in MIGRATION_TABLES:
        for old, new in LEGACY_MANUFACTURING_STATUS_MAP.items():
            step = {"table": table_name, "from": old, "to": new}

            if not force and _step_log(table_name, old, new) is not None:
                step["status"] = "skipped"
                stats["skipped"] += 1
                stats["steps"].append(step)
                logger.info("  %s: %s → %s already applied, skipping", table_name, old, new)
                continue

            matching = model.query.filter(model.status == old).count()
            if dry_run:
                step["status"] = "dry_run"
                step["rows"] = matching
                stats["steps"].append(step)
                logger.info("  [dry-run] %s: %d rows %s → %s", table_name, matching, old, new)
                continue

            updated = _run_step(model, table_name, old, new, force)
            step["status"] = "applied"
            step["rows"] = updated
            stats["updated"] += updated
            stats["steps"].append(step)
            logger.info("  %s: %d rows %s → %s", table_name, updated, old, new)

    return stats


def migrate_manufacturing_statuses(app=None, dry_run=False, force=False):
    """Run the migration.

    Args:
        app: Flask app; required when called outside an app context.
        dry_run: report row counts per step without writing.
        force: ignore the log and re-run every step.

    Returns:
        {"steps": [...], "updated": N, "skipped": N, "dryRun": bool}
    """
    if has_app_context():
        return _migrate(dry_run=dry_run, force=force)
    if app is None:
        raise RuntimeError("migrate_manufacturing_statuses() needs an app or an app context")
    with app.app_context():
        return _migrate(dry_run=dry_run, force=force)
