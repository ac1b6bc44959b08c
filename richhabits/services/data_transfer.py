"""
Data Transfer Service — whole-database export and import.

Export reads every table in EXPORT_TABLES order and produces:
    - a JSON document keyed by export name (rows keyed by column name)
    - a human-readable text dump of the same rows

Import wipes the target tables in reverse order and re-inserts the export
in forward order with primary keys preserved, in a single transaction.
FKs that point "forward" in the order (users → manufacturers,
design_jobs → orders, resources → parent) are DEFERRABLE INITIALLY
DEFERRED, so they are checked at commit.
"""

import json
import logging
import os
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal

import sqlalchemy as sa

from richhabits.models import db
from richhabits.models.auth import Resource, Role, RolePermission, User, UserPermission
from richhabits.models.base import utcnow
from richhabits.models.catalog import Category, Manufacturer, Product, ProductVariant
from richhabits.models.commerce import Event, Quote, TeamStore
from richhabits.models.crm import Contact, Lead, Organization, Salesperson
from richhabits.models.design import DesignJob
from richhabits.models.manufacturing import Manufacturing, ManufacturingUpdate
from richhabits.models.notification import Notification
from richhabits.models.order import Order, OrderLineItem
from richhabits.models.preferences import Favorite, SavedView, UserAppConfig

logger = logging.getLogger(__name__)

DEFAULT_JSON_PATH = "production-data-export.json"
DEFAULT_TEXT_PATH = "production-data-export.txt"

# Dependency order: parents before children
EXPORT_TABLES = (
    ("users", User),
    ("salespersons", Salesperson),
    ("organizations", Organization),
    ("contacts", Contact),
    ("leads", Lead),
    ("categories", Category),
    ("products", Product),
    ("productVariants", ProductVariant),
    ("manufacturers", Manufacturer),
    ("designJobs", DesignJob),
    ("orders", Order),
    ("orderLineItems", OrderLineItem),
    ("manufacturing", Manufacturing),
    ("manufacturingUpdates", ManufacturingUpdate),
    ("favorites", Favorite),
    ("savedViews", SavedView),
    ("roles", Role),
    ("resources", Resource),
    ("rolePermissions", RolePermission),
    ("userPermissions", UserPermission),
    ("notifications", Notification),
    ("quotes", Quote),
    ("teamStores", TeamStore),
    ("events", Event),
    ("userAppConfigs", UserAppConfig),
)

EXPORT_NAMES = tuple(name for name, _ in EXPORT_TABLES)


# ═══════════════════════════════════════════════════════════════════════════
#  SERIALISATION
# ═══════════════════════════════════════════════════════════════════════════

def _to_json_value(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def _from_json_value(column, value):
    """Coerce an exported JSON value back to the column's Python type."""
    if value is None:
        return None
    col_type = column.type
    if isinstance(col_type, sa.DateTime) and isinstance(value, str):
        return datetime.fromisoformat(value)
    if isinstance(col_type, sa.Date) and isinstance(value, str):
        return date.fromisoformat(value[:10])
    if isinstance(col_type, sa.Numeric) and not isinstance(col_type, sa.Float):
        return Decimal(str(value))
    return value


def _serialise_row(table, row) -> dict:
    mapping = row._mapping
    return {col.name: _to_json_value(mapping[col]) for col in table.columns}


# ═══════════════════════════════════════════════════════════════════════════
#  EXPORT
# ═══════════════════════════════════════════════════════════════════════════

def source_database_url():
    """EXPORT_DATABASE_URL, falling back to DATABASE_URL (None → app DB)."""
    return os.getenv("EXPORT_DATABASE_URL") or os.getenv("DATABASE_URL") or None


@contextmanager
def _source_connection(database_url=None):
    if database_url is None:
        yield db.session.connection()
        return

    url = database_url.replace("postgres://", "postgresql://", 1)
    engine = sa.create_engine(url)
    try:
        with engine.connect() as conn:
            yield conn
    finally:
        engine.dispose()


def export_all(database_url=None) -> dict:
    """
    Read every table in EXPORT_TABLES order.

    Args:
        database_url: Optional source database; defaults to the app's DB.

    Returns:
        {export_name: [row dicts]} with ISO datetimes and string decimals.
    """
    data = {}
    with _source_connection(database_url) as conn:
        for name, model in EXPORT_TABLES:
            table = model.__table__
            rows = conn.execute(sa.select(table).order_by(table.c.id)).all()
            data[name] = [_serialise_row(table, row) for row in rows]
            logger.info("  exported %-22s %d rows", name, len(data[name]))
    return data


def _display_value(value) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def render_text_dump(data: dict, exported_at=None) -> str:
    """Human-readable dump: header, then per table a banner and every record."""
    rule = "=" * 80
    exported_at = exported_at or utcnow()
    lines = [
        "PRODUCTION DATABASE EXPORT",
        rule,
        f"Export Date: {exported_at.isoformat()}",
        rule,
        "",
    ]
    for name, records in data.items():
        lines += ["", rule, f"TABLE: {name.upper()}", f"Total Records: {len(records)}", rule, ""]
        for index, record in enumerate(records, start=1):
            lines.append(f"--- Record {index} ---")
            lines += [f"  {key}: {_display_value(value)}" for key, value in record.items()]
            lines.append("")
    return "\n".join(lines) + "\n"


def write_export(path_json=DEFAULT_JSON_PATH, path_txt=DEFAULT_TEXT_PATH, database_url=None) -> dict:
    """Export the database to ``path_json`` and ``path_txt``.

    Returns:
        {export_name: row_count}
    """
    data = export_all(database_url)

    with open(path_json, "w", encoding="utf-8") as fh:
        json.dump(data, fh, indent=2)
    with open(path_txt, "w", encoding="utf-8") as fh:
        fh.write(render_text_dump(data))

    logger.info("Export written to %s and %s", path_json, path_txt)
    return {name: len(rows) for name, rows in data.items()}


def read_export(path_json=DEFAULT_JSON_PATH) -> dict:
    """Load an export file. Raises FileNotFoundError when it is missing."""
    with open(path_json, encoding="utf-8") as fh:
        return json.load(fh)


# ═══════════════════════════════════════════════════════════════════════════
#  IMPORT
# ═══════════════════════════════════════════════════════════════════════════

def _reset_sequences(conn) -> None:
    """Move PostgreSQL id sequences past the imported primary keys."""
    if conn.dialect.name != "postgresql":
        return
    for _, model in EXPORT_TABLES:
        table = model.__table__.name
        conn.execute(sa.text(
            f"SELECT setval(pg_get_serial_sequence('{table}', 'id'), "
            f"COALESCE((SELECT MAX(id) FROM \"{table}\"), 1), "
            f"(SELECT MAX(id) FROM \"{table}\") IS NOT NULL)"
        ))


def import_all(data: dict) -> dict:
    """
    Replace the database contents with ``data`` (as produced by export_all).

    Tables missing from ``data`` are wiped and left empty. Everything runs
    in one transaction; any failure rolls the whole import back.

    Returns:
        {export_name: rows_inserted}
    """
    unknown = set(data) - set(EXPORT_NAMES)
    if unknown:
        logger.warning("Ignoring unknown tables in export: %s", sorted(unknown))

    counts = {}
    try:
        conn = db.session.connection()

        logger.info("Clearing existing data...")
        for name, model in reversed(EXPORT_TABLES):
            conn.execute(model.__table__.delete())

        logger.info("Importing data...")
        for name, model in EXPORT_TABLES:
            table = model.__table__
            records = data.get(name) or []
            rows = [
                {col.name: _from_json_value(col, record.get(col.name))
                 for col in table.columns if col.name in record}
                for record in records
            ]
            if rows:
                conn.execute(table.insert(), rows)
            counts[name] = len(rows)
            logger.info("  imported %-22s %d rows", name, len(rows))

        _reset_sequences(conn)
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Import failed; all changes rolled back")
        raise

    return counts
