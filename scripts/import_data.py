#!/usr/bin/env python3
"""
Import Data — replace the database contents with an export file.

Usage:
    python scripts/import_data.py
    python scripts/import_data.py --json-path backup.json

DESTRUCTIVE: every exported table is wiped first. The whole import runs in
one transaction. Exits 1 when the file is missing or the import fails.
"""

import argparse
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from richhabits import create_app  # noqa: E402
from richhabits.services.data_transfer import (  # noqa: E402
    DEFAULT_JSON_PATH,
    import_all,
    read_export,
)

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger("import_data")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Import an export file (wipes existing data)")
    parser.add_argument("--json-path", default=DEFAULT_JSON_PATH)
    args = parser.parse_args(argv)

    if not os.path.exists(args.json_path):
        logger.error("Export file not found: %s", args.json_path)
        return 1

    app = create_app()
    with app.app_context():
        try:
            counts = import_all(read_export(args.json_path))
        except Exception:
            logger.exception("Import failed")
            return 1

    logger.info("=" * 60)
    for name, count in counts.items():
        logger.info("  %-22s %d", name, count)
    logger.info("Imported %d records", sum(counts.values()))
    return 0


if __name__ == "__main__":
    sys.exit(main())
