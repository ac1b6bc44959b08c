#!/usr/bin/env python3
"""
Export Data — dump every table to JSON plus a human-readable text file.

Usage:
    python scripts/export_data.py
    python scripts/export_data.py --json-path backup.json --text-path backup.txt

The source database is EXPORT_DATABASE_URL, falling back to DATABASE_URL.
Exits 1 on failure.
"""

import argparse
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from richhabits import create_app  # noqa: E402
from richhabits.services.data_transfer import (  # noqa: E402
    DEFAULT_JSON_PATH,
    DEFAULT_TEXT_PATH,
    source_database_url,
    write_export,
)

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger("export_data")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Export all tables to JSON + text")
    parser.add_argument("--json-path", default=DEFAULT_JSON_PATH)
    parser.add_argument("--text-path", default=DEFAULT_TEXT_PATH)
    args = parser.parse_args(argv)

    app = create_app()
    with app.app_context():
        try:
            counts = write_export(args.json_path, args.text_path,
                                  database_url=source_database_url())
        except Exception:
            logger.exception("Export failed")
            return 1

    logger.info("=" * 60)
    for name, count in counts.items():
        logger.info("  %-22s %d", name, count)
    logger.info("Exported %d records across %d tables", sum(counts.values()), len(counts))
    return 0


if __name__ == "__main__":
    sys.exit(main())
