#!/usr/bin/env python3
"""
Manufacturing status migration — rewrite legacy statuses onto the 7-stage workflow.

Usage:
    python scripts/migrate_manufacturing_statuses.py            # apply pending steps
    python scripts/migrate_manufacturing_statuses.py --dry-run  # count only
    python scripts/migrate_manufacturing_statuses.py --force    # re-run logged steps

Each step commits with its log row, so an interrupted run can simply be
started again. Exits non-zero on failure.
"""

import argparse
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from richhabits import create_app  # noqa: E402
from richhabits.services.status_migration import migrate_manufacturing_statuses  # noqa: E402

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger("migrate_manufacturing_statuses")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Migrate legacy manufacturing statuses")
    parser.add_argument("--dry-run", action="store_true", help="Report counts without writing")
    parser.add_argument("--force", action="store_true", help="Ignore the migration log")
    args = parser.parse_args(argv)

    app = create_app()
    try:
        stats = migrate_manufacturing_statuses(app, dry_run=args.dry_run, force=args.force)
    except Exception:
        logger.exception("Manufacturing status migration failed")
        return 1

    logger.info("=" * 60)
    logger.info("Updated %d rows, skipped %d steps%s", stats["updated"], stats["skipped"],
                " (dry run)" if stats["dryRun"] else "")
    return 0


if __name__ == "__main__":
    sys.exit(main())
