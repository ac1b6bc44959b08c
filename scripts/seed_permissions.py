#!/usr/bin/env python3
"""
Seed Permissions — system roles, resources and the role × resource matrix.

Usage:
    python scripts/seed_permissions.py              # insert missing rows only
    python scripts/seed_permissions.py --overwrite  # also reset edited role rows

Idempotent: without --overwrite, rows an admin has edited are left alone.
"""

import argparse
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from richhabits import create_app  # noqa: E402
from richhabits.services.permission_service import seed_permissions  # noqa: E402

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger("seed_permissions")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Seed roles, resources and role permissions")
    parser.add_argument("--overwrite", action="store_true",
                        help="Reset existing role rows to the static table")
    args = parser.parse_args(argv)

    app = create_app()
    with app.app_context():
        try:
            stats = seed_permissions(overwrite=args.overwrite)
        except Exception:
            logger.exception("Permission seed failed")
            return 1

    for key, value in stats.items():
        logger.info("  %-22s %s", key, value)
    logger.info("Permission seed complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
