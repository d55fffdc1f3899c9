from __future__ import annotations

import argparse
import logging
import sys

from bootstrap import (
    MIGRATION_MARKER_KEY,
    clear_bootstrap_marker,
    has_bootstrap_marker,
    run_bootstrap_migrations,
    set_bootstrap_marker,
)

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create voting tables and apply ledger/rubric migrations.")
    parser.add_argument("--force", action="store_true", help="Run even when the migration marker is already set.")
    parser.add_argument("--reset-marker", action="store_true", help=f"Remove `{MIGRATION_MARKER_KEY}` and exit.")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    if args.reset_marker:
        logger.info("Marker `%s` %s.", MIGRATION_MARKER_KEY, "removed" if clear_bootstrap_marker() else "was not set")
        return 0

    if has_bootstrap_marker() and not args.force:
        logger.info("Migrations already applied (marker `%s`). Use --force to rerun.", MIGRATION_MARKER_KEY)
        return 0

    run_bootstrap_migrations()
    set_bootstrap_marker()
    logger.info("Migrations applied.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
