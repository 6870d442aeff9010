#!/usr/bin/env python3
"""Command-line interface for the numbering registry cache."""

import argparse
import logging
import sys

from .config import DEFAULT_DB_FILE, setup_logging
from .database import RegistryDatabase, StorageError
from .ingest import lookup, update_registry
from .parse import InvalidNumberError
from .utilities import DiscoveryError

logger = logging.getLogger(__name__)


def main() -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Russian numbering registry lookup",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--db",
        default=DEFAULT_DB_FILE,
        metavar="PATH",
        help=f"Path to the registry database (default: {DEFAULT_DB_FILE})",
    )

    parser.add_argument(
        "--update",
        action="store_true",
        help="Download changed registry feeds and refresh the database",
    )

    parser.add_argument(
        "--attempts",
        type=int,
        default=3,
        metavar="N",
        help="Maximum attempts for fetching the feed listing page (default: 3)",
    )

    parser.add_argument(
        "--lookup",
        nargs="+",
        metavar="NUMBER",
        help="Look up the operator and region of phone numbers (e.g., +79161234567)",
    )

    parser.add_argument(
        "--operators",
        action="store_true",
        help="List all operators in the database",
    )

    parser.add_argument(
        "--regions",
        action="store_true",
        help="List all regions in the database",
    )

    args = parser.parse_args()

    # Configure logging
    setup_logging()

    if not (args.update or args.lookup or args.operators or args.regions):
        parser.print_help()
        return 0

    try:
        with RegistryDatabase(args.db) as db:
            if args.update:
                return _update(db, args.attempts)

            if not db.schema_exists():
                logger.error("Registry database %s is empty. Run --update first.", args.db)
                return 1

            if args.lookup:
                return _lookup(db, args.lookup)

            if args.operators:
                for operator in db.list_operators():
                    print(operator)
                return 0

            for region in db.list_regions():
                print(region)
            return 0

    except StorageError as e:
        logger.error("Database error: %s", e)
        return 1


def _update(db: RegistryDatabase, attempts: int) -> int:
    logger.info("Updating registry database %s...", db.path)
    try:
        statuses = update_registry(db, attempts=attempts)
    except DiscoveryError as e:
        logger.error("Could not fetch feed listing: %s", e)
        return 1

    logger.info("Update results:")
    for name, status in statuses.items():
        status_symbol = {
            "updated": "✓",
            "not_modified": "-",
            "error": "✗",
        }.get(status, "?")

        log_func = logger.error if status == "error" else logger.info
        log_func("  %s %s: %s", status_symbol, name, status)

    if any(status == "error" for status in statuses.values()):
        return 1

    return 0


def _lookup(db: RegistryDatabase, numbers: list[str]) -> int:
    result = 0
    for number in numbers:
        try:
            record = lookup(db, number)
        except InvalidNumberError as e:
            logger.error("%s", e)
            result = 1
            continue

        if record is None:
            logger.warning("%s: not found", number)
            result = 1
            continue

        print(f"{number}\t{record.operator}\t{record.region}")

    return result


if __name__ == "__main__":
    sys.exit(main())
