"""Refresh the registry cache from the published feeds and query it."""

import logging

from .config import SourceName
from .database import InvalidRecordError, RegistryDatabase, RegistryRecord
from .parse import parse_registry_csv, split_number
from .utilities import DiscoveryError, Downloader, DownloadEvent, call_with_retry

logger = logging.getLogger(__name__)


def update_registry(
    db: RegistryDatabase,
    downloader: Downloader | None = None,
    attempts: int = 1,
    min_wait: int = 1,
) -> dict[SourceName, str]:
    """
    Download changed feeds and replace their records in the cache.

    Each feed is refreshed inside its own transaction: its old records are
    deleted and the new ones inserted, and its location is recorded only
    after the transaction commits. Storage errors propagate after the
    transaction has been rolled back.

    Args:
        db: Open registry database
        downloader: Downloader to use, a new one by default. Its previous
            sources are replaced with the locations stored in ``db``
        attempts: Maximum attempts for fetching the listing page
        min_wait: Minimum wait between those attempts in seconds

    Returns:
        Dict mapping feed names to "updated", "not_modified" or "error"

    Raises:
        DiscoveryError: If the listing page could not be fetched
        StorageError: If the database fails
    """
    if not db.schema_exists():
        logger.info("Creating registry schema in %s", db.path)
        db.init_schema()

    statuses: dict[SourceName, str] = {}

    def on_request(name):
        logger.info("Checking %s...", name)

    def on_no_updates(name):
        logger.info("  %s has no updates", name)
        statuses[name] = "not_modified"

    def on_http_error(name, code):
        logger.error("  HTTP %d for %s", code, name)
        statuses[name] = "error"

    def on_request_error(name, error):
        logger.error("  Error downloading %s: %s", name, error)
        statuses[name] = "error"

    def on_success(name, uri, data):
        logger.info("  Downloaded %s (%d characters)", name, len(data))

    if downloader is None:
        downloader = Downloader()
    downloader.previous_sources = db.list_sources()
    downloader.register(DownloadEvent.REQUEST, on_request)
    downloader.register(DownloadEvent.NO_UPDATES, on_no_updates)
    downloader.register(DownloadEvent.HTTP_ERROR, on_http_error)
    downloader.register(DownloadEvent.REQUEST_ERROR, on_request_error)
    downloader.register(DownloadEvent.SUCCESS, on_success)

    call_with_retry(
        downloader.discover_sources,
        retry_on=DiscoveryError,
        max_attempts=attempts,
        min_wait=min_wait,
    )
    results = downloader.download()

    for name, result in results.items():
        inserted = 0
        skipped = 0
        with db.transaction():
            flushed = db.flush_records(name)
            for row in parse_registry_csv(result["data"]):
                try:
                    db.add_record(name, *row)
                except InvalidRecordError as e:
                    logger.warning("  Skipping %s record: %s", name, e)
                    skipped += 1
                    continue
                inserted += 1
        db.add_source(name, result["uri"])

        logger.info(
            "  %s: replaced %d records with %d (%d skipped)",
            name,
            flushed,
            inserted,
            skipped,
        )
        statuses[name] = "updated"

    return statuses


def lookup(db: RegistryDatabase, number: str) -> RegistryRecord | None:
    """
    Find the range record holding a phone number.

    Raises:
        InvalidNumberError: If ``number`` is not a valid national number
    """
    code, subscriber = split_number(number)
    return db.find_record(code, subscriber)
