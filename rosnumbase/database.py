"""SQLite cache of numbering range assignments and feed locations."""

import contextlib
import dataclasses
import logging
import re
import sqlite3
from typing import Any, Iterator

from .config import SourceName

logger = logging.getLogger(__name__)

INTEGER_PATTERN = re.compile(r"^\s*\d+\s*$")

SCHEMA = """
CREATE TABLE IF NOT EXISTS "registry" (
    "id" INTEGER PRIMARY KEY AUTOINCREMENT,
    "source" TEXT,
    "code" INTEGER,
    "from" INTEGER,
    "to" INTEGER,
    "capacity" INTEGER,
    "operator" TEXT,
    "region" TEXT
);
CREATE TABLE IF NOT EXISTS "sources" (
    "source" TEXT PRIMARY KEY,
    "uri" TEXT
);
CREATE INDEX IF NOT EXISTS "registry_code" ON "registry" ("code");
CREATE INDEX IF NOT EXISTS "registry_operator" ON "registry" ("operator");
CREATE INDEX IF NOT EXISTS "registry_region" ON "registry" ("region");
"""


@dataclasses.dataclass(frozen=True)
class RegistryRecord:
    source: SourceName
    code: int
    number_from: int
    number_to: int
    capacity: int
    operator: str
    region: str


class StorageError(Exception):
    """An error raised when the SQLite backing store fails. The original
    sqlite3 error is available as ``__cause__``."""

    pass


class InvalidRecordError(ValueError):
    """An error raised when a range record is rejected before insertion."""

    field: str  # Name of the offending field
    value: Any  # The value that was supplied

    def __init__(self, field: str, value: Any, reason: str):
        super().__init__(f"Invalid {field} {value!r}: {reason}")
        self.field = field
        self.value = value


@contextlib.contextmanager
def _storage_errors() -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as e:
        raise StorageError(str(e)) from e


def _to_int(field: str, value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidRecordError(field, value, "expected an integer")
    if isinstance(value, int):
        if value < 0:
            raise InvalidRecordError(field, value, "must not be negative")
        return value
    if isinstance(value, str) and INTEGER_PATTERN.match(value):
        return int(value)
    raise InvalidRecordError(field, value, "expected an integer")


class RegistryDatabase:
    """An interface into the registry cache. Holds a single SQLite
    connection; not safe for use from several threads at once. Can be used
    as a context manager to close the connection on exit."""

    def __init__(self, path: str):
        self.path = path
        with _storage_errors():
            # Autocommit mode, transactions are opened explicitly
            self.conn = sqlite3.connect(path, isolation_level=None)
        self.conn.row_factory = sqlite3.Row

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def close(self) -> None:
        with _storage_errors():
            self.conn.close()

    def init_schema(self) -> None:
        """Create the tables and indexes if they do not exist yet."""
        with _storage_errors():
            self.conn.executescript(SCHEMA)

    def schema_exists(self) -> bool:
        with _storage_errors():
            rows = self.conn.execute(
                "SELECT name FROM sqlite_master WHERE type = 'table' AND name IN (?, ?)",
                ["registry", "sources"],
            ).fetchall()
        return len(rows) == 2

    def begin_transaction(self) -> None:
        with _storage_errors():
            self.conn.execute("BEGIN")

    def commit(self) -> None:
        with _storage_errors():
            self.conn.execute("COMMIT")

    def rollback(self) -> None:
        with _storage_errors():
            self.conn.execute("ROLLBACK")

    @contextlib.contextmanager
    def transaction(self) -> Iterator["RegistryDatabase"]:
        """Run the enclosed block in one transaction. Commits when the block
        completes and rolls back if it raises, including a failed commit."""

        self.begin_transaction()
        try:
            yield self
            self.commit()
        except BaseException:
            if self.conn.in_transaction:
                self.rollback()
            raise

    def add_record(
        self,
        source: SourceName,
        code: Any,
        number_from: Any,
        number_to: Any,
        capacity: Any,
        operator: Any,
        region: Any,
    ) -> None:
        """Insert one range record. Numeric fields may be integers or strings
        of digits; anything else, or a range whose start exceeds its end,
        raises InvalidRecordError."""

        code = _to_int("code", code)
        number_from = _to_int("from", number_from)
        number_to = _to_int("to", number_to)
        capacity = _to_int("capacity", capacity)
        if number_from > number_to:
            raise InvalidRecordError(
                "from", number_from, f"range start exceeds range end {number_to}"
            )

        with _storage_errors():
            self.conn.execute(
                'INSERT INTO "registry" ("source", "code", "from", "to", "capacity", '
                '"operator", "region") VALUES (?, ?, ?, ?, ?, ?, ?)',
                [
                    str(source),
                    code,
                    number_from,
                    number_to,
                    capacity,
                    str(operator).strip(),
                    str(region).strip(),
                ],
            )

    def flush_records(self, source: SourceName) -> int:
        """Delete every record of ``source`` and return how many were removed."""
        with _storage_errors():
            cursor = self.conn.execute(
                'DELETE FROM "registry" WHERE "source" = ?', [str(source)]
            )
        return cursor.rowcount

    def count_records(self, source: SourceName | None = None) -> int:
        with _storage_errors():
            if source is None:
                row = self.conn.execute('SELECT COUNT(*) FROM "registry"').fetchone()
            else:
                row = self.conn.execute(
                    'SELECT COUNT(*) FROM "registry" WHERE "source" = ?', [str(source)]
                ).fetchone()
        return row[0]

    def find_record(self, code: int, number: int) -> RegistryRecord | None:
        """Find the record whose range under ``code`` contains ``number``.
        Overlapping ranges have no defined precedence."""

        with _storage_errors():
            row = self.conn.execute(
                'SELECT * FROM "registry" WHERE "code" = ? AND "from" <= ? AND "to" >= ?',
                [code, number, number],
            ).fetchone()

        if row is None:
            return None

        return RegistryRecord(
            SourceName(row["source"]),
            row["code"],
            row["from"],
            row["to"],
            row["capacity"],
            row["operator"],
            row["region"],
        )

    def add_source(self, source: SourceName, uri: str) -> None:
        """Record the download location of ``source``, replacing any previous one."""
        with _storage_errors():
            self.conn.execute(
                'INSERT INTO "sources" ("source", "uri") VALUES (?, ?) '
                'ON CONFLICT("source") DO UPDATE SET "uri" = excluded."uri"',
                [str(source), uri],
            )

    def list_sources(self) -> dict[SourceName, str]:
        with _storage_errors():
            rows = self.conn.execute('SELECT "source", "uri" FROM "sources"').fetchall()
        return {SourceName(row["source"]): row["uri"] for row in rows}

    def list_operators(self) -> list[str]:
        with _storage_errors():
            rows = self.conn.execute(
                'SELECT DISTINCT "operator" FROM "registry" ORDER BY "operator" ASC'
            ).fetchall()
        return [row["operator"] for row in rows]

    def list_regions(self) -> list[str]:
        with _storage_errors():
            rows = self.conn.execute(
                'SELECT DISTINCT "region" FROM "registry" ORDER BY "region" ASC'
            ).fetchall()
        return [row["region"] for row in rows]
