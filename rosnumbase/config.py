"""Configuration for the numbering registry sources."""

import logging
import re
from pathlib import Path
from typing import Final, NewType

# Feed identifier shared by the sources table and the registry table
SourceName = NewType("SourceName", str)

SOURCE_PAGE: Final[str] = "http://opendata.digital.gov.ru/registry/numeric/downloads/"

# Each feed URL ends with a query value that changes whenever the file is republished
SOURCES: Final[dict[SourceName, re.Pattern[str]]] = {
    SourceName("ABC3XX"): re.compile(r"http://opendata\.digital\.gov\.ru/downloads/ABC-3xx\.csv\?\d+"),
    SourceName("ABC4XX"): re.compile(r"http://opendata\.digital\.gov\.ru/downloads/ABC-4xx\.csv\?\d+"),
    SourceName("ABC8XX"): re.compile(r"http://opendata\.digital\.gov\.ru/downloads/ABC-8xx\.csv\?\d+"),
    SourceName("DEF9XX"): re.compile(r"http://opendata\.digital\.gov\.ru/downloads/DEF-9xx\.csv\?\d+"),
}

RANGE_PIECES: Final[int] = 15

HTTP_TIMEOUT: Final[float] = 30.0

DEFAULT_DB_FILE: Final[str] = str(Path.home() / ".rosnumbase.db")

CSV_DELIMITER: Final[str] = ";"
CSV_COLUMNS: Final[int] = 6


def setup_logging() -> None:
    """Configure logging for the application."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
