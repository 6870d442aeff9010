"""Parser for the numbering registry CSV feeds."""

import csv
import io
import logging
from typing import Iterator, NamedTuple

from ..config import CSV_COLUMNS, CSV_DELIMITER

logger = logging.getLogger(__name__)


class RegistryRow(NamedTuple):
    """One data row of a registry feed, as text."""

    code: str
    number_from: str
    number_to: str
    capacity: str
    operator: str
    region: str


def parse_registry_csv(text: str) -> Iterator[RegistryRow]:
    """
    Parse a registry feed into rows.

    The feed is ``;``-delimited with a header row:
    ``АВС/ DEF;От;До;Емкость;Оператор;Регион`` optionally followed by
    further columns, which are ignored.

    Args:
        text: Decoded feed payload

    Yields:
        RegistryRow for every data row with at least six columns
    """
    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")), delimiter=CSV_DELIMITER)

    header = next(reader, None)
    if header is None:
        logger.warning("Registry feed is empty")
        return

    for row in reader:
        if not any(cell.strip() for cell in row):
            continue

        if len(row) < CSV_COLUMNS:
            logger.warning(
                "Skipping line %d: expected %d columns, got %d",
                reader.line_num,
                CSV_COLUMNS,
                len(row),
            )
            continue

        yield RegistryRow(*(cell.strip() for cell in row[:CSV_COLUMNS]))
