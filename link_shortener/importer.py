"""Bulk import of existing short links."""

import csv
import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple

from .common.validators import is_valid_short_code
from .database.base import LinkStoreBase
from .database.models import ImportRecord, ImportResult
from .errors import CodeAlreadyExistsError, StoreError


IMPORTED_BY = "imported"

# Imported codes come from other systems, so only the charset is enforced
IMPORT_CODE_MAX_LENGTH = 64

TIMESTAMP_FORMATS = (
    "%Y-%m-%dT%H:%M:%S.%fZ",
    "%Y-%m-%dT%H:%M:%SZ",
)

PROGRESS_EVERY = 1000


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 creation timestamp.

    Formats are tried in order and the first that parses wins. Results
    without a UTC offset are taken as UTC.

    Raises:
        ValueError: If no format matches
    """
    value = (value or "").strip()

    for fmt in TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(value, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue

    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise ValueError(f"unable to parse timestamp: {value!r}") from None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


async def import_links(
    store: LinkStoreBase,
    records: Iterable[ImportRecord],
    logger: Optional[logging.Logger] = None,
    created_by: str = IMPORTED_BY,
) -> ImportResult:
    """Insert pre-parsed records inside a single transaction.

    Invalid records and store errors on a single record are counted as
    skipped; existing codes are counted as duplicates. Failing to open or
    commit the transaction aborts the whole batch.

    Args:
        store: Open store to import into
        records: Records to import
        logger: Optional logger
        created_by: Attribution stored on every imported mapping

    Returns:
        ImportResult tally
    """
    logger = logger or logging.getLogger(__name__)
    result = ImportResult()

    def skip(record: ImportRecord, reason: str) -> None:
        result.skipped += 1
        where = f"row {record.line_number}" if record.line_number is not None else record.short_code
        message = f"Skipping {where}: {reason}"
        result.errors.append(message)
        logger.warning(message)

    async with store.transaction() as tx:
        for record in records:
            result.total += 1

            is_valid, error = is_valid_short_code(
                record.short_code, min_length=1, max_length=IMPORT_CODE_MAX_LENGTH
            )
            if not is_valid:
                skip(record, f"invalid short code {record.short_code!r}: {error}")
                continue

            if not record.original_url:
                skip(record, "missing original URL")
                continue

            try:
                created_at = parse_timestamp(record.created_at)
            except ValueError as e:
                skip(record, str(e))
                continue

            try:
                if await store.exists(record.short_code, tx=tx):
                    logger.info(f"Skipping duplicate short code: {record.short_code}")
                    result.duplicates += 1
                    continue

                await store.put(record.short_code, record.original_url, created_by, created_at, tx=tx)
            except CodeAlreadyExistsError:
                logger.info(f"Skipping duplicate short code: {record.short_code}")
                result.duplicates += 1
                continue
            except StoreError as e:
                skip(record, f"error inserting {record.short_code}: {e}")
                continue

            result.imported += 1
            if result.imported % PROGRESS_EVERY == 0:
                logger.info(f"Imported {result.imported} records...")

    logger.info(
        f"Import completed: processed={result.total}, imported={result.imported}, "
        f"duplicates={result.duplicates}, skipped={result.skipped}"
    )
    return result


def extract_short_code(short_link: str, link_prefix: str) -> str:
    """Strip ``link_prefix`` from a short link; empty string if it doesn't match."""
    if not short_link.startswith(link_prefix):
        return ""
    return short_link[len(link_prefix):]


def read_csv_records(
    path: str,
    link_prefix: str,
    code_column: int = 0,
    url_column: int = 1,
    timestamp_column: int = 28,
) -> Tuple[List[ImportRecord], List[str]]:
    """Read import records from a CSV export.

    The first row is a header and is skipped.

    Args:
        path: CSV file path
        link_prefix: Prefix to strip from the short link column
        code_column: Index of the short link column
        url_column: Index of the destination URL column
        timestamp_column: Index of the creation timestamp column

    Returns:
        Tuple of (records, messages for rows that could not be used)

    Raises:
        OSError: If the file cannot be read
        ValueError: If the file is empty
    """
    with open(path, newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))

    if not rows:
        raise ValueError(f"CSV file is empty: {path}")

    needed = max(code_column, url_column, timestamp_column) + 1
    records: List[ImportRecord] = []
    rejected: List[str] = []

    for line_number, row in enumerate(rows[1:], start=2):
        if len(row) < needed:
            rejected.append(f"Skipping row {line_number}: insufficient columns")
            continue

        short_link = row[code_column]
        short_code = extract_short_code(short_link, link_prefix)
        if not short_code:
            rejected.append(f"Skipping row {line_number}: invalid short link format: {short_link}")
            continue

        records.append(
            ImportRecord(
                short_code=short_code,
                original_url=row[url_column],
                created_at=row[timestamp_column],
                line_number=line_number,
            )
        )

    return records, rejected
