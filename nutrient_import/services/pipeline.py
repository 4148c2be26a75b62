from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..config.loader import ImportConfig
from ..excel.reader import (
    EmptyDatasetError,
    InputError,
    SpreadsheetReadError,
    UnsupportedFileTypeError,
    load_sheet,
)
from ..logging.error_log import ErrorLogBuffer
from ..models.error_record import FILE_LEVEL_BATCH, ErrorRecord
from ..models.food_record import DEFAULT_BRAND, FoodRecord
from ..models.import_result import BatchOutcome, BatchStatsAccumulator, ImportResult
from ..normalize.fields import normalize_row
from .persistence import DEFAULT_BATCH_SIZE, DedupContext, PersistenceTally, persist_records
from .progress import ProgressTracker

"""Import pipeline orchestration.

Runs the four stages in order, once per file:

1. ingestion      spreadsheet -> RawRows (input errors are fatal)
2. normalization  RawRow -> FoodRecord (never fails a row)
3. validity       drop records with no name or all-zero macros
4. persistence    dedup + 50-record transactional batches

``cursor=None`` runs the whole pipeline without a database (dry run).
"""

__all__ = [
    "PipelineError",
    "ProgressCallback",
    "build_candidates",
    "run_import",
    "import_file",
]

logger = logging.getLogger(__name__)

_INPUT_ERROR_TYPES: dict[type[Exception], str] = {
    UnsupportedFileTypeError: "UNSUPPORTED_FILE_TYPE",
    SpreadsheetReadError: "SPREADSHEET_READ_ERROR",
    EmptyDatasetError: "EMPTY_DATASET",
}

# (percent, tally so far)
ProgressCallback = Callable[[int, PersistenceTally], None]


class PipelineError(Exception):
    """Fatal error that aborts the run (e.g. the store cannot be queried)."""


def build_candidates(
    rows: list[dict[str, Any]],
    *,
    brand: str | None = DEFAULT_BRAND,
    created_by: int | None = None,
) -> tuple[list[FoodRecord], list[FoodRecord]]:
    """Normalize every row; returns (all candidates, valid ones) in input order."""
    candidates = [normalize_row(row, brand=brand, created_by=created_by) for row in rows]
    valid = [c for c in candidates if c.is_valid]
    return candidates, valid


def _load_context(cursor: Any, table: str, source: str, error_log: ErrorLogBuffer) -> DedupContext:
    if cursor is None:
        return DedupContext()
    try:
        context = DedupContext.from_store(cursor, table)
    except Exception as e:
        error_log.append(
            ErrorRecord.create(
                file=source,
                batch=FILE_LEVEL_BATCH,
                error_type="EXISTING_NAMES_QUERY_ERROR",
                db_message=str(e),
            )
        )
        raise PipelineError(f"failed to load existing food names from {table}: {e}") from e
    logger.info("found %d existing foods in %s", len(context), table)
    return context


def run_import(
    path: Path | str,
    cursor: Any = None,
    *,
    table: str = "foods",
    batch_size: int = DEFAULT_BATCH_SIZE,
    brand: str | None = DEFAULT_BRAND,
    created_by: int | None = None,
    error_log: ErrorLogBuffer | None = None,
    progress_callback: ProgressCallback | None = None,
) -> ImportResult:
    """Import one spreadsheet into the foods table.

    Args:
        path: spreadsheet (.xlsx/.xls/.csv); first sheet only
        cursor: psycopg2 cursor on an autocommit connection (None = dry run)
        table: target table
        batch_size: records per transaction
        brand: source tag used when the row has no brand column
        created_by: owner user id; None for script-driven imports
        error_log: buffer for batch/file errors; a private one is created and
            flushed when omitted
        progress_callback: called after every batch with (percent, tally)

    Raises:
        FileNotFoundError, InputError: the file cannot be used at all
        PipelineError: existing names could not be loaded
    """
    path = Path(path)
    start_time = datetime.now(UTC)
    own_log = error_log is None
    log = error_log if error_log is not None else ErrorLogBuffer()

    try:
        try:
            sheet = load_sheet(path)
        except InputError as e:
            log.append(
                ErrorRecord.create(
                    file=path.name,
                    batch=FILE_LEVEL_BATCH,
                    error_type=_INPUT_ERROR_TYPES.get(type(e), "INPUT_ERROR"),
                    db_message=str(e),
                )
            )
            raise
        logger.info("read %d rows from %s (sheet=%s)", len(sheet.rows), path.name, sheet.sheet_name)
        logger.debug("columns=%s", sheet.columns)

        _, valid = build_candidates(sheet.rows, brand=brand, created_by=created_by)
        logger.info("valid foods: %d of %d rows", len(valid), len(sheet.rows))

        context = _load_context(cursor, table, path.name, log)

        timings = BatchStatsAccumulator()
        total_batches = (len(valid) + batch_size - 1) // batch_size
        with ProgressTracker(total_batches) as progress:

            def on_batch(outcome: BatchOutcome, tally: PersistenceTally) -> None:
                progress.advance(inserted=tally.inserted, skipped=tally.skipped, errors=tally.errors)
                if progress_callback is not None:
                    progress_callback(tally.percent, tally)

            tally = persist_records(
                cursor,
                valid,
                context,
                table=table,
                batch_size=batch_size,
                source=path.name,
                error_log=log,
                on_batch=on_batch,
                metrics_callback=lambda m: timings.add_batch_time(m.elapsed_seconds),
            )
    finally:
        if own_log:
            try:
                written = log.flush()
            except OSError as e:
                logger.warning("failed to write error log: %s", e)
            else:
                if written is not None:
                    logger.info("error log written: %s", written)

    end_time = datetime.now(UTC)
    _, avg_batch, p95_batch = timings.get_stats()
    return ImportResult(
        source=path.name,
        total_rows=len(sheet.rows),
        valid_rows=len(valid),
        inserted=tally.inserted,
        skipped=tally.skipped,
        errors=tally.errors,
        batches=len(tally.outcomes),
        failed_batches=tally.failed_batches,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        avg_batch_seconds=avg_batch,
        p95_batch_seconds=p95_batch,
        inserted_records=tally.inserted_records,
    )


def import_file(
    path: Path | str,
    cursor: Any,
    config: ImportConfig,
    *,
    created_by: int | None = None,
    error_log: ErrorLogBuffer | None = None,
    progress_callback: ProgressCallback | None = None,
) -> ImportResult:
    """``run_import`` with table, batch size and brand taken from ``config``."""
    return run_import(
        path,
        cursor,
        table=config.table,
        batch_size=config.batch_size,
        brand=config.brand,
        created_by=created_by,
        error_log=error_log,
        progress_callback=progress_callback,
    )
