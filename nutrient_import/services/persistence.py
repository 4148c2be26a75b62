from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any

from ..db.batch_insert import BatchMetrics, batch_insert
from ..db.connection import fetch_existing_names, transaction
from ..logging.error_log import ErrorLogBuffer
from ..models.error_record import ErrorRecord
from ..models.food_record import FOOD_COLUMNS, FoodRecord
from ..models.import_result import BatchOutcome
from .progress import percent_complete

"""Deduplication and batch persistence stage.

Valid FoodRecords are written in fixed-size batches, one transaction per batch:

- names already known (stored before the run, or committed by an earlier
  batch) and names repeated inside the batch are skipped
- the rest go out in one ``INSERT ... ON CONFLICT (name) DO NOTHING RETURNING
  name``; rows the store swallows on conflict also count as skipped
- on success the batch's names join the known set; on failure the batch is
  rolled back, every record in it counts as an error, and the next batch runs

``inserted + skipped + errors`` always equals the number of records handed in.
"""

__all__ = [
    "DEFAULT_BATCH_SIZE",
    "DedupContext",
    "PersistenceTally",
    "chunked",
    "persist_batch",
    "persist_records",
]

DEFAULT_BATCH_SIZE = 50

logger = logging.getLogger(__name__)

BatchCallback = Callable[[BatchOutcome, "PersistenceTally"], None]


@dataclass
class DedupContext:
    """Case-insensitive set of food names already present in the store.

    Passed explicitly into the persistence stage; it is the only mutable state
    shared across batches of a run.
    """
    known_names: set[str] = field(default_factory=set)

    @classmethod
    def from_store(cls, cursor: Any, table: str) -> DedupContext:
        return cls(known_names=fetch_existing_names(cursor, table))

    @staticmethod
    def key(name: str) -> str:
        return name.strip().lower()

    def is_known(self, name: str) -> bool:
        return self.key(name) in self.known_names

    def remember(self, names: Iterable[str]) -> None:
        self.known_names.update(self.key(n) for n in names)

    def __len__(self) -> int:
        return len(self.known_names)


@dataclass
class PersistenceTally:
    """Running counters across batches."""
    total: int
    inserted: int = 0
    skipped: int = 0
    errors: int = 0
    processed: int = 0  # 処理済レコード数 (進捗計算用)
    outcomes: list[BatchOutcome] = field(default_factory=list)
    inserted_records: list[FoodRecord] = field(default_factory=list)

    @property
    def percent(self) -> int:
        return percent_complete(self.processed, self.total)

    @property
    def failed_batches(self) -> int:
        return sum(1 for o in self.outcomes if o.failed)

    def add(self, outcome: BatchOutcome, inserted_records: Sequence[FoodRecord]) -> None:
        self.outcomes.append(outcome)
        self.inserted += outcome.inserted
        self.skipped += outcome.skipped
        self.errors += outcome.errors
        self.processed += outcome.size
        self.inserted_records.extend(inserted_records)


def chunked(records: Sequence[FoodRecord], size: int) -> Iterator[list[FoodRecord]]:
    if size < 1:
        raise ValueError(f"batch size must be positive, got {size}")
    for start in range(0, len(records), size):
        yield list(records[start:start + size])


def persist_batch(
    cursor: Any,
    batch: Sequence[FoodRecord],
    number: int,
    context: DedupContext,
    table: str = "foods",
    metrics_callback: Callable[[BatchMetrics], None] | None = None,
) -> tuple[BatchOutcome, list[FoodRecord]]:
    """Write one batch inside its own transaction.

    ``cursor=None`` is dry-run mode: nothing is sent and every new name counts
    as inserted. Exceptions from the store propagate after ROLLBACK; the known
    set is only updated once the batch has committed.
    """
    pending: dict[str, FoodRecord] = {}
    skipped = 0
    for record in batch:
        key = context.key(record.name)
        if key in context.known_names or key in pending:
            skipped += 1
            continue
        pending[key] = record

    if not pending:
        return BatchOutcome(number=number, size=len(batch), skipped=skipped), []

    if cursor is None:
        inserted = list(pending.values())
    else:
        with transaction(cursor):
            result = batch_insert(
                cursor,
                table=table,
                columns=FOOD_COLUMNS,
                rows=[r.to_row() for r in pending.values()],
                conflict_target=("name",),
                returning=("name",),
                page_size=max(len(pending), 1),
                metrics_callback=metrics_callback,
            )
        returned = {context.key(str(row[0])) for row in (result.returned_values or [])}
        inserted = [r for k, r in pending.items() if k in returned]
        # ON CONFLICT で弾かれた行 = ストア側に既存
        skipped += len(pending) - len(inserted)

    context.remember(pending.keys())
    return (
        BatchOutcome(number=number, size=len(batch), inserted=len(inserted), skipped=skipped),
        inserted,
    )


def persist_records(
    cursor: Any,
    records: Sequence[FoodRecord],
    context: DedupContext,
    *,
    table: str = "foods",
    batch_size: int = DEFAULT_BATCH_SIZE,
    source: str = "<memory>",
    error_log: ErrorLogBuffer | None = None,
    on_batch: BatchCallback | None = None,
    metrics_callback: Callable[[BatchMetrics], None] | None = None,
) -> PersistenceTally:
    """Persist ``records`` batch by batch; a failed batch never aborts the run."""
    tally = PersistenceTally(total=len(records))
    total_batches = (len(records) + batch_size - 1) // batch_size

    for number, batch in enumerate(chunked(records, batch_size), start=1):
        logger.debug("batch %d/%d size=%d", number, total_batches, len(batch))
        try:
            outcome, inserted = persist_batch(
                cursor, batch, number, context, table=table, metrics_callback=metrics_callback
            )
        except Exception as e:
            logger.error("batch %d/%d rolled back: %s", number, total_batches, e)
            outcome = BatchOutcome(number=number, size=len(batch), errors=len(batch), error=str(e))
            inserted = []
            if error_log is not None:
                error_log.append(
                    ErrorRecord.create(
                        file=source,
                        batch=number,
                        error_type="BATCH_INSERT_ERROR",
                        db_message=str(e),
                    )
                )
        tally.add(outcome, inserted)
        logger.info(
            "progress=%d%% batch=%d/%d inserted=%d skipped=%d errors=%d",
            tally.percent,
            number,
            total_batches,
            tally.inserted,
            tally.skipped,
            tally.errors,
        )
        if on_batch is not None:
            on_batch(outcome, tally)

    return tally
