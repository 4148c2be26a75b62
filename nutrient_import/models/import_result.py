from __future__ import annotations

import statistics
from dataclasses import dataclass, field
from datetime import datetime

from .food_record import FoodRecord

"""Import result models for the nutrient import pipeline.

``BatchOutcome`` describes a single persistence batch, ``ImportResult`` the
whole run. ``BatchStatsAccumulator`` collects per-batch timings for the
average / p95 figures reported alongside the counters.
"""

__all__ = [
    "BatchOutcome",
    "BatchStatsAccumulator",
    "ImportResult",
]


@dataclass(frozen=True)
class BatchOutcome:
    """Result of one transactional batch."""
    number: int  # 1-based
    size: int  # records handed to the batch
    inserted: int = 0
    skipped: int = 0
    errors: int = 0
    error: str | None = None  # rollback 理由

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass(frozen=True)
class ImportResult:
    """Aggregated counters for one import run.

    ``inserted + skipped + errors`` always equals ``valid_rows``; rows dropped by
    the validity filter only show up as ``invalid_rows``.
    """
    source: str  # ファイル名
    total_rows: int
    valid_rows: int
    inserted: int
    skipped: int
    errors: int
    batches: int
    failed_batches: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    avg_batch_seconds: float = 0.0
    p95_batch_seconds: float = 0.0
    inserted_records: list[FoodRecord] = field(default_factory=list)

    @property
    def invalid_rows(self) -> int:
        return self.total_rows - self.valid_rows

    @property
    def has_failures(self) -> bool:
        return self.failed_batches > 0


class BatchStatsAccumulator:
    """Helper class to accumulate batch timing statistics."""

    def __init__(self) -> None:
        self.batch_times: list[float] = []

    def add_batch_time(self, elapsed_seconds: float) -> None:
        self.batch_times.append(elapsed_seconds)

    def get_stats(self) -> tuple[int, float, float]:
        """Calculate batch statistics.

        Returns:
            tuple: (total_batches, avg_batch_seconds, p95_batch_seconds)
        """
        if not self.batch_times:
            return (0, 0.0, 0.0)

        total_batches = len(self.batch_times)
        avg_batch_seconds = statistics.mean(self.batch_times)

        if total_batches == 1:
            p95_batch_seconds = self.batch_times[0]
        else:
            p95_batch_seconds = statistics.quantiles(
                self.batch_times, n=20, method='inclusive'
            )[18]  # 95th percentile (19th out of 20 quantiles, 0-indexed)

        return (total_batches, avg_batch_seconds, p95_batch_seconds)
