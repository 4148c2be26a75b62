from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Batch progress display with tqdm (TTY only).

In non-TTY environments (CI, redirected output) the bar is disabled so that
no ANSI control sequences end up in logs; the per-batch INFO progress line
written by the persistence stage carries the same information there.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
    "percent_complete",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


def percent_complete(done: int, total: int) -> int:
    """Whole-number percentage, clamped to 0..100; an empty run is complete."""
    if total <= 0:
        return 100
    return max(0, min(100, round(done / total * 100)))


class ProgressTracker:
    """Progress bar over persistence batches."""

    def __init__(self, total_batches: int, *, description: str = "Importing foods") -> None:
        self.total_batches = total_batches
        self.description = description
        self.current_batch = 0

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total_batches,
                desc=description,
                unit="batch",
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def advance(self, **postfix: Any) -> None:
        """Mark one batch done and show running counters."""
        self.current_batch += 1
        if self.enabled and self.pbar is not None:
            if postfix:
                self.pbar.set_postfix(**postfix)
            self.pbar.update(1)

    def close(self) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
