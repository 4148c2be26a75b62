from __future__ import annotations

from ..models.import_result import ImportResult

"""SUMMARY line rendering.

Format::

    SUMMARY file={name} rows={total} valid={valid} inserted={n} skipped={n}
    errors={n} batches={n} failed_batches={n} elapsed_sec={elapsed}
"""

__all__ = [
    "format_seconds",
    "render_summary_line",
]


def format_seconds(value: float) -> str:
    """Render seconds without scientific notation; integers without a dot."""
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        return f"{value:.6f}".rstrip('0').rstrip('.')
    return f"{value:.3f}".rstrip('0').rstrip('.')


def render_summary_line(result: ImportResult) -> str:
    """Render the SUMMARY line for one import run.

    Examples:
        >>> from datetime import datetime, timezone
        >>> t = datetime(2024, 1, 1, tzinfo=timezone.utc)
        >>> result = ImportResult(
        ...     source="nuttab.xlsx", total_rows=120, valid_rows=100, inserted=90,
        ...     skipped=10, errors=0, batches=2, failed_batches=0,
        ...     start_time=t, end_time=t, elapsed_seconds=2.0,
        ... )
        >>> render_summary_line(result)  # doctest: +ELLIPSIS
        'SUMMARY file=nuttab.xlsx rows=120 valid=100 inserted=90 skipped=10 errors=0 ...'
    """
    return (
        f"SUMMARY file={result.source} "
        f"rows={result.total_rows} "
        f"valid={result.valid_rows} "
        f"inserted={result.inserted} "
        f"skipped={result.skipped} "
        f"errors={result.errors} "
        f"batches={result.batches} "
        f"failed_batches={result.failed_batches} "
        f"elapsed_sec={format_seconds(result.elapsed_seconds)}"
    )
