from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from psycopg2.extras import execute_values

"""Batched INSERT via psycopg2.extras.execute_values.

The foods import relies on ``ON CONFLICT (name) DO NOTHING`` as a backstop for
the application-level duplicate check, and on ``RETURNING name`` to learn which
rows the store actually accepted. Rows absent from the RETURNING set were
swallowed by the conflict clause.

Transactions are not handled here; the caller wraps each batch in
``db.connection.transaction``.
"""

__all__ = [
    "BatchInsertError",
    "BatchMetrics",
    "InsertResult",
    "batch_insert",
]


class BatchInsertError(Exception):
    pass


@dataclass(frozen=True)
class BatchMetrics:
    """Metrics data for a single batch insert operation."""
    batch_size: int  # Number of rows in this batch
    elapsed_seconds: float  # Time spent on execute_values call
    start_time: float  # Start timestamp (time.time())
    end_time: float  # End timestamp (time.time())


@dataclass(frozen=True)
class InsertResult:
    inserted_rows: int
    returned_values: list[tuple[Any, ...]] | None = None


def _build_sql(
    table: str,
    columns: Sequence[str],
    conflict_target: Sequence[str] | None,
    returning: Sequence[str] | None,
) -> str:
    cols_sql = ",".join(f'"{c}"' for c in columns)
    sql = f"INSERT INTO {table} ({cols_sql}) VALUES %s"
    if conflict_target:
        target = ",".join(f'"{c}"' for c in conflict_target)
        sql += f" ON CONFLICT ({target}) DO NOTHING"
    if returning:
        sql += " RETURNING " + ",".join(f'"{c}"' for c in returning)
    return sql


def batch_insert(
    cursor: Any,
    table: str,
    columns: Sequence[str],
    rows: Iterable[Sequence[Any]],
    conflict_target: Sequence[str] | None = None,
    returning: Sequence[str] | None = None,
    page_size: int = 1000,
    metrics_callback: Callable[[BatchMetrics], None] | None = None,
) -> InsertResult:
    """Perform a batched INSERT.

    Parameters
    ----------
    cursor: psycopg2 cursor
    table: target table name (trusted, comes from config)
    columns: insert columns
    rows: row value sequences in ``columns`` order
    conflict_target: columns for ``ON CONFLICT (...) DO NOTHING``; None disables it
    returning: columns for the RETURNING clause; when given, ``inserted_rows`` is
        the number of returned rows rather than the number of rows sent
    page_size: execute_values page size
    metrics_callback: receives BatchMetrics after the statement ran (not called
        for an empty ``rows``)
    """
    rows_list = list(rows)
    if not rows_list:
        return InsertResult(inserted_rows=0, returned_values=[] if returning else None)

    sql = _build_sql(table, columns, conflict_target, returning)

    start_time = time.time()
    try:
        returned = execute_values(
            cursor, sql, rows_list, page_size=page_size, fetch=bool(returning)
        )
    except Exception as e:
        raise BatchInsertError(str(e)) from e
    finally:
        end_time = time.time()
        if metrics_callback is not None:
            metrics_callback(
                BatchMetrics(
                    batch_size=len(rows_list),
                    elapsed_seconds=end_time - start_time,
                    start_time=start_time,
                    end_time=end_time,
                )
            )

    if returning:
        returned_values = [tuple(r) for r in (returned or [])]
        return InsertResult(inserted_rows=len(returned_values), returned_values=returned_values)
    return InsertResult(inserted_rows=len(rows_list), returned_values=None)
