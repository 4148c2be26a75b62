from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import psycopg2

from ..config.loader import DatabaseConfig

"""PostgreSQL connection and transaction helpers.

The connection runs in autocommit mode; batch boundaries are drawn explicitly
with ``transaction(cursor)`` (BEGIN ... COMMIT / ROLLBACK), one per batch.
"""

__all__ = [
    "resolve_dsn",
    "db_connection",
    "transaction",
    "fetch_existing_names",
]

logger = logging.getLogger(__name__)


def resolve_dsn(db_cfg: DatabaseConfig) -> str:
    """Build the connection string.

    Resolution order:
        1. ``DATABASE_URL`` / ``PGDSN`` environment variables (whole DSN)
        2. ``dsn`` from the config database section
        3. individual ``PGHOST`` / ``PGPORT`` / ``PGUSER`` / ``PGPASSWORD`` /
           ``PGDATABASE`` with the config section as fallback
    """
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def db_connection(db_cfg: DatabaseConfig) -> Iterator[Any]:  # pragma: no cover (thin wrapper)
    """Yield a cursor on an autocommit psycopg2 connection; always closes both."""
    conn = psycopg2.connect(resolve_dsn(db_cfg))
    conn.autocommit = True  # BEGIN/COMMIT は transaction() が明示発行
    cur = None
    try:
        cur = conn.cursor()
        yield cur
    finally:
        if cur is not None:
            cur.close()
        conn.close()


@contextmanager
def transaction(cursor: Any) -> Iterator[Any]:
    """Scope one transaction on ``cursor``.

    COMMIT on normal exit, ROLLBACK on any exception (which is re-raised).
    A failing ROLLBACK is logged and does not mask the original error.
    """
    cursor.execute("BEGIN")
    try:
        yield cursor
    except BaseException:
        try:
            cursor.execute("ROLLBACK")
        except Exception:
            logger.exception("rollback failed")
        raise
    else:
        cursor.execute("COMMIT")


def fetch_existing_names(cursor: Any, table: str) -> set[str]:
    """Lower-cased, trimmed names already stored in ``table``."""
    cursor.execute(f"SELECT name FROM {table}")
    return {str(row[0]).strip().lower() for row in cursor.fetchall() if row[0] is not None}
