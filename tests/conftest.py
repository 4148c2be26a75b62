# Shared pytest fixtures
from __future__ import annotations

import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from nutrient_import.logging.init import reset_logging
from nutrient_import.models.food_record import FOOD_COLUMNS


@pytest.fixture(autouse=True)
def _fresh_logging():
    # ハンドラは setup 時点の sys.stdout を掴むので capsys 用に毎回作り直す
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        for var in ("DATABASE_URL", "PGDSN"):
            monkeypatch.delenv(var, raising=False)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """source_file: ./data/nuttab.xlsx
table: foods
batch_size: 50
brand: NUTTAB
upload:
  directory: ./uploads
  max_bytes: 1048576
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def make_sheet(temp_workdir: Path) -> Callable[..., Path]:
    """Write rows (list of header -> value dicts) as a workbook under data/."""
    def _make(rows: list[dict[str, Any]], name: str = "nuttab.xlsx") -> Path:
        path = temp_workdir / "data" / name
        df = pd.DataFrame(rows)
        if path.suffix == ".csv":
            df.to_csv(path, index=False)
        else:
            df.to_excel(path, index=False, engine="openpyxl")
        return path
    return _make


@pytest.fixture()
def nuttab_rows() -> list[dict[str, Any]]:
    return [
        {
            "Food Name": "Salmon, Atlantic, raw",
            "Food Group": "Fish and seafood",
            "Energy (kJ)": 870,
            "Protein (g)": 20,
            "Fat, total (g)": 13,
            "Carbohydrate (g)": None,
        },
        {
            "Food Name": "Apple, red skin, raw",
            "Food Group": "Fruit products",
            "Energy (kJ)": 218,
            "Protein (g)": 0.3,
            "Fat, total (g)": 0.1,
            "Carbohydrate (g)": 11.6,
        },
        {
            "Food Name": "Water, tap",
            "Food Group": None,
            "Energy (kJ)": 0,
            "Protein (g)": 0,
            "Fat, total (g)": 0,
            "Carbohydrate (g)": 0,
        },
    ]


class FakeFoodStore:
    """In-memory stand-in for the ``foods`` table.

    ``fail_inserts`` holds 1-based INSERT call numbers that raise, to simulate
    a batch failing mid-run. ``fail_select`` makes the existing-names query
    raise.
    """

    def __init__(self, names: list[str] | None = None) -> None:
        self.rows: list[dict[str, Any]] = [{"name": n} for n in names or []]
        self.fail_inserts: set[int] = set()
        self.fail_select = False
        self.insert_calls = 0

    @property
    def names(self) -> list[str]:
        return [r["name"] for r in self.rows]

    def cursor(self) -> FakeCursor:
        return FakeCursor(self)


class FakeCursor:
    def __init__(self, store: FakeFoodStore) -> None:
        self.store = store
        self.statements: list[str] = []
        self.staged: list[dict[str, Any]] | None = None
        self._result: list[tuple[Any, ...]] = []

    def taken(self, name: str) -> bool:
        staged = self.staged or []
        return any(r["name"] == name for r in self.store.rows + staged)

    def execute(self, sql: str, params: Any = None) -> None:
        self.statements.append(sql)
        stmt = sql.strip().upper()
        if stmt == "BEGIN":
            self.staged = []
        elif stmt == "COMMIT":
            self.store.rows.extend(self.staged or [])
            self.staged = None
        elif stmt == "ROLLBACK":
            self.staged = None
        elif stmt.startswith("SELECT NAME"):
            if self.store.fail_select:
                raise RuntimeError("relation does not exist")
            self._result = [(r["name"],) for r in self.store.rows]

    def fetchall(self) -> list[tuple[Any, ...]]:
        return self._result

    def close(self) -> None:
        pass


def fake_execute_values(cursor, sql, rows, template=None, page_size=100, fetch=False):
    """ON CONFLICT (name) DO NOTHING RETURNING name against the fake store."""
    store = cursor.store
    store.insert_calls += 1
    cursor.statements.append(sql)
    if store.insert_calls in store.fail_inserts:
        raise RuntimeError(f"simulated failure on insert #{store.insert_calls}")
    returned = []
    for row in rows:
        record = dict(zip(FOOD_COLUMNS, row, strict=True))
        if cursor.taken(record["name"]):
            continue
        target = cursor.staged if cursor.staged is not None else store.rows
        target.append(record)
        returned.append((record["name"],))
    return returned if fetch else None


@pytest.fixture()
def fake_store(monkeypatch) -> FakeFoodStore:
    import nutrient_import.db.batch_insert as bi
    monkeypatch.setattr(bi, "execute_values", fake_execute_values)
    return FakeFoodStore()
