from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd

"""Spreadsheet ingestion for the nutrient import pipeline.

Reads the first sheet of an ``.xlsx`` / ``.xls`` workbook (or a ``.csv`` file)
and turns each data row into a RawRow: a plain ``dict`` of header -> cell value.
The first row is the header row. Empty cells become ``None``; rows where every
cell is empty are dropped. Reading never mutates the file.
"""

__all__ = [
    "ALLOWED_EXTENSIONS",
    "NA_VALUES",
    "RawRow",
    "SheetData",
    "InputError",
    "UnsupportedFileTypeError",
    "SpreadsheetReadError",
    "EmptyDatasetError",
    "load_sheet",
    "read_spreadsheet",
    "preview_spreadsheet",
]

ALLOWED_EXTENSIONS = frozenset({".xlsx", ".xls", ".csv"})

RawRow = dict[str, Any]

# 空セルと Excel のエラー値のみ欠損扱い ("NA", "None", "null" は食品名として残す)
NA_VALUES = ("", "#N/A", "#N/A N/A", "#NA")


class InputError(Exception):
    """Base class for input errors that are fatal to an import run."""


class UnsupportedFileTypeError(InputError):
    """Raised when the file extension is not in the allow-list."""


class SpreadsheetReadError(InputError):
    """Raised when pandas cannot parse the workbook."""


class EmptyDatasetError(InputError):
    """Raised when the first sheet yields zero data rows."""


@dataclass
class SheetData:
    sheet_name: str
    columns: list[str]
    rows: list[RawRow]


def check_extension(path: Path | str) -> str:
    """Return the lower-cased suffix, raising if it is not allowed."""
    suffix = Path(path).suffix.lower()
    if suffix not in ALLOWED_EXTENSIONS:
        allowed = ", ".join(sorted(ALLOWED_EXTENSIONS))
        raise UnsupportedFileTypeError(
            f"unsupported file type '{suffix or '<none>'}' (allowed: {allowed})"
        )
    return suffix


def _read_first_sheet(path: Path, suffix: str) -> tuple[str, pd.DataFrame]:
    na_values = list(NA_VALUES)
    if suffix == ".csv":
        return path.stem, pd.read_csv(path, keep_default_na=False, na_values=na_values)
    xls = pd.ExcelFile(path)
    sheet_name = xls.sheet_names[0]
    return str(sheet_name), xls.parse(sheet_name, keep_default_na=False, na_values=na_values)


def _to_raw_rows(df: pd.DataFrame, columns: list[str]) -> list[RawRow]:
    rows: list[RawRow] = []
    for _, raw in df.iterrows():
        if raw.isna().all():
            continue
        row: RawRow = {}
        for col, val in zip(columns, raw.tolist(), strict=False):
            row[col] = None if pd.isna(val) else val
        rows.append(row)
    return rows


def load_sheet(path: Path | str) -> SheetData:
    """Read the first sheet of ``path`` into a SheetData.

    Raises:
        FileNotFoundError: path does not exist
        UnsupportedFileTypeError: extension not one of .xlsx/.xls/.csv
        SpreadsheetReadError: workbook could not be parsed
        EmptyDatasetError: zero data rows
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"spreadsheet not found: {path}")
    suffix = check_extension(path)

    try:
        sheet_name, df = _read_first_sheet(path, suffix)
    except pd.errors.EmptyDataError as e:
        raise EmptyDatasetError(f"{path.name} contains no data") from e
    except Exception as e:
        raise SpreadsheetReadError(f"failed to read {path.name}: {e}") from e

    columns = [str(c).strip() for c in df.columns]
    rows = _to_raw_rows(df, columns)
    if not rows:
        raise EmptyDatasetError(f"{path.name} contains no data rows")
    return SheetData(sheet_name=sheet_name, columns=columns, rows=rows)


def read_spreadsheet(path: Path | str) -> list[RawRow]:
    """Ordered RawRows of the first sheet (see ``load_sheet`` for errors)."""
    return load_sheet(path).rows


def preview_spreadsheet(path: Path | str, limit: int = 3) -> SheetData:
    """Headers plus the first ``limit`` rows, for ``--inspect-data``."""
    sheet = load_sheet(path)
    return SheetData(sheet_name=sheet.sheet_name, columns=sheet.columns, rows=sheet.rows[:limit])
