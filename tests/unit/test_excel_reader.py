from __future__ import annotations

from pathlib import Path

import pytest

from nutrient_import.excel.reader import (
    EmptyDatasetError,
    InputError,
    SpreadsheetReadError,
    UnsupportedFileTypeError,
    check_extension,
    load_sheet,
    preview_spreadsheet,
    read_spreadsheet,
)
from nutrient_import.normalize.fields import normalize_row


def test_read_spreadsheet_first_sheet_rows(make_sheet, nuttab_rows):
    path = make_sheet(nuttab_rows)
    rows = read_spreadsheet(path)
    assert len(rows) == 3
    assert rows[0]["Food Name"] == "Salmon, Atlantic, raw"
    assert rows[0]["Energy (kJ)"] == 870
    # 空セルは None
    assert rows[0]["Carbohydrate (g)"] is None
    assert rows[2]["Food Group"] is None


def test_read_spreadsheet_csv(make_sheet, nuttab_rows):
    path = make_sheet(nuttab_rows, name="nuttab.csv")
    rows = read_spreadsheet(path)
    assert [r["Food Name"] for r in rows] == [
        "Salmon, Atlantic, raw",
        "Apple, red skin, raw",
        "Water, tap",
    ]


def test_headers_are_stripped(make_sheet):
    path = make_sheet([{" Food Name ": "Pear", "Calories ": 57}])
    sheet = load_sheet(path)
    assert sheet.columns == ["Food Name", "Calories"]
    assert sheet.rows == [{"Food Name": "Pear", "Calories": 57}]


def test_fully_empty_rows_are_skipped(make_sheet):
    path = make_sheet(
        [
            {"Food Name": "Pear", "Calories": 57},
            {"Food Name": None, "Calories": None},
            {"Food Name": "Plum", "Calories": 46},
        ]
    )
    assert [r["Food Name"] for r in read_spreadsheet(path)] == ["Pear", "Plum"]


def test_missing_file(temp_workdir: Path):
    with pytest.raises(FileNotFoundError):
        read_spreadsheet(temp_workdir / "data" / "nope.xlsx")


def test_unsupported_extension(temp_workdir: Path):
    p = temp_workdir / "data" / "foods.txt"
    p.write_text("Food Name\nPear\n", encoding="utf-8")
    with pytest.raises(UnsupportedFileTypeError):
        read_spreadsheet(p)


def test_corrupt_workbook(temp_workdir: Path):
    p = temp_workdir / "data" / "broken.xlsx"
    p.write_bytes(b"definitely not a zip archive")
    with pytest.raises(SpreadsheetReadError):
        read_spreadsheet(p)


def test_header_only_is_empty(make_sheet):
    path = make_sheet([{"Food Name": None, "Calories": None}])
    with pytest.raises(EmptyDatasetError):
        read_spreadsheet(path)


def test_empty_csv(temp_workdir: Path):
    p = temp_workdir / "data" / "empty.csv"
    p.write_text("", encoding="utf-8")
    with pytest.raises(EmptyDatasetError):
        read_spreadsheet(p)


def test_input_errors_share_base():
    assert issubclass(UnsupportedFileTypeError, InputError)
    assert issubclass(SpreadsheetReadError, InputError)
    assert issubclass(EmptyDatasetError, InputError)


def test_check_extension_case_insensitive():
    assert check_extension("FOODS.XLSX") == ".xlsx"
    with pytest.raises(UnsupportedFileTypeError, match="<none>"):
        check_extension("foods")


def test_preview_limits_rows(make_sheet, nuttab_rows):
    path = make_sheet(nuttab_rows * 2)
    sheet = preview_spreadsheet(path, limit=2)
    assert len(sheet.rows) == 2
    assert "Food Name" in sheet.columns


def test_reading_does_not_modify_file(make_sheet, nuttab_rows):
    path = make_sheet(nuttab_rows)
    before = path.read_bytes()
    read_spreadsheet(path)
    assert path.read_bytes() == before


def test_na_like_names_are_kept_csv(temp_workdir: Path):
    p = temp_workdir / "data" / "na_names.csv"
    p.write_text("Food Name,Calories\nNA,50\nNone,40\nnull,30\nN/A,20\n", encoding="utf-8")
    rows = read_spreadsheet(p)
    assert [r["Food Name"] for r in rows] == ["NA", "None", "null", "N/A"]
    assert [normalize_row(r).name for r in rows] == ["NA", "None", "null", "N/A"]


def test_na_like_names_are_kept_xlsx(make_sheet):
    path = make_sheet([{"Food Name": "NA", "Calories": 50}, {"Food Name": "None", "Calories": None}])
    rows = read_spreadsheet(path)
    assert [r["Food Name"] for r in rows] == ["NA", "None"]
    # 空セルは引き続き None
    assert rows[1]["Calories"] is None


def test_blank_csv_cells_are_none(temp_workdir: Path):
    p = temp_workdir / "data" / "blanks.csv"
    p.write_text("Food Name,Calories,Brand\nPear,57,\n", encoding="utf-8")
    assert read_spreadsheet(p) == [{"Food Name": "Pear", "Calories": 57, "Brand": None}]
