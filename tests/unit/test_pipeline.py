from __future__ import annotations

import json

import pytest

from nutrient_import.config.loader import ImportConfig
from nutrient_import.excel.reader import EmptyDatasetError
from nutrient_import.logging.error_log import ErrorLogBuffer
from nutrient_import.services.pipeline import PipelineError, build_candidates, import_file, run_import


def test_build_candidates_filters_invalid(nuttab_rows):
    candidates, valid = build_candidates(nuttab_rows)
    assert len(candidates) == 3
    assert [r.name for r in valid] == ["Salmon, Atlantic, raw", "Apple, red skin, raw"]


def test_run_import_live(make_sheet, nuttab_rows, fake_store):
    path = make_sheet(nuttab_rows)
    result = run_import(path, fake_store.cursor())
    assert result.source == "nuttab.xlsx"
    assert (result.total_rows, result.valid_rows, result.invalid_rows) == (3, 2, 1)
    assert (result.inserted, result.skipped, result.errors) == (2, 0, 0)
    assert (result.batches, result.failed_batches) == (1, 0)
    assert not result.has_failures
    assert result.end_time >= result.start_time
    assert [r.name for r in result.inserted_records] == fake_store.names


def test_run_import_dry_run_touches_nothing(make_sheet, nuttab_rows, fake_store):
    path = make_sheet(nuttab_rows)
    result = run_import(path, None)
    assert result.inserted == 2
    assert fake_store.names == []
    assert fake_store.insert_calls == 0


def test_run_import_progress_callback(make_sheet, fake_store):
    rows = [{"Food Name": f"Rice {i}", "Calories": 130} for i in range(5)]
    path = make_sheet(rows)
    seen = []
    run_import(path, fake_store.cursor(), batch_size=2, progress_callback=lambda pct, tally: seen.append(pct))
    assert seen == [40, 80, 100]


def test_run_import_existing_names_query_failure(make_sheet, nuttab_rows, fake_store, temp_workdir):
    fake_store.fail_select = True
    log = ErrorLogBuffer()
    with pytest.raises(PipelineError, match="existing food names"):
        run_import(make_sheet(nuttab_rows), fake_store.cursor(), error_log=log)
    assert [r.error_type for r in log.records] == ["EXISTING_NAMES_QUERY_ERROR"]
    assert log.records[0].batch == -1


def test_run_import_input_error_flushes_own_log(make_sheet, temp_workdir):
    path = make_sheet([{"Food Name": None}])
    with pytest.raises(EmptyDatasetError):
        run_import(path, None)
    logs = list((temp_workdir / "logs").glob("errors-*.log"))
    assert len(logs) == 1
    entry = json.loads(logs[0].read_text(encoding="utf-8").splitlines()[0])
    assert entry["error_type"] == "EMPTY_DATASET"
    assert entry["batch"] == -1


def test_run_import_partial_failure(make_sheet, fake_store, temp_workdir):
    rows = [{"Food Name": f"Bread {i}", "Calories": 250} for i in range(4)]
    fake_store.fail_inserts = {1}
    result = run_import(make_sheet(rows), fake_store.cursor(), batch_size=2)
    assert (result.inserted, result.skipped, result.errors) == (2, 0, 2)
    assert result.inserted + result.skipped + result.errors == result.valid_rows
    assert result.failed_batches == 1
    assert result.has_failures
    assert list((temp_workdir / "logs").glob("errors-*.log"))


def test_import_file_uses_config(make_sheet, nuttab_rows, fake_store):
    cfg = ImportConfig(source_file="unused.xlsx", batch_size=1, brand="Custom")
    result = import_file(make_sheet(nuttab_rows), fake_store.cursor(), cfg, created_by=3)
    assert result.batches == 2
    assert {r["brand"] for r in fake_store.rows} == {"Custom"}
    assert {r["created_by"] for r in fake_store.rows} == {3}
    assert {r["category"] for r in fake_store.rows} == {"protein", "fruit"}
