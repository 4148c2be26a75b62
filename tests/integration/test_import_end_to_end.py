from __future__ import annotations

from nutrient_import.config.loader import load_config
from nutrient_import.logging.error_log import ErrorLogBuffer
from nutrient_import.services.pipeline import import_file


def test_nuttab_salmon_end_to_end(write_config, make_sheet, nuttab_rows, fake_store):
    cfg = load_config(write_config)
    path = make_sheet(nuttab_rows)

    result = import_file(path, fake_store.cursor(), cfg)

    assert (result.inserted, result.skipped, result.errors) == (2, 0, 0)
    salmon = next(r for r in fake_store.rows if r["name"] == "Salmon, Atlantic, raw")
    # 870 / 4.184 = 207.93 を小数1桁 half-up で丸めた値 (資料の例示は 208.0)。DESIGN.md decision 1
    assert salmon["calories"] == 207.9
    assert salmon["protein"] == 20.0
    assert salmon["fat"] == 13.0
    assert salmon["carbs"] == 0.0
    assert salmon["category"] == "protein"
    assert salmon["brand"] == "NUTTAB"
    assert salmon["serving_size"] == 100.0
    assert salmon["serving_unit"] == "g"
    assert salmon["is_public"] is True
    # 水 (全栄養素 0) は有効性フィルタで除外
    assert "Water, tap" not in fake_store.names


def test_reimport_same_file_inserts_zero(write_config, make_sheet, nuttab_rows, fake_store):
    cfg = load_config(write_config)
    path = make_sheet(nuttab_rows)

    first = import_file(path, fake_store.cursor(), cfg)
    second = import_file(path, fake_store.cursor(), cfg)

    assert first.inserted == 2
    assert (second.inserted, second.skipped, second.errors) == (0, 2, 0)
    assert len(fake_store.names) == 2


def test_intra_file_duplicates_inserted_once(write_config, make_sheet, fake_store):
    cfg = load_config(write_config)
    rows = [
        {"Food Name": "Brown rice, boiled", "Calories": 112},
        {"Food Name": "BROWN RICE, BOILED", "Calories": 115},
        {"Food Name": "Brown rice, boiled", "Calories": 112},
    ]
    result = import_file(make_sheet(rows), fake_store.cursor(), cfg)
    assert (result.inserted, result.skipped) == (1, 2)
    assert fake_store.names == ["Brown rice, boiled"]


def test_mixed_headers_and_kcal_fallback(write_config, make_sheet, fake_store):
    cfg = load_config(write_config)
    rows = [
        {"name": "Cheddar cheese", "CALORIES": "402 kcal", "protein": 25, "FAT": 33.1},
        {"name": "Almonds", "CALORIES": 579, "protein": "21.2g", "FAT": 49.9},
    ]
    import_file(make_sheet(rows, name="mixed.csv"), fake_store.cursor(), cfg)
    by_name = {r["name"]: r for r in fake_store.rows}
    assert by_name["Cheddar cheese"]["calories"] == 402.0
    assert by_name["Cheddar cheese"]["category"] == "dairy"
    assert by_name["Almonds"]["protein"] == 21.2
    assert by_name["Almonds"]["category"] == "other"


def test_partial_failure_across_many_batches(temp_workdir, make_sheet, fake_store):
    (temp_workdir / "config" / "import.yml").write_text(
        "source_file: ./data/nuttab.xlsx\nbatch_size: 50\n", encoding="utf-8"
    )
    cfg = load_config(temp_workdir / "config" / "import.yml")
    rows = [{"Food Name": f"Lentils {i}", "Energy (kJ)": 480, "Protein (g)": 9} for i in range(120)]
    fake_store.fail_inserts = {2}
    log = ErrorLogBuffer()

    result = import_file(make_sheet(rows), fake_store.cursor(), cfg, error_log=log)

    assert result.batches == 3
    assert (result.inserted, result.skipped, result.errors) == (70, 0, 50)
    assert result.failed_batches == 1
    assert [r.batch for r in log.records] == [2]
    assert {r["category"] for r in fake_store.rows} == {"other"}
