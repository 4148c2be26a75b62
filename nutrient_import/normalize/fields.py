from __future__ import annotations

import math
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from ..models.food_record import (
    DEFAULT_BRAND,
    DEFAULT_SERVING_SIZE,
    DEFAULT_SERVING_UNIT,
    FoodRecord,
)
from .categories import categorize

"""Header-flexible field extraction: RawRow -> FoodRecord.

Source spreadsheets spell the same column many ways ("Protein (g)", "PROTEIN",
"protein"). ``FIELD_ALIASES`` lists the accepted spellings per field in
priority order and ``lookup_field`` is the single lookup used for all of them.

Nothing in this module raises on bad cell content: an unparseable or missing
value degrades to the field default and the row carries on.
"""

__all__ = [
    "FIELD_ALIASES",
    "KJ_PER_KCAL",
    "ONE_DECIMAL_FIELDS",
    "INTEGER_FIELDS",
    "lookup_field",
    "parse_number",
    "round_half_up",
    "extract_calories",
    "normalize_row",
]

KJ_PER_KCAL = 4.184

FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "name": ("Food Name", "Name", "FOOD_NAME", "Food"),
    "brand": ("Brand", "BRAND"),
    "food_group": ("Food Group", "Category", "FOOD_GROUP"),
    "serving_size": ("Serving Size", "SERVE_SIZE", "Serving Size (g)"),
    "serving_unit": ("Serving Unit", "SERVE_UNIT"),
    # kJ は kcal より先に評価 (両方ある場合 kJ 優先)
    "energy_kj": (
        "Energy (kJ)",
        "Energy, with dietary fibre (kJ)",
        "Energy with dietary fibre, equated (kJ)",
        "Energy, without dietary fibre (kJ)",
        "Energy kJ",
        "ENERGY_KJ",
        "Energy",
    ),
    "energy_kcal": ("Calories", "Energy (kcal)", "Energy kcal", "ENERGY_KCAL", "kcal"),
    "protein": ("Protein (g)", "Protein", "PROTEIN"),
    "carbs": (
        "Carbohydrate (g)",
        "Carbohydrates (g)",
        "Available carbohydrate, with sugar alcohols (g)",
        "Available carbohydrate, without sugar alcohols (g)",
        "Carbs (g)",
        "Carbohydrate",
        "Carbohydrates",
        "Carbs",
        "CARBOHYDRATE",
    ),
    "fat": ("Fat, total (g)", "Total fat (g)", "Fat (g)", "Fats (g)", "Fat", "Fats", "FAT"),
    "fiber": ("Fibre (g)", "Total dietary fibre (g)", "Fiber (g)", "Fibre", "Fiber", "FIBRE"),
    "sugar": ("Sugars (g)", "Total sugars (g)", "Sugar (g)", "Sugars", "Sugar", "SUGARS"),
    "sodium": ("Sodium (mg)", "Sodium (Na) (mg)", "Sodium", "SODIUM"),
    "cholesterol": ("Cholesterol (mg)", "Cholesterol", "CHOLESTEROL"),
}

ONE_DECIMAL_FIELDS = ("calories", "protein", "carbs", "fat", "fiber", "sugar")
INTEGER_FIELDS = ("sodium", "cholesterol")

# parseFloat 相当: 先頭の数値部分のみ採用 ("12.5 g" -> 12.5, "tr" -> 不可)
_LEADING_NUMBER = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
# 3桁区切り ("1,234.5") のみカンマ除去、それ以外のカンマは小数点 ("12,5" -> 12.5)
_THOUSANDS_GROUPED = re.compile(r"^[+-]?\d{1,3}(?:,\d{3})+(?:\.\d+)?(?![\d,])")
_WHITESPACE = re.compile(r"\s+")


def _normalize_header(header: Any) -> str:
    return _WHITESPACE.sub(" ", str(header)).strip().lower()


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def lookup_field(row: dict[str, Any], aliases: tuple[str, ...] | list[str], default: Any = None) -> Any:
    """Value of the first alias present in ``row``, else ``default``.

    An alias is present when the header exists and the cell is not blank.
    Each alias is tried exactly first and then case/whitespace-insensitively
    before moving on to the next alias, so alias order decides ties.
    """
    index: dict[str, str] | None = None
    for alias in aliases:
        if alias in row and not _is_blank(row[alias]):
            return row[alias]
        if index is None:
            index = {}
            for key in row:
                index.setdefault(_normalize_header(key), key)
        key = index.get(_normalize_header(alias))
        if key is not None and not _is_blank(row[key]):
            return row[key]
    return default


def _strip_separators(text: str) -> str:
    if _THOUSANDS_GROUPED.match(text):
        return text.replace(",", "")
    return text.replace(",", ".", 1)


def parse_number(value: Any, default: float = 0.0) -> float:
    """Tolerant numeric coercion; never raises.

    Blank, NaN, infinite, negative, boolean and non-numeric values give
    ``default``. Strings are read like a lenient float parse: surrounding
    whitespace and thousands separators are ignored, any other comma is read as
    a decimal point and a trailing unit is dropped.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = _strip_separators(str(value).strip())
        match = _LEADING_NUMBER.match(text)
        if match is None:
            return default
        try:
            number = float(match.group(0))
        except ValueError:
            return default
    if math.isnan(number) or math.isinf(number) or number < 0:
        return default
    return number


def round_half_up(value: float, places: int = 1) -> float:
    """Round half away from zero; idempotent for already-rounded input."""
    try:
        quantum = Decimal(1).scaleb(-places)
        return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return value


def extract_calories(row: dict[str, Any]) -> float:
    """Unrounded kcal: kJ column (/4.184) wins over a kcal column; 0 if neither."""
    kj = lookup_field(row, FIELD_ALIASES["energy_kj"])
    if kj is not None:
        return parse_number(kj) / KJ_PER_KCAL
    kcal = lookup_field(row, FIELD_ALIASES["energy_kcal"])
    if kcal is not None:
        return parse_number(kcal)
    return 0.0


def _text(value: Any) -> str:
    if _is_blank(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def normalize_row(
    row: dict[str, Any],
    *,
    brand: str | None = DEFAULT_BRAND,
    created_by: int | None = None,
) -> FoodRecord:
    """Map one RawRow to a candidate FoodRecord.

    The result may be invalid (empty name, all-zero macros); callers filter on
    ``FoodRecord.is_valid``.
    """
    name = _text(lookup_field(row, FIELD_ALIASES["name"], ""))
    group = _text(lookup_field(row, FIELD_ALIASES["food_group"], ""))
    row_brand = _text(lookup_field(row, FIELD_ALIASES["brand"], "")) or brand

    serving_size = parse_number(lookup_field(row, FIELD_ALIASES["serving_size"]), DEFAULT_SERVING_SIZE)
    if serving_size <= 0:
        serving_size = DEFAULT_SERVING_SIZE
    serving_unit = _text(lookup_field(row, FIELD_ALIASES["serving_unit"], "")) or DEFAULT_SERVING_UNIT

    values: dict[str, float] = {"calories": extract_calories(row)}
    for field_name in ONE_DECIMAL_FIELDS[1:] + INTEGER_FIELDS:
        values[field_name] = parse_number(lookup_field(row, FIELD_ALIASES[field_name]))

    # 丸めは変換後に一度だけ
    for field_name in ONE_DECIMAL_FIELDS:
        values[field_name] = round_half_up(values[field_name], 1)
    for field_name in INTEGER_FIELDS:
        values[field_name] = round_half_up(values[field_name], 0)

    return FoodRecord(
        name=name,
        category=categorize(name, group),
        brand=row_brand,
        serving_size=serving_size,
        serving_unit=serving_unit,
        created_by=created_by,
        is_public=True,
        **values,
    )
