"""Normalization and categorization stages (RawRow -> FoodRecord)."""

from .categories import categorize, infer_category
from .fields import FIELD_ALIASES, lookup_field, normalize_row, parse_number

__all__ = [
    "FIELD_ALIASES",
    "categorize",
    "infer_category",
    "lookup_field",
    "normalize_row",
    "parse_number",
]
