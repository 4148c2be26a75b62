"""Domain models for the NUTTAB nutrient import pipeline."""

from .error_record import ErrorRecord
from .food_record import FOOD_COLUMNS, FoodCategory, FoodRecord
from .import_result import BatchOutcome, BatchStatsAccumulator, ImportResult

__all__ = [
    # Food models
    "FOOD_COLUMNS",
    "FoodCategory",
    "FoodRecord",
    # Result models
    "BatchOutcome",
    "BatchStatsAccumulator",
    "ErrorRecord",
    "ImportResult",
]
