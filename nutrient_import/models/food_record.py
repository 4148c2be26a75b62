from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

"""FoodRecord domain model for the NUTTAB nutrient import pipeline.

A FoodRecord is the canonical, normalized representation of one spreadsheet
row that is ready to be written to the ``foods`` table. It is produced once by
``normalize_row`` and is either discarded (invalid / duplicate) or persisted
exactly once.
"""

__all__ = [
    "FoodCategory",
    "FoodRecord",
    "FOOD_COLUMNS",
    "DEFAULT_BRAND",
    "DEFAULT_SERVING_SIZE",
    "DEFAULT_SERVING_UNIT",
]

DEFAULT_BRAND = "NUTTAB"
DEFAULT_SERVING_SIZE = 100.0
DEFAULT_SERVING_UNIT = "g"

# foods テーブルへの INSERT 列順 (name は先頭固定: RETURNING / 重複判定で参照)
FOOD_COLUMNS: tuple[str, ...] = (
    "name",
    "brand",
    "category",
    "serving_size",
    "serving_unit",
    "calories",
    "protein",
    "carbs",
    "fat",
    "fiber",
    "sugar",
    "sodium",
    "cholesterol",
    "is_public",
    "created_by",
)


class FoodCategory(Enum):
    """Closed set of food categories accepted by the ``foods`` table."""
    PROTEIN = "protein"
    CARBS = "carbs"
    FAT = "fat"
    DAIRY = "dairy"
    FRUIT = "fruit"
    VEGETABLE = "vegetable"
    BEVERAGE = "beverage"
    SNACK = "snack"
    SUPPLEMENT = "supplement"
    NUTS = "nuts"
    SEEDS = "seeds"
    OTHER = "other"


@dataclass(frozen=True)
class FoodRecord:
    """Normalized food item ready for persistence.

    Macro fields are already rounded (one decimal, sodium/cholesterol to the
    nearest integer) when the record is built; nothing downstream rounds again.
    """
    name: str
    category: FoodCategory = FoodCategory.OTHER
    brand: str | None = DEFAULT_BRAND
    serving_size: float = DEFAULT_SERVING_SIZE
    serving_unit: str = DEFAULT_SERVING_UNIT
    calories: float = 0.0
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0
    fiber: float = 0.0
    sugar: float = 0.0
    sodium: float = 0.0
    cholesterol: float = 0.0
    is_public: bool = True
    created_by: int | None = None

    @property
    def name_key(self) -> str:
        """Case-insensitive identity used for deduplication."""
        return self.name.strip().lower()

    @property
    def is_valid(self) -> bool:
        """Name present and at least one energy-bearing macro above zero."""
        if not self.name or not self.name.strip():
            return False
        return self.calories > 0 or self.protein > 0 or self.carbs > 0 or self.fat > 0

    def to_row(self) -> tuple[Any, ...]:
        """Values in ``FOOD_COLUMNS`` order for batch INSERT."""
        data = asdict(self)
        data["category"] = self.category.value
        return tuple(data[c] for c in FOOD_COLUMNS)

    def to_dict(self) -> dict[str, Any]:
        """JSON friendly representation (camelCase keys, as served to the web client)."""
        return {
            "name": self.name,
            "brand": self.brand,
            "category": self.category.value,
            "servingSize": self.serving_size,
            "servingUnit": self.serving_unit,
            "calories": self.calories,
            "protein": self.protein,
            "carbs": self.carbs,
            "fat": self.fat,
            "fiber": self.fiber,
            "sugar": self.sugar,
            "sodium": self.sodium,
            "cholesterol": self.cholesterol,
            "isPublic": self.is_public,
            "createdBy": self.created_by,
        }
