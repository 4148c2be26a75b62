from __future__ import annotations

import re

from ..models.food_record import FoodCategory

"""Food category inference.

Two tables, both evaluated top to bottom with the first hit winning:

- ``FOOD_GROUP_CATEGORIES``: keyword -> category for an explicit food group
  column (NUTTAB "Food Group"). Plain substring containment.
- ``CATEGORY_RULES``: keyword regex -> category for free-text food names.

Rule order is part of the contract: "Chicken and Cheese Bake" matches both the
protein and the dairy rule and is protein because protein is listed first.
Do not reorder either table.
"""

__all__ = [
    "CATEGORY_RULES",
    "FOOD_GROUP_CATEGORIES",
    "infer_category",
    "category_from_group",
    "categorize",
]


def _rule(*keywords: str) -> re.Pattern[str]:
    return re.compile("|".join(re.escape(k) for k in keywords))


CATEGORY_RULES: tuple[tuple[re.Pattern[str], FoodCategory], ...] = (
    (
        _rule(
            "meat", "fish", "chicken", "beef", "pork", "lamb", "poultry", "turkey",
            "egg", "legume", "salmon", "tuna", "prawn", "seafood",
        ),
        FoodCategory.PROTEIN,
    ),
    (_rule("bread", "rice", "pasta", "cereal", "grain", "wheat", "corn", "oat"), FoodCategory.CARBS),
    (_rule("oil", "butter", "cream", "lard", "margarine", "fat"), FoodCategory.FAT),
    (_rule("milk", "yogurt", "yoghurt", "cheese", "dairy"), FoodCategory.DAIRY),
    (
        _rule("apple", "orange", "banana", "berry", "fruit", "pear", "grape", "melon", "cherry"),
        FoodCategory.FRUIT,
    ),
    (
        _rule("vegetable", "veg", "carrot", "broccoli", "spinach", "lettuce", "cabbage", "pepper"),
        FoodCategory.VEGETABLE,
    ),
    (
        _rule("juice", "water", "tea", "coffee", "drink", "beverage", "soda", "wine", "beer", "alcohol"),
        FoodCategory.BEVERAGE,
    ),
    (
        _rule("snack", "chip", "crisp", "cracker", "popcorn", "pretzel", "cookie", "biscuit"),
        FoodCategory.SNACK,
    ),
    (_rule("vitamin", "supplement", "mineral", "protein powder", "amino"), FoodCategory.SUPPLEMENT),
)

# NUTTAB food group -> category (部分一致, 大文字小文字無視)
FOOD_GROUP_CATEGORIES: tuple[tuple[str, FoodCategory], ...] = (
    ("meat", FoodCategory.PROTEIN),
    ("poultry", FoodCategory.PROTEIN),
    ("fish", FoodCategory.PROTEIN),
    ("seafood", FoodCategory.PROTEIN),
    ("egg", FoodCategory.PROTEIN),
    ("legumes", FoodCategory.PROTEIN),
    ("grain", FoodCategory.CARBS),
    ("bread", FoodCategory.CARBS),
    ("cereal", FoodCategory.CARBS),
    ("rice", FoodCategory.CARBS),
    ("pasta", FoodCategory.CARBS),
    ("fruit", FoodCategory.FRUIT),
    ("vegetable", FoodCategory.VEGETABLE),
    ("dairy", FoodCategory.DAIRY),
    ("milk", FoodCategory.DAIRY),
    ("cheese", FoodCategory.DAIRY),
    ("yoghurt", FoodCategory.DAIRY),
    ("nuts", FoodCategory.NUTS),
    ("seeds", FoodCategory.SEEDS),
    ("oil", FoodCategory.FAT),
    ("butter", FoodCategory.FAT),
    ("margarine", FoodCategory.FAT),
)


def infer_category(text: str | None) -> FoodCategory:
    """Category for a free-text name; ``OTHER`` when no rule matches."""
    if not text:
        return FoodCategory.OTHER
    lowered = str(text).lower()
    for pattern, category in CATEGORY_RULES:
        if pattern.search(lowered):
            return category
    return FoodCategory.OTHER


def category_from_group(group: str | None) -> FoodCategory | None:
    """Category for an explicit food group value, or None if nothing matches."""
    if not group:
        return None
    lowered = str(group).strip().lower()
    if not lowered:
        return None
    for keyword, category in FOOD_GROUP_CATEGORIES:
        if keyword in lowered:
            return category
    return None


def categorize(name: str | None, group: str | None = None) -> FoodCategory:
    """Explicit food group first, then name-based inference."""
    from_group = category_from_group(group)
    if from_group is not None:
        return from_group
    return infer_category(name)
