#!/usr/bin/env python3
"""Sample dataset generator for local runs and performance checks.

Generates a NUTTAB-style workbook: one header row followed by data rows, with
the column spellings the importer recognizes ("Food Name", "Energy (kJ)",
"Fat, total (g)", ...). A configurable share of rows repeats an earlier name
and another share has no nutrient values, so that the dedup and validity
stages have something to do.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

FOOD_GROUPS = {
    "Meat and poultry": ["Chicken breast", "Beef mince", "Pork loin", "Lamb chop", "Turkey"],
    "Fish and seafood": ["Salmon fillet", "Tuna in brine", "Prawns", "Snapper"],
    "Cereal and grain products": ["White bread", "Brown rice", "Rolled oats", "Pasta shells"],
    "Fruit products": ["Apple", "Banana", "Pear", "Grapes", "Rockmelon"],
    "Vegetable products": ["Carrot", "Broccoli", "Spinach", "Cabbage", "Pumpkin"],
    "Milk products": ["Full cream milk", "Cheddar cheese", "Greek yoghurt"],
    "Nuts and seeds": ["Almonds", "Cashews", "Sunflower kernels"],
    "Fats and oils": ["Olive oil", "Salted butter", "Canola margarine"],
}

COLUMNS = [
    "Food Name",
    "Food Group",
    "Energy (kJ)",
    "Protein (g)",
    "Fat, total (g)",
    "Carbohydrate (g)",
    "Fibre (g)",
    "Sugars (g)",
    "Sodium (mg)",
    "Cholesterol (mg)",
]


def generate_food_rows(
    rows: int,
    seed: int = 42,
    duplicate_ratio: float = 0.05,
    empty_ratio: float = 0.02,
) -> pd.DataFrame:
    """Build a DataFrame of synthetic food rows.

    Args:
        rows: number of data rows
        seed: random seed for reproducible data
        duplicate_ratio: share of rows that reuse an earlier food name
        empty_ratio: share of rows with every nutrient blank (dropped on import)
    """
    rng = np.random.default_rng(seed)
    groups = list(FOOD_GROUPS)

    records: list[dict[str, Any]] = []
    for i in range(rows):
        if records and rng.random() < duplicate_ratio:
            records.append(dict(records[int(rng.integers(0, len(records)))]))
            continue

        group = groups[int(rng.integers(0, len(groups)))]
        base = FOOD_GROUPS[group][int(rng.integers(0, len(FOOD_GROUPS[group])))]
        row: dict[str, Any] = {"Food Name": f"{base}, sample {i + 1}", "Food Group": group}
        if rng.random() < empty_ratio:
            row.update({c: None for c in COLUMNS[2:]})
        else:
            row.update(
                {
                    "Energy (kJ)": round(float(rng.uniform(40, 3700)), 0),
                    "Protein (g)": round(float(rng.uniform(0, 35)), 1),
                    "Fat, total (g)": round(float(rng.uniform(0, 100)), 1),
                    "Carbohydrate (g)": round(float(rng.uniform(0, 80)), 1),
                    "Fibre (g)": round(float(rng.uniform(0, 15)), 1),
                    "Sugars (g)": round(float(rng.uniform(0, 40)), 1),
                    "Sodium (mg)": int(rng.integers(0, 1500)),
                    "Cholesterol (mg)": int(rng.integers(0, 300)),
                }
            )
        records.append(row)

    return pd.DataFrame(records, columns=COLUMNS)


def create_workbook(output_path: Path, df: pd.DataFrame, sheet_name: str = "Food details") -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    if output_path.suffix.lower() == ".csv":
        df.to_csv(output_path, index=False)
    else:
        with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
            df.to_excel(writer, sheet_name=sheet_name, index=False)

    print(f"Created dataset: {output_path}")
    print(f"  Rows: {len(df):,} (+ 1 header row)")
    print(f"  Distinct names: {df['Food Name'].nunique():,}")


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Generate a synthetic NUTTAB-style nutrient workbook",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # 1,000 rows into data/nutrient_file.xlsx
  %(prog)s data/nutrient_file.xlsx

  # Larger file with more duplicates
  %(prog)s large.xlsx --rows 50000 --duplicate-ratio 0.2

  # CSV output
  %(prog)s sample.csv --rows 200
        """,
    )
    parser.add_argument("output", type=Path, help="Output .xlsx or .csv path")
    parser.add_argument("--rows", type=int, default=1_000, help="Number of data rows (default: 1,000)")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    parser.add_argument(
        "--duplicate-ratio", type=float, default=0.05, help="Share of repeated names (default: 0.05)"
    )
    parser.add_argument(
        "--empty-ratio", type=float, default=0.02, help="Share of rows without nutrients (default: 0.02)"
    )
    parser.add_argument(
        "--dry-run", action="store_true", help="Show what would be generated without creating files"
    )
    args = parser.parse_args()

    if args.rows <= 0:
        print("Error: --rows must be positive", file=sys.stderr)
        return 1
    for flag, value in (("--duplicate-ratio", args.duplicate_ratio), ("--empty-ratio", args.empty_ratio)):
        if not 0 <= value < 1:
            print(f"Error: {flag} must be in [0, 1)", file=sys.stderr)
            return 1
    if args.output.suffix.lower() not in (".xlsx", ".csv"):
        print("Error: output must end in .xlsx or .csv", file=sys.stderr)
        return 1

    print("Dataset generation plan:")
    print(f"  Output file: {args.output}")
    print(f"  Rows: {args.rows:,}")
    print(f"  Duplicate ratio: {args.duplicate_ratio}")
    print(f"  Empty ratio: {args.empty_ratio}")
    print(f"  Random seed: {args.seed}")

    if args.dry_run:
        print("\n[DRY RUN] Would generate the file but not creating it.")
        return 0

    try:
        df = generate_food_rows(args.rows, args.seed, args.duplicate_ratio, args.empty_ratio)
        create_workbook(args.output, df)
    except Exception as e:
        print(f"\nError generating dataset: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
