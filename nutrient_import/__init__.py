"""NUTTAB nutrient import pipeline: spreadsheet -> normalized foods table."""

__version__ = "0.1.0"
