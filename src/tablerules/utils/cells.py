"""Spreadsheet-style cell references."""

from openpyxl.utils import get_column_letter


def cell_ref(row_number: int, column_number: int) -> str:
    """A1 reference for a 1-based row and column, e.g. ``cell_ref(3, 2) == "B3"``."""
    if row_number < 1 or column_number < 1:
        raise ValueError(f"Row and column numbers must be >= 1, got ({row_number}, {column_number})")
    return f"{get_column_letter(column_number)}{row_number}"
