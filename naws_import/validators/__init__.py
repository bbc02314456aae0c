"""
naws_import/validators package marker.
"""

from naws_import.validators.spreadsheet_validator import NO_VALID_ROWS_ERROR, SpreadsheetValidator

__all__ = [
    "NO_VALID_ROWS_ERROR",
    "SpreadsheetValidator",
]
