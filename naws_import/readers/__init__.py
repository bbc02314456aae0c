"""
naws_import/readers package marker.
"""

from naws_import.readers.spreadsheet_reader import (
    MAX_FILE_SIZE_BYTES,
    SUPPORTED_FILE_EXTENSIONS,
    SpreadsheetReader,
    is_supported_file,
)

__all__ = [
    "MAX_FILE_SIZE_BYTES",
    "SUPPORTED_FILE_EXTENSIONS",
    "SpreadsheetReader",
    "is_supported_file",
]
