"""
naws_import/readers/spreadsheet_reader.py

Decodes uploaded spreadsheet files into a grid of string cells.
"""

from __future__ import annotations

import csv
import io
import logging
from datetime import date, datetime, time
from pathlib import Path
from typing import Any

import pandas as pd

from naws_import.domain.errors import SpreadsheetReadError

logger = logging.getLogger(__name__)

SUPPORTED_FILE_EXTENSIONS: tuple[str, ...] = (".xlsx", ".xls", ".csv", ".ods")

MAX_FILE_SIZE_BYTES = 10 * 1024 * 1024

_EXCEL_ENGINES: dict[str, str] = {
    ".xlsx": "openpyxl",
    ".xls": "xlrd",
    ".ods": "odf",
}


def file_extension(filename: str) -> str:
    return Path(filename.strip()).suffix.lower()


def is_supported_file(filename: str) -> bool:
    return file_extension(filename) in SUPPORTED_FILE_EXTENSIONS


class SpreadsheetReader:
    """
    Reads the first sheet of a CSV, XLSX, XLS or ODS file.

    The first grid row holds the headers. Every cell is returned as text;
    empty cells are returned as an empty string.
    """

    def __init__(self, *, max_file_size_bytes: int = MAX_FILE_SIZE_BYTES) -> None:
        self._max_file_size_bytes = max_file_size_bytes

    def read(
        self,
        source: str | Path | bytes,
        *,
        filename: str | None = None,
    ) -> list[list[str]]:
        """
        Decode ``source`` into a grid, raising SpreadsheetReadError on any failure.
        """

        if isinstance(source, (bytes, bytearray)):
            if not filename:
                raise SpreadsheetReadError("Error processing spreadsheet: a file name is required for raw content.")
            content = bytes(source)
        else:
            path = Path(source)
            filename = filename or path.name
            try:
                content = path.read_bytes()
            except OSError as exc:
                raise SpreadsheetReadError(f"Error processing spreadsheet: {exc}") from exc

        extension = file_extension(filename)
        if extension not in SUPPORTED_FILE_EXTENSIONS:
            raise SpreadsheetReadError(
                f"Error processing spreadsheet: unsupported file type '{extension or filename}'. "
                f"Supported types: {', '.join(SUPPORTED_FILE_EXTENSIONS)}"
            )
        if len(content) > self._max_file_size_bytes:
            raise SpreadsheetReadError(
                f"Error processing spreadsheet: file exceeds {self._max_file_size_bytes} bytes."
            )

        try:
            if extension == ".csv":
                grid = self._read_csv(content)
            else:
                grid = self._read_workbook(content, engine=_EXCEL_ENGINES[extension])
        except Exception as exc:  # noqa: BLE001
            logger.warning("Spreadsheet decode failed filename=%s error=%s", filename, exc)
            raise SpreadsheetReadError(f"Error processing spreadsheet: {exc}") from exc

        logger.info("Spreadsheet decoded filename=%s rows=%s", filename, len(grid))
        return grid

    @staticmethod
    def _read_csv(content: bytes) -> list[list[str]]:
        # Rows may be ragged; the validator pads or drops cells by header position.
        if not content.strip():
            return []
        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError:
            text = content.decode("latin-1")
        reader = csv.reader(io.StringIO(text, newline=""))
        return [[cell_to_text(cell) for cell in row] for row in reader]

    @staticmethod
    def _read_workbook(content: bytes, *, engine: str) -> list[list[str]]:
        frame = pd.read_excel(
            io.BytesIO(content),
            sheet_name=0,
            header=None,
            dtype=object,
            engine=engine,
        )
        return [[cell_to_text(cell) for cell in row] for row in frame.itertuples(index=False, name=None)]


def cell_to_text(value: Any) -> str:
    """
    Render one decoded cell as text.
    """

    if value is None or value is pd.NaT:
        return ""
    if isinstance(value, float):
        if pd.isna(value):
            return ""
        if value.is_integer():
            return str(int(value))
        return str(value)
    if isinstance(value, datetime):
        if value.time() == time(0, 0):
            return value.date().isoformat()
        return value.isoformat(sep=" ")
    if isinstance(value, time):
        return value.strftime("%H:%M")
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()
