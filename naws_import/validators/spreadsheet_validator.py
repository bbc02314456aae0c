"""
naws_import/validators/spreadsheet_validator.py

Header matching, row normalization and field checks for NAWS exports.
"""

from __future__ import annotations

from typing import Any, Sequence

from naws_import.domain.meeting_import import (
    NAWS_COLUMNS,
    REQUIRED_COLUMNS,
    NormalizedRecord,
    ProcessedSpreadsheet,
    is_delete_flag,
)
from naws_import.mappers.field_encoders import is_valid_coordinate, is_valid_day, is_valid_time

NO_VALID_ROWS_ERROR = "No valid meeting data found in spreadsheet"


def normalize_header(header: Any) -> str:
    """
    Normalize a header cell for case-insensitive matching.
    """

    if header is None:
        return ""
    return str(header).strip().lower()


class SpreadsheetValidator:
    """
    Turns a decoded cell grid into normalized NAWS records.

    Bad cell data becomes warnings. Only missing required columns and a
    sheet without any valid row produce errors.
    """

    def __init__(
        self,
        *,
        required_columns: Sequence[str] = REQUIRED_COLUMNS,
    ) -> None:
        self._required_columns = tuple(required_columns)

    def validate(self, grid: Sequence[Sequence[Any]]) -> ProcessedSpreadsheet:
        """
        Validate a grid whose first row holds the headers.
        """

        if not grid:
            return ProcessedSpreadsheet(
                records=[],
                total_rows=0,
                valid_rows=0,
                errors=[NO_VALID_ROWS_ERROR],
            )

        column_index = self._resolve_columns(grid[0])
        missing = [column for column in self._required_columns if column not in column_index]
        if missing:
            return ProcessedSpreadsheet(
                records=[],
                total_rows=len(grid) - 1,
                valid_rows=0,
                errors=[f"Missing required columns: {', '.join(missing)}"],
            )

        records: list[NormalizedRecord] = []
        warnings: list[str] = []
        valid_rows = 0

        for offset, row in enumerate(grid[1:], start=2):
            if self.is_completely_empty_row(row):
                continue

            values = self._normalize_row(row=row, column_index=column_index)
            if is_delete_flag(values["delete"]):
                continue

            record = NormalizedRecord(row_number=offset, **values)
            if self._check_record(record=record, warnings=warnings):
                valid_rows += 1
            records.append(record)

        errors: list[str] = []
        if valid_rows == 0:
            errors.append(NO_VALID_ROWS_ERROR)

        return ProcessedSpreadsheet(
            records=records,
            total_rows=len(grid) - 1,
            valid_rows=valid_rows,
            errors=errors,
            warnings=warnings,
        )

    @staticmethod
    def is_completely_empty_row(row: Sequence[Any] | None) -> bool:
        """
        Return True when all values in the row are empty or whitespace.
        """

        if not row:
            return True
        return all(_is_blank(value) for value in row)

    @staticmethod
    def _resolve_columns(header_row: Sequence[Any]) -> dict[str, int]:
        headers = [normalize_header(header) for header in header_row]
        column_index: dict[str, int] = {}
        for column in NAWS_COLUMNS:
            if column in headers:
                column_index[column] = headers.index(column)
        return column_index

    @staticmethod
    def _normalize_row(
        *,
        row: Sequence[Any],
        column_index: dict[str, int],
    ) -> dict[str, str]:
        values: dict[str, str] = {}
        for column in NAWS_COLUMNS:
            index = column_index.get(column)
            if index is None or index >= len(row) or _is_blank(row[index]):
                values[column] = ""
            else:
                values[column] = str(row[index]).strip()
        return values

    def _check_record(
        self,
        *,
        record: NormalizedRecord,
        warnings: list[str],
    ) -> bool:
        """
        Append field warnings for one record and report whether it is valid.
        """

        row_number = record.row_number
        has_required_data = True

        for column in self._required_columns:
            if not record.value(column).strip():
                has_required_data = False
                warnings.append(f"Row {row_number}: Missing required field '{column}'")

        if record.day and not is_valid_day(record.day):
            warnings.append(f"Row {row_number}: Invalid day value '{record.day}'")

        if record.time and not is_valid_time(record.time):
            warnings.append(f"Row {row_number}: Invalid time format '{record.time}'")

        if record.longitude and not is_valid_coordinate(record.longitude, -180.0, 180.0):
            warnings.append(f"Row {row_number}: Invalid longitude '{record.longitude}'")

        if record.latitude and not is_valid_coordinate(record.latitude, -90.0, 90.0):
            warnings.append(f"Row {row_number}: Invalid latitude '{record.latitude}'")

        return has_required_data


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    return str(value).strip() == ""
