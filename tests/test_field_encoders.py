"""
tests/test_field_encoders.py

Pytest unit tests for the NAWS day, time and coordinate encoders.
"""

from __future__ import annotations

import pytest

from naws_import.mappers.field_encoders import (
    DEFAULT_START_TIME,
    format_time_for_bmlt,
    is_valid_coordinate,
    is_valid_day,
    is_valid_time,
    map_day_to_bmlt,
    parse_coordinate,
)


# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------


class TestFormatTime:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("1930", "19:30"),
            ("930", "09:30"),
            ("19:30", "19:30"),
            ("9:05", "09:05"),
            ("0000", "00:00"),
            (" 7:30 PM ", "07:30"),
        ],
    )
    def test_valid_values(self, raw: str, expected: str) -> None:
        assert format_time_for_bmlt(raw) == expected

    @pytest.mark.parametrize("raw", ["", "invalid", "2460", "1975", "25:00", "12:5", "12345", None])
    def test_invalid_values_fall_back_to_noon(self, raw: str | None) -> None:
        assert format_time_for_bmlt(raw) == DEFAULT_START_TIME == "12:00"

    def test_is_valid_time_matches_encoder(self) -> None:
        assert is_valid_time("1930")
        assert is_valid_time("7:15")
        assert not is_valid_time("")
        assert not is_valid_time("noon")


# ---------------------------------------------------------------------------
# Day
# ---------------------------------------------------------------------------


class TestMapDay:
    @pytest.mark.parametrize(
        ("day", "expected"),
        [
            ("Sunday", 0),
            ("Monday", 1),
            ("Tuesday", 2),
            ("Wednesday", 3),
            ("Thursday", 4),
            ("Friday", 5),
            ("Saturday", 6),
        ],
    )
    def test_weekday_names(self, day: str, expected: int) -> None:
        assert map_day_to_bmlt(day) == expected
        assert map_day_to_bmlt(day.upper()) == expected
        assert map_day_to_bmlt(f"  {day.lower()} ") == expected

    @pytest.mark.parametrize("day", ["", "Mon", "Funday", None])
    def test_unrecognized_maps_to_zero(self, day: str | None) -> None:
        assert map_day_to_bmlt(day) == 0

    def test_is_valid_day(self) -> None:
        assert is_valid_day("friday")
        assert not is_valid_day("Fri")


# ---------------------------------------------------------------------------
# Coordinates
# ---------------------------------------------------------------------------


class TestCoordinates:
    def test_valid_numbers_parse_exactly(self) -> None:
        assert parse_coordinate("39.7817", 0.0) == 39.7817
        assert parse_coordinate("-89.6501", 0.0) == -89.6501

    @pytest.mark.parametrize("raw", ["", "   ", "north", "nan", "inf", None])
    def test_blank_or_non_numeric_uses_default(self, raw: str | None) -> None:
        assert parse_coordinate(raw, 12.5) == 12.5

    def test_range_check(self) -> None:
        assert is_valid_coordinate("90", -90.0, 90.0)
        assert not is_valid_coordinate("90.1", -90.0, 90.0)
        assert not is_valid_coordinate("abc", -180.0, 180.0)
