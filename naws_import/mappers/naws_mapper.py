"""
naws_import/mappers/naws_mapper.py

Maps normalized NAWS records onto BMLT meeting create requests.
"""

from __future__ import annotations

import logging
from typing import Iterable

from naws_import.domain.meeting_import import (
    FORMAT_COLUMNS,
    WHEELCHAIR_FORMAT_WORLD_ID,
    FormatStats,
    LookupTables,
    MappingOptions,
    MappingResult,
    MeetingCreateRequest,
    NormalizedRecord,
    VenueType,
)
from naws_import.mappers.field_encoders import format_time_for_bmlt, map_day_to_bmlt, parse_coordinate

logger = logging.getLogger(__name__)

_REQUIRED_FIELD_MESSAGES: tuple[tuple[str, str], ...] = (
    ("committeename", "Missing meeting name (committeename)"),
    ("arearegion", "Missing area/region (arearegion)"),
    ("day", "Missing day"),
    ("time", "Missing time"),
)


def is_wheelchair_accessible(value: str | None) -> bool:
    return (value or "").strip().lower() in {"true", "1"}


def determine_venue_type(record: NormalizedRecord) -> int:
    """
    Classify a meeting from its location and virtual contact fields.

    A street address is the only physical signal; a city alone does not count.
    """

    has_physical_location = bool(record.address.strip())
    has_virtual_info = bool(record.virtualmeetinglink.strip() or record.phonemeetingnumber.strip())

    if has_physical_location and has_virtual_info:
        return VenueType.HYBRID
    if has_virtual_info:
        return VenueType.VIRTUAL
    return VenueType.IN_PERSON


def build_location_info(record: NormalizedRecord) -> str:
    parts = [part.strip() for part in (record.room, record.directions) if part.strip()]
    return ", ".join(parts)


class NAWSMapper:
    """
    Builds create requests against one lookup snapshot.

    The mapper never mutates its snapshot; build a new mapper when service
    bodies change.
    """

    def __init__(
        self,
        *,
        lookup: LookupTables,
        options: MappingOptions | None = None,
    ) -> None:
        self._lookup = lookup
        self._options = options or MappingOptions()

    @property
    def lookup(self) -> LookupTables:
        return self._lookup

    def map_row(self, record: NormalizedRecord, row_number: int | None = None) -> MappingResult:
        """
        Map one record, returning the request or the reasons it was rejected.
        """

        row_number = record.row_number if row_number is None else row_number

        if record.is_deleted:
            return MappingResult(meeting=None)

        for column, message in _REQUIRED_FIELD_MESSAGES:
            if not record.value(column).strip():
                return MappingResult(meeting=None, errors=[f"Row {row_number}: {message}"])

        service_body_id = self._lookup.service_body_id(record.arearegion)
        if service_body_id is None:
            return MappingResult(
                meeting=None,
                errors=[
                    f"Row {row_number}: Service body not found for area/region '{record.arearegion}'"
                ],
            )

        warnings: list[str] = []
        try:
            meeting = MeetingCreateRequest(
                service_body_id=service_body_id,
                format_ids=self._map_formats(record=record, row_number=row_number, warnings=warnings),
                venue_type=determine_venue_type(record),
                day=map_day_to_bmlt(record.day),
                start_time=format_time_for_bmlt(record.time),
                duration=self._options.default_duration,
                time_zone=record.timezone,
                latitude=parse_coordinate(record.latitude, self._options.default_latitude),
                longitude=parse_coordinate(record.longitude, self._options.default_longitude),
                published=self._options.default_published,
                world_id=record.committee,
                name=record.committeename,
                location_text=record.place,
                location_info=build_location_info(record),
                location_street=record.address,
                location_neighborhood=record.locborough,
                location_municipality=record.city,
                location_province=record.state,
                location_postal_code_1=record.zip,
                location_nation=record.country,
                phone_meeting_number=record.phonemeetingnumber,
                virtual_meeting_link=record.virtualmeetinglink,
                virtual_meeting_additional_info=record.virtualmeetinginfo,
            )
        except Exception as exc:  # noqa: BLE001
            logger.exception("Meeting mapping failed row=%s", row_number)
            return MappingResult(
                meeting=None,
                errors=[f"Row {row_number}: Error mapping meeting data: {exc}"],
            )

        return MappingResult(meeting=meeting, warnings=warnings)

    def _map_formats(
        self,
        *,
        record: NormalizedRecord,
        row_number: int,
        warnings: list[str],
    ) -> tuple[int, ...]:
        format_ids: dict[int, None] = {}

        if is_wheelchair_accessible(record.wheelchr):
            wheelchair_ids = self._lookup.format_ids_for(WHEELCHAIR_FORMAT_WORLD_ID)
            if wheelchair_ids:
                format_ids.update(dict.fromkeys(wheelchair_ids))
            else:
                warnings.append(
                    f"Row {row_number}: Wheelchair format ({WHEELCHAIR_FORMAT_WORLD_ID}) not found"
                )

        for column in FORMAT_COLUMNS:
            value = record.value(column).strip()
            if not value:
                continue
            resolved = self._lookup.format_ids_for(value)
            if resolved:
                format_ids.update(dict.fromkeys(resolved))
            else:
                warnings.append(f"Row {row_number}: Format '{value}' not found in {column}")

        return tuple(format_ids)

    def format_stats(self, records: Iterable[NormalizedRecord]) -> FormatStats:
        """
        Split every format code used by non-deleted records into found and missing.
        """

        found: dict[str, None] = {}
        missing: dict[str, None] = {}

        for record in records:
            if record.is_deleted:
                continue
            codes: list[str] = []
            if is_wheelchair_accessible(record.wheelchr):
                codes.append(WHEELCHAIR_FORMAT_WORLD_ID)
            codes.extend(
                record.value(column).strip().upper()
                for column in FORMAT_COLUMNS
                if record.value(column).strip()
            )
            for code in codes:
                if self._lookup.format_ids_for(code):
                    found[code] = None
                else:
                    missing[code] = None

        return FormatStats(found=list(found), missing=list(missing))

    def missing_service_bodies(self, records: Iterable[NormalizedRecord]) -> list[str]:
        """
        Return uppercased area/region codes with no service body in the snapshot.
        """

        missing: dict[str, None] = {}
        for record in records:
            if record.is_deleted or not record.arearegion.strip():
                continue
            code = record.arearegion.strip().upper()
            if self._lookup.service_body_id(code) is None:
                missing[code] = None
        return list(missing)
