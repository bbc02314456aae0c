"""
naws_import/api/dependencies.py

Shared FastAPI dependencies for request validation.
"""

from __future__ import annotations

from dataclasses import replace

from fastapi import File, HTTPException, Query, UploadFile, status

from naws_import.config import get_mapping_options
from naws_import.domain.meeting_import import MappingOptions
from naws_import.mappers.field_encoders import format_time_for_bmlt, is_valid_time
from naws_import.readers.spreadsheet_reader import SUPPORTED_FILE_EXTENSIONS, is_supported_file


def get_spreadsheet_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the uploaded file has a supported spreadsheet extension.
    """

    filename = (file.filename or "").strip()
    if not filename or not is_supported_file(filename):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported file type. Allowed: {', '.join(SUPPORTED_FILE_EXTENSIONS)}.",
        )

    return file


def get_import_options(
    default_duration: str | None = Query(default=None, description="Meeting duration as HH:MM"),
    default_latitude: float | None = Query(default=None, ge=-90, le=90),
    default_longitude: float | None = Query(default=None, ge=-180, le=180),
    default_published: bool | None = Query(default=None),
) -> MappingOptions:
    """
    Overlay request query options on the configured mapping defaults.
    """

    if default_duration is not None:
        if not is_valid_time(default_duration):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid default_duration '{default_duration}'. Expected HH:MM.",
            )
        default_duration = format_time_for_bmlt(default_duration)

    overrides = {
        "default_duration": default_duration,
        "default_latitude": default_latitude,
        "default_longitude": default_longitude,
        "default_published": default_published,
    }
    return replace(
        get_mapping_options(),
        **{name: value for name, value in overrides.items() if value is not None},
    )
