"""
naws_import/schemas/meeting_import.py

Response schemas for meeting import endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class ImportConstraintsResponse(BaseModel):
    supported_file_types: list[str]
    max_file_size_bytes: int = Field(..., ge=1)


class FilePreviewResponse(BaseModel):
    total_rows: int = Field(..., ge=0)
    valid_rows: int = Field(..., ge=0)
    sample_rows: list[dict[str, Any]] = Field(default_factory=list)


class FileValidationResponse(BaseModel):
    """
    API response model for a file pre-check.
    """

    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    preview: FilePreviewResponse


class ImportProgressResponse(BaseModel):
    phase: str
    current_step: int = Field(..., ge=0)
    total_steps: int = Field(..., ge=1)
    message: str
    percentage: float = Field(..., ge=0, le=100)


class ImportOutcomeResponse(BaseModel):
    """
    API response model for the end-of-run import summary.
    """

    success: bool
    cancelled: bool
    total_processed: int = Field(..., ge=0)
    successful_imports: int = Field(..., ge=0)
    failed_imports: int = Field(..., ge=0)
    skipped_imports: int = Field(..., ge=0)
    service_bodies_created: int = Field(..., ge=0)
    duration_seconds: float = Field(..., ge=0)
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    created_meetings: list[dict[str, Any]] = Field(default_factory=list)


class ImportJobAcceptedResponse(BaseModel):
    job_id: UUID
    filename: str
    status: str
    created_at: datetime


class ImportJobStatusResponse(BaseModel):
    job_id: UUID
    filename: str
    status: str
    created_at: datetime
    updated_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    progress: ImportProgressResponse | None = None
    outcome: ImportOutcomeResponse | None = None
    error_message: str | None = None


class ImportJobListResponse(BaseModel):
    jobs: list[ImportJobStatusResponse] = Field(default_factory=list)
