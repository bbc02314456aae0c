"""
naws_import/api/routers/meeting_import.py

Meeting import HTTP endpoints.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, UploadFile, status

from naws_import.api.dependencies import get_import_options, get_spreadsheet_upload
from naws_import.domain.meeting_import import (
    FileValidationResult,
    ImportOutcome,
    ImportProgress,
    MappingOptions,
)
from naws_import.readers.spreadsheet_reader import MAX_FILE_SIZE_BYTES, SUPPORTED_FILE_EXTENSIONS
from naws_import.schemas.meeting_import import (
    FilePreviewResponse,
    FileValidationResponse,
    ImportConstraintsResponse,
    ImportJobAcceptedResponse,
    ImportJobListResponse,
    ImportJobStatusResponse,
    ImportOutcomeResponse,
    ImportProgressResponse,
)
from naws_import.services.import_job_registry import (
    FastAPIBackgroundTaskExecutor,
    ImportJob,
    ImportJobRegistry,
    get_import_job_registry,
)
from naws_import.services.meeting_import_service import validate_spreadsheet_file

router = APIRouter(prefix="/meeting-import", tags=["meeting-import"])


@router.get("/constraints", response_model=ImportConstraintsResponse)
def get_constraints() -> ImportConstraintsResponse:
    return ImportConstraintsResponse(
        supported_file_types=list(SUPPORTED_FILE_EXTENSIONS),
        max_file_size_bytes=MAX_FILE_SIZE_BYTES,
    )


@router.post("/validate", response_model=FileValidationResponse)
def validate_spreadsheet(
    file: UploadFile = Depends(get_spreadsheet_upload),
) -> FileValidationResponse:
    """
    Check one spreadsheet without writing anything to the server.
    """

    try:
        content = file.file.read()
    finally:
        file.file.close()

    result = validate_spreadsheet_file(content, filename=file.filename)
    return _to_validation_response(result)


@router.post(
    "/jobs",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=ImportJobAcceptedResponse,
)
def trigger_import(
    background_tasks: BackgroundTasks,
    file: UploadFile = Depends(get_spreadsheet_upload),
    options: MappingOptions = Depends(get_import_options),
    registry: ImportJobRegistry = Depends(get_import_job_registry),
) -> ImportJobAcceptedResponse:
    try:
        content = file.file.read()
    finally:
        file.file.close()

    if len(content) > MAX_FILE_SIZE_BYTES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File exceeds the maximum size of {MAX_FILE_SIZE_BYTES} bytes.",
        )

    job = registry.trigger_import(
        executor=FastAPIBackgroundTaskExecutor(background_tasks),
        content=content,
        filename=file.filename or "upload.csv",
        options=options,
    )
    return ImportJobAcceptedResponse(
        job_id=job.id,
        filename=job.filename,
        status=job.status,
        created_at=job.created_at,
    )


@router.get("/jobs", response_model=ImportJobListResponse)
def list_import_jobs(
    status_filter: str | None = Query(default=None, alias="status", description="Optional status filter"),
    limit: int = Query(default=100, ge=1, le=500, description="Max jobs returned"),
    registry: ImportJobRegistry = Depends(get_import_job_registry),
) -> ImportJobListResponse:
    jobs = registry.list_jobs(limit=limit, status=status_filter)
    return ImportJobListResponse(jobs=[_to_status_response(job) for job in jobs])


@router.get("/jobs/{job_id}", response_model=ImportJobStatusResponse)
def get_import_job(
    job_id: UUID,
    registry: ImportJobRegistry = Depends(get_import_job_registry),
) -> ImportJobStatusResponse:
    job = registry.get_job(job_id)
    if job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Import job not found: {job_id}",
        )
    return _to_status_response(job)


@router.post("/jobs/{job_id}/cancel", response_model=ImportJobStatusResponse)
def cancel_import_job(
    job_id: UUID,
    registry: ImportJobRegistry = Depends(get_import_job_registry),
) -> ImportJobStatusResponse:
    job = registry.cancel_job(job_id)
    if job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Import job not found: {job_id}",
        )
    return _to_status_response(job)


def _to_validation_response(result: FileValidationResult) -> FileValidationResponse:
    return FileValidationResponse(
        valid=result.valid,
        errors=result.errors,
        warnings=result.warnings,
        preview=FilePreviewResponse(
            total_rows=result.preview.total_rows,
            valid_rows=result.preview.valid_rows,
            sample_rows=[record.to_dict() for record in result.preview.sample_rows],
        ),
    )


def _to_progress_response(progress: ImportProgress | None) -> ImportProgressResponse | None:
    if progress is None:
        return None
    return ImportProgressResponse(
        phase=progress.phase,
        current_step=progress.current_step,
        total_steps=progress.total_steps,
        message=progress.message,
        percentage=progress.percentage,
    )


def _to_outcome_response(outcome: ImportOutcome | None) -> ImportOutcomeResponse | None:
    if outcome is None:
        return None
    return ImportOutcomeResponse(**outcome.to_dict())


def _to_status_response(job: ImportJob) -> ImportJobStatusResponse:
    return ImportJobStatusResponse(
        job_id=job.id,
        filename=job.filename,
        status=job.status,
        created_at=job.created_at,
        updated_at=job.updated_at,
        started_at=job.started_at,
        completed_at=job.completed_at,
        progress=_to_progress_response(job.progress),
        outcome=_to_outcome_response(job.outcome),
        error_message=job.error_message,
    )
