"""
naws_import/services/import_job_registry.py

In-memory tracking of background import jobs started over the HTTP API.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Protocol

from fastapi import BackgroundTasks

from naws_import.domain.meeting_import import ImportOutcome, ImportProgress, MappingOptions
from naws_import.services.cancellation import CancellationToken
from naws_import.services.meeting_import_service import (
    MeetingImportService,
    get_meeting_import_service,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_TRACKED_JOBS = 100


class ImportJobStatus:
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


FINISHED_STATUSES = frozenset(
    {ImportJobStatus.COMPLETED, ImportJobStatus.FAILED, ImportJobStatus.CANCELLED}
)


class ImportTaskExecutor(Protocol):
    def submit(self, task: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        ...


class FastAPIBackgroundTaskExecutor:
    def __init__(self, background_tasks: BackgroundTasks) -> None:
        self._background_tasks = background_tasks

    def submit(self, task: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        self._background_tasks.add_task(task, *args, **kwargs)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ImportJob:
    id: uuid.UUID
    filename: str
    status: str = ImportJobStatus.PENDING
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    progress: ImportProgress | None = None
    outcome: ImportOutcome | None = None
    error_message: str | None = None
    cancellation: CancellationToken = field(default_factory=CancellationToken)

    @property
    def is_finished(self) -> bool:
        return self.status in FINISHED_STATUSES


class ImportJobRegistry:
    """
    Creates import jobs, runs them through an executor and records their state.

    Jobs live only in process memory; the oldest finished jobs are evicted
    once more than ``max_jobs`` are tracked.
    """

    def __init__(
        self,
        *,
        service: MeetingImportService | None = None,
        max_jobs: int = DEFAULT_MAX_TRACKED_JOBS,
    ) -> None:
        self._service = service
        self._max_jobs = max(1, max_jobs)
        self._jobs: dict[uuid.UUID, ImportJob] = {}
        self._lock = threading.Lock()

    def trigger_import(
        self,
        *,
        executor: ImportTaskExecutor,
        content: bytes,
        filename: str,
        options: MappingOptions | None = None,
    ) -> ImportJob:
        job = ImportJob(id=uuid.uuid4(), filename=filename)
        with self._lock:
            self._jobs[job.id] = job
            self._evict_finished_jobs()

        logger.info("Import job queued job_id=%s filename=%s size=%s", job.id, filename, len(content))
        executor.submit(self.run_job, job.id, content, filename, options)
        return job

    async def run_job(
        self,
        job_id: uuid.UUID,
        content: bytes,
        filename: str,
        options: MappingOptions | None = None,
    ) -> None:
        job = self.get_job(job_id)
        if job is None:
            logger.warning("Import job vanished before start job_id=%s", job_id)
            return

        if job.cancellation.is_cancelled:
            self._finish(job, status=ImportJobStatus.CANCELLED, error_message="Import cancelled by user")
            return

        job.status = ImportJobStatus.RUNNING
        job.started_at = _utcnow()
        job.updated_at = job.started_at

        def on_progress(progress: ImportProgress) -> None:
            job.progress = progress
            job.updated_at = _utcnow()

        try:
            service = self._service or get_meeting_import_service()
            outcome = await service.import_from_file(
                content,
                filename=filename,
                options=options,
                on_progress=on_progress,
                cancellation=job.cancellation,
            )
        except Exception as exc:  # noqa: BLE001
            logger.exception("Import job crashed job_id=%s", job_id)
            self._finish(job, status=ImportJobStatus.FAILED, error_message=str(exc))
            return

        job.outcome = outcome
        if outcome.cancelled:
            self._finish(job, status=ImportJobStatus.CANCELLED, error_message="Import cancelled by user")
        elif outcome.success:
            self._finish(job, status=ImportJobStatus.COMPLETED)
        else:
            first_error = outcome.errors[0] if len(outcome.errors) else "No meetings were created"
            self._finish(job, status=ImportJobStatus.FAILED, error_message=first_error)

    def get_job(self, job_id: uuid.UUID) -> ImportJob | None:
        with self._lock:
            return self._jobs.get(job_id)

    def list_jobs(self, *, limit: int = 100, status: str | None = None) -> list[ImportJob]:
        with self._lock:
            jobs = list(reversed(self._jobs.values()))
        if status:
            jobs = [job for job in jobs if job.status == status.strip().lower()]
        return jobs[:limit]

    def cancel_job(self, job_id: uuid.UUID) -> ImportJob | None:
        job = self.get_job(job_id)
        if job is None:
            return None
        if not job.is_finished:
            job.cancellation.cancel()
            job.updated_at = _utcnow()
            logger.info("Import job cancellation requested job_id=%s", job_id)
        return job

    def _finish(self, job: ImportJob, *, status: str, error_message: str | None = None) -> None:
        job.status = status
        job.error_message = error_message
        job.completed_at = _utcnow()
        job.updated_at = job.completed_at
        logger.info("Import job finished job_id=%s status=%s", job.id, status)

    def _evict_finished_jobs(self) -> None:
        overflow = len(self._jobs) - self._max_jobs
        if overflow <= 0:
            return
        finished = [job for job in self._jobs.values() if job.is_finished]
        for job in finished[:overflow]:
            del self._jobs[job.id]


@lru_cache(maxsize=1)
def get_import_job_registry() -> ImportJobRegistry:
    return ImportJobRegistry()
