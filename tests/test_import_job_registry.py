from __future__ import annotations

import asyncio
import unittest
from typing import Any, Callable

from naws_import.config import ImportSettings
from naws_import.domain.meeting_import import Format, ServiceBody
from naws_import.services.import_job_registry import ImportJobRegistry, ImportJobStatus
from naws_import.services.meeting_import_service import MeetingImportService
from tests.factories import FakeServerClient, SleepRecorder, make_grid, meeting_row


class _RecordingExecutor:
    def __init__(self) -> None:
        self.submitted: list[tuple[Callable[..., Any], tuple[Any, ...]]] = []

    def submit(self, task: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        self.submitted.append((task, args))


def _csv(rows: list[dict[str, str]]) -> bytes:
    return "\n".join(",".join(row) for row in make_grid(rows)).encode("utf-8")


class TestImportJobRegistry(unittest.TestCase):
    def setUp(self) -> None:
        self.server = FakeServerClient(
            service_bodies=[ServiceBody(id=10, name="Area One", world_id="AR1")],
            formats=[Format(id=1, world_id="OPEN")],
        )
        service = MeetingImportService(
            client=self.server,
            settings=ImportSettings(),
            sleep=SleepRecorder(),
        )
        self.registry = ImportJobRegistry(service=service, max_jobs=2)
        self.executor = _RecordingExecutor()

    def _run_submitted(self) -> None:
        for task, args in self.executor.submitted:
            asyncio.run(task(*args))
        self.executor.submitted.clear()

    def test_trigger_queues_pending_job(self) -> None:
        job = self.registry.trigger_import(
            executor=self.executor,
            content=_csv([meeting_row()]),
            filename="meetings.csv",
        )

        self.assertEqual(job.status, ImportJobStatus.PENDING)
        self.assertEqual(len(self.executor.submitted), 1)
        self.assertIs(self.registry.get_job(job.id), job)

    def test_completed_job_keeps_outcome_and_progress(self) -> None:
        job = self.registry.trigger_import(
            executor=self.executor,
            content=_csv([meeting_row(committee="G1")]),
            filename="meetings.csv",
        )

        self._run_submitted()

        self.assertEqual(job.status, ImportJobStatus.COMPLETED)
        self.assertIsNotNone(job.started_at)
        self.assertIsNotNone(job.completed_at)
        self.assertEqual(job.outcome.successful_imports, 1)
        self.assertEqual(job.progress.phase, "completed")
        self.assertIsNone(job.error_message)

    def test_cancel_before_run_marks_cancelled(self) -> None:
        job = self.registry.trigger_import(
            executor=self.executor,
            content=_csv([meeting_row()]),
            filename="meetings.csv",
        )

        self.registry.cancel_job(job.id)
        self._run_submitted()

        self.assertEqual(job.status, ImportJobStatus.CANCELLED)
        self.assertEqual(self.server.created_meetings, [])

    def test_structural_failure_marks_failed(self) -> None:
        job = self.registry.trigger_import(
            executor=self.executor,
            content=b"committeename\nGroup\n",
            filename="meetings.csv",
        )

        self._run_submitted()

        self.assertEqual(job.status, ImportJobStatus.FAILED)
        self.assertEqual(job.error_message, "Missing required columns: arearegion, day, time")

    def test_oldest_finished_jobs_are_evicted(self) -> None:
        first = self.registry.trigger_import(executor=self.executor, content=_csv([meeting_row()]), filename="a.csv")
        self._run_submitted()
        second = self.registry.trigger_import(executor=self.executor, content=_csv([meeting_row()]), filename="b.csv")
        third = self.registry.trigger_import(executor=self.executor, content=_csv([meeting_row()]), filename="c.csv")

        self.assertIsNone(self.registry.get_job(first.id))
        self.assertIsNotNone(self.registry.get_job(second.id))
        self.assertIsNotNone(self.registry.get_job(third.id))
        self.assertEqual([job.filename for job in self.registry.list_jobs()], ["c.csv", "b.csv"])
        self.assertEqual(self.registry.list_jobs(status=ImportJobStatus.COMPLETED), [])
        self.assertEqual(len(self.registry.list_jobs(status=ImportJobStatus.PENDING)), 2)


if __name__ == "__main__":
    unittest.main()
