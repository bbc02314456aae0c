"""
tests/test_meeting_import_service.py

Pytest tests for MeetingImportService, driven end to end against the
in-memory server.

Coverage
--------
- Ten-row scenario: validation counts, batching, inter-batch delay
- Memory bound on stored samples with exact counters
- Duplicate skip, create failures, unresolved service bodies
- Service body creation and identity failure
- Cancellation before start and between batches
- Structural failures and progress sequencing
- File pre-check
"""

from __future__ import annotations

import asyncio
import logging

import pytest

from naws_import.config import ImportSettings
from naws_import.domain.meeting_import import ImportPhase, ImportProgress
from naws_import.services.cancellation import CancellationToken
from naws_import.services.meeting_import_service import MeetingImportService, validate_spreadsheet_file
from tests.factories import FakeServerClient, SleepRecorder, make_grid, meeting_row, validation_error


def _service(
    server: FakeServerClient,
    sleep_recorder: SleepRecorder,
    **settings: object,
) -> MeetingImportService:
    return MeetingImportService(
        client=server,
        settings=ImportSettings(**settings),
        sleep=sleep_recorder,
    )


def _rows(count: int, **overrides: str) -> list[dict[str, str]]:
    return [meeting_row(committee=f"G{index:04d}", **overrides) for index in range(1, count + 1)]


# ---------------------------------------------------------------------------
# End-to-end scenarios
# ---------------------------------------------------------------------------


class TestImportScenarios:
    def test_ten_row_file_runs_two_batches_with_one_delay(
        self,
        server: FakeServerClient,
        sleep_recorder: SleepRecorder,
    ) -> None:
        rows = _rows(10)
        rows[1]["delete"] = "D"
        rows[5]["delete"] = "d"
        rows[8]["committeename"] = ""
        service = _service(server, sleep_recorder, batch_size=5, batch_delay_seconds=0.5)

        outcome = asyncio.run(service.import_grid(make_grid(rows)))

        assert outcome.total_processed == 7
        assert outcome.successful_imports + outcome.failed_imports + outcome.skipped_imports == 7
        assert outcome.successful_imports == 7
        assert outcome.success is True
        assert outcome.cancelled is False
        assert sleep_recorder.calls == [0.5]
        assert server.max_in_flight == 5
        assert len(server.created_meetings) == 7
        assert "All required service bodies already exist" in outcome.warnings
        assert "Row 10: Missing required field 'committeename'" in outcome.warnings
        created_world_ids = {meeting.world_id for meeting in server.created_meetings}
        assert "G0002" not in created_world_ids
        assert "G0006" not in created_world_ids

    def test_thousand_rows_keep_exact_counts_and_capped_samples(
        self,
        server: FakeServerClient,
        sleep_recorder: SleepRecorder,
    ) -> None:
        service = _service(server, sleep_recorder, batch_size=50, batch_delay_seconds=0.0)

        outcome = asyncio.run(service.import_grid(make_grid(_rows(1000))))

        assert outcome.successful_imports == 1000
        assert len(outcome.created_meetings) == 10
        assert outcome.created_meetings.dropped == 990
        assert outcome.created_meetings[0]["worldId"] == "G0001"
        assert len(sleep_recorder.calls) == 19

    def test_existing_world_ids_are_skipped_case_insensitively(
        self,
        server: FakeServerClient,
        sleep_recorder: SleepRecorder,
    ) -> None:
        server.meetings.append({"id": 1, "worldId": " g0002 "})
        service = _service(server, sleep_recorder)

        outcome = asyncio.run(service.import_grid(make_grid(_rows(3))))

        assert outcome.skipped_imports == 1
        assert outcome.successful_imports == 2
        assert outcome.errors.to_list() == []
        assert "Row 3: Meeting with worldId 'G0002' already exists - skipped" in outcome.warnings

    def test_create_failures_are_row_errors(
        self,
        server: FakeServerClient,
        sleep_recorder: SleepRecorder,
    ) -> None:
        server.meeting_failures["G0001"] = validation_error("The start time is invalid.")
        server.meeting_failures["G0002"] = validation_error(
            name=["The name field is required."],
            day=["The day must be between 0 and 6."],
        )
        server.meeting_failures["G0003"] = TimeoutError("read timed out")
        service = _service(server, sleep_recorder)

        outcome = asyncio.run(service.import_grid(make_grid(_rows(4))))

        assert outcome.failed_imports == 3
        assert outcome.successful_imports == 1
        assert outcome.success is True
        assert outcome.errors.to_list() == [
            "Row 2: Failed to create meeting - The start time is invalid.",
            "Row 3: Failed to create meeting - The name field is required., The day must be between 0 and 6.",
            "Row 4: Failed to create meeting - read timed out",
        ]

    def test_missing_service_bodies_are_created_before_meetings(
        self,
        server: FakeServerClient,
        sleep_recorder: SleepRecorder,
    ) -> None:
        rows = [
            meeting_row(committee="G1"),
            meeting_row(committee="G2", arearegion="RG9", parentname="Region Nine"),
            meeting_row(committee="G3", arearegion="RG8", parentname=""),
        ]
        service = _service(server, sleep_recorder)

        outcome = asyncio.run(service.import_grid(make_grid(rows)))

        assert outcome.service_bodies_created == 1
        assert server.created_service_bodies[0].world_id == "RG9"
        assert server.created_service_bodies[0].type == "RS"
        assert "Created 1 service bodies (using current user as admin)" in outcome.warnings
        assert outcome.successful_imports == 2
        assert outcome.failed_imports == 1
        assert outcome.errors.to_list() == ["Row 4: Service body not found for area/region 'RG8'"]

    def test_identity_failure_ends_run(
        self,
        server: FakeServerClient,
        sleep_recorder: SleepRecorder,
    ) -> None:
        server.identity = RuntimeError("No current user found")
        events: list[ImportProgress] = []
        rows = [meeting_row(arearegion="RG9", parentname="Region Nine")]
        service = _service(server, sleep_recorder)

        outcome = asyncio.run(service.import_grid(make_grid(rows), on_progress=events.append))

        assert outcome.success is False
        assert outcome.cancelled is False
        assert outcome.errors.to_list() == [
            "Failed to get current user for service body admin: No current user found"
        ]
        assert server.created_meetings == []
        assert events[-1].phase == ImportPhase.ERROR
        assert events[-1].message.startswith("Import failed: Failed to get current user")
        assert outcome.duration_seconds >= 0

    def test_missing_formats_are_summarized(
        self,
        server: FakeServerClient,
        sleep_recorder: SleepRecorder,
    ) -> None:
        rows = [meeting_row(committee="G1", format1="OPEN", format2="BT"), meeting_row(committee="G2", format1="ip")]
        service = _service(server, sleep_recorder)

        outcome = asyncio.run(service.import_grid(make_grid(rows)))

        assert outcome.successful_imports == 2
        assert "Missing formats (these will be ignored): BT, IP" in outcome.warnings
        assert server.created_meetings[0].format_ids == (2,)

    def test_duplicate_check_failure_continues_without_it(
        self,
        server: FakeServerClient,
        sleep_recorder: SleepRecorder,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        server.meetings.append({"worldId": "G0001"})
        server.list_meetings_error = RuntimeError("gateway timeout")
        service = _service(server, sleep_recorder)

        with caplog.at_level(logging.WARNING, logger="naws_import.services.meeting_import_service"):
            outcome = asyncio.run(service.import_grid(make_grid(_rows(2))))

        assert outcome.successful_imports == 2
        assert outcome.skipped_imports == 0
        assert "gateway timeout" in caplog.text


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------


class TestCancellation:
    def test_cancel_between_batches_keeps_partial_results(
        self,
        server: FakeServerClient,
        sleep_recorder: SleepRecorder,
    ) -> None:
        token = CancellationToken()
        server.on_create_meeting = lambda request: token.cancel()
        events: list[ImportProgress] = []
        service = _service(server, sleep_recorder, batch_size=5)

        outcome = asyncio.run(
            service.import_grid(make_grid(_rows(12)), cancellation=token, on_progress=events.append)
        )

        assert outcome.cancelled is True
        assert outcome.successful_imports == 5
        assert outcome.success is True
        assert outcome.errors.to_list() == []
        assert len(server.created_meetings) == 5
        assert events[-1].phase == ImportPhase.ERROR
        assert events[-1].message == "Import cancelled"

    def test_cancel_before_start_touches_no_server(
        self,
        server: FakeServerClient,
        sleep_recorder: SleepRecorder,
    ) -> None:
        token = CancellationToken()
        token.cancel()
        server.config_error = AssertionError("server should not be contacted")
        service = _service(server, sleep_recorder)

        outcome = asyncio.run(service.import_grid(make_grid(_rows(3)), cancellation=token))

        assert outcome.cancelled is True
        assert outcome.success is False
        assert outcome.successful_imports == 0
        assert outcome.errors.to_list() == []


# ---------------------------------------------------------------------------
# Structural failures and progress
# ---------------------------------------------------------------------------


class TestStructuralFailures:
    def test_missing_columns_end_run_with_errors(
        self,
        server: FakeServerClient,
        sleep_recorder: SleepRecorder,
    ) -> None:
        grid = [["committeename", "day"], ["Group", "Monday"]]
        service = _service(server, sleep_recorder)

        outcome = asyncio.run(service.import_grid(grid))

        assert outcome.success is False
        assert outcome.errors.to_list() == [
            "Missing required columns: arearegion, time",
            "Spreadsheet processing failed",
        ]
        assert server.created_meetings == []

    def test_server_configuration_failure(
        self,
        server: FakeServerClient,
        sleep_recorder: SleepRecorder,
    ) -> None:
        server.config_error = validation_error("Unauthenticated.")
        service = _service(server, sleep_recorder)

        outcome = asyncio.run(service.import_grid(make_grid(_rows(1))))

        assert outcome.errors.to_list() == ["Failed to fetch server configuration: Unauthenticated."]
        assert outcome.success is False

    def test_unreadable_file_is_structural(
        self,
        server: FakeServerClient,
        sleep_recorder: SleepRecorder,
    ) -> None:
        service = _service(server, sleep_recorder)

        outcome = asyncio.run(service.import_from_file(b"irrelevant", filename="meetings.pdf"))

        assert outcome.success is False
        assert len(outcome.errors) == 1
        assert outcome.errors[0].startswith("Error processing spreadsheet: unsupported file type '.pdf'")

    def test_error_list_is_capped(
        self,
        server: FakeServerClient,
        sleep_recorder: SleepRecorder,
    ) -> None:
        rows = _rows(8, arearegion="RG8", parentname="")
        service = _service(server, sleep_recorder, max_stored_errors=3)

        outcome = asyncio.run(service.import_grid(make_grid(rows)))

        assert outcome.failed_imports == 8
        assert len(outcome.errors) == 3
        assert outcome.errors.dropped == 5
        assert outcome.success is False


class TestProgress:
    def test_phases_are_reported_in_order(
        self,
        server: FakeServerClient,
        sleep_recorder: SleepRecorder,
    ) -> None:
        events: list[ImportProgress] = []
        rows = [meeting_row(committee="G1"), meeting_row(committee="G2", arearegion="RG9", parentname="Region Nine")]
        service = _service(server, sleep_recorder)

        asyncio.run(service.import_grid(make_grid(rows), on_progress=events.append))

        phases = [event.phase for event in events]
        assert phases == [
            ImportPhase.PARSING,
            ImportPhase.SERVER_CONFIG,
            ImportPhase.MAPPING,
            ImportPhase.SERVICE_BODIES,
            ImportPhase.SERVICE_BODIES,
            ImportPhase.DUPLICATE_CHECK,
            ImportPhase.CREATING,
            ImportPhase.CREATING,
            ImportPhase.CREATING,
            ImportPhase.COMPLETED,
        ]
        assert [event.current_step for event in events] == [1, 2, 3, 4, 4, 5, 6, 6, 6, 7]
        percentages = [event.percentage for event in events]
        assert percentages == sorted(percentages)
        assert percentages[0] == 0 and percentages[-1] == 100
        assert events[4].message == "Creating service body 1 of 1: Region Nine"
        assert events[4].percentage == 55
        assert events[7].message == "Creating meeting 1 of 2..."
        assert events[8].percentage == 90
        assert events[-1].message == "Import completed: 2 meetings created, 0 failed, 0 skipped"
        assert all(event.total_steps == 7 for event in events)


# ---------------------------------------------------------------------------
# File pre-check
# ---------------------------------------------------------------------------


class TestValidateFile:
    def test_csv_preview_is_limited_to_five_rows(self, server: FakeServerClient) -> None:
        grid = make_grid(_rows(7))
        content = "\n".join(",".join(row) for row in grid).encode("utf-8")
        service = MeetingImportService(client=server)

        result = service.validate_file(content, filename="meetings.csv")

        assert result.valid is True
        assert result.preview.total_rows == 7
        assert result.preview.valid_rows == 7
        assert len(result.preview.sample_rows) == 5
        assert server.created_meetings == []

    def test_trailing_cell_does_not_reject_file(self) -> None:
        content = (
            b"committeename,arearegion,day,time\n"
            b"Group A,AR1,Monday,1930\n"
            b"Group B,AR1,Tuesday,1930,\n"
        )

        result = validate_spreadsheet_file(content, filename="m.csv")

        assert result.valid is True
        assert result.errors == []
        assert result.preview.total_rows == 2
        assert result.preview.valid_rows == 2
        assert [record.committeename for record in result.preview.sample_rows] == ["Group A", "Group B"]

    def test_unsupported_extension_is_invalid(self, server: FakeServerClient) -> None:
        result = MeetingImportService(client=server).validate_file(b"a,b", filename="notes.txt")

        assert result.valid is False
        assert result.preview.total_rows == 0
        assert "unsupported file type" in result.errors[0]

    def test_constraints(self) -> None:
        assert MeetingImportService.supported_file_types() == (".xlsx", ".xls", ".csv", ".ods")
        assert MeetingImportService.max_file_size() == 10 * 1024 * 1024
