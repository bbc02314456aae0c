"""
naws_import/services/meeting_import_service.py

Service layer for the NAWS meeting import workflow.

Phases run strictly in order:

    1. parsing          decode and validate the spreadsheet
    2. server-config    read service bodies and formats from the server
    3. mapping          build the lookup snapshot
    4. service-bodies   create service bodies the spreadsheet needs
    5. duplicate-check  read world ids of meetings already on the server
    6. creating         submit meetings in fixed-size concurrent batches
    7. completed

A cancellation request is honored at the next checkpoint between phases or
batches; meetings already created stay created.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any

from naws_import.config import (
    ImportSettings,
    get_bmlt_server_settings,
    get_import_settings,
    get_mapping_options,
)
from naws_import.connectors.base import MeetingServerClient, describe_error
from naws_import.connectors.bmlt_client import BMLTServerClient
from naws_import.domain.errors import (
    ImportCancelledError,
    MeetingImportError,
    ServerConfigurationError,
    SpreadsheetReadError,
    SpreadsheetValidationError,
)
from naws_import.domain.meeting_import import (
    FilePreview,
    FileValidationResult,
    ImportOutcome,
    ImportPhase,
    ImportProgress,
    LookupTables,
    MappingOptions,
    NormalizedRecord,
)
from naws_import.mappers.naws_mapper import NAWSMapper
from naws_import.readers.spreadsheet_reader import (
    MAX_FILE_SIZE_BYTES,
    SUPPORTED_FILE_EXTENSIONS,
    SpreadsheetReader,
)
from naws_import.services.cancellation import CancellationToken
from naws_import.services.service_body_reconciler import ServiceBodyReconciler
from naws_import.validators.spreadsheet_validator import SpreadsheetValidator

logger = logging.getLogger(__name__)

TOTAL_STEPS = 7

PREVIEW_ROW_COUNT = 5

ProgressCallback = Callable[[ImportProgress], None]
SleepFunction = Callable[[float], Awaitable[None]]
GridLoader = Callable[[], Awaitable[list[list[str]]]]


class RowStatus:
    CREATED = "created"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class RowSubmissionResult:
    """
    Outcome of submitting one spreadsheet row.
    """

    row_number: int
    status: str
    meeting: dict[str, Any] | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class _ProgressReporter:
    def __init__(self, callback: ProgressCallback | None) -> None:
        self._callback = callback

    def emit(self, *, phase: str, step: int, message: str, percentage: float) -> None:
        logger.debug("Import progress phase=%s step=%s pct=%.1f message=%s", phase, step, percentage, message)
        if self._callback is None:
            return
        self._callback(
            ImportProgress(
                phase=phase,
                current_step=step,
                total_steps=TOTAL_STEPS,
                message=message,
                percentage=percentage,
            )
        )


def validate_spreadsheet_file(
    source: str | Path | bytes,
    *,
    filename: str | None = None,
    reader: SpreadsheetReader | None = None,
    validator: SpreadsheetValidator | None = None,
) -> FileValidationResult:
    """
    Decode and validate a file without contacting the server.
    """

    reader = reader or SpreadsheetReader()
    validator = validator or SpreadsheetValidator()

    try:
        grid = reader.read(source, filename=filename)
    except SpreadsheetReadError as exc:
        return FileValidationResult(
            valid=False,
            errors=[str(exc)],
            warnings=[],
            preview=FilePreview(total_rows=0, valid_rows=0),
        )

    processed = validator.validate(grid)
    return FileValidationResult(
        valid=not processed.errors,
        errors=list(processed.errors),
        warnings=list(processed.warnings),
        preview=FilePreview(
            total_rows=processed.total_rows,
            valid_rows=processed.valid_rows,
            sample_rows=processed.records[:PREVIEW_ROW_COUNT],
        ),
    )


class MeetingImportService:
    """
    Coordinates parsing, service body reconciliation and meeting submission.
    """

    def __init__(
        self,
        *,
        client: MeetingServerClient,
        settings: ImportSettings | None = None,
        mapping_options: MappingOptions | None = None,
        reader: SpreadsheetReader | None = None,
        validator: SpreadsheetValidator | None = None,
        reconciler: ServiceBodyReconciler | None = None,
        admin_user_id: int | None = None,
        sleep: SleepFunction = asyncio.sleep,
    ) -> None:
        self._client = client
        self._settings = settings or ImportSettings()
        self._mapping_options = mapping_options or MappingOptions()
        self._reader = reader or SpreadsheetReader()
        self._validator = validator or SpreadsheetValidator()
        self._reconciler = reconciler or ServiceBodyReconciler(client=client)
        self._admin_user_id = admin_user_id
        self._sleep = sleep

    @staticmethod
    def supported_file_types() -> tuple[str, ...]:
        return SUPPORTED_FILE_EXTENSIONS

    @staticmethod
    def max_file_size() -> int:
        return MAX_FILE_SIZE_BYTES

    # ------------------------------------------------------------------
    # Pre-check
    # ------------------------------------------------------------------

    def validate_file(
        self,
        source: str | Path | bytes,
        *,
        filename: str | None = None,
    ) -> FileValidationResult:
        return validate_spreadsheet_file(
            source,
            filename=filename,
            reader=self._reader,
            validator=self._validator,
        )

    # ------------------------------------------------------------------
    # Import entry points
    # ------------------------------------------------------------------

    async def import_from_file(
        self,
        source: str | Path | bytes,
        *,
        filename: str | None = None,
        options: MappingOptions | None = None,
        on_progress: ProgressCallback | None = None,
        cancellation: CancellationToken | None = None,
    ) -> ImportOutcome:
        """
        Import every meeting in a spreadsheet file.

        Never raises for data, server or cancellation problems; the returned
        outcome carries the errors and the ``cancelled`` flag.
        """

        async def load_grid() -> list[list[str]]:
            return await asyncio.to_thread(self._reader.read, source, filename=filename)

        return await self._run(
            load_grid,
            options=options,
            on_progress=on_progress,
            cancellation=cancellation,
        )

    async def import_grid(
        self,
        grid: Sequence[Sequence[Any]],
        *,
        options: MappingOptions | None = None,
        on_progress: ProgressCallback | None = None,
        cancellation: CancellationToken | None = None,
    ) -> ImportOutcome:
        """
        Import from an already decoded cell grid (first row = headers).
        """

        async def load_grid() -> list[list[str]]:
            return [list(row) for row in grid]

        return await self._run(
            load_grid,
            options=options,
            on_progress=on_progress,
            cancellation=cancellation,
        )

    # ------------------------------------------------------------------
    # Orchestration
    # ------------------------------------------------------------------

    async def _run(
        self,
        load_grid: GridLoader,
        *,
        options: MappingOptions | None,
        on_progress: ProgressCallback | None,
        cancellation: CancellationToken | None,
    ) -> ImportOutcome:
        started = time.monotonic()
        outcome = ImportOutcome(
            max_stored_meetings=self._settings.max_stored_meetings,
            max_stored_errors=self._settings.max_stored_errors,
        )
        reporter = _ProgressReporter(on_progress)
        token = cancellation or CancellationToken()

        try:
            await self._execute(
                load_grid,
                outcome=outcome,
                options=options or self._mapping_options,
                reporter=reporter,
                token=token,
            )
        except ImportCancelledError:
            outcome.cancelled = True
            logger.info(
                "Import cancelled created=%s failed=%s skipped=%s",
                outcome.successful_imports,
                outcome.failed_imports,
                outcome.skipped_imports,
            )
            reporter.emit(phase=ImportPhase.ERROR, step=0, message="Import cancelled", percentage=0)
        except SpreadsheetValidationError as exc:
            outcome.errors.extend(exc.errors)
            self._fail(outcome=outcome, reporter=reporter, message=str(exc))
        except MeetingImportError as exc:
            self._fail(outcome=outcome, reporter=reporter, message=str(exc))
        except Exception as exc:  # noqa: BLE001
            logger.exception("Import aborted by unexpected error")
            self._fail(outcome=outcome, reporter=reporter, message=str(exc) or "Unknown error occurred")
        finally:
            outcome.success = outcome.successful_imports > 0
            outcome.duration_seconds = time.monotonic() - started

        return outcome

    async def _execute(
        self,
        load_grid: GridLoader,
        *,
        outcome: ImportOutcome,
        options: MappingOptions,
        reporter: _ProgressReporter,
        token: CancellationToken,
    ) -> None:
        # --- Phase 1: parse and validate ---
        reporter.emit(
            phase=ImportPhase.PARSING,
            step=1,
            message="Processing spreadsheet file...",
            percentage=0,
        )
        grid = await load_grid()
        token.raise_if_cancelled()

        processed = self._validator.validate(grid)
        if processed.errors:
            raise SpreadsheetValidationError(list(processed.errors))
        outcome.warnings.extend(processed.warnings)
        outcome.total_processed = processed.valid_rows
        logger.info(
            "Spreadsheet validated total_rows=%s valid_rows=%s warnings=%s",
            processed.total_rows,
            processed.valid_rows,
            len(processed.warnings),
        )

        # --- Phase 2: server configuration ---
        reporter.emit(
            phase=ImportPhase.SERVER_CONFIG,
            step=2,
            message="Fetching server configuration...",
            percentage=15,
        )
        try:
            service_bodies, formats = await asyncio.gather(
                self._client.list_service_bodies(),
                self._client.list_formats(),
            )
        except Exception as exc:
            raise ServerConfigurationError(
                f"Failed to fetch server configuration: {describe_error(exc)}"
            ) from exc
        token.raise_if_cancelled()

        # --- Phase 3: lookup snapshot ---
        reporter.emit(
            phase=ImportPhase.MAPPING,
            step=3,
            message="Validating data mapping...",
            percentage=30,
        )
        lookup = LookupTables.build(service_bodies=service_bodies, formats=formats)

        # --- Phase 4: service bodies ---
        reporter.emit(
            phase=ImportPhase.SERVICE_BODIES,
            step=4,
            message="Creating missing service bodies...",
            percentage=45,
        )
        token.raise_if_cancelled()
        lookup = await self._reconcile_service_bodies(
            records=processed.records,
            lookup=lookup,
            outcome=outcome,
            reporter=reporter,
        )
        token.raise_if_cancelled()

        mapper = NAWSMapper(lookup=lookup, options=options)
        format_stats = mapper.format_stats(processed.records)
        if format_stats.missing:
            outcome.warnings.append(
                f"Missing formats (these will be ignored): {', '.join(format_stats.missing)}"
            )

        # --- Phase 5: duplicate check ---
        reporter.emit(
            phase=ImportPhase.DUPLICATE_CHECK,
            step=5,
            message="Checking for duplicate meetings...",
            percentage=55,
        )
        existing_world_ids = await self._fetch_existing_world_ids()
        token.raise_if_cancelled()

        # --- Phase 6: meetings ---
        reporter.emit(
            phase=ImportPhase.CREATING,
            step=6,
            message="Creating meetings...",
            percentage=60,
        )
        await self._create_meetings_in_batches(
            records=processed.records,
            mapper=mapper,
            existing_world_ids=existing_world_ids,
            outcome=outcome,
            reporter=reporter,
            token=token,
        )

        # --- Phase 7: done ---
        message = (
            f"Import completed: {outcome.successful_imports} meetings created, "
            f"{outcome.failed_imports} failed, {outcome.skipped_imports} skipped"
        )
        logger.info(message)
        reporter.emit(phase=ImportPhase.COMPLETED, step=7, message=message, percentage=100)

    async def _reconcile_service_bodies(
        self,
        *,
        records: list[NormalizedRecord],
        lookup: LookupTables,
        outcome: ImportOutcome,
        reporter: _ProgressReporter,
    ) -> LookupTables:
        required = self._reconciler.extract_required_references(records)
        missing = self._reconciler.find_missing(required, lookup)
        if not missing:
            outcome.warnings.append("All required service bodies already exist")
            return lookup

        def on_service_body(current: int, total: int, name: str) -> None:
            reporter.emit(
                phase=ImportPhase.SERVICE_BODIES,
                step=4,
                message=f"Creating service body {current} of {total}: {name}",
                percentage=45 + (current / total) * 10,
            )

        result = await self._reconciler.create_missing(
            missing,
            lookup,
            admin_user_id=self._admin_user_id,
            on_progress=on_service_body,
        )
        outcome.service_bodies_created = result.created_count
        outcome.errors.extend(result.errors)
        outcome.warnings.extend(result.warnings)
        if result.created_count > 0:
            outcome.warnings.append(
                f"Created {result.created_count} service bodies (using current user as admin)"
            )
        return result.lookup

    async def _fetch_existing_world_ids(self) -> frozenset[str]:
        """
        Return uppercased world ids of meetings already on the server.

        A failed fetch yields an empty set so the import still runs; the
        server's own uniqueness rules are then the only duplicate guard.
        """

        try:
            meetings = await self._client.list_meetings()
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Failed to fetch existing meetings for duplicate check, continuing without it: %s",
                describe_error(exc),
            )
            return frozenset()

        world_ids: set[str] = set()
        for meeting in meetings:
            world_id = meeting.get("worldId")
            if isinstance(world_id, str) and world_id.strip():
                world_ids.add(world_id.strip().upper())
        return frozenset(world_ids)

    async def _create_meetings_in_batches(
        self,
        *,
        records: list[NormalizedRecord],
        mapper: NAWSMapper,
        existing_world_ids: frozenset[str],
        outcome: ImportOutcome,
        reporter: _ProgressReporter,
        token: CancellationToken,
    ) -> None:
        valid_records = [record for record in records if not record.is_deleted and record.is_complete]
        total = len(valid_records)
        batch_size = max(1, self._settings.batch_size)
        processed_count = 0

        for start in range(0, total, batch_size):
            token.raise_if_cancelled()

            batch = valid_records[start : start + batch_size]
            results = await asyncio.gather(
                *(
                    self._submit_row(
                        record=record,
                        mapper=mapper,
                        existing_world_ids=existing_world_ids,
                    )
                    for record in batch
                )
            )

            for result in results:
                processed_count += 1
                self._record_result(outcome, result)
                reporter.emit(
                    phase=ImportPhase.CREATING,
                    step=6,
                    message=f"Creating meeting {processed_count} of {total}...",
                    percentage=60 + (processed_count / total) * 30,
                )

            if start + batch_size < total:
                await self._sleep(self._settings.batch_delay_seconds)

    async def _submit_row(
        self,
        *,
        record: NormalizedRecord,
        mapper: NAWSMapper,
        existing_world_ids: frozenset[str],
    ) -> RowSubmissionResult:
        row_number = record.row_number

        world_id = record.committee.strip()
        if world_id and world_id.upper() in existing_world_ids:
            return RowSubmissionResult(
                row_number=row_number,
                status=RowStatus.SKIPPED,
                warnings=[f"Row {row_number}: Meeting with worldId '{world_id}' already exists - skipped"],
            )

        mapping = mapper.map_row(record, row_number)
        if mapping.meeting is None:
            return RowSubmissionResult(
                row_number=row_number,
                status=RowStatus.FAILED,
                errors=mapping.errors or [f"Row {row_number}: Failed to map meeting data"],
            )

        try:
            created = await self._client.create_meeting(mapping.meeting)
        except Exception as exc:  # noqa: BLE001
            return RowSubmissionResult(
                row_number=row_number,
                status=RowStatus.FAILED,
                errors=[f"Row {row_number}: Failed to create meeting - {describe_error(exc)}"],
            )

        return RowSubmissionResult(row_number=row_number, status=RowStatus.CREATED, meeting=created)

    def _record_result(self, outcome: ImportOutcome, result: RowSubmissionResult) -> None:
        if result.status == RowStatus.CREATED:
            outcome.successful_imports += 1
            if result.meeting is not None:
                outcome.created_meetings.append(result.meeting)
        elif result.status == RowStatus.SKIPPED:
            outcome.skipped_imports += 1
            outcome.warnings.extend(result.warnings)
        else:
            outcome.failed_imports += 1

        for error in result.errors:
            if self._settings.log_row_errors:
                logger.warning("Meeting import row error row=%s message=%s", result.row_number, error)
            outcome.errors.append(error)

    @staticmethod
    def _fail(*, outcome: ImportOutcome, reporter: _ProgressReporter, message: str) -> None:
        logger.error("Import failed: %s", message)
        outcome.errors.append(message)
        reporter.emit(
            phase=ImportPhase.ERROR,
            step=0,
            message=f"Import failed: {message}",
            percentage=0,
        )


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_meeting_import_service() -> MeetingImportService:
    """
    Build and cache the import service with env-driven settings.
    """

    return MeetingImportService(
        client=BMLTServerClient(settings=get_bmlt_server_settings()),
        settings=get_import_settings(),
        mapping_options=get_mapping_options(),
    )
