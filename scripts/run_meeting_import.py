"""
Run a NAWS meeting import from CLI.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import signal
from dataclasses import replace

from naws_import.config import get_mapping_options, load_env_files
from naws_import.domain.meeting_import import ImportProgress, NormalizedRecord
from naws_import.mappers.field_encoders import format_time_for_bmlt, is_valid_time
from naws_import.services.cancellation import CancellationToken
from naws_import.services.meeting_import_service import (
    get_meeting_import_service,
    validate_spreadsheet_file,
)


def _print_progress(progress: ImportProgress) -> None:
    print(
        f"[{progress.current_step}/{progress.total_steps}] "
        f"{progress.percentage:5.1f}% {progress.phase}: {progress.message}",
        flush=True,
    )


def _preview_row(record: NormalizedRecord) -> dict[str, object]:
    return {
        "row_number": record.row_number,
        "committee": record.committee,
        "committeename": record.committeename,
        "arearegion": record.arearegion,
        "day": record.day,
        "time": record.time,
    }


def _validate_only(path: str) -> int:
    result = validate_spreadsheet_file(path)
    payload = {
        "valid": result.valid,
        "errors": result.errors,
        "warnings": result.warnings,
        "total_rows": result.preview.total_rows,
        "valid_rows": result.preview.valid_rows,
        "sample_rows": [_preview_row(record) for record in result.preview.sample_rows],
    }
    print(json.dumps(payload, indent=2))
    return 0 if result.valid else 1


async def _run_import(path: str, args: argparse.Namespace) -> int:
    options = get_mapping_options()
    if args.default_duration is not None:
        options = replace(options, default_duration=format_time_for_bmlt(args.default_duration))
    if args.default_latitude is not None:
        options = replace(options, default_latitude=args.default_latitude)
    if args.default_longitude is not None:
        options = replace(options, default_longitude=args.default_longitude)
    if args.unpublished:
        options = replace(options, default_published=False)

    cancellation = CancellationToken()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancellation.cancel)
    except NotImplementedError:
        pass

    service = get_meeting_import_service()
    outcome = await service.import_from_file(
        path,
        options=options,
        on_progress=None if args.quiet else _print_progress,
        cancellation=cancellation,
    )
    print(json.dumps(outcome.to_dict(), indent=2, default=str))
    return 0 if outcome.success else 1


def main() -> int:
    parser = argparse.ArgumentParser(description="Import NAWS meeting spreadsheets into a BMLT server.")
    parser.add_argument("--file", dest="file", required=True, help="Path to a .xlsx, .xls, .csv or .ods file.")
    parser.add_argument(
        "--validate-only",
        dest="validate_only",
        action="store_true",
        help="Only check the file; nothing is sent to the server.",
    )
    parser.add_argument("--default-duration", dest="default_duration", default=None, help="Meeting duration as HH:MM.")
    parser.add_argument("--default-latitude", dest="default_latitude", type=float, default=None)
    parser.add_argument("--default-longitude", dest="default_longitude", type=float, default=None)
    parser.add_argument("--unpublished", action="store_true", help="Create meetings unpublished.")
    parser.add_argument("--quiet", action="store_true", help="Suppress progress lines.")
    args = parser.parse_args()

    if args.default_duration is not None and not is_valid_time(args.default_duration):
        parser.error(f"invalid --default-duration '{args.default_duration}', expected HH:MM")

    load_env_files()
    logging.basicConfig(
        level=getattr(logging, os.getenv("LOG_LEVEL", "WARNING").strip().upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    if args.validate_only:
        return _validate_only(args.file)
    return asyncio.run(_run_import(args.file, args))


if __name__ == "__main__":
    raise SystemExit(main())
