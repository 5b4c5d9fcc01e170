from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..binding.resolvers import ResolverRegistry
from ..config.loader import load_target
from ..errors import SheetBindError, error_type_name
from ..excel.grid import GridWorkbook
from ..excel.reader import open_workbook
from ..logging.error_log import ErrorLogBuffer
from ..models.config_models import BindConfig, ColumnBindingConfig, SheetBindingConfig
from ..models.error_record import FILE_LEVEL_SHEET, ErrorRecord
from ..models.excel_file import ExcelFile, FileStatus
from ..models.processing_result import FileStat, ProcessingResult
from ..models.sheet_process import SheetProcess
from .progress import ProgressTracker, SheetProgressIndicator
from .session import ConversionSession

"""Batch binding service.

process_all() scans the configured directory for .xlsx files, opens each
workbook, converts every configured sheet into its target record type through
one ConversionSession per file, and aggregates the results. Row failures go to
the JSON Lines error log; a file fails when it cannot be opened or when any of
its sheets reports a failure. Processing always continues with the next file.
"""

__all__ = [
    "ProcessingError",
    "RecordSink",
    "scan_excel_files",
    "build_session",
    "apply_column_config",
    "process_all",
]

logger = logging.getLogger(__name__)

# (file path, sheet name, converted records) -> None
RecordSink = Callable[[Path, str, list[Any]], None]


class ProcessingError(Exception):
    """Fatal error that prevents processing (missing / unreadable directory)."""


def scan_excel_files(directory: Path) -> list[Path]:
    """Scan ``directory`` for .xlsx files (non-recursive, sorted by name).

    Raises:
        ProcessingError: directory missing, not a directory, or unreadable
    """
    if not directory.exists():
        raise ProcessingError(f"Directory not found: {directory}")

    if not directory.is_dir():
        raise ProcessingError(f"Path is not a directory: {directory}")

    try:
        return sorted(p for p in directory.iterdir() if p.is_file() and p.suffix == ".xlsx")
    except OSError as e:
        raise ProcessingError(f"Error reading directory {directory}: {e}") from e


def build_session(
    config: BindConfig, workbook: GridWorkbook | None = None, resolvers: ResolverRegistry | None = None
) -> ConversionSession:
    return ConversionSession(
        workbook,
        track_records=config.track_records,
        has_header=config.has_header,
        ignored_name_chars=config.ignored_name_chars,
        truncate_name_chars=config.truncate_name_chars,
        default_resolver=config.default_resolver,
        trim_policy=config.trim_policy,
        resolvers=resolvers,
    )


def apply_column_config(session: ConversionSession, target: type, column: ColumnBindingConfig) -> None:
    """Apply one configured column override through the session's fluent calls."""
    if column.index is not None:
        session.map(target, column.field, column.index, resolver=column.resolver)
    elif column.name is not None:
        session.map(target, column.field, column.name, resolver=column.resolver)
    elif column.resolver is not None:
        session.resolve_with(target, column.field, column.resolver)
    if column.ignore:
        session.ignore(target, column.field)
    if column.use_last_non_blank:
        session.use_last_non_blank(target, column.field)
    if column.custom_format is not None:
        session.format(target, column.field, column.custom_format)
    elif column.builtin_format is not None:
        session.format(target, column.field, column.builtin_format)


def process_all(
    config: BindConfig,
    resolvers: ResolverRegistry | None = None,
    sink: RecordSink | None = None,
) -> ProcessingResult:
    """Convert every configured sheet of every workbook in the source directory.

    Args:
        config: loaded configuration
        resolvers: registry holding the resolver keys the config refers to
        sink: optional callback receiving the converted records per sheet

    Returns:
        ProcessingResult with aggregated metrics and file stats

    Raises:
        ProcessingError: the source directory cannot be scanned
    """
    start_time = datetime.now(UTC)
    error_log = ErrorLogBuffer()

    directory = Path(config.source_directory)
    file_paths = scan_excel_files(directory)

    file_stats: list[FileStat] = []
    success_count = 0
    failed_count = 0
    total_rows = 0
    total_failed_rows = 0
    total_skipped_sheets = 0

    with ProgressTracker(len(file_paths)) as progress:
        for file_path in file_paths:
            progress.start_file(file_path)

            file_result = _process_single_file(file_path, config, resolvers, error_log, sink)
            file_elapsed = 0.0
            if file_result.start_time is not None and file_result.end_time is not None:
                file_elapsed = (file_result.end_time - file_result.start_time).total_seconds()

            if file_result.status == FileStatus.SUCCESS:
                success_count += 1
            else:
                failed_count += 1
            total_rows += file_result.converted_rows
            total_failed_rows += file_result.failed_rows
            total_skipped_sheets += file_result.skipped_sheets

            progress.set_postfix(ok=success_count, failed=failed_count, rows=total_rows)
            progress.finish_file(success=(file_result.status == FileStatus.SUCCESS))

            file_stats.append(
                FileStat(
                    file_name=file_path.name,
                    status=file_result.status.value,
                    converted_rows=file_result.converted_rows,
                    failed_rows=file_result.failed_rows,
                    elapsed_seconds=file_elapsed,
                )
            )

    # Flush error log once per run
    try:
        log_path = error_log.flush()
    except OSError as e:
        logger.warning("failed to write error log: %s", e)
    else:
        if log_path is not None:
            logger.info("error log: %s", log_path)

    end_time = datetime.now(UTC)
    elapsed_seconds = (end_time - start_time).total_seconds()
    throughput_rps = total_rows / elapsed_seconds if elapsed_seconds > 0 else 0.0

    return ProcessingResult(
        success_files=success_count,
        failed_files=failed_count,
        converted_rows=total_rows,
        failed_rows=total_failed_rows,
        skipped_sheets=total_skipped_sheets,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=elapsed_seconds,
        throughput_rows_per_sec=throughput_rps,
        file_stats=file_stats,
    )


def _process_single_file(
    file_path: Path,
    config: BindConfig,
    resolvers: ResolverRegistry | None,
    error_log: ErrorLogBuffer,
    sink: RecordSink | None,
) -> ExcelFile:
    """Convert the configured sheets of one workbook."""
    start_time = datetime.now(UTC)
    try:
        workbook = open_workbook(
            file_path,
            engine=config.engine,
            target_sheets=config.sheets.keys(),
            keep_na_strings=config.keep_na_strings or None,
        )
    except Exception as e:  # any unreadable workbook fails the file, never the run
        logger.warning("cannot open %s: %s", file_path.name, e)
        error_log.append(
            ErrorRecord.create(
                file=file_path.name,
                sheet=FILE_LEVEL_SHEET,
                row=-1,
                error_type="FILE_READ_ERROR",
                message=str(e),
            )
        )
        return ExcelFile(
            path=file_path,
            name=file_path.name,
            sheets=[],
            start_time=start_time,
            end_time=datetime.now(UTC),
            status=FileStatus.FAILED,
            error=str(e),
        )

    session = build_session(config, workbook, resolvers)
    present = set(workbook.sheet_names)
    mapped = [name for name in config.sheets if name in present]
    sheet_progress = SheetProgressIndicator(file_name=file_path.name, total_sheets=len(mapped))

    sheets: list[SheetProcess] = []
    skipped = 0
    for sheet_name, mapping in config.sheets.items():
        if sheet_name not in present:
            logger.info("%s: sheet '%s' not found, skipped", file_path.name, sheet_name)
            skipped += 1
            continue
        sheet_progress.start_sheet(sheet_name)
        result = _process_single_sheet(session, file_path, mapping, config, error_log, sink)
        sheets.append(result)
        sheet_progress.finish_sheet(
            success=result.ok, rows_converted=result.converted_rows, rows_failed=result.failed_rows
        )

    converted = sum(s.converted_rows for s in sheets)
    failed_rows = sum(s.failed_rows for s in sheets)
    failed_sheets = [s.sheet_name for s in sheets if not s.ok]
    status = FileStatus.FAILED if failed_sheets else FileStatus.SUCCESS
    logger.info(
        "%s: status=%s rows=%d failed_rows=%d skipped_sheets=%d",
        file_path.name,
        status.value,
        converted,
        failed_rows,
        skipped,
    )
    return ExcelFile(
        path=file_path,
        name=file_path.name,
        sheets=sheets,
        start_time=start_time,
        end_time=datetime.now(UTC),
        status=status,
        converted_rows=converted,
        failed_rows=failed_rows,
        skipped_sheets=skipped,
        error=f"failed sheets: {', '.join(failed_sheets)}" if failed_sheets else None,
    )


def _process_single_sheet(
    session: ConversionSession,
    file_path: Path,
    mapping: SheetBindingConfig,
    config: BindConfig,
    error_log: ErrorLogBuffer,
    sink: RecordSink | None,
) -> SheetProcess:
    sheet_name = mapping.sheet_name
    max_error_rows = config.max_error_rows_for(mapping)
    records: list[Any] = []
    failed = 0
    try:
        target = load_target(mapping.target)
        for column in mapping.columns:
            apply_column_config(session, target, column)
        for result in session.take(target, sheet_name, max_error_rows=max_error_rows):
            if result.ok:
                records.append(result.record)
                continue
            failed += 1
            error_log.append(ErrorRecord.from_result(file_path.name, sheet_name, result))
    except SheetBindError as e:  # ConfigError included
        logger.error("%s/%s: %s", file_path.name, sheet_name, e)
        error_log.append(
            ErrorRecord.create(
                file=file_path.name,
                sheet=sheet_name,
                row=-1,
                error_type=error_type_name(e),
                message=str(e),
            )
        )
        return SheetProcess(sheet_name=sheet_name, mapping=mapping, error=str(e))

    if sink is not None:
        sink(file_path, sheet_name, records)
    stopped_early = max_error_rows > 0 and failed > max_error_rows
    logger.debug("%s/%s: converted=%d failed=%d", file_path.name, sheet_name, len(records), failed)
    return SheetProcess(
        sheet_name=sheet_name,
        mapping=mapping,
        converted_rows=len(records),
        failed_rows=failed,
        stopped_early=stopped_early,
    )
