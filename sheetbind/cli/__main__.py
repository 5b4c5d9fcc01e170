from __future__ import annotations

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

from sheetbind.config.loader import ConfigError, load_config, load_target, resolve_config_path
from sheetbind.errors import SheetBindError
from sheetbind.excel.reader import open_workbook
from sheetbind.logging.init import enable_debug, log_summary, setup_logging
from sheetbind.models.config_models import BindConfig
from sheetbind.services.orchestrator import (
    ProcessingError,
    apply_column_config,
    build_session,
    process_all,
    scan_excel_files,
)
from sheetbind.services.summary import render_summary_line

"""CLI entrypoint.

Flow:
- load .env (python-dotenv), then the YAML config
- scan the source directory for .xlsx files (non-recursive)
- convert every configured sheet, log row failures to the JSON Lines error log
- print the SUMMARY line and exit with 0 (all ok), 2 (some failures) or 1 (fatal)
"""

__all__ = [
    "EXIT_SUCCESS_ALL",
    "EXIT_PARTIAL_FAILURE",
    "EXIT_FATAL",
    "main",
]

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

INSPECT_SAMPLE_ROWS = 3


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv (values override the process environment)."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="sheetbind", description="Bind spreadsheet rows to typed records")
    p.add_argument("--config", help="Config file (default: $SHEETBIND_CONFIG or config/sheetbind.yml)")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument(
        "--inspect-data", action="store_true", help="Print resolved columns & first records per sheet then exit"
    )
    return p.parse_args(argv)


def _sample(record: object) -> object:
    values = getattr(record, "__dict__", None)
    if not isinstance(values, dict):
        return record
    # datetime values are not JSON-friendly; show them as ISO strings
    return {k: (v.isoformat() if hasattr(v, "isoformat") else v) for k, v in values.items()}


def _inspect_data(cfg: BindConfig) -> int:
    directory = Path(cfg.source_directory)
    try:
        excel_files = scan_excel_files(directory)
    except ProcessingError as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    if not excel_files:
        print("inspect: no .xlsx files")
        return EXIT_SUCCESS_ALL
    for f in excel_files:
        print(f"FILE: {f.name}")
        try:
            workbook = open_workbook(f, engine=cfg.engine)
        except Exception as e:  # pragma: no cover
            print(f"  read_error: {e}")
            continue
        session = build_session(cfg, workbook)
        for sheet_name, mapping in cfg.sheets.items():
            if workbook.sheet(sheet_name) is None:
                print(f"  SHEET: {sheet_name} missing")
                continue
            try:
                target = load_target(mapping.target)
                for column in mapping.columns:
                    apply_column_config(session, target, column)
                columns = session.resolved_columns(target, sheet_name)
                print(f"  SHEET: {sheet_name} target={target.__name__}")
                for c in columns:
                    print(f"    col={c.column_index} header={c.header_value!r} field={c.field_name}")
                samples = []
                for result in session.take(target, sheet_name, max_error_rows=0):
                    if len(samples) >= INSPECT_SAMPLE_ROWS:
                        break
                    samples.append(_sample(result.record) if result.ok else f"row {result.row_index}: {result.failure_reason}")
                print("    sample_records=", samples)
            except SheetBindError as e:
                print(f"  SHEET: {sheet_name} error={e}")
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # Only read sys.argv when argv is None (an empty list means "no arguments")
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        enable_debug()
        logger.debug("debug mode enabled")

    config_path = resolve_config_path(args.config)
    try:
        cfg = load_config(config_path)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    directory = Path(cfg.source_directory)
    if not directory.exists():
        logger.error(f"directory not found: {directory}")
        return EXIT_FATAL

    logger.info(f"Processing files from: {directory}")

    if args.inspect_data:
        return _inspect_data(cfg)

    try:
        result = process_all(cfg)
    except ProcessingError as e:
        logger.error(f"processing: {e}")
        return EXIT_FATAL

    summary_line = render_summary_line(result.total_files, result)
    # log_summary adds the "SUMMARY " label itself
    log_summary(summary_line.removeprefix("SUMMARY "))

    if result.failed_files > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
