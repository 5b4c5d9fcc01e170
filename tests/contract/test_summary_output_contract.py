from __future__ import annotations

import re
from datetime import UTC, datetime
from pathlib import Path

import pytest

from sheetbind.cli import main as cli_main
from sheetbind.models.processing_result import ProcessingResult
from sheetbind.services.summary import render_summary_line
from workbooks import ORDER_ROWS, make_xlsx

"""SUMMARY line format contract."""

SUMMARY_PATTERN = re.compile(
    r"^SUMMARY\s+files=([0-9]+)/(\1)\s+success=([0-9]+)\s+failed=([0-9]+)\s+"
    r"rows=([0-9]+)\s+failed_rows=([0-9]+)\s+skipped_sheets=([0-9]+)\s+"
    r"elapsed_sec=([0-9]+\.?[0-9]*)\s+throughput_rps=([0-9]+\.?[0-9]*)$"
)


@pytest.fixture(autouse=True)
def no_config_env(monkeypatch):
    monkeypatch.setenv("SHEETBIND_CONFIG", "")


@pytest.mark.parametrize(
    "line",
    [
        "SUMMARY files=1/1 success=1 failed=0 rows=4 failed_rows=0 skipped_sheets=0 "
        "elapsed_sec=0.84 throughput_rps=4761.9",
        "SUMMARY files=2/2 success=1 failed=1 rows=100 failed_rows=3 skipped_sheets=2 "
        "elapsed_sec=1.5 throughput_rps=66.7",
        "SUMMARY files=0/0 success=0 failed=0 rows=0 failed_rows=0 skipped_sheets=0 "
        "elapsed_sec=0 throughput_rps=0",
    ],
)
def test_summary_pattern_example_line(line):
    assert SUMMARY_PATTERN.match(line), "SUMMARY line should match contract regex"


def test_summary_pattern_rejects_mismatched_file_counts():
    line = (
        "SUMMARY files=2/3 success=2 failed=0 rows=4 failed_rows=0 skipped_sheets=0 "
        "elapsed_sec=1 throughput_rps=4"
    )
    assert SUMMARY_PATTERN.match(line) is None


def test_render_summary_line_matches_contract():
    now = datetime.now(UTC)
    result = ProcessingResult(
        success_files=1,
        failed_files=1,
        converted_rows=75,
        failed_rows=4,
        skipped_sheets=2,
        start_time=now,
        end_time=now,
        elapsed_seconds=2.0,
        throughput_rows_per_sec=37.5,
    )
    match = SUMMARY_PATTERN.match(render_summary_line(result.total_files, result))
    assert match
    assert match.groups() == ("2", "2", "1", "1", "75", "4", "2", "2", "37.5")


def test_cli_prints_exactly_one_summary_line(temp_workdir: Path, write_config, capsys):
    make_xlsx(temp_workdir / "data" / "orders.xlsx", {"Orders": ORDER_ROWS})

    assert cli_main([]) == 0
    out = capsys.readouterr().out
    summary_lines = [line for line in out.splitlines() if line.startswith("SUMMARY")]
    assert len(summary_lines) == 1, out
    match = SUMMARY_PATTERN.match(summary_lines[0])
    assert match, summary_lines[0]
    assert int(match.group(5)) == 3
    assert int(match.group(7)) == 1
    assert float(match.group(8)) >= 0


def test_cli_zero_files_zero_throughput(temp_workdir: Path, write_config, capsys):
    assert cli_main([]) == 0
    (line,) = [line for line in capsys.readouterr().out.splitlines() if line.startswith("SUMMARY")]
    match = SUMMARY_PATTERN.match(line)
    assert match
    assert (match.group(1), match.group(5), match.group(9)) == ("0", "0", "0")
