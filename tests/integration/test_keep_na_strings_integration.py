"""Integration test for keep_na_strings feature."""
from pathlib import Path

import pandas as pd

from sheetbind.config.loader import load_config
from sheetbind.services.orchestrator import process_all

CONFIG = """
source_directory: data
engine: pandas
{extra}sheets:
  People:
    target: sample_records:Customer
"""


def _write_excel(data_dir: Path) -> None:
    with pd.ExcelWriter(data_dir / "test.xlsx") as writer:
        df = pd.DataFrame([
            ["id", "name", "email"],
            [1, "NA", "na@example.com"],
            [2, "value2", "N/A"],
            [3, "test", "NA"],
        ])
        df.to_excel(writer, sheet_name="People", header=False, index=False)


def _run(temp_workdir: Path, extra: str) -> list:
    config_file = temp_workdir / "config" / "sheetbind.yml"
    config_file.write_text(CONFIG.format(extra=extra), encoding="utf-8")
    _write_excel(temp_workdir / "data")
    records: list = []
    config = load_config(config_file)
    result = process_all(config, sink=lambda path, sheet, rows: records.extend(rows))

    assert result.success_files == 1
    assert result.failed_files == 0
    assert result.converted_rows == 3
    assert result.file_stats[0].status == "success"
    return records


def test_keep_na_strings_integration(temp_workdir: Path) -> None:
    """Listed strings stay text; other pandas NA markers still become blanks."""
    records = _run(temp_workdir, 'keep_na_strings:\n  - "NA"\n')

    assert [r.name for r in records] == ["NA", "value2", "test"]
    assert [r.email for r in records] == ["na@example.com", None, "NA"]


def test_no_keep_na_strings_default_behavior(temp_workdir: Path) -> None:
    """Without keep_na_strings, pandas' default NA strings read as blank cells."""
    records = _run(temp_workdir, "")

    # blank cells leave the field default in place
    assert [r.name for r in records] == ["", "value2", "test"]
    assert [r.email for r in records] == ["na@example.com", None, None]


def test_keep_na_strings_ignored_by_openpyxl_engine(temp_workdir: Path) -> None:
    """The openpyxl engine never turns text into blanks."""
    records = _run(temp_workdir, "")
    assert records

    config_file = temp_workdir / "config" / "sheetbind.yml"
    config_file.write_text(CONFIG.format(extra="").replace("engine: pandas", "engine: openpyxl"), encoding="utf-8")
    openpyxl_records: list = []
    process_all(load_config(config_file), sink=lambda path, sheet, rows: openpyxl_records.extend(rows))

    assert [r.name for r in openpyxl_records] == ["NA", "value2", "test"]
    assert [r.email for r in openpyxl_records] == ["na@example.com", "N/A", "NA"]
