from __future__ import annotations

from dataclasses import FrozenInstanceError
from pathlib import Path

import pytest

from sheetbind.models.config_models import SheetBindingConfig
from sheetbind.models.excel_file import ExcelFile, FileStatus
from sheetbind.models.sheet_process import SheetProcess

MAPPING = SheetBindingConfig(sheet_name="Orders", target="sample_records:Order")


def test_sheet_process_creation_minimal():
    """Defaults describe a clean, empty sheet."""
    sheet = SheetProcess(sheet_name="Orders", mapping=MAPPING)

    assert sheet.sheet_name == "Orders"
    assert sheet.mapping == MAPPING
    assert (sheet.converted_rows, sheet.failed_rows) == (0, 0)
    assert sheet.stopped_early is False
    assert sheet.error is None
    assert sheet.ok


@pytest.mark.parametrize(
    "kwargs",
    [
        {"failed_rows": 1},
        {"error": "target 'm:Missing' is not a class"},
    ],
)
def test_sheet_process_not_ok(kwargs):
    assert not SheetProcess(sheet_name="Orders", mapping=MAPPING, converted_rows=5, **kwargs).ok


def test_sheet_process_immutable():
    sheet = SheetProcess(sheet_name="Orders", mapping=MAPPING)
    with pytest.raises(FrozenInstanceError):
        sheet.converted_rows = 3


def test_excel_file_defaults():
    excel = ExcelFile(path=Path("data/orders.xlsx"), name="orders.xlsx", sheets=[])

    assert excel.status is FileStatus.PENDING
    assert excel.start_time is None and excel.end_time is None
    assert (excel.converted_rows, excel.failed_rows, excel.skipped_sheets) == (0, 0, 0)
    assert excel.error is None


def test_file_status_values():
    assert [s.value for s in FileStatus] == ["pending", "processing", "success", "failed"]
