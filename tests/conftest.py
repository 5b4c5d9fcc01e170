# Shared pytest fixtures
from __future__ import annotations
import tempfile
from pathlib import Path

import pytest

from sheetbind.excel.openpyxl_grid import OpenpyxlWorkbook
from sheetbind.logging.init import reset_logging
from workbooks import ORDER_ROWS, make_workbook


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """source_directory: ./data
max_error_rows: 10
sheets:
  Orders:
    target: sample_records:Order
  Customers:
    target: sample_records:Customer
    columns:
      name:
        name: Customer Name
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "sheetbind.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def order_workbook() -> OpenpyxlWorkbook:
    return make_workbook({"Orders": [list(r) for r in ORDER_ROWS]})


@pytest.fixture(autouse=True)
def clean_logging():
    """Fresh ``sheetbind`` logger state before and after every test."""
    reset_logging()
    yield
    reset_logging()
