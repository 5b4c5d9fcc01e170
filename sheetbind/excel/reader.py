from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

import pandas as pd

from .frame_grid import FrameWorkbook
from .grid import GridWorkbook
from .openpyxl_grid import OpenpyxlWorkbook

"""Workbook loading.

open_workbook() is the single entry point used by the batch service. The
openpyxl engine keeps number formats and formula caches and supports saving;
the pandas engine reads raw header-less frames (NA handling configurable via
``keep_na_strings``).
"""

__all__ = [
    "ENGINES",
    "read_excel_file",
    "open_workbook",
]

logger = logging.getLogger(__name__)

ENGINES = ("openpyxl", "pandas")


def read_excel_file(
    path: Path, target_sheets: Iterable[str] | None = None, keep_na_strings: list[str] | None = None
) -> FrameWorkbook:
    """Read an Excel file into a FrameWorkbook.

    Parameters
    ----------
    path: Excel file path
    target_sheets: restrict to these sheet names (None = all sheets)
    keep_na_strings: strings excluded from pandas' default NaN conversion (e.g. ['NA'])
    """
    # pandas._libs.parsers.STR_NA_VALUES holds the default NA string set
    import pandas._libs.parsers as parsers

    if keep_na_strings:
        default_na = parsers.STR_NA_VALUES.copy()
        na_values = list(default_na - set(keep_na_strings))
        keep_default_na = False
    else:
        na_values = None
        keep_default_na = True

    wanted = set(target_sheets) if target_sheets is not None else None
    frames: dict[str, pd.DataFrame] = {}
    with pd.ExcelFile(path) as xls:
        for name in xls.sheet_names:
            if wanted is not None and str(name) not in wanted:
                continue
            # header=None: header handling belongs to the column resolver
            frames[str(name)] = xls.parse(
                name, header=None, keep_default_na=keep_default_na, na_values=na_values
            )
    logger.debug("read %s sheets=%d engine=pandas", path, len(frames))
    return FrameWorkbook(frames)


def open_workbook(
    path: Path | str,
    engine: str = "openpyxl",
    target_sheets: Iterable[str] | None = None,
    keep_na_strings: list[str] | None = None,
) -> GridWorkbook:
    """Open ``path`` as a grid workbook using ``engine``."""
    path = Path(path)
    if engine == "openpyxl":
        wb = OpenpyxlWorkbook.load(path)
        logger.debug("read %s sheets=%d engine=openpyxl", path, len(wb.sheet_names))
        return wb
    if engine == "pandas":
        return read_excel_file(path, target_sheets, keep_na_strings)
    raise ValueError(f"unknown engine: {engine} (expected one of {', '.join(ENGINES)})")
