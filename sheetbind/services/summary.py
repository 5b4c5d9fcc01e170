from __future__ import annotations

from ..models.processing_result import ProcessingResult

"""SUMMARY line rendering.

Format (one line, fixed key order):
SUMMARY files={total}/{total} success={ok} failed={failed} rows={converted}
failed_rows={failed_rows} skipped_sheets={skipped} elapsed_sec={elapsed}
throughput_rps={throughput}
"""

__all__ = [
    "format_metric",
    "render_summary_line",
]


def format_metric(value: float) -> str:
    """Render a float without trailing ``.0`` or scientific notation.

    >>> format_metric(2.0)
    '2'
    >>> format_metric(0.0001234)
    '0.000123'
    >>> format_metric(66.7)
    '66.7'
    """
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return str(value)


def render_summary_line(total_files: int, result: ProcessingResult) -> str:
    """Render the SUMMARY line for ``result``.

    Examples:
        >>> from datetime import datetime, timezone
        >>> start = datetime(2023, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
        >>> end = datetime(2023, 1, 1, 10, 0, 2, tzinfo=timezone.utc)
        >>> result = ProcessingResult(
        ...     success_files=1, failed_files=0, converted_rows=1000, failed_rows=0,
        ...     skipped_sheets=0, start_time=start, end_time=end,
        ...     elapsed_seconds=2.0, throughput_rows_per_sec=500.0
        ... )
        >>> render_summary_line(1, result)
        'SUMMARY files=1/1 success=1 failed=0 rows=1000 failed_rows=0 skipped_sheets=0 elapsed_sec=2 throughput_rps=500'
    """
    return (
        f"SUMMARY files={total_files}/{total_files} "
        f"success={result.success_files} "
        f"failed={result.failed_files} "
        f"rows={result.converted_rows} "
        f"failed_rows={result.failed_rows} "
        f"skipped_sheets={result.skipped_sheets} "
        f"elapsed_sec={format_metric(result.elapsed_seconds)} "
        f"throughput_rps={format_metric(result.throughput_rows_per_sec)}"
    )
