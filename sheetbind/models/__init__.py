"""Domain models for sheetbind.

Binding models (FieldRef, FieldBinding, ResolvedColumn, ConversionResult) are
used by the conversion core; the remaining models describe configuration and
batch processing results.
"""

from .config_models import BindConfig, ColumnBindingConfig, SheetBindingConfig
from .conversion_result import ConversionResult
from .error_record import ErrorRecord
from .excel_file import ExcelFile, FileStatus
from .field_binding import FieldBinding, FieldRef
from .processing_result import FileStat, ProcessingResult
from .resolved_column import ResolvedColumn
from .sheet_process import SheetProcess

__all__ = [
    # Binding models
    "FieldRef",
    "FieldBinding",
    "ResolvedColumn",
    "ConversionResult",
    # Configuration models
    "BindConfig",
    "SheetBindingConfig",
    "ColumnBindingConfig",
    # Processing models
    "SheetProcess",
    "ExcelFile",
    "FileStatus",
    "FileStat",
    "ProcessingResult",
    "ErrorRecord",
]
