"""Expression-based scan and filter engine."""

__version__ = "0.1.0"

from .core.models import ColumnConfig, FilterCondition, ScanResult, ScanState, SortColumn
from .compiler.compiler import ScanCompiler
from .executor.executor import ScanExecutor

__all__ = [
    "ColumnConfig",
    "FilterCondition",
    "ScanResult",
    "ScanState",
    "SortColumn",
    "ScanCompiler",
    "ScanExecutor",
]
