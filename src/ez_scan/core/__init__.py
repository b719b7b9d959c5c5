"""Core module for the scan engine."""

from .models import (
    ColumnConfig, FilterCondition, SortColumn, ScanState,
    ResultColumn, ScanRow, ScanResult, slugify
)
from .enums import (
    ColumnType, ConditionType, EvaluationPeriod, Logic, SortDirection
)
from .errors import (
    ScanError, CompilationError, MalformedColumnError, MalformedConditionError,
    MalformedSortError, DuplicateColumnError, UnknownSymbolError, ArityError,
    InvalidRangeError, ExpressionSyntaxError, ScanExecutionError, BackendError
)

__all__ = [
    "ColumnConfig",
    "FilterCondition",
    "SortColumn",
    "ScanState",
    "ResultColumn",
    "ScanRow",
    "ScanResult",
    "slugify",
    "ColumnType",
    "ConditionType",
    "EvaluationPeriod",
    "Logic",
    "SortDirection",
    "ScanError",
    "CompilationError",
    "MalformedColumnError",
    "MalformedConditionError",
    "MalformedSortError",
    "DuplicateColumnError",
    "UnknownSymbolError",
    "ArityError",
    "InvalidRangeError",
    "ExpressionSyntaxError",
    "ScanExecutionError",
    "BackendError",
]
