"""Column/condition compiler module."""

from .compiler import ScanCompiler, ADMISSION_KEY, TICKER_KEY
from .plan import (
    ScanPlan, CompiledColumn, CompiledCondition, CompiledSort, ConditionSet,
    FieldProjection, ExpressionProjection, ConditionProjection
)
from .request import ScanRequest, ColumnSpec, SortSpec, build_request

__all__ = [
    "ScanCompiler",
    "ADMISSION_KEY",
    "TICKER_KEY",
    "ScanPlan",
    "CompiledColumn",
    "CompiledCondition",
    "CompiledSort",
    "ConditionSet",
    "FieldProjection",
    "ExpressionProjection",
    "ConditionProjection",
    "ScanRequest",
    "ColumnSpec",
    "SortSpec",
    "build_request",
]
