"""Scan execution module."""

from .cache import ResultCache
from .executor import ScanExecutor
from .session import ScanSession
from .sorting import sort_rows

__all__ = [
    "ResultCache",
    "ScanExecutor",
    "ScanSession",
    "sort_rows",
]
